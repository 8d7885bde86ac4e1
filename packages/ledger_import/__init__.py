"""Public interface for the ``ledger_import`` package.

CSV bank exports are parsed into staged transactions, reviewed, and promoted
into income/expense ledger entries. This module only re-exports the stable
import surface; there is no runtime logic here.
"""

from .api import (
    delete_staged_transactions,
    list_categories,
    list_staged_transactions,
    promote_transactions,
    seed_categories,
    upload_csv,
)
from .errors import (
    ColumnDetectionError,
    ImportRejected,
    LedgerImportError,
    NoCategoriesError,
    StorageError,
    UnsupportedUploadError,
)
from .importer import import_transactions
from .models import (
    Category,
    ColumnRole,
    DeleteResult,
    FailureReason,
    ImportReport,
    NormalizedRow,
    PromotionError,
    PromotionResult,
    RowFailure,
    StagedTransaction,
    TransactionKind,
    UploadResult,
)
from .promotion import delete_staged, list_staged, promote_staged

__all__ = [
    # API (database-backed)
    "upload_csv",
    "list_staged_transactions",
    "promote_transactions",
    "delete_staged_transactions",
    "list_categories",
    "seed_categories",
    # Pipeline (store-agnostic)
    "import_transactions",
    "promote_staged",
    "delete_staged",
    "list_staged",
    # Models / types
    "ColumnRole",
    "TransactionKind",
    "FailureReason",
    "NormalizedRow",
    "RowFailure",
    "StagedTransaction",
    "Category",
    "ImportReport",
    "UploadResult",
    "PromotionError",
    "PromotionResult",
    "DeleteResult",
    # Errors
    "LedgerImportError",
    "ImportRejected",
    "ColumnDetectionError",
    "UnsupportedUploadError",
    "NoCategoriesError",
    "StorageError",
]
