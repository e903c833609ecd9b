"""Core business logic for Sales Tracker."""

from .aggregation import AggregationEngine, AnalyticsReport, ItemStat, MonthlySummary
from .config import Settings, SettlementPolicy, get_settings
from .errors import (
    CatalogValidationError,
    InvalidMonthError,
    LedgerWriteError,
    NotFoundError,
    OwnerRequiredError,
    SalesTrackerError,
    StorageError,
)
from .ledger import LedgerWriter, build_entries
from .loader import SnapshotLoader
from .models import (
    CellBreakdown,
    CellKey,
    CommitResult,
    Item,
    ItemSetting,
    MatrixResult,
    MatrixRow,
    PaymentMethod,
    Platform,
    Rate,
    RateSource,
    SaleEntry,
    Snapshot,
    Totals,
    Variant,
    VariantOverride,
)
from .settlement import SettlementEngine

__all__ = [
    "Settings",
    "SettlementPolicy",
    "get_settings",
    "SalesTrackerError",
    "OwnerRequiredError",
    "InvalidMonthError",
    "CatalogValidationError",
    "NotFoundError",
    "StorageError",
    "LedgerWriteError",
    "Item",
    "Variant",
    "Platform",
    "PaymentMethod",
    "ItemSetting",
    "VariantOverride",
    "Rate",
    "RateSource",
    "CellKey",
    "CellBreakdown",
    "Totals",
    "SaleEntry",
    "MatrixRow",
    "MatrixResult",
    "Snapshot",
    "CommitResult",
    "SettlementEngine",
    "AggregationEngine",
    "AnalyticsReport",
    "ItemStat",
    "MonthlySummary",
    "LedgerWriter",
    "build_entries",
    "SnapshotLoader",
]
