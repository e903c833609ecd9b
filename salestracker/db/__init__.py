"""Database layer for Sales Tracker."""

from .models import (
    Base,
    ItemDB,
    ItemSettingDB,
    ItemVariantDB,
    PaymentMethodDB,
    PlatformDB,
    SaleDB,
    VariantOverrideDB,
)
from .repository import Repository
from .session import close_database, create_db_engine, get_engine, init_database, session_scope

__all__ = [
    "Base",
    "ItemDB",
    "ItemVariantDB",
    "PlatformDB",
    "PaymentMethodDB",
    "ItemSettingDB",
    "VariantOverrideDB",
    "SaleDB",
    "Repository",
    "close_database",
    "create_db_engine",
    "get_engine",
    "init_database",
    "session_scope",
]
