"""Core data models for Sales Tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import CatalogValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce a loosely typed numeric field to Decimal.

    Missing, non-numeric, NaN and infinite values become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace("¥", "").replace("￥", "").replace(",", "")
        if not cleaned:
            return ZERO
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            logger.debug("Coercing non-numeric value %r to 0", value)
            return ZERO
    else:
        logger.debug("Coercing unsupported value %r to 0", value)
        return ZERO

    if not result.is_finite():
        return ZERO
    return result


def to_quantity(value: Any) -> int:
    """Coerce an entered quantity to a non-negative int (0 when unusable)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    number = to_decimal(value)
    if number <= 0:
        return 0
    return int(number)


class RateSource(str, Enum):
    """Where a resolved fee/shipping rate came from."""

    VARIANT_OVERRIDE = "variant_override"
    WILDCARD_OVERRIDE = "wildcard_override"
    PAYMENT_METHOD = "payment_method"
    NONE = "none"


# ==================== Catalog ====================


@dataclass(frozen=True)
class Variant:
    """A priced sub-type of an item (e.g. paper or digital edition)."""

    type: str
    unit_price: Decimal = ZERO
    requires_shipping: bool = True
    activation_month: str | None = None


@dataclass(frozen=True)
class Item:
    """A sellable product with one or more variants."""

    id: str = ""
    name: str = ""
    variants: tuple[Variant, ...] = ()
    archived: bool = False
    activation_month: str | None = None

    def effective_activation_month(self, variant: Variant) -> str | None:
        """Variant's own activation month, else the item's, else None."""
        return variant.activation_month or self.activation_month

    def get_variant(self, variant_type: str) -> Variant | None:
        for variant in self.variants:
            if variant.type == variant_type:
                return variant
        return None

    def validation_problems(self) -> list[str]:
        """List invariant violations; empty when the item is well formed."""
        problems: list[str] = []
        if not self.name.strip():
            problems.append("Item name is required")
        if not self.archived and not self.variants:
            problems.append("An active item needs at least one variant")

        seen: set[str] = set()
        for variant in self.variants:
            if not variant.type.strip():
                problems.append("Variant type is required")
            elif variant.type in seen:
                problems.append(f"Duplicate variant type: {variant.type}")
            seen.add(variant.type)
            if variant.unit_price < 0:
                problems.append(f"Variant {variant.type} has a negative price")
        return problems

    def validate(self) -> None:
        """Raise CatalogValidationError if the item breaks an invariant."""
        problems = self.validation_problems()
        if problems:
            raise CatalogValidationError("; ".join(problems), problems=problems)


# ==================== Channels ====================


@dataclass(frozen=True)
class PaymentMethod:
    """Platform-level default fee schedule for one payment method."""

    name: str = ""
    fee_percentage: Decimal = ZERO
    shipping_fee: Decimal = ZERO


@dataclass(frozen=True)
class VariantOverride:
    """Fee/shipping override; variant_type None makes it a wildcard."""

    variant_type: str | None = None
    fee_percentage: Decimal = ZERO
    shipping_fee: Decimal = ZERO

    @property
    def is_wildcard(self) -> bool:
        return not self.variant_type


@dataclass(frozen=True)
class ItemSetting:
    """Overrides a platform holds for one item."""

    item_id: str = ""
    overrides: tuple[VariantOverride, ...] = ()


@dataclass(frozen=True)
class Platform:
    """A sales channel (marketplace, event, storefront)."""

    id: str = ""
    name: str = ""
    description: str = ""
    payment_methods: tuple[PaymentMethod, ...] = ()
    item_settings: tuple[ItemSetting, ...] = ()

    def overrides_for(self, item_id: str) -> tuple[VariantOverride, ...]:
        """All overrides registered for an item, across every matching setting."""
        found: list[VariantOverride] = []
        for setting in self.item_settings:
            if setting.item_id == item_id:
                found.extend(setting.overrides)
        return tuple(found)

    def get_payment_method(self, name: str | None = None) -> PaymentMethod | None:
        """Named payment method, or the first one when no name is given."""
        if not self.payment_methods:
            return None
        if name is None:
            return self.payment_methods[0]
        for method in self.payment_methods:
            if method.name == name:
                return method
        return None

    def validate(self) -> None:
        problems: list[str] = []
        if not self.name.strip():
            problems.append("Platform name is required")
        for setting in self.item_settings:
            if not setting.item_id:
                problems.append("Item setting without an item id")
        if problems:
            raise CatalogValidationError("; ".join(problems), problems=problems)


# ==================== Settlement ====================


@dataclass(frozen=True)
class Rate:
    """Resolved fee percentage and per-unit shipping fee."""

    fee_percentage: Decimal = ZERO
    shipping_fee: Decimal = ZERO
    source: RateSource = RateSource.NONE


@dataclass(frozen=True)
class CellKey:
    """Identifies one (item, variant, platform) cell of the entry matrix."""

    item_id: str
    variant_type: str
    platform_id: str

    def as_string(self) -> str:
        return f"{self.item_id}__{self.variant_type}__{self.platform_id}"


@dataclass(frozen=True)
class CellBreakdown:
    """Settlement of one matrix cell."""

    quantity: int = 0
    subtotal: Decimal = ZERO
    fee: Decimal = ZERO
    shipping: Decimal = ZERO
    charges: Decimal = ZERO
    payout: Decimal = ZERO
    total_amount: Decimal = ZERO
    rate: Rate = field(default_factory=Rate)

    @property
    def has_data(self) -> bool:
        return self.quantity > 0


@dataclass(frozen=True)
class Totals:
    """Summed quantity, subtotal, charges and payout."""

    quantity: int = 0
    subtotal: Decimal = ZERO
    charges: Decimal = ZERO
    payout: Decimal = ZERO

    def __add__(self, other: Totals) -> Totals:
        if not isinstance(other, Totals):
            return NotImplemented
        return Totals(
            quantity=self.quantity + other.quantity,
            subtotal=self.subtotal + other.subtotal,
            charges=self.charges + other.charges,
            payout=self.payout + other.payout,
        )

    @classmethod
    def from_cell(cls, cell: CellBreakdown) -> Totals:
        return cls(
            quantity=cell.quantity,
            subtotal=cell.subtotal,
            charges=cell.charges,
            payout=cell.payout,
        )


# ==================== Ledger ====================


@dataclass(frozen=True)
class SaleEntry:
    """Immutable record of a realized sale with frozen rate snapshots."""

    owner_id: str
    item_id: str
    item_name: str
    variant_type: str
    platform_id: str
    platform_name: str
    quantity: int
    base_price: Decimal
    fee_percentage: Decimal
    shipping_fee: Decimal
    total_amount: Decimal
    sale_date: datetime
    month: str
    created_at: datetime = field(default_factory=datetime.now)
    id: str | None = None

    @property
    def cell_key(self) -> CellKey:
        return CellKey(self.item_id, self.variant_type, self.platform_id)


# ==================== Views ====================


@dataclass(frozen=True)
class MatrixRow:
    """An item together with the variants offered for entry in a month."""

    item: Item
    variants: tuple[Variant, ...]


@dataclass(frozen=True)
class MatrixResult:
    """Computed entry matrix for one month."""

    month: str
    rows: tuple[MatrixRow, ...] = ()
    cells: dict[CellKey, CellBreakdown] = field(default_factory=dict)
    enabled: frozenset[CellKey] = frozenset()
    platform_totals: dict[str, Totals] = field(default_factory=dict)
    grand_total: Totals = field(default_factory=Totals)

    @property
    def has_data(self) -> bool:
        return self.grand_total.quantity > 0

    def is_cell_enabled(self, key: CellKey) -> bool:
        return key in self.enabled


@dataclass(frozen=True)
class Snapshot:
    """Catalog, channel and (optionally) ledger state fetched for one owner."""

    owner_id: str
    items: tuple[Item, ...] = ()
    platforms: tuple[Platform, ...] = ()
    sales: tuple[SaleEntry, ...] = ()
    month: str | None = None
    loaded_at: datetime = field(default_factory=datetime.now)

    def get_item(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def get_platform(self, platform_id: str) -> Platform | None:
        for platform in self.platforms:
            if platform.id == platform_id:
                return platform
        return None


@dataclass
class CommitResult:
    """Outcome of saving a month's entry matrix to the ledger."""

    success: bool = False
    month: str = ""
    entries: list[SaleEntry] = field(default_factory=list)
    error: str = ""

    @property
    def saved_count(self) -> int:
        return len(self.entries) if self.success else 0
