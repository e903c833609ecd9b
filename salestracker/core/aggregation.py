"""Aggregation engine for Sales Tracker.

Folds settled cells into per-platform and grand totals, either live from an
entry matrix or after the fact from saved ledger entries. Ledger figures are
always re-derived from the entry's own rate snapshots, never from the current
catalog, so editing an item or platform does not rewrite history.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union

from .config import SettlementPolicy
from .models import (
    ZERO,
    CellBreakdown,
    CellKey,
    Item,
    MatrixResult,
    MatrixRow,
    Platform,
    SaleEntry,
    Totals,
    Variant,
    to_decimal,
    to_quantity,
)
from .months import month_of
from .settlement import SettlementEngine

logger = logging.getLogger(__name__)

QuantityLookup = Union[Mapping[CellKey, Any], Callable[[str, str, str], Any]]
GroupBy = Union[str, Callable[[SaleEntry], Hashable]]

UNSET_ITEM_START = "0000-00"
UNSET_VARIANT_START = "9999-99"


@dataclass(frozen=True)
class MonthlySummary:
    """Ledger totals for one month."""

    month: str
    quantity: int = 0
    revenue: Decimal = ZERO
    subtotal: Decimal = ZERO
    charges: Decimal = ZERO
    payout: Decimal = ZERO


@dataclass(frozen=True)
class ItemStat:
    """Cumulative sales of one item variant."""

    name: str
    total_sales: int = 0
    revenue: Decimal = ZERO
    average_price: Decimal = ZERO


@dataclass
class AnalyticsReport:
    """Everything the analytics view shows for an owner."""

    monthly: list[MonthlySummary] = field(default_factory=list)
    items: list[ItemStat] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)
    total_revenue: Decimal = ZERO
    item_count: int = 0


def _as_lookup(quantity_lookup: QuantityLookup) -> Callable[[str, str, str], int]:
    """Normalize a mapping or callable into a callable returning an int."""
    if callable(quantity_lookup):
        fn = quantity_lookup
        return lambda item_id, variant_type, platform_id: to_quantity(
            fn(item_id, variant_type, platform_id)
        )

    mapping = quantity_lookup
    return lambda item_id, variant_type, platform_id: to_quantity(
        mapping.get(CellKey(item_id, variant_type, platform_id), 0)
    )


def settle_entry(entry: SaleEntry) -> Totals:
    """Re-derive subtotal, charges and payout from a ledger entry's snapshots."""
    quantity = to_quantity(entry.quantity)
    total_amount = to_decimal(entry.total_amount)
    base_price = to_decimal(entry.base_price)

    if base_price > 0:
        subtotal = base_price * quantity
    else:
        # Legacy records without a base price
        subtotal = total_amount

    charges = max(total_amount - subtotal, ZERO)
    return Totals(
        quantity=quantity,
        subtotal=subtotal,
        charges=charges,
        payout=subtotal - charges,
    )


def entry_month(entry: SaleEntry) -> str:
    return entry.month or month_of(entry.sale_date) or ""


def entry_label(entry: SaleEntry) -> str:
    """Display name used by the analytics view, e.g. "Guide (Paper)"."""
    return f"{entry.item_name or entry.item_id}（{entry.variant_type}）"


NAMED_GROUPS: dict[str, Callable[[SaleEntry], Hashable]] = {
    "month": entry_month,
    "item_variant": lambda e: (e.item_id, e.variant_type),
    "platform": lambda e: e.platform_id,
    "item": lambda e: e.item_id,
}


class AggregationEngine:
    """Sums settlements across the entry matrix or a ledger slice."""

    def __init__(self, settlement: SettlementEngine | None = None) -> None:
        self.settlement = settlement or SettlementEngine()

    @classmethod
    def from_policy(cls, policy: SettlementPolicy) -> AggregationEngine:
        return cls(SettlementEngine(policy))

    # ==================== Matrix ====================

    def visible_rows(self, items: Iterable[Item], month: str) -> tuple[MatrixRow, ...]:
        """Rows offered for entry in a month.

        Archived items and not-yet-active variants are left out. Items are
        listed newest start month first; variants oldest start month first.
        """
        active_items = [item for item in items if not item.archived]
        active_items.sort(key=lambda i: i.name)
        active_items.sort(key=lambda i: i.activation_month or UNSET_ITEM_START, reverse=True)

        rows: list[MatrixRow] = []
        for item in active_items:
            variants = [
                v for v in item.variants if self.settlement.is_active_in_month(item, v, month)
            ]
            if not variants:
                continue
            variants.sort(
                key=lambda v: (item.effective_activation_month(v) or UNSET_VARIANT_START, v.type)
            )
            rows.append(MatrixRow(item=item, variants=tuple(variants)))
        return tuple(rows)

    def aggregate_matrix(
        self,
        items: Iterable[Item],
        platforms: Sequence[Platform],
        quantity_lookup: QuantityLookup,
        month: str,
    ) -> MatrixResult:
        """Settle every enabled, active cell and total it per platform."""
        lookup = _as_lookup(quantity_lookup)
        rows = self.visible_rows(items, month)

        cells: dict[CellKey, CellBreakdown] = {}
        enabled: set[CellKey] = set()
        platform_totals: dict[str, Totals] = {p.id: Totals() for p in platforms}

        for row in rows:
            for variant in row.variants:
                for platform in platforms:
                    if not self.settlement.is_enabled_on(row.item, variant.type, platform):
                        continue
                    key = CellKey(row.item.id, variant.type, platform.id)
                    enabled.add(key)

                    quantity = lookup(row.item.id, variant.type, platform.id)
                    if quantity <= 0:
                        continue

                    cell = self.settlement.compute_cell(row.item, variant, platform, quantity)
                    cells[key] = cell
                    platform_totals[platform.id] = platform_totals[platform.id] + Totals.from_cell(cell)

        grand_total = Totals()
        for totals in platform_totals.values():
            grand_total = grand_total + totals

        return MatrixResult(
            month=month,
            rows=rows,
            cells=cells,
            enabled=frozenset(enabled),
            platform_totals=platform_totals,
            grand_total=grand_total,
        )

    def iter_cells(
        self,
        items: Iterable[Item],
        platforms: Sequence[Platform],
        quantity_lookup: QuantityLookup,
    ) -> Iterable[tuple[Item, Variant, Platform, CellBreakdown]]:
        """Yield every enabled cell of a non-archived item with a positive quantity.

        Month activation only decides which rows are offered for entry, so it
        is not checked here.
        """
        lookup = _as_lookup(quantity_lookup)
        for item in items:
            if item.archived:
                continue
            for variant in item.variants:
                for platform in platforms:
                    if not self.settlement.is_enabled_on(item, variant.type, platform):
                        continue
                    quantity = lookup(item.id, variant.type, platform.id)
                    if quantity <= 0:
                        continue
                    yield item, variant, platform, self.settlement.compute_cell(
                        item, variant, platform, quantity
                    )

    # ==================== Ledger ====================

    def aggregate_ledger(
        self, entries: Iterable[SaleEntry], group_by: GroupBy
    ) -> dict[Hashable, Totals]:
        """Group ledger entries and sum their re-derived settlements."""
        if isinstance(group_by, str):
            try:
                key_fn = NAMED_GROUPS[group_by]
            except KeyError:
                raise ValueError(f"Unknown ledger grouping: {group_by}") from None
        else:
            key_fn = group_by

        groups: dict[Hashable, Totals] = {}
        for entry in entries:
            key = key_fn(entry)
            groups[key] = groups.get(key, Totals()) + settle_entry(entry)

        if isinstance(group_by, str):
            return dict(sorted(groups.items(), key=lambda kv: kv[0]))
        return groups

    def ledger_totals(self, entries: Iterable[SaleEntry]) -> Totals:
        total = Totals()
        for entry in entries:
            total = total + settle_entry(entry)
        return total

    def quantities_from_ledger(
        self, entries: Iterable[SaleEntry], platforms: Iterable[Platform]
    ) -> dict[CellKey, int]:
        """Rebuild a month's entry quantities from its saved ledger entries.

        Entries saved before platform ids were recorded are matched by
        platform name. A later entry for the same cell replaces an earlier one.
        """
        by_name = {p.name: p.id for p in platforms}
        quantities: dict[CellKey, int] = {}
        for entry in sorted(entries, key=lambda e: e.created_at):
            platform_id = entry.platform_id or by_name.get(entry.platform_name, "")
            if not (platform_id and entry.item_id and entry.variant_type):
                continue
            quantities[CellKey(entry.item_id, entry.variant_type, platform_id)] = to_quantity(
                entry.quantity
            )
        return quantities

    def monthly_summary(self, entries: Iterable[SaleEntry]) -> list[MonthlySummary]:
        """Per-month quantity, revenue and settlement, oldest month first."""
        revenue: dict[str, Decimal] = {}
        entries = list(entries)
        for entry in entries:
            month = entry_month(entry)
            revenue[month] = revenue.get(month, ZERO) + to_decimal(entry.total_amount)

        return [
            MonthlySummary(
                month=month,
                quantity=totals.quantity,
                revenue=revenue.get(month, ZERO),
                subtotal=totals.subtotal,
                charges=totals.charges,
                payout=totals.payout,
            )
            for month, totals in self.aggregate_ledger(entries, "month").items()
        ]

    def item_statistics(self, entries: Iterable[SaleEntry]) -> list[ItemStat]:
        """Cumulative quantity, revenue and average price per item variant."""
        quantities: dict[str, int] = {}
        revenue: dict[str, Decimal] = {}
        for entry in entries:
            name = entry_label(entry)
            quantities[name] = quantities.get(name, 0) + to_quantity(entry.quantity)
            revenue[name] = revenue.get(name, ZERO) + to_decimal(entry.total_amount)

        stats: list[ItemStat] = []
        for name, total_sales in quantities.items():
            average = ZERO
            if total_sales:
                average = (revenue[name] / total_sales).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            stats.append(
                ItemStat(
                    name=name,
                    total_sales=total_sales,
                    revenue=revenue[name],
                    average_price=average,
                )
            )
        return stats

    def build_report(self, entries: Iterable[SaleEntry], item_count: int = 0) -> AnalyticsReport:
        entries = list(entries)
        items = self.item_statistics(entries)
        return AnalyticsReport(
            monthly=self.monthly_summary(entries),
            items=items,
            totals=self.ledger_totals(entries),
            total_revenue=sum((s.revenue for s in items), ZERO),
            item_count=item_count,
        )


_default_engine = AggregationEngine()


def aggregate_matrix(
    items: Iterable[Item],
    platforms: Sequence[Platform],
    quantity_lookup: QuantityLookup,
    month: str,
) -> MatrixResult:
    """Aggregate the entry matrix with the default settlement policy."""
    return _default_engine.aggregate_matrix(items, platforms, quantity_lookup, month)


def aggregate_ledger(entries: Iterable[SaleEntry], group_by: GroupBy) -> dict[Hashable, Totals]:
    """Group and total ledger entries from their snapshots."""
    return _default_engine.aggregate_ledger(entries, group_by)
