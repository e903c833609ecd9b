"""Tests for matrix and ledger aggregation."""

from __future__ import annotations

import random
from datetime import datetime
from decimal import Decimal

import pytest

from salestracker.core.aggregation import (
    AggregationEngine,
    aggregate_ledger,
    aggregate_matrix,
    entry_label,
    settle_entry,
)
from salestracker.core.config import SettlementPolicy
from salestracker.core.ledger import build_entries
from salestracker.core.models import CellKey, Item, SaleEntry, Totals, Variant


QUANTITIES = {
    CellKey("guide", "paper", "booth"): 3,
    CellKey("guide", "digital", "booth"): 2,
    CellKey("guide", "paper", "event"): 4,
    CellKey("guide", "paper", "store"): 5,
    CellKey("retired", "paper", "booth"): 9,
    CellKey("stickers", "standard", "booth"): 2,
}


def make_entry(
    item_id: str = "guide",
    variant_type: str = "paper",
    platform_id: str = "booth",
    quantity: int = 1,
    base_price: str = "1500",
    total_amount: str = "1500",
    month: str = "2024-06",
    created_at: datetime | None = None,
    platform_name: str = "Booth",
    item_name: str = "Travel Guide",
) -> SaleEntry:
    return SaleEntry(
        owner_id="owner-1",
        item_id=item_id,
        item_name=item_name,
        variant_type=variant_type,
        platform_id=platform_id,
        platform_name=platform_name,
        quantity=quantity,
        base_price=Decimal(base_price),
        fee_percentage=Decimal("0"),
        shipping_fee=Decimal("0"),
        total_amount=Decimal(total_amount),
        sale_date=datetime(int(month[:4]), int(month[5:]), 1),
        month=month,
        created_at=created_at or datetime(2024, 7, 1),
    )


@pytest.fixture
def engine() -> AggregationEngine:
    return AggregationEngine()


class TestVisibleRows:
    def test_archived_items_excluded(self, engine: AggregationEngine, sample_items) -> None:
        rows = engine.visible_rows(sample_items, "2024-06")
        assert "retired" not in [r.item.id for r in rows]

    def test_inactive_item_excluded(self, engine: AggregationEngine, sample_items) -> None:
        assert [r.item.id for r in engine.visible_rows(sample_items, "2024-05")] == ["guide"]
        assert [r.item.id for r in engine.visible_rows(sample_items, "2024-06")] == [
            "stickers",
            "guide",
        ]

    def test_variants_ordered_by_start_then_type(self, engine: AggregationEngine) -> None:
        item = Item(
            id="i",
            name="I",
            variants=(
                Variant("b", Decimal("1"), activation_month="2024-02"),
                Variant("a", Decimal("1"), activation_month="2024-02"),
                Variant("early", Decimal("1"), activation_month="2024-01"),
                Variant("unset", Decimal("1")),
            ),
        )
        rows = engine.visible_rows([item], "2024-06")
        assert [v.type for v in rows[0].variants] == ["early", "a", "b", "unset"]

    def test_item_without_active_variants_hidden(self, engine: AggregationEngine) -> None:
        item = Item(
            id="i", name="I", variants=(Variant("v", Decimal("1"), activation_month="2025-01"),)
        )
        assert engine.visible_rows([item], "2024-12") == ()


class TestAggregateMatrix:
    """Tests for live matrix totals."""

    def test_platform_and_grand_totals(self, sample_items, sample_platforms) -> None:
        result = aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-06")

        assert result.platform_totals["booth"] == Totals(
            quantity=7,
            subtotal=Decimal("7100"),
            charges=Decimal("1030"),
            payout=Decimal("6070"),
        )
        assert result.platform_totals["event"] == Totals(
            quantity=4, subtotal=Decimal("6000"), charges=Decimal("0"), payout=Decimal("6000")
        )
        assert result.platform_totals["store"] == Totals()
        assert result.grand_total == Totals(
            quantity=11,
            subtotal=Decimal("13100"),
            charges=Decimal("1030"),
            payout=Decimal("12070"),
        )
        assert result.has_data is True

    def test_disabled_cells_ignored(self, sample_items, sample_platforms) -> None:
        result = aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-06")
        assert CellKey("guide", "paper", "store") not in result.cells
        assert result.is_cell_enabled(CellKey("guide", "paper", "store")) is False
        assert result.is_cell_enabled(CellKey("guide", "digital", "booth")) is True

    def test_inactive_row_excluded_from_totals(self, sample_items, sample_platforms) -> None:
        result = aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-05")
        assert result.platform_totals["booth"].quantity == 5
        assert result.platform_totals["booth"].subtotal == Decimal("6100")
        assert CellKey("stickers", "standard", "booth") not in result.cells

    def test_empty_matrix(self, sample_items, sample_platforms) -> None:
        result = aggregate_matrix(sample_items, sample_platforms, {}, "2024-06")
        assert result.grand_total == Totals()
        assert result.has_data is False
        assert result.cells == {}

    def test_callable_lookup(self, sample_items, sample_platforms) -> None:
        def lookup(item_id: str, variant_type: str, platform_id: str) -> str:
            return "3" if (item_id, variant_type, platform_id) == ("guide", "paper", "booth") else ""

        result = aggregate_matrix(sample_items, sample_platforms, lookup, "2024-06")
        assert result.grand_total.subtotal == Decimal("4500")
        assert result.grand_total.payout == Decimal("3750")

    def test_order_independent(self, sample_items, sample_platforms) -> None:
        expected = aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-06")

        rng = random.Random(7)
        for _ in range(10):
            items = list(sample_items)
            platforms = list(sample_platforms)
            rng.shuffle(items)
            rng.shuffle(platforms)
            result = aggregate_matrix(items, platforms, QUANTITIES, "2024-06")
            assert result.grand_total == expected.grand_total
            assert result.platform_totals == expected.platform_totals
            assert result.rows == expected.rows

    def test_policy_flows_through(self, sample_items, sample_platforms) -> None:
        engine = AggregationEngine.from_policy(SettlementPolicy(shipping_per_unit=False))
        result = engine.aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-06")
        # paper 100 once instead of 300, stickers 50 once instead of 100
        assert result.platform_totals["booth"].charges == Decimal("780")


class TestAggregateLedger:
    """Tests for ledger grouping and re-derivation."""

    def test_round_trip_matches_matrix(self, sample_items, sample_platforms) -> None:
        matrix = aggregate_matrix(sample_items, sample_platforms, QUANTITIES, "2024-06")
        entries = build_entries("owner-1", sample_items, sample_platforms, QUANTITIES, "2024-06")

        by_platform = aggregate_ledger(entries, "platform")
        assert by_platform["booth"] == matrix.platform_totals["booth"]
        assert by_platform["event"] == matrix.platform_totals["event"]
        assert AggregationEngine().ledger_totals(entries) == matrix.grand_total

    def test_settle_entry_from_snapshots(self) -> None:
        totals = settle_entry(make_entry(quantity=3, total_amount="5250"))
        assert totals == Totals(
            quantity=3, subtotal=Decimal("4500"), charges=Decimal("750"), payout=Decimal("3750")
        )

    def test_legacy_entry_without_base_price(self) -> None:
        totals = settle_entry(make_entry(quantity=2, base_price="0", total_amount="3000"))
        assert totals.subtotal == Decimal("3000")
        assert totals.charges == 0
        assert totals.payout == Decimal("3000")

    def test_group_by_month_sorted(self) -> None:
        entries = [
            make_entry(month="2024-06"),
            make_entry(month="2024-01"),
            make_entry(month="2023-12"),
            make_entry(month="2024-01"),
        ]
        grouped = aggregate_ledger(entries, "month")
        assert list(grouped) == ["2023-12", "2024-01", "2024-06"]
        assert grouped["2024-01"].quantity == 2

    def test_group_by_item_variant(self) -> None:
        entries = [
            make_entry(variant_type="paper", quantity=2, total_amount="3000"),
            make_entry(variant_type="digital", quantity=1, base_price="800", total_amount="840"),
        ]
        grouped = aggregate_ledger(entries, "item_variant")
        assert grouped[("guide", "digital")].charges == Decimal("40")
        assert grouped[("guide", "paper")].subtotal == Decimal("3000")

    def test_group_by_callable(self) -> None:
        entries = [make_entry(quantity=1), make_entry(quantity=4, total_amount="6000")]
        grouped = aggregate_ledger(entries, lambda e: e.quantity > 2)
        assert grouped[True].quantity == 4
        assert grouped[False].quantity == 1

    def test_unknown_grouping(self) -> None:
        with pytest.raises(ValueError):
            aggregate_ledger([make_entry()], "weekday")

    def test_ledger_order_independent(self) -> None:
        entries = [
            make_entry(month=f"2024-0{m}", quantity=m, total_amount=str(1500 * m + 7 * m))
            for m in range(1, 8)
        ]
        expected = aggregate_ledger(entries, "month")
        shuffled = list(entries)
        random.Random(3).shuffle(shuffled)
        assert aggregate_ledger(shuffled, "month") == expected


class TestQuantitiesFromLedger:
    def test_rebuilds_cells(self, engine: AggregationEngine, sample_platforms) -> None:
        entries = [
            make_entry(quantity=3),
            make_entry(platform_id="event", platform_name="Comic Market", quantity=4),
        ]
        quantities = engine.quantities_from_ledger(entries, sample_platforms)
        assert quantities == {
            CellKey("guide", "paper", "booth"): 3,
            CellKey("guide", "paper", "event"): 4,
        }

    def test_platform_name_fallback(self, engine: AggregationEngine, sample_platforms) -> None:
        entries = [make_entry(platform_id="", platform_name="Booth", quantity=2)]
        assert engine.quantities_from_ledger(entries, sample_platforms) == {
            CellKey("guide", "paper", "booth"): 2
        }

    def test_later_entry_wins(self, engine: AggregationEngine, sample_platforms) -> None:
        entries = [
            make_entry(quantity=5, created_at=datetime(2024, 7, 2)),
            make_entry(quantity=1, created_at=datetime(2024, 7, 1)),
        ]
        assert engine.quantities_from_ledger(entries, sample_platforms) == {
            CellKey("guide", "paper", "booth"): 5
        }

    def test_unmatched_platform_skipped(self, engine: AggregationEngine, sample_platforms) -> None:
        entries = [make_entry(platform_id="", platform_name="Gone")]
        assert engine.quantities_from_ledger(entries, sample_platforms) == {}


class TestAnalytics:
    def test_monthly_summary(self, engine: AggregationEngine) -> None:
        entries = [
            make_entry(month="2024-05", quantity=2, total_amount="3200"),
            make_entry(month="2024-06", quantity=1, total_amount="1600"),
            make_entry(month="2024-06", quantity=1, total_amount="1600"),
        ]
        summary = engine.monthly_summary(entries)
        assert [m.month for m in summary] == ["2024-05", "2024-06"]
        assert summary[0].revenue == Decimal("3200")
        assert summary[0].charges == Decimal("200")
        assert summary[1].quantity == 2
        assert summary[1].payout == Decimal("2800")

    def test_item_statistics(self, engine: AggregationEngine) -> None:
        entries = [
            make_entry(quantity=3, total_amount="5250"),
            make_entry(platform_id="event", quantity=4, total_amount="6000"),
            make_entry(variant_type="digital", quantity=1, base_price="800", total_amount="840"),
        ]
        stats = {s.name: s for s in engine.item_statistics(entries)}

        paper = stats["Travel Guide（paper）"]
        assert paper.total_sales == 7
        assert paper.revenue == Decimal("11250")
        assert paper.average_price == Decimal("1607")
        assert stats["Travel Guide（digital）"].average_price == Decimal("840")

    def test_entry_label_falls_back_to_item_id(self) -> None:
        assert entry_label(make_entry(item_name="")) == "guide（paper）"

    def test_build_report(self, engine: AggregationEngine) -> None:
        entries = [
            make_entry(quantity=3, total_amount="5250"),
            make_entry(month="2024-05", quantity=1, total_amount="1500"),
        ]
        report = engine.build_report(entries, item_count=2)
        assert report.item_count == 2
        assert report.total_revenue == Decimal("6750")
        assert report.totals.quantity == 4
        assert report.totals.charges == Decimal("750")
        assert len(report.monthly) == 2

    def test_empty_report(self, engine: AggregationEngine) -> None:
        report = engine.build_report([])
        assert report.totals == Totals()
        assert report.monthly == []
        assert report.items == []
