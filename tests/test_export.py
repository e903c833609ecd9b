"""Tests for ledger export."""

from __future__ import annotations

import csv
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

from salestracker.core.models import SaleEntry
from salestracker.utils.export import Exporter


@pytest.fixture
def entries() -> list[SaleEntry]:
    def entry(month: str, quantity: int, total: str) -> SaleEntry:
        return SaleEntry(
            owner_id="owner-1",
            item_id="guide",
            item_name="Travel Guide",
            variant_type="paper",
            platform_id="booth",
            platform_name="Booth",
            quantity=quantity,
            base_price=Decimal("1500"),
            fee_percentage=Decimal("10"),
            shipping_fee=Decimal("100"),
            total_amount=Decimal(total),
            sale_date=datetime(int(month[:4]), int(month[5:]), 1),
            month=month,
            created_at=datetime(2024, 7, 1, 9, 0),
        )

    return [entry("2024-05", 1, "1750"), entry("2024-06", 3, "5250")]


class TestExporter:
    def test_ledger_rows(self, entries) -> None:
        rows = Exporter.ledger_to_rows(entries)
        assert len(rows) == 2
        row = rows[1]
        assert row["Month"] == "2024-06"
        assert row["Sale Date"] == "2024-06-01"
        assert row["Subtotal"] == 4500.0
        assert row["Charges"] == 750.0
        assert row["Payout"] == 3750.0

    def test_monthly_summary_rows(self, entries) -> None:
        rows = Exporter.monthly_summary_rows(entries)
        assert [r["Month"] for r in rows] == ["2024-05", "2024-06"]
        assert rows[0]["Revenue"] == 1750.0
        assert rows[1]["Payout"] == 3750.0

    def test_export_to_csv(self, entries, tmp_path: Path) -> None:
        path = tmp_path / "sales.csv"
        Exporter.export_to_csv(entries, path)

        with open(path, encoding="utf-8-sig", newline="") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 2
        assert rows[0]["Item"] == "Travel Guide"
        assert rows[1]["Quantity"] == "3"

    def test_export_empty_writes_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.csv"
        Exporter.export_to_csv([], path)
        assert not path.exists()

    def test_export_to_xlsx(self, entries, tmp_path: Path) -> None:
        path = tmp_path / "sales.xlsx"
        Exporter.export_to_xlsx(entries, path)

        sheets = pd.read_excel(path, sheet_name=None)
        assert set(sheets) == {"Sales", "Monthly"}
        assert len(sheets["Sales"]) == 2
        assert list(sheets["Monthly"]["Month"]) == ["2024-05", "2024-06"]

    def test_generate_filename(self) -> None:
        name = Exporter.generate_filename("2024-06", "csv")
        assert name.startswith("sales_2024-06_")
        assert name.endswith(".csv")
        assert Exporter.generate_filename(None, "xlsx").startswith("sales_all_")
