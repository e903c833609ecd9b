"""Export functionality for Sales Tracker."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from salestracker.core.aggregation import AggregationEngine, settle_entry
from salestracker.core.models import SaleEntry


def _column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


class Exporter:
    """Exports ledger data to various formats."""

    @staticmethod
    def ledger_to_rows(entries: Iterable[SaleEntry]) -> list[dict[str, Any]]:
        """Convert ledger entries to dictionaries for export."""
        rows = []
        for e in entries:
            totals = settle_entry(e)
            row = {
                "Month": e.month,
                "Sale Date": e.sale_date.date().isoformat() if e.sale_date else "",
                "Item": e.item_name,
                "Variant": e.variant_type,
                "Platform": e.platform_name,
                "Quantity": e.quantity,
                "Unit Price": float(e.base_price),
                "Fee %": float(e.fee_percentage),
                "Shipping Fee": float(e.shipping_fee),
                "Subtotal": float(totals.subtotal),
                "Charges": float(totals.charges),
                "Payout": float(totals.payout),
                "Total Amount": float(e.total_amount),
                "Saved At": e.created_at.isoformat() if e.created_at else "",
            }
            rows.append(row)

        return rows

    @staticmethod
    def monthly_summary_rows(
        entries: Iterable[SaleEntry], engine: AggregationEngine | None = None
    ) -> list[dict[str, Any]]:
        """One row per month, oldest first."""
        engine = engine or AggregationEngine()
        return [
            {
                "Month": m.month,
                "Quantity": m.quantity,
                "Revenue": float(m.revenue),
                "Subtotal": float(m.subtotal),
                "Charges": float(m.charges),
                "Payout": float(m.payout),
            }
            for m in engine.monthly_summary(entries)
        ]

    @classmethod
    def export_to_csv(
        cls,
        entries: Iterable[SaleEntry],
        file_path: str | Path,
    ) -> None:
        """Export ledger entries to CSV."""
        rows = cls.ledger_to_rows(entries)

        if not rows:
            return

        path = Path(file_path)
        # utf-8-sig so spreadsheet apps read the Japanese labels correctly
        with open(path, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.DictWriter(f, fieldnames=rows[0].keys())
            writer.writeheader()
            writer.writerows(rows)

    @classmethod
    def export_to_xlsx(
        cls,
        entries: Iterable[SaleEntry],
        file_path: str | Path,
    ) -> None:
        """Export ledger entries and the monthly summary to Excel."""
        entries = list(entries)
        rows = cls.ledger_to_rows(entries)

        if not rows:
            return

        sheets = {
            "Sales": pd.DataFrame(rows),
            "Monthly": pd.DataFrame(cls.monthly_summary_rows(entries)),
        }

        path = Path(file_path)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, index=False, sheet_name=sheet_name)

                # Auto-adjust column widths
                worksheet = writer.sheets[sheet_name]
                for i, col in enumerate(df.columns):
                    max_length = max(df[col].astype(str).apply(len).max(), len(col))
                    worksheet.column_dimensions[_column_letter(i)].width = min(max_length + 2, 50)

    @classmethod
    def generate_filename(cls, month: str | None, extension: str) -> str:
        """Generate a timestamped filename for export."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        scope = month or "all"
        return f"sales_{scope}_{timestamp}.{extension}"
