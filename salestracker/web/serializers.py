"""JSON conversion for the web API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from salestracker.core.aggregation import AnalyticsReport
from salestracker.core.errors import CatalogValidationError
from salestracker.core.models import (
    CellKey,
    Item,
    ItemSetting,
    MatrixResult,
    PaymentMethod,
    Platform,
    SaleEntry,
    Totals,
    Variant,
    VariantOverride,
    to_decimal,
    to_quantity,
)
from salestracker.core.months import month_of


def money(value: Decimal) -> float:
    return float(value)


def totals_to_json(totals: Totals) -> dict[str, Any]:
    return {
        "quantity": totals.quantity,
        "subtotal": money(totals.subtotal),
        "charges": money(totals.charges),
        "payout": money(totals.payout),
    }


# ==================== Catalog ====================


def item_to_json(item: Item) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "archived": item.archived,
        "start_month": item.activation_month,
        "variants": [
            {
                "type": v.type,
                "price": money(v.unit_price),
                "requires_shipping": v.requires_shipping,
                "start_month": v.activation_month,
            }
            for v in item.variants
        ],
    }


def item_from_json(data: Any, item_id: str = "") -> Item:
    """Build an Item from a request body; shape errors become validation errors."""
    if not isinstance(data, dict):
        raise CatalogValidationError("Item body must be a JSON object")
    variants_data = data.get("variants") or []
    if not isinstance(variants_data, list):
        raise CatalogValidationError("variants must be a list")

    variants = []
    for v in variants_data:
        if not isinstance(v, dict):
            raise CatalogValidationError("Each variant must be a JSON object")
        requires_shipping = v.get("requires_shipping")
        variants.append(
            Variant(
                type=str(v.get("type") or ""),
                unit_price=to_decimal(v.get("price", v.get("base_price"))),
                requires_shipping=True if requires_shipping is None else bool(requires_shipping),
                activation_month=month_of(v.get("start_month")),
            )
        )

    return Item(
        id=item_id,
        name=str(data.get("name") or ""),
        variants=tuple(variants),
        archived=bool(data.get("archived", False)),
        activation_month=month_of(data.get("start_month") or data.get("start_date")),
    )


def platform_to_json(platform: Platform) -> dict[str, Any]:
    return {
        "id": platform.id,
        "name": platform.name,
        "description": platform.description,
        "payment_methods": [
            {
                "name": m.name,
                "fee_percentage": money(m.fee_percentage),
                "shipping_fee": money(m.shipping_fee),
            }
            for m in platform.payment_methods
        ],
        "item_settings": [
            {
                "item_id": s.item_id,
                "variants": [
                    {
                        "variant_type": o.variant_type,
                        "fee_percentage": money(o.fee_percentage),
                        "shipping_fee": money(o.shipping_fee),
                    }
                    for o in s.overrides
                ],
            }
            for s in platform.item_settings
        ],
    }


def platform_from_json(data: Any, platform_id: str = "") -> Platform:
    if not isinstance(data, dict):
        raise CatalogValidationError("Platform body must be a JSON object")

    methods = tuple(
        PaymentMethod(
            name=str(m.get("name") or ""),
            fee_percentage=to_decimal(m.get("fee_percentage")),
            shipping_fee=to_decimal(m.get("shipping_fee")),
        )
        for m in data.get("payment_methods") or []
        if isinstance(m, dict)
    )
    settings = tuple(
        ItemSetting(
            item_id=str(s.get("item_id") or ""),
            overrides=tuple(
                VariantOverride(
                    variant_type=o.get("variant_type") or None,
                    fee_percentage=to_decimal(o.get("fee_percentage")),
                    shipping_fee=to_decimal(o.get("shipping_fee")),
                )
                for o in s.get("variants") or []
                if isinstance(o, dict)
            ),
        )
        for s in data.get("item_settings") or []
        if isinstance(s, dict)
    )
    return Platform(
        id=platform_id,
        name=str(data.get("name") or ""),
        description=str(data.get("description") or ""),
        payment_methods=methods,
        item_settings=settings,
    )


# ==================== Matrix ====================


def quantities_from_json(data: Any) -> dict[CellKey, int]:
    """Read [{"item_id", "variant_type", "platform_id", "quantity"}, ...]."""
    quantities: dict[CellKey, int] = {}
    if not isinstance(data, list):
        return quantities
    for row in data:
        if not isinstance(row, dict):
            continue
        key = CellKey(
            str(row.get("item_id") or ""),
            str(row.get("variant_type") or ""),
            str(row.get("platform_id") or ""),
        )
        quantities[key] = to_quantity(row.get("quantity"))
    return quantities


def matrix_to_json(
    result: MatrixResult, platforms: tuple[Platform, ...] | list[Platform], quantities: dict[CellKey, int]
) -> dict[str, Any]:
    rows = []
    for row in result.rows:
        variants = []
        for variant in row.variants:
            cells = []
            for platform in platforms:
                key = CellKey(row.item.id, variant.type, platform.id)
                enabled = result.is_cell_enabled(key)
                cell = result.cells.get(key)
                cells.append(
                    {
                        "platform_id": platform.id,
                        "enabled": enabled,
                        "quantity": quantities.get(key, 0) if enabled else 0,
                        "subtotal": money(cell.subtotal) if cell else 0.0,
                        "charges": money(cell.charges) if cell else 0.0,
                        "payout": money(cell.payout) if cell else 0.0,
                    }
                )
            variants.append(
                {
                    "type": variant.type,
                    "price": money(variant.unit_price),
                    "requires_shipping": variant.requires_shipping,
                    "cells": cells,
                }
            )
        rows.append({"item_id": row.item.id, "item_name": row.item.name, "variants": variants})

    return {
        "month": result.month,
        "platforms": [{"id": p.id, "name": p.name} for p in platforms],
        "rows": rows,
        "platform_totals": {pid: totals_to_json(t) for pid, t in result.platform_totals.items()},
        "grand_total": totals_to_json(result.grand_total),
        "has_data": result.has_data,
    }


# ==================== Ledger ====================


def sale_to_json(entry: SaleEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "item_id": entry.item_id,
        "item_name": entry.item_name,
        "variant_type": entry.variant_type,
        "platform_id": entry.platform_id,
        "platform_name": entry.platform_name,
        "quantity": entry.quantity,
        "base_price": money(entry.base_price),
        "fee_percentage": money(entry.fee_percentage),
        "shipping_fee": money(entry.shipping_fee),
        "total_amount": money(entry.total_amount),
        "sale_date": entry.sale_date.isoformat(),
        "month": entry.month,
        "created_at": entry.created_at.isoformat(),
    }


def report_to_json(report: AnalyticsReport) -> dict[str, Any]:
    return {
        "total_sales": report.totals.quantity,
        "total_revenue": money(report.total_revenue),
        "total_items": report.item_count,
        "totals": totals_to_json(report.totals),
        "monthly": [
            {
                "month": m.month,
                "sales": m.quantity,
                "revenue": money(m.revenue),
                "subtotal": money(m.subtotal),
                "charges": money(m.charges),
                "payout": money(m.payout),
            }
            for m in report.monthly
        ],
        "items": [
            {
                "name": s.name,
                "total_sales": s.total_sales,
                "revenue": money(s.revenue),
                "average_price": money(s.average_price),
            }
            for s in report.items
        ],
    }
