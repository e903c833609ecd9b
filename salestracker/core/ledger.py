"""Sales ledger commit for Sales Tracker."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from .aggregation import AggregationEngine, QuantityLookup
from .errors import LedgerWriteError, OwnerRequiredError, StorageError
from .models import CommitResult, Item, Platform, SaleEntry, Snapshot
from .months import month_start

logger = logging.getLogger(__name__)


class SalesStore(Protocol):
    """The part of the storage layer the ledger writes through."""

    def add_sales(self, entries: list[SaleEntry]) -> list[SaleEntry]: ...


def build_entries(
    owner_id: str,
    items: Iterable[Item],
    platforms: Sequence[Platform],
    quantity_lookup: QuantityLookup,
    month: str,
    now: datetime | None = None,
    engine: AggregationEngine | None = None,
) -> list[SaleEntry]:
    """Build one ledger entry per enabled cell with a positive quantity.

    Prices and rates are copied into the entry so later catalog edits leave
    it untouched.
    """
    if not owner_id:
        raise OwnerRequiredError()

    engine = engine or AggregationEngine()
    sale_date = month_start(month)
    created_at = now or datetime.now()

    entries: list[SaleEntry] = []
    for item, variant, platform, cell in engine.iter_cells(items, platforms, quantity_lookup):
        entries.append(
            SaleEntry(
                owner_id=owner_id,
                item_id=item.id,
                item_name=item.name,
                variant_type=variant.type,
                platform_id=platform.id,
                platform_name=platform.name,
                quantity=cell.quantity,
                base_price=variant.unit_price,
                fee_percentage=cell.rate.fee_percentage,
                shipping_fee=cell.rate.shipping_fee,
                total_amount=cell.total_amount,
                sale_date=sale_date,
                month=month,
                created_at=created_at,
            )
        )
    return entries


class LedgerWriter:
    """Commits a month's entry matrix to the sales store as one batch."""

    def __init__(self, store: SalesStore, engine: AggregationEngine | None = None) -> None:
        self.store = store
        self.engine = engine or AggregationEngine()

    def commit(
        self,
        owner_id: str,
        snapshot: Snapshot,
        quantity_lookup: QuantityLookup,
        month: str,
        now: datetime | None = None,
    ) -> CommitResult:
        """Build and submit entries; store failures surface as LedgerWriteError."""
        entries = build_entries(
            owner_id,
            snapshot.items,
            snapshot.platforms,
            quantity_lookup,
            month,
            now=now,
            engine=self.engine,
        )

        if not entries:
            logger.info(f"Nothing to save for {month}")
            return CommitResult(success=True, month=month, entries=[])

        try:
            saved = self.store.add_sales(entries)
        except StorageError as e:
            logger.exception(f"Failed to save {len(entries)} sale entries for {month}")
            raise LedgerWriteError(f"Could not save sales for {month}", attempted=len(entries)) from e

        logger.info(f"Saved {len(saved)} sale entries for {month}")
        return CommitResult(success=True, month=month, entries=saved)
