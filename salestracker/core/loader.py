"""Concurrent snapshot loading for Sales Tracker."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol

from .errors import OwnerRequiredError, StorageError
from .models import Item, Platform, SaleEntry, Snapshot

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """Owner-scoped reads the loader needs from the storage layer."""

    def get_items(self, owner_id: str) -> list[Item]: ...

    def get_platforms(self, owner_id: str) -> list[Platform]: ...

    def get_sales(self, owner_id: str, month: str | None = None) -> list[SaleEntry]: ...


class SnapshotLoader:
    """Fetches items, platforms and a month's sales in parallel.

    Each call to load() starts a new generation. A load whose generation has
    been superseded by cancel() or a newer load() returns None and leaves the
    current snapshot alone, so a slow read can never overwrite fresher state.
    """

    def __init__(self, source: SnapshotSource, max_workers: int = 3) -> None:
        self.source = source
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Snapshot | None = None

    @property
    def current(self) -> Snapshot | None:
        """The most recently applied snapshot."""
        with self._lock:
            return self._current

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def cancel(self) -> None:
        """Discard the results of any load still in flight."""
        with self._lock:
            self._generation += 1

    def load(self, owner_id: str, month: str | None = None) -> Snapshot | None:
        """Read a fresh snapshot and make it current.

        Returns None when the load was superseded before it finished. Read
        failures raise StorageError and keep the previous snapshot.
        """
        if not owner_id:
            raise OwnerRequiredError()

        with self._lock:
            self._generation += 1
            generation = self._generation

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            items_future: Future[list[Item]] = executor.submit(self.source.get_items, owner_id)
            platforms_future: Future[list[Platform]] = executor.submit(
                self.source.get_platforms, owner_id
            )
            sales_future: Future[list[SaleEntry]] | None = None
            if month is not None:
                sales_future = executor.submit(self.source.get_sales, owner_id, month)

            try:
                items = items_future.result()
                platforms = platforms_future.result()
                sales = sales_future.result() if sales_future is not None else []
            except StorageError:
                logger.exception("Failed to load snapshot")
                raise

        snapshot = Snapshot(
            owner_id=owner_id,
            items=tuple(items),
            platforms=tuple(platforms),
            sales=tuple(sales),
            month=month,
        )

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding superseded snapshot (generation {generation})")
                return None
            self._current = snapshot

        logger.info(
            f"Loaded snapshot: {len(items)} items, {len(platforms)} platforms, {len(sales)} sales"
        )
        return snapshot
