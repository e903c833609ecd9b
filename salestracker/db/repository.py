"""Repository pattern for database operations.

Every read and write is scoped by owner id. Rows are normalized into fully
populated domain objects on the way out (missing numbers become 0, missing
shipping flags become True), so the engines never see optional fields.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from salestracker.core.errors import NotFoundError, OwnerRequiredError, StorageError
from salestracker.core.models import (
    Item,
    ItemSetting,
    PaymentMethod,
    Platform,
    SaleEntry,
    Variant,
    VariantOverride,
    to_decimal,
    to_quantity,
)
from salestracker.core.months import is_valid_month, month_of, parse_month

from .models import (
    ItemDB,
    ItemSettingDB,
    ItemVariantDB,
    PaymentMethodDB,
    PlatformDB,
    SaleDB,
    VariantOverrideDB,
)
from .session import session_scope

logger = logging.getLogger(__name__)


def _require_owner(owner_id: str | None) -> str:
    if not owner_id:
        raise OwnerRequiredError()
    return owner_id


def _new_id() -> str:
    return uuid.uuid4().hex


def _clean_month(value: str | None) -> str | None:
    """Keep a stored month only if it is a usable YYYY-MM value."""
    month = month_of(value)
    return month if month and is_valid_month(month) else None


class Repository:
    """Data access repository for all database operations."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        """Initialize with an optional session factory (global one if not provided)."""
        self._session_factory = session_factory

    @contextmanager
    def _scope(self, action: str) -> Generator[Session, None, None]:
        """Transactional scope that reports database failures as StorageError."""
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception(f"Database error while trying to {action}")
            raise StorageError(f"Failed to {action}") from e

    # ==================== Items ====================

    def get_items(self, owner_id: str) -> list[Item]:
        """Get all items for an owner."""
        _require_owner(owner_id)
        with self._scope("load items") as session:
            query = (
                select(ItemDB)
                .where(ItemDB.owner_id == owner_id)
                .options(selectinload(ItemDB.variants))
                .order_by(ItemDB.created_at)
            )
            result = session.execute(query).scalars().all()
            return [self._db_to_item(db) for db in result]

    def get_item(self, owner_id: str, item_id: str) -> Item:
        """Get one item; raises NotFoundError if the owner has no such item."""
        _require_owner(owner_id)
        with self._scope("load item") as session:
            db_item = self._find_item(session, owner_id, item_id)
            if db_item is None:
                raise NotFoundError(f"Item not found: {item_id}")
            return self._db_to_item(db_item)

    def save_item(self, owner_id: str, item: Item) -> Item:
        """Create an item, or replace an existing one wholesale."""
        _require_owner(owner_id)
        item.validate()
        item_id = item.id or _new_id()

        with self._scope("save item") as session:
            db_item = self._find_item(session, owner_id, item_id) if item.id else None
            if item.id and db_item is None:
                raise NotFoundError(f"Item not found: {item.id}")
            if db_item is None:
                db_item = ItemDB(id=item_id, owner_id=owner_id)
                session.add(db_item)

            db_item.name = item.name
            db_item.archived = item.archived
            db_item.start_date = self._month_to_date(item.activation_month)
            db_item.variants.clear()
            session.flush()
            for position, variant in enumerate(item.variants):
                db_item.variants.append(
                    ItemVariantDB(
                        position=position,
                        type=variant.type,
                        unit_price=variant.unit_price,
                        requires_shipping=variant.requires_shipping,
                        start_month=variant.activation_month,
                    )
                )
            session.flush()
            logger.info(f"Saved item {item_id} ({item.name}) for {owner_id}")
            return self._db_to_item(db_item)

    def delete_item(self, owner_id: str, item_id: str) -> None:
        """Delete an item. Ledger entries keep their snapshots."""
        _require_owner(owner_id)
        with self._scope("delete item") as session:
            db_item = self._find_item(session, owner_id, item_id)
            if db_item is None:
                raise NotFoundError(f"Item not found: {item_id}")
            session.delete(db_item)

    def count_items(self, owner_id: str) -> int:
        _require_owner(owner_id)
        with self._scope("count items") as session:
            query = select(func.count(ItemDB.id)).where(ItemDB.owner_id == owner_id)
            return session.execute(query).scalar_one()

    def _find_item(self, session: Session, owner_id: str, item_id: str) -> ItemDB | None:
        query = (
            select(ItemDB)
            .where(and_(ItemDB.id == item_id, ItemDB.owner_id == owner_id))
            .options(selectinload(ItemDB.variants))
        )
        return session.execute(query).scalar_one_or_none()

    @staticmethod
    def _month_to_date(month: str | None) -> date | None:
        if not month or not is_valid_month(month[:7]):
            return None
        year, month_number = parse_month(month[:7])
        return date(year, month_number, 1)

    def _db_to_item(self, db: ItemDB) -> Item:
        """Convert database model to domain model."""
        return Item(
            id=db.id,
            name=db.name or "",
            archived=bool(db.archived),
            activation_month=month_of(db.start_date),
            variants=tuple(
                Variant(
                    type=v.type or "",
                    unit_price=to_decimal(v.unit_price),
                    requires_shipping=True if v.requires_shipping is None else v.requires_shipping,
                    activation_month=_clean_month(v.start_month),
                )
                for v in db.variants
            ),
        )

    # ==================== Platforms ====================

    def get_platforms(self, owner_id: str) -> list[Platform]:
        """Get all platforms for an owner, with payment methods and overrides."""
        _require_owner(owner_id)
        with self._scope("load platforms") as session:
            query = (
                select(PlatformDB)
                .where(PlatformDB.owner_id == owner_id)
                .options(
                    selectinload(PlatformDB.payment_methods),
                    selectinload(PlatformDB.item_settings).selectinload(ItemSettingDB.overrides),
                )
                .order_by(PlatformDB.created_at)
            )
            result = session.execute(query).scalars().all()
            return [self._db_to_platform(db) for db in result]

    def get_platform(self, owner_id: str, platform_id: str) -> Platform:
        _require_owner(owner_id)
        with self._scope("load platform") as session:
            db_platform = self._find_platform(session, owner_id, platform_id)
            if db_platform is None:
                raise NotFoundError(f"Platform not found: {platform_id}")
            return self._db_to_platform(db_platform)

    def save_platform(self, owner_id: str, platform: Platform) -> Platform:
        """Create a platform, or replace an existing one wholesale."""
        _require_owner(owner_id)
        platform.validate()
        platform_id = platform.id or _new_id()

        with self._scope("save platform") as session:
            db_platform = (
                self._find_platform(session, owner_id, platform_id) if platform.id else None
            )
            if platform.id and db_platform is None:
                raise NotFoundError(f"Platform not found: {platform.id}")
            if db_platform is None:
                db_platform = PlatformDB(id=platform_id, owner_id=owner_id)
                session.add(db_platform)

            db_platform.name = platform.name
            db_platform.description = platform.description
            db_platform.payment_methods.clear()
            db_platform.item_settings.clear()
            session.flush()

            for position, method in enumerate(platform.payment_methods):
                db_platform.payment_methods.append(
                    PaymentMethodDB(
                        position=position,
                        name=method.name,
                        fee_percentage=method.fee_percentage,
                        shipping_fee=method.shipping_fee,
                    )
                )
            for position, setting in enumerate(platform.item_settings):
                db_platform.item_settings.append(
                    ItemSettingDB(
                        position=position,
                        item_id=setting.item_id,
                        overrides=[
                            VariantOverrideDB(
                                position=index,
                                variant_type=override.variant_type or None,
                                fee_percentage=override.fee_percentage,
                                shipping_fee=override.shipping_fee,
                            )
                            for index, override in enumerate(setting.overrides)
                        ],
                    )
                )
            session.flush()
            logger.info(f"Saved platform {platform_id} ({platform.name}) for {owner_id}")
            return self._db_to_platform(db_platform)

    def delete_platform(self, owner_id: str, platform_id: str) -> None:
        _require_owner(owner_id)
        with self._scope("delete platform") as session:
            db_platform = self._find_platform(session, owner_id, platform_id)
            if db_platform is None:
                raise NotFoundError(f"Platform not found: {platform_id}")
            session.delete(db_platform)

    def _find_platform(
        self, session: Session, owner_id: str, platform_id: str
    ) -> PlatformDB | None:
        query = (
            select(PlatformDB)
            .where(and_(PlatformDB.id == platform_id, PlatformDB.owner_id == owner_id))
            .options(
                selectinload(PlatformDB.payment_methods),
                selectinload(PlatformDB.item_settings).selectinload(ItemSettingDB.overrides),
            )
        )
        return session.execute(query).scalar_one_or_none()

    def _db_to_platform(self, db: PlatformDB) -> Platform:
        """Convert database model to domain model."""
        return Platform(
            id=db.id,
            name=db.name or "",
            description=db.description or "",
            payment_methods=tuple(
                PaymentMethod(
                    name=m.name or "",
                    fee_percentage=to_decimal(m.fee_percentage),
                    shipping_fee=to_decimal(m.shipping_fee),
                )
                for m in db.payment_methods
            ),
            item_settings=tuple(
                ItemSetting(
                    item_id=s.item_id,
                    overrides=tuple(
                        VariantOverride(
                            variant_type=o.variant_type or None,
                            fee_percentage=to_decimal(o.fee_percentage),
                            shipping_fee=to_decimal(o.shipping_fee),
                        )
                        for o in s.overrides
                    ),
                )
                for s in db.item_settings
            ),
        )

    # ==================== Sales ====================

    def add_sales(self, entries: list[SaleEntry]) -> list[SaleEntry]:
        """Append ledger entries in a single transaction."""
        saved = [entry if entry.id else replace(entry, id=_new_id()) for entry in entries]
        for entry in saved:
            _require_owner(entry.owner_id)

        with self._scope("save sales") as session:
            for entry in saved:
                session.add(
                    SaleDB(
                        id=entry.id,
                        owner_id=entry.owner_id,
                        item_id=entry.item_id,
                        item_name=entry.item_name,
                        variant_type=entry.variant_type,
                        platform_id=entry.platform_id,
                        platform_name=entry.platform_name,
                        quantity=entry.quantity,
                        base_price=entry.base_price,
                        fee_percentage=entry.fee_percentage,
                        shipping_fee=entry.shipping_fee,
                        total_amount=entry.total_amount,
                        sale_date=entry.sale_date,
                        month=entry.month,
                        created_at=entry.created_at,
                    )
                )
        return saved

    def get_sales(self, owner_id: str, month: str | None = None) -> list[SaleEntry]:
        """Get ledger entries for an owner, optionally for one month."""
        _require_owner(owner_id)
        with self._scope("load sales") as session:
            query = select(SaleDB).where(SaleDB.owner_id == owner_id)
            if month is not None:
                query = query.where(SaleDB.month == month)
            query = query.order_by(SaleDB.created_at)
            result = session.execute(query).scalars().all()
            return [self._db_to_sale(db) for db in result]

    def _db_to_sale(self, db: SaleDB) -> SaleEntry:
        """Convert database model to domain model."""
        return SaleEntry(
            id=db.id,
            owner_id=db.owner_id,
            item_id=db.item_id or "",
            item_name=db.item_name or "",
            variant_type=db.variant_type or "",
            platform_id=db.platform_id or "",
            platform_name=db.platform_name or "",
            quantity=to_quantity(db.quantity),
            base_price=to_decimal(db.base_price),
            fee_percentage=to_decimal(db.fee_percentage),
            shipping_fee=to_decimal(db.shipping_fee),
            total_amount=to_decimal(db.total_amount),
            sale_date=db.sale_date or db.created_at,
            month=_clean_month(db.month) or month_of(db.sale_date) or "",
            created_at=db.created_at,
        )
