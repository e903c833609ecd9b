"""SQLAlchemy database models for Sales Tracker."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from salestracker.core.models import to_decimal


class ExactDecimal(TypeDecorator):
    """Decimal kept as its text form so every stored digit survives a round trip."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return format(to_decimal(value), "f")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_decimal(value)


MONEY = ExactDecimal()
PERCENT = ExactDecimal()


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ItemDB(Base):
    """A sellable item owned by one user."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    archived: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    variants: Mapped[list[ItemVariantDB]] = relationship(
        "ItemVariantDB",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="ItemVariantDB.position",
    )


class ItemVariantDB(Base):
    """Price variant of an item."""

    __tablename__ = "item_variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    unit_price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    requires_shipping: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    start_month: Mapped[str | None] = mapped_column(String(7), nullable=True)

    item: Mapped[ItemDB] = relationship("ItemDB", back_populates="variants")


class PlatformDB(Base):
    """A sales channel owned by one user."""

    __tablename__ = "platforms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    payment_methods: Mapped[list[PaymentMethodDB]] = relationship(
        "PaymentMethodDB",
        back_populates="platform",
        cascade="all, delete-orphan",
        order_by="PaymentMethodDB.position",
    )
    item_settings: Mapped[list[ItemSettingDB]] = relationship(
        "ItemSettingDB",
        back_populates="platform",
        cascade="all, delete-orphan",
        order_by="ItemSettingDB.position",
    )


class PaymentMethodDB(Base):
    """Default fee schedule of a platform payment method."""

    __tablename__ = "payment_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("platforms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    name: Mapped[str] = mapped_column(String(200), default="")
    fee_percentage: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    shipping_fee: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    platform: Mapped[PlatformDB] = relationship("PlatformDB", back_populates="payment_methods")


class ItemSettingDB(Base):
    """Per-item override block held by a platform."""

    __tablename__ = "item_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("platforms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Not a foreign key: settings may outlive the item they point at
    item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    platform: Mapped[PlatformDB] = relationship("PlatformDB", back_populates="item_settings")
    overrides: Mapped[list[VariantOverrideDB]] = relationship(
        "VariantOverrideDB",
        back_populates="item_setting",
        cascade="all, delete-orphan",
        order_by="VariantOverrideDB.position",
    )


class VariantOverrideDB(Base):
    """Fee/shipping override for one variant, or all variants when variant_type is NULL."""

    __tablename__ = "variant_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_setting_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("item_settings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    variant_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    fee_percentage: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    shipping_fee: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    item_setting: Mapped[ItemSettingDB] = relationship("ItemSettingDB", back_populates="overrides")


class SaleDB(Base):
    """Append-only ledger entry with rate snapshots taken at save time."""

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(36), nullable=False, default="")
    item_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    variant_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    platform_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    platform_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    base_price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    fee_percentage: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    shipping_fee: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    sale_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    month: Mapped[str | None] = mapped_column(String(7), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    __table_args__ = (Index("ix_sales_owner_month", "owner_id", "month"),)
