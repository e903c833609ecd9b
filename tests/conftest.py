"""Pytest configuration and fixtures."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

from salestracker.core.config import Settings
from salestracker.core.models import (
    Item,
    ItemSetting,
    PaymentMethod,
    Platform,
    Variant,
    VariantOverride,
)
from salestracker.db.models import Base
from salestracker.db.repository import Repository
from salestracker.db.session import create_db_engine

OWNER = "owner-1"


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    return Settings(database_url="sqlite://")


@pytest.fixture
def guide() -> Item:
    """An item with a shipped paper edition and a digital edition."""
    return Item(
        id="guide",
        name="Travel Guide",
        variants=(
            Variant(type="paper", unit_price=Decimal("1500")),
            Variant(type="digital", unit_price=Decimal("800"), requires_shipping=False),
        ),
        activation_month="2024-01",
    )


@pytest.fixture
def stickers() -> Item:
    """A newer item released in June 2024."""
    return Item(
        id="stickers",
        name="Sticker Set",
        variants=(Variant(type="standard", unit_price=Decimal("500")),),
        activation_month="2024-06",
    )


@pytest.fixture
def retired() -> Item:
    return Item(
        id="retired",
        name="Old Zine",
        variants=(Variant(type="paper", unit_price=Decimal("300")),),
        archived=True,
    )


@pytest.fixture
def sample_items(guide: Item, stickers: Item, retired: Item) -> list[Item]:
    return [guide, stickers, retired]


@pytest.fixture
def booth() -> Platform:
    """Platform with a paper override (10 %, 100 per unit) and a wildcard (5 %)."""
    return Platform(
        id="booth",
        name="Booth",
        payment_methods=(PaymentMethod(name="card", fee_percentage=Decimal("3.6")),),
        item_settings=(
            ItemSetting(
                item_id="guide",
                overrides=(
                    VariantOverride(
                        variant_type="paper",
                        fee_percentage=Decimal("10"),
                        shipping_fee=Decimal("100"),
                    ),
                    VariantOverride(variant_type=None, fee_percentage=Decimal("5")),
                ),
            ),
            ItemSetting(
                item_id="stickers",
                overrides=(
                    VariantOverride(
                        variant_type="standard",
                        fee_percentage=Decimal("10"),
                        shipping_fee=Decimal("50"),
                    ),
                ),
            ),
        ),
    )


@pytest.fixture
def event() -> Platform:
    """In-person event: no fees, carries only the paper guide."""
    return Platform(
        id="event",
        name="Comic Market",
        item_settings=(
            ItemSetting(item_id="guide", overrides=(VariantOverride(variant_type="paper"),)),
        ),
    )


@pytest.fixture
def storefront() -> Platform:
    """Platform with payment-method defaults but no item settings."""
    return Platform(
        id="store",
        name="Storefront",
        payment_methods=(
            PaymentMethod(name="card", fee_percentage=Decimal("4"), shipping_fee=Decimal("200")),
        ),
    )


@pytest.fixture
def sample_platforms(booth: Platform, event: Platform, storefront: Platform) -> list[Platform]:
    return [booth, event, storefront]


@pytest.fixture
def session_factory(tmp_path: Path):
    """Session factory bound to a fresh SQLite file."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def repository(session_factory) -> Repository:
    return Repository(session_factory)
