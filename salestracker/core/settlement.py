"""Settlement engine for Sales Tracker.

Turns one (item, variant, platform, quantity) cell into a monetary breakdown:

    subtotal = unit_price * quantity
    fee      = subtotal * fee_percentage / 100
    shipping = shipping_fee * quantity        (only if the variant ships)
    charges  = fee + shipping
    payout   = subtotal - charges
    total    = subtotal + charges

Rates come from the platform's item settings. A variant-specific override
beats a wildcard override, which beats the zero rate. Nothing here raises on
malformed data; bad numbers settle as zero.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .config import SettlementPolicy
from .models import (
    ZERO,
    CellBreakdown,
    Item,
    Platform,
    Rate,
    RateSource,
    Variant,
    VariantOverride,
    to_decimal,
    to_quantity,
)

logger = logging.getLogger(__name__)

HUNDRED = 100


def _pick(candidates: list[VariantOverride]) -> VariantOverride | None:
    """Choose among overrides of equal priority independently of list order.

    Duplicates are a data anomaly; the highest fee (then shipping) wins so the
    result never depends on how the list happened to be stored.
    """
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.debug(f"{len(candidates)} overrides share a variant type, using the highest rate")
    return max(
        candidates,
        key=lambda o: (to_decimal(o.fee_percentage), to_decimal(o.shipping_fee)),
    )


class SettlementEngine:
    """Resolves rates, eligibility and per-cell settlements."""

    def __init__(self, policy: SettlementPolicy | None = None) -> None:
        """Initialize with a settlement policy (defaults when omitted)."""
        self.policy = policy or SettlementPolicy()

    # ==================== Rates ====================

    def resolve_rate(
        self,
        item: Item,
        variant: Variant,
        platform: Platform,
        payment_method: str | None = None,
    ) -> Rate:
        """Resolve the fee percentage and shipping fee for a cell."""
        specific: list[VariantOverride] = []
        wildcard: list[VariantOverride] = []
        for override in platform.overrides_for(item.id):
            if override.is_wildcard:
                wildcard.append(override)
            elif override.variant_type == variant.type:
                specific.append(override)

        chosen = _pick(specific)
        if chosen is not None:
            return Rate(
                fee_percentage=to_decimal(chosen.fee_percentage),
                shipping_fee=to_decimal(chosen.shipping_fee),
                source=RateSource.VARIANT_OVERRIDE,
            )

        chosen = _pick(wildcard)
        if chosen is not None:
            return Rate(
                fee_percentage=to_decimal(chosen.fee_percentage),
                shipping_fee=to_decimal(chosen.shipping_fee),
                source=RateSource.WILDCARD_OVERRIDE,
            )

        if self.policy.payment_method_fallback:
            method = platform.get_payment_method(payment_method)
            if method is not None:
                return Rate(
                    fee_percentage=to_decimal(method.fee_percentage),
                    shipping_fee=to_decimal(method.shipping_fee),
                    source=RateSource.PAYMENT_METHOD,
                )

        return Rate()

    # ==================== Eligibility ====================

    def is_enabled_on(self, item: Item, variant_type: str, platform: Platform) -> bool:
        """Whether the platform carries this item variant at all."""
        return any(
            override.is_wildcard or override.variant_type == variant_type
            for override in platform.overrides_for(item.id)
        )

    def is_enabled(
        self,
        item: Item,
        variant_type: str,
        platform_id: str,
        platforms: Iterable[Platform],
    ) -> bool:
        """Look the platform up by id; an unknown id is simply not enabled."""
        for platform in platforms:
            if platform.id == platform_id:
                return self.is_enabled_on(item, variant_type, platform)
        return False

    def is_active_in_month(self, item: Item, variant: Variant, month: str) -> bool:
        """Whether the variant is offered for entry in the given YYYY-MM month."""
        effective = item.effective_activation_month(variant)
        if not effective or len(effective) < 7:
            return True
        # Zero-padded YYYY-MM strings sort chronologically
        return month >= effective[:7]

    # ==================== Cells ====================

    def compute_cell(
        self,
        item: Item,
        variant: Variant,
        platform: Platform,
        quantity: object,
        payment_method: str | None = None,
    ) -> CellBreakdown:
        """Settle one cell. Non-positive quantities settle to all zeros."""
        rate = self.resolve_rate(item, variant, platform, payment_method)
        qty = to_quantity(quantity)
        if qty <= 0:
            return CellBreakdown(rate=rate)

        subtotal = to_decimal(variant.unit_price) * qty
        fee = subtotal * rate.fee_percentage / HUNDRED

        if not variant.requires_shipping:
            shipping = ZERO
        elif self.policy.shipping_per_unit:
            shipping = rate.shipping_fee * qty
        else:
            shipping = rate.shipping_fee

        charges = fee + shipping
        return CellBreakdown(
            quantity=qty,
            subtotal=subtotal,
            fee=fee,
            shipping=shipping,
            charges=charges,
            payout=subtotal - charges,
            total_amount=subtotal + charges,
            rate=rate,
        )


_default_engine = SettlementEngine()


def resolve_rate(item: Item, variant: Variant, platform: Platform) -> Rate:
    """Resolve a cell's rate with the default policy."""
    return _default_engine.resolve_rate(item, variant, platform)


def is_enabled(
    item: Item, variant_type: str, platform_id: str, platforms: Iterable[Platform]
) -> bool:
    return _default_engine.is_enabled(item, variant_type, platform_id, platforms)


def is_active_in_month(item: Item, variant: Variant, month: str) -> bool:
    return _default_engine.is_active_in_month(item, variant, month)


def compute_cell(item: Item, variant: Variant, platform: Platform, quantity: object) -> CellBreakdown:
    """Settle one cell with the default policy."""
    return _default_engine.compute_cell(item, variant, platform, quantity)
