"""
Entry fee computation.

Only the premium-member discount is applied by ``compute_fee``. The early-bird,
demographic and titled-player calculators below are standalone building blocks
that never stack on their own; callers that want them compose them explicitly,
e.g. by passing their own fee calculator to ``RegistrationCoordinator``.
"""

from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Union

from chessfam.schemas.registration_schemas import ChessTitle, FeeQuote, Registrant
from chessfam.schemas.tournament_schemas import DiscountType, EarlyBirdTier, PricingConfig

PREMIUM_DISCOUNT_RATE = Decimal("0.10")
PREMIUM_DISCOUNT_LABEL = "premium_member"

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]

TITLE_DISCOUNT_FIELDS = {
    ChessTitle.GM: "gm_wgm_discount",
    ChessTitle.WGM: "gm_wgm_discount",
    ChessTitle.IM: "im_wim_discount",
    ChessTitle.WIM: "im_wim_discount",
    ChessTitle.FM: "fm_wfm_discount",
    ChessTitle.WFM: "fm_wfm_discount",
}


def _to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from dragging their binary noise along
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round to cents, halves away from zero (the same as round(x*100)/100 for fees)."""
    return _to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_fee(config: PricingConfig, registrant: Registrant) -> FeeQuote:
    base_fee = round_money(config.entry_fee)
    discount_amount = ZERO
    discount_label = None

    if base_fee > 0 and config.premium_discount_eligible and registrant.is_premium_member:
        discount_amount = round_money(base_fee * PREMIUM_DISCOUNT_RATE)
        discount_label = PREMIUM_DISCOUNT_LABEL

    final_fee = round_money(max(ZERO, base_fee - discount_amount))
    return FeeQuote(
        final_fee=final_fee,
        base_fee=base_fee,
        discount_amount=discount_amount,
        discount_label=discount_label,
        currency=config.currency,
    )


def _as_date(moment: Union[date, datetime]) -> date:
    return moment.date() if isinstance(moment, datetime) else moment


def select_active_tier(tiers: Iterable[EarlyBirdTier], now: Union[date, datetime]) -> Optional[EarlyBirdTier]:
    """
    Pick the early-bird tier in effect at ``now``.

    A tier expires when its deadline day begins (midnight UTC). Among the tiers that have not
    expired the one with the earliest deadline wins; ``None`` when no tier qualifies.
    """
    moment = now if isinstance(now, datetime) else datetime.combine(now, time.min)
    active: List[EarlyBirdTier] = [
        tier for tier in tiers if datetime.combine(tier.deadline, time.min) >= moment
    ]
    if not active:
        return None
    return min(active, key=lambda tier: tier.deadline)


def apply_tier(base_price: Number, tier: Optional[EarlyBirdTier]) -> Decimal:
    base = _to_decimal(base_price)
    if tier is None:
        return base
    discount = _to_decimal(tier.discount)
    if tier.discount_type == DiscountType.PERCENTAGE:
        return base * (1 - discount / 100)
    return max(ZERO, base - discount)


def apply_percentage(base_price: Number, percent: Optional[Number]) -> Decimal:
    """Reduce ``base_price`` by ``percent`` (0-100), rounded to cents."""
    base = _to_decimal(base_price)
    pct = min(max(_to_decimal(percent), ZERO), Decimal("100"))
    return round_money(base * (1 - pct / 100))


def registrant_age(birth_date: Optional[date], on: Union[date, datetime]) -> Optional[int]:
    if birth_date is None:
        return None
    today = _as_date(on)
    if birth_date > today:
        # Future birth date, age unknown
        return None
    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


def demographic_discounts(config: PricingConfig, registrant: Registrant) -> Dict[str, Decimal]:
    """
    Every demographic discount the registrant qualifies for, keyed by label.

    Percentages are returned as configured; zero or unset discounts are left out.
    """
    discounts: Dict[str, Decimal] = {}
    if registrant.age is not None:
        if config.junior_discount and registrant.age <= config.junior_age_max:
            discounts["junior"] = config.junior_discount
        if config.senior_discount and registrant.age >= config.senior_age_min:
            discounts["senior"] = config.senior_discount
    if config.women_discount and (registrant.gender or "").lower() in ("female", "f", "woman"):
        discounts["women"] = config.women_discount
    return discounts


def title_discount(config: PricingConfig, titles: Iterable[ChessTitle]) -> Optional[Decimal]:
    """The best titled-player percentage for ``titles``, or ``None``."""
    best: Optional[Decimal] = None
    for title in titles:
        percent = getattr(config, TITLE_DISCOUNT_FIELDS[ChessTitle(title)])
        if percent and (best is None or percent > best):
            best = percent
    return best
