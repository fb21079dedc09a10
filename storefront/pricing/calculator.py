"""
Calcul du prix public d'un forfait eSIM.

Priorités:
1. Prix de base = coût de gros * 1.60 (marge 60 %)
2. Si ce prix dépasse le coût du concurrent sur le séjour: on descend vers 10 % sous le concurrent
3. Sans jamais passer sous la marge plancher (coût de gros * 1.50)
4. Arrondi commercial via round_to_friendly_price
"""
from typing import Iterable, Optional

from pydantic import BaseModel

from .rounding import round_to_friendly_price

# module storefront.pricing.calculator
DEFAULT_MARKUP_MULTIPLIER = 1.60
MINIMUM_MARGIN_MULTIPLIER = 1.50
COMPETITOR_DISCOUNT = 0.90


class PricingBreakdown(BaseModel):
    """Valeurs intermédiaires du calcul. used_target_price reste False avec ces multiplicateurs: champ conservé pour garder la forme du détail tarifaire."""
    wholesale_cost: float
    competitor_daily_rate: float
    duration_days: int
    base_price: float
    competitor_trip_cost: float
    target_price: float
    floor_price: float
    margin_at_target: float
    used_target_price: bool
    pre_round_price: float
    final_price: float
    actual_margin: float
    savings_vs_competitor: float
    savings_percent: float


def _pre_round_price(wholesale_cost: float, competitor_daily_rate: float, duration_days: int):
    base_price = wholesale_cost * DEFAULT_MARKUP_MULTIPLIER
    competitor_trip_cost = competitor_daily_rate * duration_days
    target_price = competitor_trip_cost * COMPETITOR_DISCOUNT
    floor_price = wholesale_cost * MINIMUM_MARGIN_MULTIPLIER

    if base_price <= competitor_trip_cost:
        pre_round = base_price
    else:
        pre_round = max(target_price, floor_price)
    return base_price, competitor_trip_cost, target_price, floor_price, pre_round


def calculate_retail_price(
    wholesale_cost: float,
    competitor_daily_rate: float,
    duration_days: int,
    currency: str,
) -> float:
    """
    Prix public arrondi pour un forfait.
    - wholesale_cost: coût de gros en devise locale
    - competitor_daily_rate: tarif roaming journalier du concurrent (devise locale)
    - duration_days: durée du forfait (5, 7, 15...)
    Exemple: (10, 10, 7, "AUD") -> base 16 <= 70 -> 15.99
    """
    *_, pre_round = _pre_round_price(wholesale_cost, competitor_daily_rate, duration_days)
    return round_to_friendly_price(pre_round, currency)


def calculate_pricing_with_breakdown(
    wholesale_cost: float,
    competitor_daily_rate: float,
    duration_days: int,
    currency: str,
) -> PricingBreakdown:
    """
    Même calcul que calculate_retail_price, avec toutes les valeurs intermédiaires (audit/logs).
    Les pourcentages valent 0 quand le dénominateur est nul (pas d'exception).
    """
    base_price, competitor_trip_cost, target_price, floor_price, pre_round = _pre_round_price(
        wholesale_cost, competitor_daily_rate, duration_days
    )
    used_target_price = base_price > competitor_trip_cost and pre_round == target_price
    final_price = round_to_friendly_price(pre_round, currency)

    margin_at_target = (target_price / wholesale_cost - 1) * 100 if wholesale_cost > 0 else 0.0
    actual_margin = (final_price / wholesale_cost - 1) * 100 if wholesale_cost > 0 else 0.0
    savings = competitor_trip_cost - final_price
    savings_percent = savings / competitor_trip_cost * 100 if competitor_trip_cost > 0 else 0.0

    return PricingBreakdown(
        wholesale_cost=wholesale_cost,
        competitor_daily_rate=competitor_daily_rate,
        duration_days=duration_days,
        base_price=base_price,
        competitor_trip_cost=competitor_trip_cost,
        target_price=target_price,
        floor_price=floor_price,
        margin_at_target=margin_at_target,
        used_target_price=used_target_price,
        pre_round_price=pre_round,
        final_price=final_price,
        actual_margin=actual_margin,
        savings_vs_competitor=savings,
        savings_percent=savings_percent,
    )


def daily_rate(price: Optional[float], duration_days: int) -> Optional[float]:
    """Prix par jour arrondi au centime (None si prix ou durée inexploitable)."""
    if not price or duration_days <= 0:
        return None
    return round(price / duration_days, 2)


def best_daily_rate(rates: Iterable[Optional[float]]) -> Optional[float]:
    valid = [r for r in rates if r]
    return min(valid) if valid else None
