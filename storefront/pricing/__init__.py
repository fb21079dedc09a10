"""
Module 'pricing' (pur, sans Stripe ni DB): arrondi « prix sympa » et calcul du prix public.
"""

from .rounding import round_to_friendly_price, format_price, get_currency_symbol, ZERO_DECIMAL_CURRENCIES
from .calculator import (
    calculate_retail_price,
    calculate_pricing_with_breakdown,
    PricingBreakdown,
    daily_rate,
    best_daily_rate,
)

__all__ = [
    # rounding
    "round_to_friendly_price",
    "format_price",
    "get_currency_symbol",
    "ZERO_DECIMAL_CURRENCIES",
    # calculator
    "calculate_retail_price",
    "calculate_pricing_with_breakdown",
    "PricingBreakdown",
    "daily_rate",
    "best_daily_rate",
]
