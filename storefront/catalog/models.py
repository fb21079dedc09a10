# module storefront.catalog.models
"""Modèles du catalogue.
- DurationOption: données d'une durée (coût, prix, bundle eSIM, price ids Stripe live/test).
- Plan: une destination pour une locale, avec un mapping durée -> DurationOption.
- from_row accepte la colonne JSON 'durations' (liste ou dict) ou les colonnes plates price_5day/...
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from storefront.pricing import daily_rate

SUPPORTED_DURATIONS = (5, 7, 15)

PLAN_NAMES = {
    5: "Quick Trip",
    7: "Week Explorer",
    15: "Extended Stay",
}


def get_plan_name(duration: Any) -> str:
    """Nom commercial d'une durée ('Quick Trip'...), sinon '<n>-Day Plan'."""
    try:
        return PLAN_NAMES.get(int(duration), f"{duration}-Day Plan")
    except (TypeError, ValueError):
        return f"{duration}-Day Plan"


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


class DurationOption(BaseModel):
    duration: int
    wholesale_cost: Optional[float] = None
    retail_price: Optional[float] = None
    bundle_name: Optional[str] = None
    stripe_price_id: Optional[str] = None
    stripe_test_price_id: Optional[str] = None
    data_type: str = "unlimited"

    def price_reference(self, test_mode: bool) -> Optional[str]:
        """Price id Stripe du mode courant (None si non renseigné)."""
        ref = self.stripe_test_price_id if test_mode else self.stripe_price_id
        return ref or None

    @property
    def daily_rate(self) -> Optional[float]:
        return daily_rate(self.retail_price, self.duration)


class Plan(BaseModel):
    destination_slug: str
    locale: str
    currency: str = "AUD"
    durations: Dict[int, DurationOption] = Field(default_factory=dict)
    default_durations: List[int] = Field(default_factory=lambda: list(SUPPORTED_DURATIONS))

    def option_for(self, duration: int) -> Optional[DurationOption]:
        return self.durations.get(int(duration))

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Plan":
        """
        Construit un Plan depuis une ligne de la table 'plans'.
        - durations: [{duration, retail_price, bundle_name, ...}] ou {"5": {...}}
        - sinon colonnes plates: price_5day, wholesale_5day, bundle_5day, stripe_price_5day, stripe_test_price_5day
        """
        raw = row.get("durations")
        options: Dict[int, DurationOption] = {}

        if isinstance(raw, dict):
            for key, value in raw.items():
                opt = DurationOption(**{**(value or {}), "duration": int(key)})
                options[opt.duration] = opt
        elif isinstance(raw, list):
            for value in raw:
                opt = DurationOption(**value)
                options[opt.duration] = opt
        else:
            for d in SUPPORTED_DURATIONS:
                price = _to_float(row.get(f"price_{d}day"))
                bundle = row.get(f"bundle_{d}day")
                if price is None and not bundle:
                    continue
                options[d] = DurationOption(
                    duration=d,
                    wholesale_cost=_to_float(row.get(f"wholesale_{d}day")),
                    retail_price=price,
                    bundle_name=bundle,
                    stripe_price_id=row.get(f"stripe_price_{d}day"),
                    stripe_test_price_id=row.get(f"stripe_test_price_{d}day"),
                )

        defaults = row.get("default_durations") or [d for d in SUPPORTED_DURATIONS if d in options]
        return cls(
            destination_slug=row.get("destination_slug") or "",
            locale=row.get("locale") or "",
            currency=(row.get("currency") or "AUD").upper(),
            durations=options,
            default_durations=[int(d) for d in defaults],
        )


class PlanSummary(BaseModel):
    """Vue publique d'un plan (GET /api/plans)."""
    durations: Dict[int, Dict[str, Any]]
    default_durations: List[int]
    best_daily_rate: Optional[float] = None
    currency: str
    competitor_name: Optional[str] = None
    competitor_daily_rate: Optional[float] = None
