"""
Cas d'usage du catalogue: lecture des plans par locale pour l'affichage.
"""
from typing import Dict
import logging

from storefront.pricing import best_daily_rate
from . import repository
from .models import PlanSummary, get_plan_name

logger = logging.getLogger(__name__)

# Destination "domestique" masquée pour chaque locale
LOCALE_EXCLUDED_DESTINATION = {
    "en-sg": "singapore",
    "en-gb": "united-kingdom",
    "ms-my": "malaysia",
    "id-id": "indonesia",
    "en-au": "australia",
}

# module storefront.catalog.service
def plans_for_locale(locale: str) -> Dict[str, PlanSummary]:
    """
    Retourne {destination_slug: PlanSummary} pour une locale.
    - prix par durée + tarif journalier, meilleur tarif journalier
    - concurrent associé à la devise du plan (None si inconnu)
    """
    plans = repository.list_plans(locale)
    competitors = repository.list_competitors()
    excluded = LOCALE_EXCLUDED_DESTINATION.get(locale)

    out: Dict[str, PlanSummary] = {}
    for plan in plans:
        if plan.destination_slug == excluded:
            continue
        competitor = competitors.get(plan.currency) or {}
        durations = {
            d: {
                "retail_price": opt.retail_price,
                "daily_rate": opt.daily_rate,
                "plan_name": get_plan_name(d),
                "data_type": opt.data_type,
            }
            for d, opt in sorted(plan.durations.items())
        }
        out[plan.destination_slug] = PlanSummary(
            durations=durations,
            default_durations=plan.default_durations,
            best_daily_rate=best_daily_rate(opt.daily_rate for opt in plan.durations.values()),
            currency=plan.currency,
            competitor_name=competitor.get("name"),
            competitor_daily_rate=competitor.get("daily_rate"),
        )
    logger.info("catalog.plans_for_locale locale=%s count=%s", locale, len(out))
    return out

def destination_display_name(slug: str, locale: str) -> str:
    """Nom de la destination pour la locale, sinon le slug mis en forme ('united-kingdom' -> 'United Kingdom')."""
    if slug and locale:
        destination = repository.get_destination(slug, locale)
        if destination and destination.get("name"):
            return destination["name"]
    return (slug or "").replace("-", " ").title() or "your destination"
