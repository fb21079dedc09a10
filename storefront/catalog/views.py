import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from storefront.config import DEFAULT_LOCALE
from . import service as catalog_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Catalog API"])

# module storefront.catalog.views
@router.get("/plans")
def list_plans(locale: str = Query(DEFAULT_LOCALE)):
    """
    Plans d'une locale indexés par destination.
    - Sortie: { "<slug>": {durations, default_durations, best_daily_rate, currency, competitor_name, competitor_daily_rate} }
    """
    plans = catalog_service.plans_for_locale(locale)
    return JSONResponse({slug: summary.model_dump() for slug, summary in plans.items()})
