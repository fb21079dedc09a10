"""
Accès aux données pour la feature 'catalog' (tables plans, destinations, competitors).
Les lectures passent par la politique de retry (pool saturé).
"""
from typing import Dict, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.infra.retry import with_db_retry
from .models import Plan

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
def get_plan(destination_slug: str, locale: str) -> Optional[Plan]:
    """
    Plan unique pour (destination_slug, locale), None si absent.
    """
    def _query():
        return (
            supabase_client.get_supabase()
            .table("plans")
            .select("*")
            .eq("destination_slug", destination_slug)
            .eq("locale", locale)
            .limit(1)
            .execute()
        )

    res = with_db_retry(_query)
    rows = res.data or []
    return Plan.from_row(rows[0]) if rows else None

def list_plans(locale: str) -> List[Plan]:
    res = with_db_retry(
        lambda: supabase_client.get_supabase().table("plans").select("*").eq("locale", locale).execute()
    )
    return [Plan.from_row(r) for r in (res.data or [])]

def get_destination(slug: str, locale: str) -> Optional[dict]:
    """
    Destination (slug, locale) -> {"slug", "name", ...}. Erreur loggée et None en cas d'échec:
    le nom n'est qu'un libellé d'affichage.
    """
    try:
        res = with_db_retry(
            lambda: supabase_client.get_supabase()
            .table("destinations")
            .select("slug, locale, name")
            .eq("slug", slug)
            .eq("locale", locale)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("catalog.repository.get_destination failed slug=%s locale=%s", slug, locale)
        return None

def list_competitors() -> Dict[str, dict]:
    """
    Concurrents indexés par devise: {"AUD": {"name": "Telstra", "daily_rate": 10.0}}
    """
    res = with_db_retry(
        lambda: supabase_client.get_supabase().table("competitors").select("name, currency, daily_rate").execute()
    )
    out: Dict[str, dict] = {}
    for row in res.data or []:
        currency = (row.get("currency") or "").upper()
        if not currency:
            continue
        out[currency] = {
            "name": row.get("name"),
            "daily_rate": float(row["daily_rate"]) if row.get("daily_rate") is not None else None,
        }
    return out
