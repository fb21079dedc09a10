# module storefront.health.service
from typing import Any, Dict
import logging

from storefront.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def health_supabase_info() -> Dict[str, Any]:
    """
    Vérifie la configuration Supabase et une lecture simple sur 'plans'.
    - ok=False avec le message d'erreur si la requête échoue
    """
    info: Dict[str, Any] = {
        "configured": bool(SUPABASE_URL and SUPABASE_ANON),
        "service_key": bool(SUPABASE_SERVICE_KEY),
    }
    try:
        supabase_client.get_supabase().table("plans").select("id").limit(1).execute()
        info["ok"] = True
    except Exception as e:
        logger.exception("health.supabase check failed")
        info["ok"] = False
        info["error"] = str(e)
    return info
