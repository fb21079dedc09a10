"""
Sérialisation/désérialisation des métadonnées Stripe d'une session eSIM.
Stripe n'accepte que des chaînes: duration est relu en int côté webhook.
"""
from typing import Any, Dict, Optional

# module storefront.payments.metadata
def make_metadata(
    *,
    destination_slug: str,
    destination_name: str,
    duration: int,
    locale: str,
    bundle_name: Optional[str],
    currency: str,
    gclid: Optional[str] = None,
) -> Dict[str, str]:
    """
    Construit les métadonnées lues plus tard par la réconciliation.
    Ex: {"destination_slug": "japan", "duration": "7", "locale": "en-au", "bundle_name": "esim_UL_7D_JP_V2", ...}
    """
    meta = {
        "destination_slug": destination_slug,
        "destination_name": destination_name,
        "duration": str(duration),
        "locale": locale,
        "bundle_name": bundle_name or "",
        "currency": currency,
    }
    if gclid:
        meta["gclid"] = gclid
    return meta

def _parse_duration(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def extract_metadata_from_session(session: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait les champs utiles depuis session["metadata"].
    - duration: int ou None si absent/illisible
    - bundle_name: None si vide
    - gclid: metadata.gclid, sinon client_reference_id
    """
    meta = (session or {}).get("metadata") or {}
    return {
        "destination_slug": meta.get("destination_slug") or None,
        "destination_name": meta.get("destination_name") or None,
        "duration": _parse_duration(meta.get("duration")),
        "locale": meta.get("locale") or None,
        "bundle_name": meta.get("bundle_name") or None,
        "currency": meta.get("currency") or None,
        "gclid": meta.get("gclid") or (session or {}).get("client_reference_id") or None,
    }
