"""
GA4 Measurement Protocol: événement 'purchase' envoyé côté serveur.
"""
import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from storefront import config

logger = logging.getLogger(__name__)

MP_URL = "https://www.google-analytics.com/mp/collect"

def send_purchase_event(
    client_id: Optional[str],
    transaction_id: str,
    value: float,
    currency: str,
    *,
    destination: Optional[str] = None,
    duration: Optional[int] = None,
    locale: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """
    Envoie un 'purchase' GA4. client_id: gclid si connu, sinon identifiant serveur généré.
    204 ou 2xx = succès; GA4 ne renvoie pas de détail d'erreur.
    """
    if not config.GA4_MEASUREMENT_ID or not config.GA4_API_SECRET:
        logger.warning("attribution.ga4 not configured, skipping purchase event")
        return {"success": False, "error": "GA4 not configured"}

    params: Dict[str, Any] = {
        "transaction_id": transaction_id,
        "value": value,
        "currency": currency.upper(),
        "items": [{
            "item_name": f"{destination} eSIM" if destination else "eSIM",
            "item_category": "eSIM",
            "price": value,
            "quantity": 1,
        }],
    }
    if destination:
        params["destination"] = destination
    if duration:
        params["duration"] = duration
    if locale:
        params["locale"] = locale

    payload = {
        "client_id": client_id or f"server.{int(time.time())}.{uuid.uuid4().hex[:10]}",
        "events": [{"name": "purchase", "params": params}],
    }
    try:
        with httpx.Client(timeout=10.0, transport=transport) as client:
            response = client.post(
                MP_URL,
                params={"measurement_id": config.GA4_MEASUREMENT_ID, "api_secret": config.GA4_API_SECRET},
                json=payload,
            )
    except httpx.HTTPError as e:
        logger.exception("attribution.ga4 purchase event failed transaction_id=%s", transaction_id)
        return {"success": False, "error": str(e)}

    if response.status_code == 204 or response.is_success:
        logger.info("attribution.ga4 purchase event sent transaction_id=%s", transaction_id)
        return {"success": True}
    logger.error("attribution.ga4 purchase event rejected status=%s", response.status_code)
    return {"success": False, "error": f"HTTP {response.status_code}: {response.text[:200]}"}
