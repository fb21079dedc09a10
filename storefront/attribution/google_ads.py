"""
Google Ads: upload d'une conversion de clic (gclid) côté serveur.
Authentification OAuth2 par refresh token, puis customers/{id}:uploadClickConversions.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import httpx

from storefront import config

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
ADS_API_BASE = "https://googleads.googleapis.com/v18"

def format_conversion_datetime(dt: Optional[datetime] = None) -> str:
    """Format attendu par Google Ads: 'yyyy-mm-dd hh:mm:ss+hh:mm' (UTC par défaut)."""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    offset = dt.strftime("%z")
    return f"{dt.strftime('%Y-%m-%d %H:%M:%S')}{offset[:3]}:{offset[3:]}"

def _access_token(client: httpx.Client) -> Optional[str]:
    if not (config.GOOGLE_ADS_REFRESH_TOKEN and config.GOOGLE_ADS_CLIENT_ID and config.GOOGLE_ADS_CLIENT_SECRET):
        logger.warning("attribution.google_ads oauth credentials not configured")
        return None
    response = client.post(
        TOKEN_URL,
        data={
            "client_id": config.GOOGLE_ADS_CLIENT_ID,
            "client_secret": config.GOOGLE_ADS_CLIENT_SECRET,
            "refresh_token": config.GOOGLE_ADS_REFRESH_TOKEN,
            "grant_type": "refresh_token",
        },
    )
    if not response.is_success:
        logger.error("attribution.google_ads token exchange failed status=%s", response.status_code)
        return None
    return response.json().get("access_token")

def upload_click_conversion(
    gclid: str,
    value: float,
    currency: str,
    order_id: Optional[str] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """
    Envoie une conversion d'achat attribuée au clic `gclid`.
    Retour: {"success": True} ou {"success": False, "error": "..."};
    partialFailure renvoie success=True avec "partial_failure_error".
    Configuration absente: success=False sans appel réseau.
    """
    customer_id = config.GOOGLE_ADS_CUSTOMER_ID.replace("-", "")
    action_id = config.GOOGLE_ADS_CONVERSION_ACTION_ID
    if not customer_id or not action_id:
        logger.warning("attribution.google_ads not configured, skipping conversion upload")
        return {"success": False, "error": "Google Ads not configured"}
    if not gclid:
        return {"success": False, "error": "No gclid provided"}

    conversion: Dict[str, Any] = {
        "gclid": gclid,
        "conversionAction": f"customers/{customer_id}/conversionActions/{action_id}",
        "conversionDateTime": format_conversion_datetime(),
        "conversionValue": value,
        "currencyCode": currency.upper(),
    }
    if order_id:
        conversion["orderId"] = order_id

    try:
        with httpx.Client(timeout=15.0, transport=transport) as client:
            token = _access_token(client)
            if not token:
                return {"success": False, "error": "Failed to get access token"}
            headers = {
                "Authorization": f"Bearer {token}",
                "developer-token": config.GOOGLE_ADS_DEVELOPER_TOKEN,
            }
            if config.GOOGLE_ADS_LOGIN_CUSTOMER_ID:
                headers["login-customer-id"] = config.GOOGLE_ADS_LOGIN_CUSTOMER_ID.replace("-", "")
            response = client.post(
                f"{ADS_API_BASE}/customers/{customer_id}:uploadClickConversions",
                json={"conversions": [conversion], "partialFailure": True},
                headers=headers,
            )
            data = response.json() if response.content else {}
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("attribution.google_ads upload failed order_id=%s", order_id)
        return {"success": False, "error": str(e)}

    if not response.is_success:
        message = (data.get("error") or {}).get("message") or "Upload failed"
        logger.error("attribution.google_ads upload rejected status=%s error=%s", response.status_code, message)
        return {"success": False, "error": message}
    if data.get("partialFailureError"):
        message = data["partialFailureError"].get("message")
        logger.warning("attribution.google_ads partial failure order_id=%s error=%s", order_id, message)
        return {"success": True, "partial_failure_error": message}
    logger.info("attribution.google_ads conversion uploaded order_id=%s", order_id)
    return {"success": True}
