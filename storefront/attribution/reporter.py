# module storefront.attribution.reporter
from typing import Any, Dict, Optional
import logging

from . import ga4, google_ads

logger = logging.getLogger(__name__)


class ConversionReporter:
    """
    Remonte un achat vers Google Ads (gclid) et GA4.
    report_purchase ne lève jamais: chaque fournisseur renvoie {"success": bool, ...}.
    """

    def report_purchase(
        self,
        gclid: Optional[str],
        value: float,
        currency: str,
        order_id: str,
        destination: Optional[str] = None,
        duration: Optional[int] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Dict[str, Any]]:
        results: Dict[str, Dict[str, Any]] = {}
        try:
            results["google_ads"] = google_ads.upload_click_conversion(gclid, value, currency, order_id)
        except Exception as e:
            logger.exception("attribution.reporter google_ads failed order_id=%s", order_id)
            results["google_ads"] = {"success": False, "error": str(e)}
        try:
            results["ga4"] = ga4.send_purchase_event(
                gclid, order_id, value, currency,
                destination=destination, duration=duration, locale=locale,
            )
        except Exception as e:
            logger.exception("attribution.reporter ga4 failed order_id=%s", order_id)
            results["ga4"] = {"success": False, "error": str(e)}
        logger.info(
            "attribution.reporter order_id=%s google_ads=%s ga4=%s",
            order_id, results["google_ads"].get("success"), results["ga4"].get("success"),
        )
        return results
