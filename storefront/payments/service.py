"""
Cas d'usage 'payments': création d'une session Checkout pour un forfait eSIM.
Orchestre catalog (plan, destination), metadata et stripe_client.
"""
from typing import Any, Dict, Optional
import logging

from storefront.config import StoreSettings
from storefront.errors import CheckoutError, ConfigurationError, NotFoundError, StorefrontError, ValidationError
from storefront.catalog import repository as catalog_repository
from storefront.catalog.models import SUPPORTED_DURATIONS
from storefront.catalog.service import destination_display_name
from . import stripe_client
from .metadata import make_metadata
from .models import CheckoutRequest, CheckoutResult

logger = logging.getLogger(__name__)

# module storefront.payments.service
def _validate(request: CheckoutRequest) -> None:
    if not request.destination or not request.duration or not request.locale:
        raise ValidationError("Missing required fields: destination, duration, locale")
    if request.duration not in SUPPORTED_DURATIONS:
        raise ValidationError("Invalid duration. Must be 5, 7, or 15.")

def _promotion_params(promo_code: Optional[str], settings: StoreSettings) -> Dict[str, Any]:
    """
    Code promo: appliqué s'il existe et est actif, sinon saisie manuelle autorisée.
    Une erreur de lookup ne bloque jamais le paiement.
    """
    if not promo_code:
        return {"allow_promotion_codes": True}
    try:
        promo = stripe_client.find_promotion_code(promo_code, settings)
    except Exception:
        logger.exception("payments.checkout promo lookup failed code=%s", promo_code)
        return {"allow_promotion_codes": True}
    if promo and promo.get("id"):
        logger.info("payments.checkout promo applied code=%s", promo_code)
        return {"discounts": [{"promotion_code": promo["id"]}]}
    logger.warning("payments.checkout promo not found code=%s, allowing manual entry", promo_code)
    return {"allow_promotion_codes": True}

def create_checkout_session(
    request: CheckoutRequest,
    *,
    settings: StoreSettings,
    origin: Optional[str] = None,
) -> CheckoutResult:
    """
    Crée une session Stripe Checkout pour (destination, duration, locale).
    Étapes:
      1) validation des champs (ValidationError, aucune session créée)
      2) plan (destination, locale) -> NotFoundError si absent
      3) price id du mode courant -> ConfigurationError si absent
      4) code promo (soft-fail)
      5) création de la session Stripe (métadonnées lues par la réconciliation)
    Toute autre erreur devient CheckoutError (message générique, détail dans les logs).
    """
    _validate(request)

    try:
        plan = catalog_repository.get_plan(request.destination, request.locale)
    except StorefrontError:
        raise
    except Exception:
        logger.exception(
            "payments.checkout plan lookup failed destination=%s locale=%s", request.destination, request.locale
        )
        raise CheckoutError()
    if plan is None:
        raise NotFoundError("Plan not found for this destination and locale")

    option = plan.option_for(request.duration)
    price_ref = option.price_reference(settings.test_mode) if option else None
    if not price_ref:
        logger.error(
            "payments.checkout price not configured destination=%s duration=%s locale=%s mode=%s",
            request.destination, request.duration, request.locale, settings.mode,
        )
        raise ConfigurationError("Price not configured for this plan")

    base = (origin or settings.base_url).rstrip("/")
    try:
        destination_name = destination_display_name(request.destination, request.locale)
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{"price": price_ref, "quantity": 1}],
            "success_url": f"{base}/{request.locale}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base}/{request.locale}/checkout/cancel",
            "metadata": make_metadata(
                destination_slug=request.destination,
                destination_name=destination_name,
                duration=request.duration,
                locale=request.locale,
                bundle_name=option.bundle_name,
                currency=plan.currency,
                gclid=request.gclid,
            ),
        }
        if request.gclid:
            params["client_reference_id"] = request.gclid
        params.update(_promotion_params(request.promo_code, settings))

        logger.info(
            "payments.checkout creating session mode=%s destination=%s duration=%s currency=%s",
            settings.mode, request.destination, request.duration, plan.currency,
        )
        session = stripe_client.create_session(settings, **params)
    except Exception:
        logger.exception(
            "payments.checkout session creation failed destination=%s duration=%s",
            request.destination, request.duration,
        )
        raise CheckoutError()

    if not session.get("id") or not session.get("url"):
        logger.error("payments.checkout invalid session returned session=%s", session.get("id"))
        raise CheckoutError()
    return CheckoutResult(session_id=session["id"], url=session["url"])
