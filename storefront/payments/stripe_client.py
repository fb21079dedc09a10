"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
La clé utilisée est celle du mode courant (StoreSettings), jamais lue ici depuis l'environnement.
"""
from typing import Any, Dict, Optional
import logging

import stripe
from fastapi import Request

from storefront.config import StoreSettings
from storefront.errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

# module storefront.payments.stripe_client
def _as_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict récursif (les objets imbriqués deviennent des dicts simples)."""
    if obj is None:
        return {}
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def require_stripe(settings: StoreSettings):
    """
    Configure stripe.api_key pour le mode courant et retourne le module stripe.
    - Clé absente: ConfigurationError (aucun appel réseau tenté)
    """
    if not settings.stripe_secret_key:
        raise ConfigurationError(f"Stripe secret key not configured for {settings.mode} mode")
    stripe.api_key = settings.stripe_secret_key
    return stripe

def create_session(settings: StoreSettings, **params: Any) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - params: line_items, mode, success_url, cancel_url, metadata, discounts / allow_promotion_codes...
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://checkout.stripe.com/..."})
    """
    require_stripe(settings)
    session = stripe.checkout.Session.create(payment_method_types=["card"], **params)
    return _as_dict(session)

def get_session(session_id: str, settings: StoreSettings) -> Dict[str, Any]:
    """
    Récupère une session Checkout (customer_details et payment_intent en dicts simples).
    """
    require_stripe(settings)
    session = stripe.checkout.Session.retrieve(session_id)
    return _as_dict(session)

def find_promotion_code(code: str, settings: StoreSettings) -> Optional[Dict[str, Any]]:
    """
    Cherche un code promo actif. Retourne {"id": "promo_...", ...} ou None.
    """
    require_stripe(settings)
    res = stripe.PromotionCode.list(code=code, active=True, limit=1)
    data = list(res.get("data") or [])
    return _as_dict(data[0]) if data else None

async def parse_event(request: Request, settings: StoreSettings) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (secret du mode courant)
    Erreurs: ValidationError (400) si signature/secret absents ou invalides.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header or not settings.stripe_webhook_secret:
        logger.error(
            "payments.webhook missing signature or secret has_signature=%s has_secret=%s",
            bool(sig_header), bool(settings.stripe_webhook_secret),
        )
        raise ValidationError("Missing signature or webhook secret")
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, settings.stripe_webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("payments.webhook signature verification failed error=%s", e)
        raise ValidationError("Webhook signature verification failed")
    return _as_dict(event)
