# module storefront.orders.models
"""Modèles des commandes.
- Order: miroir d'une ligne de la table 'orders'
- OrderContext: valeurs dérivées d'une session Stripe Checkout (email, métadonnées, montant)
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from storefront.config import DEFAULT_LOCALE
from storefront.payments.metadata import extract_metadata_from_session


class OrderStatus:
    PAID = "paid"
    COMPLETED = "completed"


class EsimStatus:
    PENDING = "pending"
    DELIVERED = "delivered"


class Order(BaseModel):
    id: Optional[str] = None
    order_number: str
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    destination_slug: str
    destination_name: str
    plan_name: str
    duration: int
    bundle_name: Optional[str] = None
    amount_cents: int = 0
    currency: str = "AUD"
    locale: str = DEFAULT_LOCALE
    status: str = OrderStatus.PAID
    esim_order_reference: Optional[str] = None
    esim_iccid: Optional[str] = None
    esim_smdp_address: Optional[str] = None
    esim_matching_id: Optional[str] = None
    esim_qr_code: Optional[str] = None
    esim_status: str = EsimStatus.PENDING
    confirmation_email_sent: bool = False
    gclid: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    esim_provisioned_at: Optional[datetime] = None

    def public_view(self) -> Dict[str, Any]:
        """Champs exposés à la page succès (GET /api/orders/{session_id})."""
        return self.model_dump(
            include={
                "order_number", "destination_name", "plan_name", "duration", "amount_cents",
                "currency", "esim_qr_code", "esim_status", "status",
            }
        )


class OrderContext(BaseModel):
    session_id: str
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    destination_slug: Optional[str] = None
    destination_name: Optional[str] = None
    duration: Optional[int] = None
    locale: str = DEFAULT_LOCALE
    bundle_name: Optional[str] = None
    amount_cents: int = 0
    currency: str = "AUD"
    payment_intent_id: Optional[str] = None
    gclid: Optional[str] = None

    @classmethod
    def from_session(cls, session: Dict[str, Any]) -> "OrderContext":
        """
        - email/nom/téléphone: customer_details
        - destination, durée, locale, bundle, gclid: metadata (payments.metadata)
        - payment_intent: id (chaîne) ou objet développé {"id": ...}
        """
        details = session.get("customer_details") or {}
        meta = extract_metadata_from_session(session)
        intent = session.get("payment_intent")
        if isinstance(intent, dict):
            intent = intent.get("id")
        currency = session.get("currency") or meta.get("currency") or "AUD"
        return cls(
            session_id=session["id"],
            customer_email=details.get("email") or session.get("customer_email"),
            customer_name=details.get("name"),
            customer_phone=details.get("phone"),
            destination_slug=meta["destination_slug"],
            destination_name=meta["destination_name"],
            duration=meta["duration"],
            locale=meta["locale"] or DEFAULT_LOCALE,
            bundle_name=meta["bundle_name"],
            amount_cents=int(session.get("amount_total") or 0),
            currency=currency.upper(),
            payment_intent_id=intent or None,
            gclid=meta["gclid"],
        )
