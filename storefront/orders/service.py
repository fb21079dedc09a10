"""
Cas d'usage 'orders': réconciliation d'une session Stripe payée en commande eSIM.

Étapes (reconcile_session):
  1) idempotence: commande existante pour la session -> retournée telle quelle
  2) contexte (email, métadonnées, montant) depuis la session
  3) provisioning eSIM (échec loggé, commande créée en esim_status "pending")
  4) numéro TRV-YYYYMMDD-NNN
  5) client + insertion conditionnelle (seule étape fatale: PersistenceError)
  6) email avec QR (échec loggé)
  7) attribution Google Ads / GA4 si gclid (échec loggé)
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
import logging

from storefront import config
from storefront.config import StoreSettings
from storefront.errors import ExternalServiceError, NotFoundError, PersistenceError, StorefrontError, ValidationError
from storefront.catalog.models import get_plan_name
from storefront.catalog.service import destination_display_name
from storefront.fulfillment.esimgo import EsimGoClient, EsimProvisioner, ProvisionedEsim
from storefront.notifications.email import ResendMailer
from storefront.attribution.reporter import ConversionReporter
from storefront.payments import stripe_client
from . import repository
from .models import EsimStatus, Order, OrderContext, OrderStatus
from .numbering import next_order_number, order_number_prefix

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
PAID_STATUSES = ("paid", "no_payment_required")


@dataclass
class ReconcileResult:
    order: Order
    created: bool


def make_provisioner(settings: StoreSettings) -> EsimProvisioner:
    return EsimProvisioner(EsimGoClient(settings.esim_api_key, settings.esim_api_base))

def make_mailer() -> ResendMailer:
    return ResendMailer(config.RESEND_API_KEY, config.EMAIL_FROM)

def make_reporter() -> ConversionReporter:
    return ConversionReporter()

def _first_name(name: Optional[str]) -> Optional[str]:
    return name.split(" ")[0] if name else None

def _esim_fields(esim: ProvisionedEsim, now: datetime) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "esim_order_reference": esim.order_reference,
        "esim_iccid": esim.iccid,
        "esim_smdp_address": esim.smdp_address,
        "esim_matching_id": esim.matching_id,
        "esim_qr_code": esim.qr_code,
        "esim_provisioned_at": now.isoformat(),
    }
    if esim.qr_code:
        fields["esim_status"] = EsimStatus.DELIVERED
        fields["status"] = OrderStatus.COMPLETED
    return fields

def _provision(ctx: OrderContext, provisioner: EsimProvisioner, settings: StoreSettings) -> Optional[ProvisionedEsim]:
    if not ctx.bundle_name:
        logger.warning("orders.reconcile no bundle_name session_id=%s", ctx.session_id)
        return None
    try:
        return provisioner.provision(ctx.bundle_name, ctx.session_id, settings.esim_order_type)
    except Exception:
        logger.exception(
            "orders.reconcile provisioning failed session_id=%s bundle=%s mode=%s",
            ctx.session_id, ctx.bundle_name, settings.esim_order_type,
        )
        return None

def _insert_with_fresh_number(row: Dict[str, Any], now: datetime) -> Optional[Order]:
    prefix = order_number_prefix(now)
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        row["order_number"] = next_order_number(now, repository.get_last_order_number(prefix))
        try:
            return repository.insert_order_if_absent(row)
        except repository.DuplicateOrderNumber:
            logger.warning("orders.reconcile order_number taken order_number=%s, regenerating", row["order_number"])
    raise PersistenceError("Could not allocate an order number")

def _send_confirmation(order: Order, mailer: ResendMailer, customer_name: Optional[str] = None) -> Order:
    try:
        mailer.send_esim_ready(order, _first_name(customer_name))
    except Exception:
        logger.exception("orders.reconcile confirmation email failed order_number=%s", order.order_number)
        return order
    try:
        return repository.update_order(order.id, {"confirmation_email_sent": True})
    except PersistenceError:
        logger.exception("orders.reconcile email sent but flag update failed order_number=%s", order.order_number)
        return order

# module storefront.orders.service
def reconcile_session(
    session: Dict[str, Any],
    *,
    settings: StoreSettings,
    provisioner: EsimProvisioner,
    mailer: ResendMailer,
    reporter: Optional[ConversionReporter] = None,
    schedule: Optional[Callable[..., Any]] = None,
) -> ReconcileResult:
    """
    Transforme une session Checkout payée en commande (idempotent sur session["id"]).
    - schedule: ex BackgroundTasks.add_task pour l'attribution; sinon exécutée en ligne
    Erreurs: ValidationError (session sans id/email), PersistenceError (écriture de la commande).
    """
    session_id = (session or {}).get("id")
    if not session_id:
        raise ValidationError("Session id required")

    existing = repository.get_order_by_session_id(session_id)
    if existing:
        logger.info("orders.reconcile already processed session_id=%s order_number=%s", session_id, existing.order_number)
        return ReconcileResult(order=existing, created=False)

    ctx = OrderContext.from_session(session)
    if not ctx.customer_email:
        raise ValidationError("No customer email found in session")

    esim = _provision(ctx, provisioner, settings)

    now = datetime.now(timezone.utc)
    customer = repository.find_or_create_customer(ctx.customer_email, ctx.customer_name, ctx.customer_phone)
    row: Dict[str, Any] = {
        "stripe_session_id": ctx.session_id,
        "stripe_payment_intent_id": ctx.payment_intent_id,
        "customer_id": customer.get("id"),
        "customer_email": ctx.customer_email,
        "destination_slug": ctx.destination_slug or "unknown",
        "destination_name": ctx.destination_name or destination_display_name(ctx.destination_slug, ctx.locale),
        "plan_name": get_plan_name(ctx.duration),
        "duration": ctx.duration or 0,
        "bundle_name": ctx.bundle_name,
        "amount_cents": ctx.amount_cents,
        "currency": ctx.currency,
        "locale": ctx.locale,
        "status": OrderStatus.PAID,
        "esim_status": EsimStatus.PENDING,
        "confirmation_email_sent": False,
        "gclid": ctx.gclid,
        "paid_at": now.isoformat(),
    }
    if esim:
        row.update(_esim_fields(esim, now))

    order = _insert_with_fresh_number(row, now)
    if order is None:
        # Un webhook concurrent a créé la commande entre la vérification et l'insertion
        existing = repository.get_order_by_session_id(session_id)
        if existing is None:
            raise PersistenceError("Order insert skipped but no order found")
        if esim:
            logger.warning(
                "orders.reconcile concurrent insert, provisioned eSIM unused session_id=%s iccid=%s",
                session_id, esim.iccid,
            )
        return ReconcileResult(order=existing, created=False)

    logger.info(
        "orders.reconcile created order_number=%s session_id=%s esim_status=%s",
        order.order_number, session_id, order.esim_status,
    )

    if order.esim_qr_code:
        order = _send_confirmation(order, mailer, ctx.customer_name)

    if ctx.gclid and reporter is not None:
        kwargs = {
            "gclid": ctx.gclid,
            "value": order.amount_cents / 100,
            "currency": order.currency,
            "order_id": order.order_number,
            "destination": order.destination_name,
            "duration": order.duration,
            "locale": order.locale,
        }
        if schedule is not None:
            schedule(reporter.report_purchase, **kwargs)
        else:
            reporter.report_purchase(**kwargs)

    return ReconcileResult(order=order, created=True)

def reconcile_session_by_id(
    session_id: str,
    *,
    settings: StoreSettings,
    provisioner: EsimProvisioner,
    mailer: ResendMailer,
    reporter: Optional[ConversionReporter] = None,
) -> ReconcileResult:
    """
    Rejoue la réconciliation pour une session (récupération manuelle).
    ValidationError si le paiement n'est pas confirmé.
    """
    session = stripe_client.get_session(session_id, settings)
    payment_status = session.get("payment_status") or ""
    if payment_status not in PAID_STATUSES:
        raise ValidationError(f"Payment not confirmed (payment_status={payment_status})")
    return reconcile_session(session, settings=settings, provisioner=provisioner, mailer=mailer, reporter=reporter)

def get_order_status(session_id: str) -> Dict[str, Any]:
    """
    Statut pour la page succès:
    - {"order": None, "status": "pending"} tant que le webhook n'est pas passé
    - {"order": {...}, "status": "ready"} si le QR existe, sinon "processing"
    """
    if not session_id:
        raise ValidationError("Session ID required")
    order = repository.get_order_by_session_id(session_id)
    if order is None:
        return {"order": None, "status": "pending"}
    return {"order": order.public_view(), "status": "ready" if order.esim_qr_code else "processing"}

def _require_order(session_id: str) -> Order:
    order = repository.get_order_by_session_id(session_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order

def retry_provisioning(
    session_id: str,
    *,
    settings: StoreSettings,
    provisioner: EsimProvisioner,
    mailer: ResendMailer,
) -> Dict[str, Any]:
    """
    Provisionne à nouveau une commande restée "pending" puis envoie l'email.
    Erreurs: NotFoundError, ValidationError (déjà provisionnée / sans bundle), ExternalServiceError.
    """
    order = _require_order(session_id)
    if order.esim_qr_code:
        raise ValidationError("eSIM already provisioned")
    if not order.bundle_name:
        raise ValidationError("No bundle name for this order")

    logger.info("orders.retry provisioning order_number=%s mode=%s", order.order_number, settings.esim_order_type)
    try:
        esim = provisioner.provision(order.bundle_name, order.order_number, settings.esim_order_type)
    except StorefrontError:
        raise
    except Exception as e:
        logger.exception("orders.retry provisioning failed order_number=%s", order.order_number)
        raise ExternalServiceError("Failed to provision eSIM") from e
    if not esim.qr_code:
        raise ExternalServiceError("Failed to get eSIM details from provider")

    order = repository.update_order(order.id, _esim_fields(esim, datetime.now(timezone.utc)))
    try:
        mailer.send_esim_ready(order)
    except Exception as e:
        logger.exception("orders.retry email failed order_number=%s", order.order_number)
        raise ExternalServiceError("eSIM provisioned but email failed") from e
    repository.update_order(order.id, {"confirmation_email_sent": True})
    return {"success": True, "message": f"eSIM provisioned and email sent to {order.customer_email}"}

def resend_confirmation(session_id: str, *, mailer: ResendMailer) -> Dict[str, Any]:
    """
    Renvoie l'email de confirmation d'une commande déjà provisionnée.
    """
    order = _require_order(session_id)
    if not order.esim_qr_code:
        raise ValidationError("No QR code to send - provision eSIM first")
    try:
        mailer.send_esim_ready(order)
    except Exception as e:
        logger.exception("orders.resend email failed order_number=%s", order.order_number)
        raise ExternalServiceError("Failed to resend email") from e
    repository.update_order(order.id, {"confirmation_email_sent": True})
    return {"success": True, "message": f"Email resent to {order.customer_email}"}
