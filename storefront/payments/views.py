import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.config import StoreSettings, get_settings
from storefront.errors import PersistenceError, ValidationError
from storefront.utils.rate_limit import optional_rate_limit
from storefront.orders import service as orders_service
from . import stripe_client
from . import service as payments_service
from .models import CheckoutRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])
webhook_router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

HANDLED_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")

# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(body: CheckoutRequest, request: Request, settings: StoreSettings = Depends(get_settings)):
    """
    Crée une session Checkout Stripe pour un forfait.
    - Entrée JSON: {"destination": "japan", "duration": 7, "locale": "en-au", "promoCode"?: "...", "gclid"?: "..."}
    - Sortie: {"url": "https://checkout.stripe.com/..."}
    - Erreurs: {"error": "..."} 400 (validation/config), 404 (plan), 500 (Stripe)
    """
    origin = request.headers.get("origin")
    result = payments_service.create_checkout_session(body, settings=settings, origin=origin)
    return JSONResponse({"url": result.url})

@webhook_router.post("/stripe")
async def stripe_webhook(request: Request, background_tasks: BackgroundTasks, settings: StoreSettings = Depends(get_settings)):
    """
    Webhook Stripe (signature vérifiée).
    - checkout.session.completed / async_payment_succeeded: réconciliation de la session
    - autres événements: acquittés sans traitement
    Une erreur d'écriture de la commande renvoie 500 pour que Stripe rejoue l'événement.
    """
    event = await stripe_client.parse_event(request, settings)
    event_type = event.get("type")
    if event_type not in HANDLED_EVENTS:
        return JSONResponse({"received": True})

    session = (event.get("data") or {}).get("object") or {}
    if event_type == "checkout.session.completed" and session.get("payment_status") == "unpaid":
        # Paiement différé: traité à async_payment_succeeded
        logger.info("payments.webhook payment pending session_id=%s", session.get("id"))
        return JSONResponse({"received": True})

    logger.info("payments.webhook processing type=%s session_id=%s", event_type, session.get("id"))
    try:
        # Appels bloquants (Supabase, eSIM Go, Resend): hors de la boucle asyncio
        await run_in_threadpool(
            orders_service.reconcile_session,
            session,
            settings=settings,
            provisioner=orders_service.make_provisioner(settings),
            mailer=orders_service.make_mailer(),
            reporter=orders_service.make_reporter(),
            schedule=background_tasks.add_task,
        )
    except ValidationError as e:
        # Session inexploitable: rejouer ne changerait rien
        logger.error("payments.webhook session rejected session_id=%s error=%s", session.get("id"), e.message)
    except PersistenceError:
        logger.exception("payments.webhook order persistence failed session_id=%s", session.get("id"))
        raise
    return JSONResponse({"received": True})
