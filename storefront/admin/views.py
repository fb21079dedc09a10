import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.config import StoreSettings, get_settings
from storefront.orders import repository as orders_repository
from storefront.orders import service as orders_service
from .security import require_admin

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


class OrderActionRequest(BaseModel):
    session_id: str = Field(min_length=1)
    action: Literal["retry", "resend"]


# module storefront.admin.views
@router.get("/orders")
def admin_orders(limit: int = Query(100, ge=1, le=500)):
    """Commandes récentes (plus récentes d'abord)."""
    orders = orders_repository.list_orders(limit)
    return JSONResponse({"orders": [o.model_dump(mode="json") for o in orders]})

@router.post("/order-action")
def admin_order_action(body: OrderActionRequest, settings: StoreSettings = Depends(get_settings)):
    """
    Actions de support sur une commande:
    - retry: provisionne l'eSIM d'une commande "pending" puis envoie l'email
    - resend: renvoie l'email de confirmation (QR requis)
    """
    logger.info("admin.order_action action=%s session_id=%s", body.action, body.session_id)
    if body.action == "retry":
        result = orders_service.retry_provisioning(
            body.session_id,
            settings=settings,
            provisioner=orders_service.make_provisioner(settings),
            mailer=orders_service.make_mailer(),
        )
    else:
        result = orders_service.resend_confirmation(body.session_id, mailer=orders_service.make_mailer())
    return JSONResponse(result)
