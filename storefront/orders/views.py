import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from . import service as orders_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["Orders API"])

# module storefront.orders.views
@router.get("/{session_id}")
def order_status(session_id: str):
    """
    Statut de commande pour la page succès (pollée par le front).
    - {"order": null, "status": "pending"} tant que le webhook n'a pas été traité
    - {"order": {...}, "status": "ready" | "processing"}
    """
    return JSONResponse(orders_service.get_order_status(session_id))
