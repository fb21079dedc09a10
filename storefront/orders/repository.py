"""
Accès aux données pour la feature 'orders' (tables orders, customers).
- Client service-role (écritures depuis le webhook, RLS contournée)
- Chaque appel passe par with_db_retry; un échec définitif devient PersistenceError
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

import storefront.infra.supabase_client as supabase_client
from storefront.errors import PersistenceError
from storefront.infra.retry import with_db_retry
from .models import Order

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class DuplicateOrderNumber(Exception):
    """Le numéro de commande existe déjà (course entre deux webhooks le même jour)."""


def _is_unique_violation(exc: Exception, column: str) -> bool:
    if not isinstance(exc, APIError) or str(exc.code or "") != UNIQUE_VIOLATION:
        return False
    text = f"{exc.message or ''} {exc.details or ''}"
    return column in text

def _run(label: str, fn: Callable[[], Any]) -> Any:
    try:
        return with_db_retry(fn)
    except Exception as e:
        logger.exception("orders.repository.%s failed", label)
        raise PersistenceError() from e

# module storefront.orders.repository
def get_order_by_session_id(session_id: str) -> Optional[Order]:
    res = _run(
        "get_order_by_session_id",
        lambda: supabase_client.get_service_supabase()
        .table("orders")
        .select("*")
        .eq("stripe_session_id", session_id)
        .limit(1)
        .execute(),
    )
    rows = res.data or []
    return Order(**rows[0]) if rows else None

def get_last_order_number(prefix: str) -> Optional[str]:
    """
    Plus grand order_number commençant par `prefix` (tri décroissant), None si aucun.
    """
    res = _run(
        "get_last_order_number",
        lambda: supabase_client.get_service_supabase()
        .table("orders")
        .select("order_number")
        .like("order_number", f"{prefix}%")
        .order("order_number", desc=True)
        .limit(1)
        .execute(),
    )
    rows = res.data or []
    return rows[0]["order_number"] if rows else None

def insert_order_if_absent(row: Dict[str, Any]) -> Optional[Order]:
    """
    Insertion conditionnelle sur stripe_session_id (upsert ignore_duplicates).
    - Retourne la commande insérée
    - None si une commande existait déjà pour cette session
    - DuplicateOrderNumber si le numéro est déjà pris (l'appelant en génère un autre)
    """
    def _insert():
        return (
            supabase_client.get_service_supabase()
            .table("orders")
            .upsert(row, on_conflict="stripe_session_id", ignore_duplicates=True)
            .execute()
        )

    try:
        res = with_db_retry(_insert)
    except APIError as e:
        if _is_unique_violation(e, "order_number"):
            raise DuplicateOrderNumber(row.get("order_number")) from e
        logger.exception("orders.repository.insert_order_if_absent failed session_id=%s", row.get("stripe_session_id"))
        raise PersistenceError() from e
    except Exception as e:
        logger.exception("orders.repository.insert_order_if_absent failed session_id=%s", row.get("stripe_session_id"))
        raise PersistenceError() from e

    rows = res.data or []
    return Order(**rows[0]) if rows else None

def update_order(order_id: str, data: Dict[str, Any]) -> Order:
    res = _run(
        "update_order",
        lambda: supabase_client.get_service_supabase()
        .table("orders")
        .update(data)
        .eq("id", order_id)
        .execute(),
    )
    rows = res.data or []
    if not rows:
        raise PersistenceError(f"Order {order_id} not updated")
    return Order(**rows[0])

def find_or_create_customer(email: str, name: Optional[str] = None, phone: Optional[str] = None) -> Dict[str, Any]:
    """
    Client par email (unique). Met à jour nom/téléphone si de nouvelles valeurs sont fournies.
    """
    client = supabase_client.get_service_supabase

    def _find() -> Optional[Dict[str, Any]]:
        res = _run(
            "find_customer",
            lambda: client().table("customers").select("*").eq("email", email).limit(1).execute(),
        )
        rows = res.data or []
        return rows[0] if rows else None

    customer = _find()
    if customer:
        changes = {}
        if name and name != customer.get("name"):
            changes["name"] = name
        if phone and phone != customer.get("phone"):
            changes["phone"] = phone
        if changes:
            res = _run(
                "update_customer",
                lambda: client().table("customers").update(changes).eq("id", customer["id"]).execute(),
            )
            customer = (res.data or [customer])[0]
        return customer

    try:
        res = with_db_retry(
            lambda: client().table("customers").insert({"email": email, "name": name, "phone": phone}).execute()
        )
    except APIError as e:
        # Client créé entre-temps par un autre webhook
        if _is_unique_violation(e, "email"):
            existing = _find()
            if existing:
                return existing
        logger.exception("orders.repository.find_or_create_customer failed email=%s", email)
        raise PersistenceError() from e
    except Exception as e:
        logger.exception("orders.repository.find_or_create_customer failed email=%s", email)
        raise PersistenceError() from e
    rows = res.data or []
    if not rows:
        raise PersistenceError("Customer not created")
    logger.info("orders.repository created customer id=%s", rows[0].get("id"))
    return rows[0]

def list_orders(limit: int = 100) -> List[Order]:
    res = _run(
        "list_orders",
        lambda: supabase_client.get_service_supabase()
        .table("orders")
        .select("*")
        .order("created_at", desc=True)
        .limit(limit)
        .execute(),
    )
    return [Order(**r) for r in (res.data or [])]
