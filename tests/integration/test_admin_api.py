import pytest

from storefront import config
from storefront.errors import ExternalServiceError
from storefront.orders import service as orders_service

AUTH = {"Authorization": "Bearer admin-key"}


@pytest.fixture(autouse=True)
def admin_key(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_API_KEY", "admin-key")


@pytest.fixture
def collaborators(monkeypatch, provisioner, mailer):
    monkeypatch.setattr("storefront.orders.service.make_provisioner", lambda settings: provisioner)
    monkeypatch.setattr("storefront.orders.service.make_mailer", lambda: mailer)


@pytest.fixture
def delivered(orders_repo, settings, provisioner, mailer, paid_session):
    return orders_service.reconcile_session(
        paid_session, settings=settings, provisioner=provisioner, mailer=mailer
    ).order


@pytest.fixture
def pending(orders_repo, settings, provisioner, mailer, paid_session):
    provisioner.error = ExternalServiceError("down")
    order = orders_service.reconcile_session(
        paid_session, settings=settings, provisioner=provisioner, mailer=mailer
    ).order
    provisioner.error = None
    return order


def test_admin_requires_token(client, orders_repo):
    r = client.get("/api/admin/orders")

    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_admin_rejects_wrong_token(client, orders_repo):
    assert client.get("/api/admin/orders", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_admin_lists_orders(client, delivered):
    r = client.get("/api/admin/orders", headers=AUTH)

    assert r.status_code == 200
    orders = r.json()["orders"]
    assert [o["order_number"] for o in orders] == [delivered.order_number]
    assert orders[0]["customer_email"] == "traveler@example.com"
    assert r.headers["Cache-Control"].startswith("no-store")


def test_admin_orders_limit_validated(client, orders_repo):
    r = client.get("/api/admin/orders", params={"limit": 0}, headers=AUTH)
    assert r.status_code == 400


def test_admin_resend(client, collaborators, delivered, mailer):
    r = client.post("/api/admin/order-action", json={"session_id": "cs_test_abc", "action": "resend"}, headers=AUTH)

    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Email resent to traveler@example.com"}
    assert len(mailer.sent) == 2


def test_admin_retry(client, collaborators, pending, provisioner, mailer, orders_repo):
    r = client.post("/api/admin/order-action", json={"session_id": "cs_test_abc", "action": "retry"}, headers=AUTH)

    assert r.status_code == 200
    assert r.json()["success"] is True
    assert orders_repo.orders["cs_test_abc"].esim_status == "delivered"


def test_admin_retry_already_provisioned(client, collaborators, delivered):
    r = client.post("/api/admin/order-action", json={"session_id": "cs_test_abc", "action": "retry"}, headers=AUTH)

    assert r.status_code == 400
    assert r.json() == {"error": "eSIM already provisioned"}


def test_admin_action_unknown_order(client, collaborators, orders_repo):
    r = client.post("/api/admin/order-action", json={"session_id": "cs_nope", "action": "resend"}, headers=AUTH)

    assert r.status_code == 404
    assert r.json() == {"error": "Order not found"}


def test_admin_action_invalid(client, collaborators, orders_repo):
    r = client.post("/api/admin/order-action", json={"session_id": "cs_test_abc", "action": "refund"}, headers=AUTH)

    assert r.status_code == 400
    assert r.json()["error"].startswith("action:")
