import hashlib
import hmac
import json
import time

import pytest

from storefront.errors import PersistenceError


def _signed(payload: dict, secret: str = "whsec_test"):
    """Corps + en-tête Stripe-Signature valides (schéma v1: HMAC-SHA256 de '<t>.<payload>')."""
    body = json.dumps(payload)
    ts = int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.{body}".encode(), hashlib.sha256).hexdigest()
    return body, {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


def _event(session, event_type="checkout.session.completed"):
    return {"id": "evt_1", "object": "event", "type": event_type, "data": {"object": session}}


@pytest.fixture
def collaborators(monkeypatch, provisioner, mailer, reporter):
    monkeypatch.setattr("storefront.orders.service.make_provisioner", lambda settings: provisioner)
    monkeypatch.setattr("storefront.orders.service.make_mailer", lambda: mailer)
    monkeypatch.setattr("storefront.orders.service.make_reporter", lambda: reporter)


def test_completed_session_creates_order(client, orders_repo, collaborators, provisioner, mailer, paid_session):
    body, headers = _signed(_event(paid_session))

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    assert r.status_code == 200
    assert r.json() == {"received": True}
    order = orders_repo.orders["cs_test_abc"]
    assert order.esim_status == "delivered"
    assert len(mailer.sent) == 1


def test_duplicate_delivery_is_idempotent(client, orders_repo, collaborators, provisioner, mailer, paid_session):
    body, headers = _signed(_event(paid_session))

    assert client.post("/api/webhooks/stripe", content=body, headers=headers).status_code == 200
    assert client.post("/api/webhooks/stripe", content=body, headers=headers).status_code == 200

    assert len(orders_repo.orders) == 1
    assert len(provisioner.calls) == 1
    assert len(mailer.sent) == 1


def test_attribution_runs_after_response(client, orders_repo, collaborators, reporter, paid_session):
    paid_session["metadata"]["gclid"] = "gclid-xyz"
    body, headers = _signed(_event(paid_session))

    client.post("/api/webhooks/stripe", content=body, headers=headers)

    # BackgroundTasks s'exécutent avant la fin de la requête TestClient
    assert len(reporter.calls) == 1
    assert reporter.calls[0]["gclid"] == "gclid-xyz"


def test_async_payment_succeeded_is_handled(client, orders_repo, collaborators, paid_session):
    body, headers = _signed(_event(paid_session, "checkout.session.async_payment_succeeded"))

    assert client.post("/api/webhooks/stripe", content=body, headers=headers).status_code == 200
    assert "cs_test_abc" in orders_repo.orders


def test_unpaid_completed_session_is_deferred(client, orders_repo, collaborators, provisioner, paid_session):
    paid_session["payment_status"] = "unpaid"
    body, headers = _signed(_event(paid_session))

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    assert r.status_code == 200
    assert orders_repo.orders == {}
    assert provisioner.calls == []


def test_other_events_are_acknowledged(client, orders_repo, collaborators, provisioner):
    body, headers = _signed({"id": "evt_2", "object": "event", "type": "payment_intent.created", "data": {"object": {}}})

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    assert r.json() == {"received": True}
    assert provisioner.calls == []


def test_invalid_signature_rejected(client, orders_repo, collaborators, paid_session):
    body, headers = _signed(_event(paid_session), secret="whsec_other")

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    assert r.status_code == 400
    assert r.json() == {"error": "Webhook signature verification failed"}
    assert orders_repo.orders == {}


def test_missing_signature_rejected(client, paid_session):
    r = client.post("/api/webhooks/stripe", content=json.dumps(_event(paid_session)))

    assert r.status_code == 400
    assert r.json() == {"error": "Missing signature or webhook secret"}


def test_session_without_email_is_acknowledged(client, orders_repo, collaborators, paid_session):
    paid_session["customer_details"] = None
    body, headers = _signed(_event(paid_session))

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    assert r.status_code == 200
    assert orders_repo.orders == {}


def test_persistence_failure_returns_500(client, orders_repo, collaborators, paid_session, monkeypatch):
    def broken(row):
        raise PersistenceError()

    monkeypatch.setattr("storefront.orders.repository.insert_order_if_absent", broken)
    body, headers = _signed(_event(paid_session))

    r = client.post("/api/webhooks/stripe", content=body, headers=headers)

    # 500: Stripe rejouera l'événement
    assert r.status_code == 500
    assert r.json() == {"error": "Database error"}


def test_reconciliation_runs_in_threadpool(client, orders_repo, collaborators, paid_session, monkeypatch):
    from starlette.concurrency import run_in_threadpool

    offloaded = []

    async def recording(fn, *args, **kwargs):
        offloaded.append(fn.__name__)
        return await run_in_threadpool(fn, *args, **kwargs)

    monkeypatch.setattr("storefront.payments.views.run_in_threadpool", recording)
    body, headers = _signed(_event(paid_session))

    assert client.post("/api/webhooks/stripe", content=body, headers=headers).status_code == 200
    assert offloaded == ["reconcile_session"]
    assert "cs_test_abc" in orders_repo.orders
