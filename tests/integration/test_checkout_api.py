import pytest

from storefront.catalog.models import DurationOption, Plan


@pytest.fixture
def japan_plan(monkeypatch):
    plan = Plan(
        destination_slug="japan",
        locale="en-au",
        currency="AUD",
        durations={7: DurationOption(duration=7, retail_price=15.99, bundle_name="esim_UL_7D_JP_V2",
                                     stripe_price_id="price_live_7", stripe_test_price_id="price_test_7")},
    )
    monkeypatch.setattr("storefront.catalog.repository.get_plan", lambda destination, locale: plan)
    return plan


@pytest.fixture
def stripe_session(monkeypatch):
    calls = []

    def fake_create(settings, **params):
        calls.append(params)
        return {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    monkeypatch.setattr("storefront.payments.stripe_client.create_session", fake_create)
    return calls


def test_checkout_returns_stripe_url(client, japan_plan, stripe_session):
    r = client.post("/api/checkout", json={"destination": "japan", "duration": 7, "locale": "en-au"})

    assert r.status_code == 200
    assert r.json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_123"}
    assert stripe_session[0]["line_items"][0]["price"] == "price_test_7"


def test_checkout_uses_origin_header(client, japan_plan, stripe_session):
    client.post(
        "/api/checkout",
        json={"destination": "japan", "duration": 7, "locale": "en-au", "promoCode": ""},
        headers={"Origin": "https://www.trvel.co"},
    )

    assert stripe_session[0]["success_url"].startswith("https://www.trvel.co/en-au/checkout/success")


def test_checkout_missing_fields(client, stripe_session):
    r = client.post("/api/checkout", json={"destination": "japan"})

    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields: destination, duration, locale"}
    assert stripe_session == []


def test_checkout_invalid_duration(client, japan_plan, stripe_session):
    r = client.post("/api/checkout", json={"destination": "japan", "duration": 10, "locale": "en-au"})

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid duration. Must be 5, 7, or 15."}
    assert stripe_session == []


def test_checkout_non_numeric_duration(client, stripe_session):
    r = client.post("/api/checkout", json={"destination": "japan", "duration": "week", "locale": "en-au"})

    assert r.status_code == 400
    assert r.json()["error"].startswith("duration:")


def test_checkout_unknown_plan(client, stripe_session):
    # Supabase factice: aucune ligne -> plan introuvable
    r = client.post("/api/checkout", json={"destination": "atlantis", "duration": 7, "locale": "en-au"})

    assert r.status_code == 404
    assert r.json() == {"error": "Plan not found for this destination and locale"}


def test_checkout_price_not_configured(client, japan_plan, stripe_session):
    japan_plan.durations[7].stripe_test_price_id = None

    r = client.post("/api/checkout", json={"destination": "japan", "duration": 7, "locale": "en-au"})

    assert r.status_code == 400
    assert r.json() == {"error": "Price not configured for this plan"}


def test_checkout_stripe_failure(client, japan_plan, monkeypatch):
    def boom(settings, **params):
        raise RuntimeError("stripe unavailable")

    monkeypatch.setattr("storefront.payments.stripe_client.create_session", boom)

    r = client.post("/api/checkout", json={"destination": "japan", "duration": 7, "locale": "en-au"})

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create checkout session"}


@pytest.fixture
def lenient_client(app, settings):
    """Client qui renvoie la réponse 500 au lieu de relever l'exception serveur."""
    from fastapi.testclient import TestClient
    from storefront.config import get_settings

    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.pop(get_settings, None)


def _broken_supabase(monkeypatch):
    from unittest.mock import MagicMock
    from postgrest.exceptions import APIError

    broken = MagicMock()
    broken.table.side_effect = APIError({"message": 'relation "plans" does not exist', "code": "42P01"})
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: broken)


def test_checkout_plan_lookup_failure_is_json(lenient_client, stripe_session, monkeypatch):
    _broken_supabase(monkeypatch)

    r = lenient_client.post("/api/checkout", json={"destination": "japan", "duration": 7, "locale": "en-au"})

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create checkout session"}
    assert stripe_session == []


def test_unexpected_error_returns_json_500(lenient_client, monkeypatch):
    _broken_supabase(monkeypatch)

    r = lenient_client.get("/api/plans", params={"locale": "en-au"})

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"error": "Internal server error"}
