import os

# Le lifespan ne doit pas tenter de joindre Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from storefront.app_setup import create_app
from storefront.config import StoreSettings, get_settings
from storefront.fulfillment.esimgo import ProvisionedEsim
from storefront.orders.models import Order

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class _Resp:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


def chain_client(data: Optional[List[dict]] = None) -> MagicMock:
    """
    Client Supabase factice: table(...).select(...).eq(...)...execute() -> _Resp(data).
    Le même mock de requête est renvoyé à chaque maillon, pour inspecter les appels.
    """
    query = MagicMock()
    for name in ("select", "eq", "like", "order", "limit", "insert", "update", "upsert", "in_"):
        getattr(query, name).return_value = query
    query.execute.return_value = _Resp(data if data is not None else [])
    client = MagicMock()
    client.table.return_value = query
    return client


@pytest.fixture
def settings() -> StoreSettings:
    return StoreSettings(
        test_mode=True,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        base_url="https://trvel.test",
        esim_api_key="esim-key",
        esim_api_base="https://api.esim-go.test/v2.5",
    )

@pytest.fixture(scope="session")
def app():
    return create_app()

@pytest.fixture()
def client(app, settings) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_settings, None)

@pytest.fixture(autouse=True)
def mock_supabase(monkeypatch):
    """Aucun accès réseau Supabase: les deux clients renvoient des lignes vides."""
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: chain_client([]))
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: chain_client([]))


# --- Collaborateurs factices de la réconciliation ---

class FakeProvisioner:
    def __init__(self, esim: Optional[ProvisionedEsim] = None, error: Optional[Exception] = None):
        self.esim = esim or ProvisionedEsim(
            iccid="8944000000000000001",
            smdp_address="rsp.esim-go.test",
            matching_id="MATCH-001",
            order_reference="ref-001",
        )
        self.error = error
        self.calls: List[tuple] = []

    def provision(self, bundle_name: str, order_reference: str, mode: str) -> ProvisionedEsim:
        self.calls.append((bundle_name, order_reference, mode))
        if self.error:
            raise self.error
        return self.esim


class FakeMailer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent: List[Order] = []

    def send_esim_ready(self, order: Order, first_name: Optional[str] = None) -> Dict[str, Any]:
        if self.error:
            raise self.error
        self.sent.append(order)
        return {"id": f"email-{len(self.sent)}"}


class FakeReporter:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    def report_purchase(self, **kwargs) -> Dict[str, Any]:
        self.calls.append(kwargs)
        return {"google_ads": {"success": True}, "ga4": {"success": True}}


class FakeOrdersRepo:
    """Table 'orders' en mémoire, avec contrainte d'unicité sur stripe_session_id et order_number."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.customers: Dict[str, dict] = {}
        self.insert_calls = 0

    def get_order_by_session_id(self, session_id: str) -> Optional[Order]:
        return self.orders.get(session_id)

    def get_last_order_number(self, prefix: str) -> Optional[str]:
        numbers = sorted(o.order_number for o in self.orders.values() if o.order_number.startswith(prefix))
        return numbers[-1] if numbers else None

    def insert_order_if_absent(self, row: Dict[str, Any]) -> Optional[Order]:
        from storefront.orders.repository import DuplicateOrderNumber

        self.insert_calls += 1
        if row["stripe_session_id"] in self.orders:
            return None
        if any(o.order_number == row["order_number"] for o in self.orders.values()):
            raise DuplicateOrderNumber(row["order_number"])
        order = Order(**{**row, "id": f"order-{len(self.orders) + 1}"})
        self.orders[order.stripe_session_id] = order
        return order

    def update_order(self, order_id: str, data: Dict[str, Any]) -> Order:
        for key, order in self.orders.items():
            if order.id == order_id:
                updated = Order(**{**order.model_dump(), **data})
                self.orders[key] = updated
                return updated
        raise AssertionError(f"unknown order {order_id}")

    def find_or_create_customer(self, email: str, name=None, phone=None) -> dict:
        customer = self.customers.setdefault(email, {"id": f"cust-{len(self.customers) + 1}", "email": email})
        return customer

    def list_orders(self, limit: int = 100) -> List[Order]:
        return list(self.orders.values())[:limit]


@pytest.fixture
def orders_repo(monkeypatch) -> FakeOrdersRepo:
    repo = FakeOrdersRepo()
    for name in (
        "get_order_by_session_id",
        "get_last_order_number",
        "insert_order_if_absent",
        "update_order",
        "find_or_create_customer",
        "list_orders",
    ):
        monkeypatch.setattr(f"storefront.orders.repository.{name}", getattr(repo, name))
    return repo

@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()

@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()

@pytest.fixture
def reporter() -> FakeReporter:
    return FakeReporter()

@pytest.fixture
def paid_session() -> Dict[str, Any]:
    return {
        "id": "cs_test_abc",
        "payment_status": "paid",
        "amount_total": 1599,
        "currency": "aud",
        "payment_intent": "pi_123",
        "client_reference_id": None,
        "customer_details": {"email": "traveler@example.com", "name": "Jane Doe", "phone": None},
        "metadata": {
            "destination_slug": "japan",
            "destination_name": "Japan",
            "duration": "7",
            "locale": "en-au",
            "bundle_name": "esim_UL_7D_JP_V2",
            "currency": "AUD",
        },
    }

@pytest.fixture
def make_client():
    """Fabrique de clients Supabase factices (voir chain_client)."""
    return chain_client
