# Import section
import time
import pytest
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from fastapi_limiter import FastAPILimiter

from storefront.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/api/checkout", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def checkout():
        return {"ok": True}

    @app.get("/api/plans", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def plans():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


@pytest.fixture
def fallback(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")


def test_rate_limit_fallback_blocks_after_limit(fallback):
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.post("/api/checkout").status_code == 200
    assert client.post("/api/checkout").status_code == 200
    r3 = client.post("/api/checkout")
    assert r3.status_code == 429
    assert r3.json() == {"detail": "Too Many Requests"}


def test_rate_limit_is_per_path(fallback):
    client = TestClient(_make_app(times=1, seconds=60))

    assert client.post("/api/checkout").status_code == 200
    assert client.post("/api/checkout").status_code == 429
    # Autre chemin: compteur indépendant
    assert client.get("/api/plans").status_code == 200


def test_rate_limit_is_per_forwarded_ip(fallback):
    client = TestClient(_make_app(times=1, seconds=60))

    assert client.post("/api/checkout", headers={"x-forwarded-for": "203.0.113.1"}).status_code == 200
    assert client.post("/api/checkout", headers={"x-forwarded-for": "203.0.113.1"}).status_code == 429
    assert client.post("/api/checkout", headers={"x-forwarded-for": "203.0.113.2, 10.0.0.1"}).status_code == 200


def test_rate_limit_resets_after_window(fallback, monkeypatch):
    clock = {"now": 1000.0}
    monkeypatch.setattr("storefront.utils.rate_limit.time.time", lambda: clock["now"])
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.post("/api/checkout").status_code == 200
    assert client.post("/api/checkout").status_code == 200
    assert client.post("/api/checkout").status_code == 429

    clock["now"] += 61
    assert client.post("/api/checkout").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(3):
        assert client.post("/api/checkout").status_code == 200


def test_rate_limit_without_initialised_limiter_passes(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    client = TestClient(_make_app(times=1, seconds=60))

    assert client.post("/api/checkout").status_code == 200
    assert client.post("/api/checkout").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    app = _make_app()
    app.state.rate_limit_enabled = True
    client = TestClient(app)

    info = client.get("/rl_info").json()
    assert info["enabled"] is True
    assert info["ready"] is False
    assert info["backend"] is None
    assert info["local_fallback"] is False

    # Limiteur prêt: détails de l'URL redis
    monkeypatch.setattr(FastAPILimiter, "redis", object())
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}
