"""HTTP contract tests for the checkout endpoints."""

import pytest
from fastapi.testclient import TestClient

from storefront_service import main
from storefront_service.main import app, get_catalog_client, get_paypal_client


@pytest.fixture
def client(catalog_client, paypal_client):
    app.dependency_overrides[get_catalog_client] = lambda: catalog_client
    app.dependency_overrides[get_paypal_client] = lambda: paypal_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_create_order_success(client):
    """A valid cart returns the provider handle."""

    resp = client.post("/api/create-order", json={"items": [{"id": "A", "quantity": 2}, {"id": "B", "quantity": 1}]})
    assert resp.status_code == 200
    assert resp.json() == {"id": "ORDER-1"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.parametrize("body", [{}, {"items": []}, {"items": "A"}])
def test_create_order_missing_items(client, fake_catalog, body):
    """Empty carts are a 400 before the catalog is read."""

    resp = client.post("/api/create-order", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing items"}
    assert fake_catalog.calls == 0


def test_create_order_unparsable_body(client):
    """A body that is not JSON is read as an empty request."""

    resp = client.post("/api/create-order", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing items"}


def test_create_order_unknown_item(client, fake_paypal):
    """Unknown ids are a 400 naming the item."""

    resp = client.post("/api/create-order", json={"items": [{"id": "nope", "quantity": 1}]})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Unknown or invalid item: nope"}
    assert fake_paypal.provider_calls == 0


def test_create_order_non_object_line(client):
    """Cart lines that are not objects are refused."""

    resp = client.post("/api/create-order", json={"items": ["A"]})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid items"}


def test_create_order_provider_failure(client, fake_paypal):
    """A provider 500 on create is a 500 with detail, never a handle."""

    fake_paypal.create_status = 500
    resp = client.post("/api/create-order", json={"items": [{"id": "A", "quantity": 1}]})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "PayPal create failed"
    assert "INTERNAL_SERVER_ERROR" in body["detail"]
    assert "id" not in body


def test_create_order_auth_failure(client, fake_paypal):
    """Rejected credentials are a 500 auth failure."""

    fake_paypal.token_statuses = [401]
    resp = client.post("/api/create-order", json={"items": [{"id": "A", "quantity": 1}]})
    assert resp.status_code == 500
    assert resp.json()["error"] == "PayPal auth failed"


def test_create_order_catalog_unavailable(client, fake_catalog):
    """An unreachable catalog is an upstream failure."""

    fake_catalog.status_code = 502
    resp = client.post("/api/create-order", json={"items": [{"id": "A", "quantity": 1}]})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Catalog unavailable"


def test_capture_order_success(client):
    """The provider's capture result is passed through."""

    resp = client.post("/api/capture-order", json={"orderID": "ORDER-1"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"


def test_capture_order_missing_id(client, fake_paypal):
    """A missing orderID is a 400 without provider calls."""

    resp = client.post("/api/capture-order", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing orderID"}
    assert fake_paypal.provider_calls == 0


def test_capture_order_twice(client):
    """The second capture surfaces the provider rejection."""

    assert client.post("/api/capture-order", json={"orderID": "ORDER-1"}).status_code == 200
    resp = client.post("/api/capture-order", json={"orderID": "ORDER-1"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "PayPal capture failed"


@pytest.mark.parametrize("path", ["/api/create-order", "/api/capture-order"])
def test_preflight_and_methods(client, path):
    """OPTIONS answers empty with CORS headers; other methods are 405."""

    preflight = client.options(path)
    assert preflight.status_code == 200
    assert preflight.content == b""
    assert preflight.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert preflight.headers["Access-Control-Allow-Headers"] == "Content-Type"

    resp = client.get(path)
    assert resp.status_code == 405
    assert resp.json() == {"error": "Method Not Allowed"}


def test_unexpected_error_is_generic(client, monkeypatch):
    """Unexpected failures never leak details."""

    def explode(*args, **kwargs):
        raise RuntimeError("secret stack detail")

    monkeypatch.setattr(main, "finalize_order", explode)
    resp = client.post("/api/capture-order", json={"orderID": "ORDER-1"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal error"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
