"""Shared fakes for the catalog sheet and the PayPal API."""

import json
import os

os.environ.setdefault("LOG_FILE", "")

import httpx
import pytest

from storefront_service.catalog import CatalogClient
from storefront_service.clients import PayPalClient

PAYPAL_BASE = "https://paypal.test"
CATALOG_URL = "https://sheet.test/catalog.tsv"

DEFAULT_TSV = "id\tname\tprice\nA\tLapin\t10.00\nB\tMobile\t5,50\n"


class FakeCatalog:
    """MockTransport handler serving a TSV document or an error status."""

    def __init__(self, text=DEFAULT_TSV, status_code=200):
        self.text = text
        self.status_code = status_code
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status_code, text=self.text)


class FakePayPal:
    """MockTransport handler recording every PayPal call."""

    def __init__(self):
        self.requests = []
        self.token_statuses = []
        self.create_status = 201
        self.capture_statuses = []
        self.expired_once = False
        self._captured = set()

    def paths(self):
        return [r.url.path for r in self.requests]

    @property
    def provider_calls(self):
        return len(self.requests)

    def created_payload(self):
        for r in self.requests:
            if r.url.path == "/v2/checkout/orders":
                return json.loads(r.content)
        return None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v1/oauth2/token":
            status = self.token_statuses.pop(0) if self.token_statuses else 200
            if status != 200:
                return httpx.Response(status, text='{"error":"invalid_client"}')
            return httpx.Response(200, json={"access_token": f"tok-{len(self.requests)}", "expires_in": 32400})

        if self.expired_once:
            self.expired_once = False
            return httpx.Response(401, json={"name": "AUTHENTICATION_FAILURE"})

        if path == "/v2/checkout/orders":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, text='{"name":"INTERNAL_SERVER_ERROR"}')
            return httpx.Response(201, json={"id": "ORDER-1", "status": "CREATED"})

        if path.endswith("/capture"):
            order_id = path.split("/")[-2]
            if self.capture_statuses:
                status = self.capture_statuses.pop(0)
                return httpx.Response(status, text='{"name":"UNPROCESSABLE_ENTITY"}')
            if order_id in self._captured:
                return httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY",
                                                 "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]})
            self._captured.add(order_id)
            return httpx.Response(201, json={"id": order_id, "status": "COMPLETED",
                                             "purchase_units": [{"payments": {"captures": [{"id": "CAP-1"}]}}]})

        return httpx.Response(404)


@pytest.fixture
def fake_catalog():
    return FakeCatalog()


@pytest.fixture
def fake_paypal():
    return FakePayPal()


@pytest.fixture
def catalog_client(fake_catalog):
    client = CatalogClient(url=CATALOG_URL, http_client=httpx.Client(transport=httpx.MockTransport(fake_catalog)))
    yield client
    client.client.close()


@pytest.fixture
def paypal_client(fake_paypal):
    http_client = httpx.Client(transport=httpx.MockTransport(fake_paypal), base_url=PAYPAL_BASE)
    client = PayPalClient(client_id="cid", secret="csecret", base_url=PAYPAL_BASE, http_client=http_client)
    yield client
    http_client.close()
