"""
clients.py — PayPal REST Client for the Storefront Service

This module wraps the two-step PayPal Orders v2 flow behind one
authenticated client:
    1. OAuth2 client-credentials handshake (/v1/oauth2/token)
    2. Order creation (/v2/checkout/orders) or capture (/v2/checkout/orders/{id}/capture)

Tokens are requested fresh for every operation. Only the handshake is ever
retried. Create and capture are sent once, except for a single replay after
a 401 (expired token), which reuses the same PayPal-Request-Id so the
provider deduplicates it.
"""

import uuid
from typing import Optional
from urllib.parse import quote

import httpx

from .config import settings
from .errors import PaymentAuthFailed, PaymentCaptureFailed, PaymentCreateFailed
from .logging_config import get_logger

log = get_logger(__name__)


class PayPalClient:
    """
    Client for the PayPal Orders API.

    Args:
        client_id (str, optional): REST app client id. Defaults to PAYPAL_CLIENT_ID.
        secret (str, optional): REST app secret. Defaults to PAYPAL_SECRET.
        base_url (str, optional): API host. Defaults to the host selected by
            PAYPAL_ENV (or PAYPAL_BASE_URL when set).
        http_client (httpx.Client, optional): Pre-built client, mainly for tests.
    """

    def __init__(
            self,
            client_id: Optional[str] = None,
            secret: Optional[str] = None,
            base_url: Optional[str] = None,
            http_client: Optional[httpx.Client] = None,
    ):
        self._client_id = client_id if client_id is not None else settings.paypal_client_id
        self._secret = secret if secret is not None else settings.paypal_secret
        self.base_url = base_url or settings.paypal_api_base
        self.auth_retries = max(0, settings.auth_retries)
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(
            base_url=self.base_url, timeout=httpx.Timeout(settings.http_timeout)
        )

    def close(self):
        """Closes the HTTP session if this instance created it."""
        if self._owns_client:
            self.client.close()

    def authenticate(self) -> str:
        """
        Performs the client-credentials handshake.

        Transport errors and 5xx answers are retried up to `auth_retries`
        times; the handshake has no side effects at the provider.

        Returns:
            str: A short-lived bearer token.

        Raises:
            PaymentAuthFailed: If no token could be obtained.
        """
        attempts = self.auth_retries + 1
        detail = ""
        for attempt in range(1, attempts + 1):
            try:
                response = self.client.post(
                    "/v1/oauth2/token",
                    auth=(self._client_id, self._secret),
                    data={"grant_type": "client_credentials"},
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as e:
                detail = f"{type(e).__name__}: {e}"
                log.warning(f"[PayPal] Token request failed (attempt {attempt}/{attempts}): {detail}")
                continue

            if response.status_code >= 500:
                detail = response.text
                log.warning(f"[PayPal] Token endpoint answered HTTP {response.status_code} "
                            f"(attempt {attempt}/{attempts}).")
                continue
            if response.is_error:
                log.error(f"[PayPal] Authentication rejected (HTTP {response.status_code}).")
                raise PaymentAuthFailed(response.text)

            try:
                token = response.json().get("access_token")
            except ValueError:
                token = None
            if not token:
                log.error("[PayPal] Token response did not contain an access_token.")
                raise PaymentAuthFailed("token response without access_token")
            return token

        log.error(f"[PayPal] Authentication failed after {attempts} attempt(s).")
        raise PaymentAuthFailed(detail)

    def _authorized_post(self, path: str, request_id: str, token: Optional[str] = None,
                         json: Optional[dict] = None) -> httpx.Response:
        """
        Sends an authenticated POST, re-authenticating once on HTTP 401. Without a
        `token`, one is requested first.

        Raises:
            PaymentAuthFailed: If a token cannot be obtained.
            httpx.HTTPError: On transport failures; callers translate them.
        """
        token = token or self.authenticate()
        for replay in (False, True):
            headers = {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
                "PayPal-Request-Id": request_id,
            }
            response = self.client.post(path, json=json, headers=headers)
            if response.status_code != 401 or replay:
                return response
            log.warning(f"[PayPal] Token rejected on {path}, re-authenticating once.")
            token = self.authenticate()

    def create_order(self, payload: dict, token: Optional[str] = None) -> dict:
        """
        Creates a PayPal order.

        Args:
            payload (dict): Orders v2 request body (intent, purchase_units).
            token (str, optional): Token from `authenticate`; requested when omitted.

        Returns:
            dict: The provider's order representation, including `id`.

        Raises:
            PaymentAuthFailed: If authentication fails.
            PaymentCreateFailed: If the provider rejects the order or cannot
                be reached.
        """
        request_id = str(uuid.uuid4())
        try:
            response = self._authorized_post("/v2/checkout/orders", request_id, token, json=payload)
        except httpx.HTTPError as e:
            log.error(f"[PayPal] Create order transport error: {e!r}")
            raise PaymentCreateFailed(f"{type(e).__name__}: {e}") from e

        if response.is_error:
            log.error(f"[PayPal] Create order rejected (HTTP {response.status_code}): {response.text}")
            raise PaymentCreateFailed(response.text)

        data = response.json()
        if not data.get("id"):
            raise PaymentCreateFailed("provider response without order id")
        return data

    def capture_order(self, order_id: str, token: Optional[str] = None) -> dict:
        """
        Captures a buyer-approved PayPal order.

        Args:
            order_id (str): The order handle returned by `create_order`.
            token (str, optional): Token from `authenticate`; requested when omitted.

        Returns:
            dict: The provider's capture result, unmodified.

        Raises:
            PaymentAuthFailed: If authentication fails.
            PaymentCaptureFailed: If the provider rejects the capture (unknown
                handle, not approved, already captured) or cannot be reached.
        """
        path = f"/v2/checkout/orders/{quote(order_id, safe='')}/capture"
        try:
            response = self._authorized_post(path, str(uuid.uuid4()), token)
        except httpx.HTTPError as e:
            log.error(f"[Order: {order_id}] Capture transport error: {e!r}")
            raise PaymentCaptureFailed(f"{type(e).__name__}: {e}") from e

        if response.is_error:
            log.error(f"[Order: {order_id}] Capture rejected (HTTP {response.status_code}): {response.text}")
            raise PaymentCaptureFailed(response.text)
        return response.json()
