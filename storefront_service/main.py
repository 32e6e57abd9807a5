"""
main.py — FastAPI Entry Point for the Storefront Service

This module exposes the two checkout endpoints the storefront calls around
the PayPal buttons:

    POST /api/create-order   {items: [{id, quantity}]}  -> {id}
    POST /api/capture-order  {orderID}                  -> PayPal capture result

Responsibilities:
    • Accept checkout requests from any origin (CORS)
    • Translate checkout errors into {error[, detail]} JSON responses
    • Never leak tracebacks or credentials to the response body
    • Provide system health information
"""

import json
from typing import Any, Callable

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from .catalog import CatalogClient
from .clients import PayPalClient
from .config import redacted_env, settings
from .errors import InvalidOrderRequest, StorefrontError
from .logging_config import get_logger, setup_logging
from .models import BeginOrderRequest, FinalizeOrderRequest
from .workflow import begin_order, finalize_order

# Initialization
setup_logging()
log = get_logger(__name__)
log.info(f"Startup config: {redacted_env(['PAYPAL_ENV', 'PAYPAL_BASE_URL', 'PAYPAL_CLIENT_ID', 'PAYPAL_SECRET', 'CATALOG_URL'])}")
if not settings.paypal_client_id or not settings.paypal_secret:
    log.warning("PAYPAL_CLIENT_ID / PAYPAL_SECRET are not set; every checkout will fail at authentication.")

app = FastAPI(title="Storefront Checkout")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Adds the permissive CORS headers to every response."""
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


# Dependencies: one set of collaborators per request
def get_catalog_client():
    client = CatalogClient()
    try:
        yield client
    finally:
        client.close()


def get_paypal_client():
    client = PayPalClient()
    try:
        yield client
    finally:
        client.close()


async def _read_body(request: Request) -> dict:
    """Returns the JSON object body, or {} when it is absent or not an object."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def _handle(request: Request, operation: Callable[[dict], Any]) -> Response:
    """
    Shared request handling for both checkout endpoints.

    OPTIONS answers the preflight, any method other than POST is refused,
    and every outcome of `operation` is mapped to a JSON response.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200)
    if request.method != "POST":
        return JSONResponse({"error": "Method Not Allowed"}, status_code=405)

    try:
        body = await _read_body(request)
        result = await run_in_threadpool(operation, body)
        return JSONResponse(result, status_code=200)
    except StorefrontError as e:
        if e.detail:
            log.error(f"{request.url.path}: {e.message} ({e.detail})")
        return JSONResponse(e.to_body(), status_code=e.status_code)
    except Exception:
        log.critical(f"{request.url.path}: unexpected error", exc_info=True)
        return JSONResponse({"error": "Internal error"}, status_code=500)


# API Endpoint: storefront -> create PayPal order
@app.api_route("/api/create-order", methods=ALL_METHODS)
async def create_order(
        request: Request,
        catalog: CatalogClient = Depends(get_catalog_client),
        paypal: PayPalClient = Depends(get_paypal_client),
):
    """
    Prices the cart from the catalog and creates a PayPal order.

    Returns:
        200 {id}: The PayPal order handle for the buttons' createOrder callback.
        400 {error}: Empty cart, unknown/invalid item or quantity.
        500 {error, detail}: Catalog or PayPal failure.
    """
    def operation(body: dict) -> dict:
        try:
            order_request = BeginOrderRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidOrderRequest(str(e)) from e
        return {"id": begin_order(order_request.items, catalog, paypal)}

    return await _handle(request, operation)


# API Endpoint: storefront -> capture approved PayPal order
@app.api_route("/api/capture-order", methods=ALL_METHODS)
async def capture_order(
        request: Request,
        paypal: PayPalClient = Depends(get_paypal_client),
):
    """
    Captures a buyer-approved PayPal order.

    Returns:
        200: PayPal's capture result, passed through unmodified.
        400 {error}: Missing orderID.
        500 {error, detail}: PayPal failure, including double capture.
    """
    def operation(body: dict) -> dict:
        finalize_request = FinalizeOrderRequest.model_validate(body)
        return finalize_order(finalize_request.orderID, paypal)

    return await _handle(request, operation)


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint for container orchestrators.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
