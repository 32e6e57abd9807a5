"""
mock_paypal.py — Mock Implementation of the PayPal Orders API (REST)

This module provides a simulated PayPal REST API for local runs and the
integration tests. It mimics the parts of the real API the checkout uses,
including the validations PayPal performs on its side.

Simulation Scenarios:
    • OAuth2 client-credentials token issue (HTTP Basic auth checked)
    • Order creation with amount/breakdown consistency checks
    • Capture, rejected on a second call (ORDER_ALREADY_CAPTURED)
    • Unknown order handles (RESOURCE_NOT_FOUND)

Endpoints:
    POST /v1/oauth2/token
    POST /v2/checkout/orders
    POST /v2/checkout/orders/{order_id}/capture

Port:
    Default: 8001 (HTTP)
"""

import base64
import logging
import time
import uuid
from decimal import Decimal, InvalidOperation

from fastapi import FastAPI, Header, HTTPException, Request

MOCK_CLIENT_ID = "mock-client-id"
MOCK_SECRET = "mock-secret"

app = FastAPI(title="Mock PayPal")
logging.basicConfig(level=logging.INFO)

# In-memory state (order_id -> order record); reset with `reset()`
ORDERS = {}
TOKENS = set()


def reset():
    """Clears all issued tokens and orders."""
    ORDERS.clear()
    TOKENS.clear()


def _issue(name: str, message: str, status_code: int):
    raise HTTPException(
        status_code=status_code,
        detail={"name": name, "message": message, "debug_id": uuid.uuid4().hex[:13]},
    )


def _require_token(authorization: str):
    token = authorization[len("Bearer "):] if authorization.startswith("Bearer ") else ""
    if token not in TOKENS:
        _issue("AUTHENTICATION_FAILURE", "Authentication failed due to invalid authentication credentials.", 401)


def _money(value) -> Decimal:
    try:
        return Decimal(value["value"])
    except (KeyError, TypeError, InvalidOperation):
        _issue("INVALID_REQUEST", "Malformed amount.", 400)


@app.post("/v1/oauth2/token")
async def issue_token(request: Request, authorization: str = Header(default="")):
    """
    Issues a bearer token for valid client credentials.

    Returns:
        dict: access_token, token_type and expires_in.

    Raises:
        HTTPException(401): On missing or wrong Basic credentials.
    """
    expected = base64.b64encode(f"{MOCK_CLIENT_ID}:{MOCK_SECRET}".encode()).decode()
    form = (await request.body()).decode()
    if authorization != f"Basic {expected}" or "grant_type=client_credentials" not in form:
        logging.warning("[PayPal] Token refused.")
        raise HTTPException(status_code=401, detail={"error": "invalid_client"})

    token = f"A21{uuid.uuid4().hex}"
    TOKENS.add(token)
    return {"access_token": token, "token_type": "Bearer", "expires_in": 32400}


@app.post("/v2/checkout/orders", status_code=201)
async def create_order(request: Request, authorization: str = Header(default="")):
    """
    Creates an order after the same amount checks PayPal applies.

    The purchase unit's `amount` must equal `breakdown.item_total`, which
    must equal Σ(unit_amount × quantity) over the items.

    Returns:
        dict: Order representation with status CREATED.

    Raises:
        HTTPException(401): Invalid token.
        HTTPException(422): Amount mismatch.
    """
    _require_token(authorization)
    body = await request.json()
    units = body.get("purchase_units") or []
    if body.get("intent") != "CAPTURE" or len(units) != 1:
        _issue("INVALID_REQUEST", "Request is not well-formed.", 400)

    unit = units[0]
    amount = _money(unit.get("amount"))
    item_total = _money((unit.get("amount") or {}).get("breakdown", {}).get("item_total"))
    items_sum = sum(
        (_money(item.get("unit_amount")) * int(item.get("quantity", "0")) for item in unit.get("items", [])),
        Decimal("0"),
    )
    if item_total != items_sum or amount != item_total:
        logging.warning(f"[PayPal] Amount mismatch: amount={amount} item_total={item_total} items={items_sum}")
        _issue("UNPROCESSABLE_ENTITY", "ITEM_TOTAL_MISMATCH", 422)

    order_id = uuid.uuid4().hex[:17].upper()
    ORDERS[order_id] = {"id": order_id, "status": "CREATED", "purchase_units": units}
    logging.info(f"[PayPal] Order {order_id} created ({amount}).")
    return {"id": order_id, "status": "CREATED"}


@app.post("/v2/checkout/orders/{order_id}/capture", status_code=201)
def capture_order(order_id: str, authorization: str = Header(default="")):
    """
    Captures an order once.

    Orders are treated as buyer-approved as soon as they exist.

    Returns:
        dict: Capture result with status COMPLETED and a capture id.

    Raises:
        HTTPException(401): Invalid token.
        HTTPException(404): Unknown order.
        HTTPException(422): Order already captured.
    """
    _require_token(authorization)
    order = ORDERS.get(order_id)
    if order is None:
        _issue("RESOURCE_NOT_FOUND", "The specified resource does not exist.", 404)
    if order["status"] == "COMPLETED":
        logging.warning(f"[PayPal] Order {order_id} already captured.")
        _issue("UNPROCESSABLE_ENTITY", "ORDER_ALREADY_CAPTURED", 422)

    order["status"] = "COMPLETED"
    amount = order["purchase_units"][0]["amount"]
    logging.info(f"[PayPal] Order {order_id} captured.")
    return {
        "id": order_id,
        "status": "COMPLETED",
        "purchase_units": [{
            "payments": {
                "captures": [{
                    "id": uuid.uuid4().hex[:17].upper(),
                    "status": "COMPLETED",
                    "amount": {"currency_code": amount["currency_code"], "value": amount["value"]},
                    "create_time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                }]
            }
        }],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
