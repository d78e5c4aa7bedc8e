"""Shopper-side checkout submission against the storefront API."""

import logging

import httpx

from .cart import Cart
from .errors import CheckoutRequestError, EmptyCartError
from .models import Address

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def build_checkout_payload(
    cart: Cart,
    shipping_address: Address,
    shipping_method: str,
    billing_address: Address | None = None,
) -> dict:
    """Only product IDs and quantities are sent; the server reprices everything."""
    payload = {
        "items": [
            {"product_id": item.product.id, "quantity": item.quantity} for item in cart.items
        ],
        "shipping_address": shipping_address.to_dict(),
        "shipping_method": shipping_method,
    }
    if billing_address is not None:
        payload["billing_address"] = billing_address.to_dict()
    return payload


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        # FastAPI request validation errors
        return "; ".join(str(d.get("msg", d)) for d in detail)
    return str(detail or body)


def submit_checkout(
    cart: Cart,
    shipping_address: Address,
    shipping_method: str,
    billing_address: Address | None = None,
    client: httpx.Client | None = None,
    base_url: str = "http://127.0.0.1:8000",
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """
    Post the cart to the checkout API and return the payment page URL.

    The cart is cleared only after the API accepts the checkout.

    Raises:
        EmptyCartError: If the cart has no items.
        CheckoutRequestError: If the API answers with an error status.
    """
    if not cart:
        raise EmptyCartError()

    payload = build_checkout_payload(cart, shipping_address, shipping_method, billing_address)

    owns_client = client is None
    http = client or httpx.Client(base_url=base_url, timeout=timeout)
    try:
        response = http.post("/api/checkout", json=payload)
    finally:
        if owns_client:
            http.close()

    if response.status_code >= 400:
        detail = _error_detail(response)
        logger.error("Checkout rejected (%d): %s", response.status_code, detail)
        raise CheckoutRequestError(response.status_code, detail)

    url = response.json().get("url")
    if not url:
        raise CheckoutRequestError(response.status_code, "No checkout URL returned from the server")

    cart.clear()
    return url
