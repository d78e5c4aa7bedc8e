"""Payment processor integration.

The checkout service and webhook handler talk to a ``PaymentGateway``; the
production implementation is backed by Stripe Checkout.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import stripe

from .errors import PaymentGatewayError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass
class SessionLineItem:
    """One line of a hosted payment page."""

    name: str
    unit_amount: int  # cents
    quantity: int = 1
    image: str | None = None
    product_id: str | None = None

    @property
    def amount(self) -> int:
        return self.unit_amount * self.quantity


@dataclass
class CheckoutSessionRequest:
    order_id: str
    line_items: list[SessionLineItem]
    customer_email: str
    success_url: str
    cancel_url: str
    currency: str = "usd"
    metadata: dict[str, str] = field(default_factory=dict)
    allowed_countries: list[str] = field(default_factory=lambda: ["US"])

    @property
    def amount_total(self) -> int:
        return sum(item.amount for item in self.line_items)


@dataclass
class CheckoutSession:
    """What the processor hands back for a created session."""

    id: str
    url: str
    payment_intent_id: str | None = None


@dataclass
class WebhookEvent:
    """A verified webhook callback.

    ``data`` is the event's ``data.object`` (session, payment intent or charge).
    """

    id: str
    type: str
    data: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WebhookEvent":
        return cls(
            id=payload.get("id", ""),
            type=payload.get("type", ""),
            data=(payload.get("data") or {}).get("object") or {},
        )


class PaymentGateway(Protocol):
    """Interface the storefront needs from a payment processor."""

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """
        Create a hosted payment session.

        Raises:
            PaymentGatewayError: With the processor's message on any failure.
        """
        ...

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        """
        Verify a webhook body against its signature header and decode it.

        Raises:
            WebhookSignatureError: If the signature is missing or invalid.
        """
        ...


class StripeGateway:
    """PaymentGateway backed by Stripe Checkout."""

    def __init__(self, api_key: str | None, webhook_secret: str | None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def _session_params(self, request: CheckoutSessionRequest) -> dict[str, Any]:
        line_items = []
        for item in request.line_items:
            product_data: dict[str, Any] = {"name": item.name}
            if item.image:
                product_data["images"] = [item.image]
            if item.product_id:
                product_data["metadata"] = {"product_id": item.product_id}
            line_items.append(
                {
                    "price_data": {
                        "currency": request.currency,
                        "product_data": product_data,
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
            )

        return {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "customer_email": request.customer_email,
            "client_reference_id": request.order_id,
            "metadata": {"order_id": request.order_id, **request.metadata},
            # Copied onto the payment intent Stripe creates at payment time
            "payment_intent_data": {"metadata": {"order_id": request.order_id}},
            "shipping_address_collection": {
                "allowed_countries": request.allowed_countries,
            },
        }

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        if not self.api_key:
            raise PaymentGatewayError("Stripe secret key is not configured")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key, **self._session_params(request)
            )
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error("Stripe rejected checkout session for order %s: %s", request.order_id, message)
            raise PaymentGatewayError(message) from e

        payment_intent = session.payment_intent
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id
        return CheckoutSession(id=session.id, url=session.url, payment_intent_id=payment_intent)

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        if not signature:
            raise WebhookSignatureError("missing Stripe-Signature header")
        if not self.webhook_secret:
            raise PaymentGatewayError("Stripe webhook secret is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e)) from e
        except ValueError as e:
            raise WebhookSignatureError(f"invalid payload ({e})") from e

        return WebhookEvent.from_payload(json.loads(payload))
