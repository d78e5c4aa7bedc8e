"""Payment webhook handling: drives Order.status from processor callbacks."""

import logging
from dataclasses import dataclass

from .errors import OrderNotFoundError
from .models import Order
from .order_store import OrderStore
from .payments import WebhookEvent

logger = logging.getLogger(__name__)

# status -> statuses it may move to
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"paid", "failed"}),
    "paid": frozenset({"refunded"}),
    "failed": frozenset(),
    "refunded": frozenset(),
}

EVENT_STATUSES: dict[str, str] = {
    "checkout.session.completed": "paid",
    "payment_intent.succeeded": "paid",
    "payment_intent.payment_failed": "failed",
    "charge.refunded": "refunded",
}


@dataclass
class WebhookOutcome:
    """What handling one event did. Always acknowledged to the processor."""

    event_type: str
    action: str  # "updated"|"unchanged"|"rejected"|"order_not_found"|"ignored"
    order_id: str | None = None
    status: str | None = None


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class WebhookHandler:
    """Applies verified webhook events to stored orders."""

    def __init__(self, orders: OrderStore):
        self.orders = orders

    def _order_from_metadata(self, obj: dict) -> Order | None:
        order_id = (obj.get("metadata") or {}).get("order_id")
        if not order_id:
            return None
        try:
            return self.orders.get_order(order_id)
        except OrderNotFoundError:
            logger.debug("Order %s from event metadata not stored", order_id)
            return None

    def _find_order(self, event: WebhookEvent) -> Order | None:
        obj = event.data
        if event.type == "checkout.session.completed":
            order = self._order_from_metadata(obj)
            if order is None and obj.get("client_reference_id"):
                try:
                    order = self.orders.get_order(obj["client_reference_id"])
                except OrderNotFoundError:
                    logger.debug("Order %s from client reference not stored", obj["client_reference_id"])
            if order is None and obj.get("id"):
                order = self.orders.find_by_session(obj["id"])
            return order

        # Payment intents carry the order id in metadata; charges only link
        # back through the intent id recorded on the order
        order = self._order_from_metadata(obj)
        if order is not None:
            return order
        if event.type == "charge.refunded":
            intent_id = _intent_id(obj.get("payment_intent"))
        else:
            intent_id = _intent_id(obj.get("id"))
        return self.orders.find_by_payment_intent(intent_id) if intent_id else None

    def handle(self, event: WebhookEvent) -> WebhookOutcome:
        target = EVENT_STATUSES.get(event.type)
        if target is None:
            logger.info("Unhandled event type: %s", event.type)
            return WebhookOutcome(event_type=event.type, action="ignored")

        order = self._find_order(event)
        if order is None:
            logger.info("No order found for %s event %s", event.type, event.id)
            return WebhookOutcome(event_type=event.type, action="order_not_found")

        if order.status == target:
            # Redelivery of an event we already applied
            return WebhookOutcome(event.type, "unchanged", order.id, order.status)

        if not can_transition(order.status, target):
            logger.warning(
                "Rejected %s for order %s: %s -> %s is not allowed",
                event.type,
                order.id,
                order.status,
                target,
            )
            return WebhookOutcome(event.type, "rejected", order.id, order.status)

        previous = order.status
        order.status = target
        self._record_details(order, event)
        self.orders.update_order(order)

        logger.info("Order %s status %s -> %s (%s)", order.id, previous, target, event.type)
        return WebhookOutcome(event.type, "updated", order.id, target)

    def _record_details(self, order: Order, event: WebhookEvent) -> None:
        obj = event.data
        if event.type == "checkout.session.completed":
            intent = _intent_id(obj.get("payment_intent"))
            if not order.payment_session_id and obj.get("id"):
                order.payment_session_id = obj["id"]
        elif event.type.startswith("payment_intent."):
            intent = _intent_id(obj.get("id"))
        else:
            intent = _intent_id(obj.get("payment_intent"))
        if intent and not order.payment_intent_id:
            order.payment_intent_id = intent

        if event.type == "payment_intent.payment_failed":
            error = obj.get("last_payment_error") or {}
            order.notes = f"Payment failed: {error.get('message') or 'Unknown error'}"


def _intent_id(value) -> str | None:
    """Payment intent references arrive as an id or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None
