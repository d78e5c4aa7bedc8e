"""Order storage."""

import logging
from pathlib import Path

from .errors import OrderNotFoundError
from .json_store import JsonFileStore
from .models import Order, _utc_now

logger = logging.getLogger(__name__)

ORDERS_FILE = "orders.json"


class OrderStore(JsonFileStore):
    """Manages placed orders. Orders are never deleted."""

    collection = "orders"

    def __init__(self, data_dir: Path):
        super().__init__(data_dir, ORDERS_FILE)

    def list_orders(self, status: str | None = None) -> list[Order]:
        """List orders, newest first, optionally filtered by status."""
        orders = [Order.from_dict(o) for o in self._records()]
        if status:
            orders = [o for o in orders if o.status == status]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def add_order(self, order: Order) -> Order:
        with self._lock():
            data = self._load_data()
            data[self.collection].append(order.to_dict())
            self._save_data(data)

        logger.info("Created order %s (%s, total %d)", order.id, order.status, order.total)
        return order

    def get_order(self, order_id: str) -> Order:
        """
        Get an order by ID.

        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        for o in self._records():
            if o["id"] == order_id:
                return Order.from_dict(o)
        raise OrderNotFoundError(order_id)

    def find_by_session(self, session_id: str) -> Order | None:
        for o in self._records():
            if o.get("payment_session_id") == session_id:
                return Order.from_dict(o)
        return None

    def find_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        for o in self._records():
            if o.get("payment_intent_id") == payment_intent_id:
                return Order.from_dict(o)
        return None

    def update_order(self, order: Order) -> Order:
        """
        Overwrite a stored order with new field values.

        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        with self._lock():
            data = self._load_data()
            records = data[self.collection]
            for i, existing in enumerate(records):
                if existing["id"] == order.id:
                    order.updated_at = _utc_now()
                    records[i] = order.to_dict()
                    self._save_data(data)
                    return order

        raise OrderNotFoundError(order.id)
