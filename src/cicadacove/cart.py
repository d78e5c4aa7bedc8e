"""Shopper-side cart, persisted to a key/value client storage file.

The cart lives entirely with the shopper (there is no server-side cart); the
server only ever sees it at checkout, where prices are re-read from the
catalog.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .errors import CartItemNotFoundError, InvalidQuantityError
from .json_store import JsonFileStore
from .models import CartItem, Product, ProductSnapshot
from .pricing import OrderSummary, item_count, order_summary, subtotal

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cicada-cove-cart"
CLIENT_STORAGE_FILE = "client_storage.json"


class ClientStorage(JsonFileStore):
    """String key/value storage, the on-disk counterpart of browser localStorage."""

    collection = "entries"

    def __init__(self, data_dir: Path, filename: str = CLIENT_STORAGE_FILE):
        super().__init__(data_dir, filename)

    def _empty(self) -> dict[str, Any]:
        empty = super()._empty()
        empty[self.collection] = {}
        return empty

    def get_item(self, key: str) -> str | None:
        return self._records().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock():
            data = self._load_data()
            data[self.collection][key] = value
            self._save_data(data)

    def remove_item(self, key: str) -> None:
        with self._lock():
            data = self._load_data()
            if data[self.collection].pop(key, None) is not None:
                self._save_data(data)


class Cart:
    """Line items plus derived totals. Every mutation is persisted immediately."""

    def __init__(
        self,
        storage: ClientStorage | None = None,
        key: str = CART_STORAGE_KEY,
        items: list[CartItem] | None = None,
    ):
        self.storage = storage
        self.key = key
        self.items: list[CartItem] = list(items or [])
        self.item_count = 0
        self.subtotal = 0
        self._recalculate()

    @classmethod
    def load(cls, storage: ClientStorage, key: str = CART_STORAGE_KEY) -> "Cart":
        """
        Restore the cart saved under ``key``.

        An unreadable saved cart is discarded and an empty cart returned.
        """
        raw = storage.get_item(key)
        if raw is None:
            return cls(storage, key)

        try:
            items = [CartItem.from_dict(i) for i in json.loads(raw)]
            return cls(storage, key, [i for i in items if i.quantity > 0])
        except (ValueError, TypeError, KeyError) as e:
            logger.error("Failed to parse saved cart under %r: %s", key, e)
            storage.remove_item(key)
            return cls(storage, key)

    def _recalculate(self) -> None:
        self.item_count = item_count(self.items)
        self.subtotal = subtotal(self.items)

    def _commit(self) -> None:
        self._recalculate()
        if self.storage is not None:
            self.storage.set_item(self.key, json.dumps(self.to_list()))

    def _find(self, product_id: str) -> CartItem | None:
        return next((i for i in self.items if i.product.id == product_id), None)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    def add_item(self, product: Product | ProductSnapshot, quantity: int = 1) -> CartItem:
        """Add a product, or bump the quantity if it's already in the cart."""
        if quantity < 1:
            raise InvalidQuantityError(quantity)

        snapshot = product if isinstance(product, ProductSnapshot) else ProductSnapshot.from_product(product)
        existing = self._find(snapshot.id)
        if existing is not None:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(product=snapshot, quantity=quantity)
            self.items.append(item)

        self._commit()
        return item

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(product_id)
            return

        item = self._find(product_id)
        if item is None:
            raise CartItemNotFoundError(product_id)
        item.quantity = quantity
        self._commit()

    def remove_item(self, product_id: str) -> None:
        item = self._find(product_id)
        if item is None:
            raise CartItemNotFoundError(product_id)
        self.items.remove(item)
        self._commit()

    def clear(self) -> None:
        self.items = []
        self._commit()

    def summary(self, shipping_method: str | None) -> OrderSummary:
        return order_summary(self.items, shipping_method)

    def to_list(self) -> list[dict[str, Any]]:
        return [i.to_dict() for i in self.items]
