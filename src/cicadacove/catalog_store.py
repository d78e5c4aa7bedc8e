"""Product catalog storage and querying."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import DuplicateSlugError, InvalidProductError, ProductNotFoundError
from .json_store import JsonFileStore
from .models import PRODUCT_STATUSES, Product, _utc_now

logger = logging.getLogger(__name__)

PRODUCTS_FILE = "products.json"

# Fields an admin edit may change. Identity and timestamps are store-managed.
ALLOWED_UPDATE_FIELDS = frozenset(
    {
        "title",
        "slug",
        "description",
        "price",
        "images",
        "designer",
        "era",
        "condition",
        "materials",
        "measurements",
        "category",
        "status",
        "featured",
    }
)

SORTABLE_FIELDS = ("created_at", "price", "title", "era", "designer")


@dataclass
class ProductQuery:
    """Filter, sort and pagination options for catalog listings."""

    designer: str | None = None
    era: str | None = None
    condition: str | None = None
    category: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    search: str | None = None
    featured: bool = False
    status: str = "available"  # "all" disables the status filter
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = 12
    offset: int = 0

    def matches(self, product: Product) -> bool:
        if self.designer and product.designer != self.designer:
            return False
        if self.era and product.era != self.era:
            return False
        if self.condition and product.condition != self.condition:
            return False
        if self.category and product.category != self.category:
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        if self.featured and not product.featured:
            return False
        if self.status != "all" and product.status != self.status:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{product.title}\n{product.description or ''}".lower()
            if needle not in haystack:
                return False
        return True

    def sort(self, products: list[Product]) -> list[Product]:
        key = self.sort_by if self.sort_by in SORTABLE_FIELDS else "created_at"
        reverse = self.sort_order != "asc"
        # None values (e.g. missing era) always sort last
        present = [p for p in products if getattr(p, key) is not None]
        missing = [p for p in products if getattr(p, key) is None]
        present.sort(key=lambda p: getattr(p, key), reverse=reverse)
        return present + missing


def validate_product_fields(fields: dict[str, Any]) -> None:
    """
    Check field values that the type system doesn't cover.

    Raises:
        InvalidProductError: If a value is out of range.
    """
    if "price" in fields and (not isinstance(fields["price"], int) or fields["price"] < 0):
        raise InvalidProductError("price must be a non-negative integer number of cents")
    if "status" in fields and fields["status"] not in PRODUCT_STATUSES:
        raise InvalidProductError(
            f"status must be one of {', '.join(PRODUCT_STATUSES)}"
        )
    if "slug" in fields and not str(fields["slug"]).strip():
        raise InvalidProductError("slug must not be empty")
    if "images" in fields:
        images = fields["images"]
        if not isinstance(images, list) or not images:
            raise InvalidProductError("at least one image URL is required")
        if not all(isinstance(url, str) and url.strip() for url in images):
            raise InvalidProductError("image URLs must be non-empty strings")


class CatalogStore(JsonFileStore):
    """Manages the product catalog."""

    collection = "products"

    def __init__(self, data_dir: Path):
        super().__init__(data_dir, PRODUCTS_FILE)

    def list_products(self, query: ProductQuery | None = None) -> tuple[list[Product], int]:
        """
        Return one page of matching products and the total match count.
        """
        query = query or ProductQuery()
        products = [Product.from_dict(p) for p in self._records()]
        matched = query.sort([p for p in products if query.matches(p)])
        page = matched[query.offset : query.offset + query.limit]
        return page, len(matched)

    def all_products(self) -> list[Product]:
        return [Product.from_dict(p) for p in self._records()]

    def count(self) -> int:
        return len(self._records())

    def get_product(self, product_id: str) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        for p in self._records():
            if p["id"] == product_id:
                return Product.from_dict(p)
        raise ProductNotFoundError(product_id)

    def get_by_slug(self, slug: str) -> Product:
        """
        Get a product by slug.

        Raises:
            ProductNotFoundError: If no product has this slug.
        """
        for p in self._records():
            if p["slug"] == slug:
                return Product.from_dict(p)
        raise ProductNotFoundError(slug)

    def get_many(self, product_ids: list[str]) -> dict[str, Product]:
        """Look up several products at once; missing IDs are simply absent."""
        wanted = set(product_ids)
        return {
            p["id"]: Product.from_dict(p) for p in self._records() if p["id"] in wanted
        }

    def add_product(self, product: Product) -> Product:
        """
        Add a product to the catalog.

        Raises:
            InvalidProductError: If field values are out of range.
            DuplicateSlugError: If the slug is already used.
        """
        validate_product_fields(product.to_dict())

        with self._lock():
            data = self._load_data()
            for p in data[self.collection]:
                if p["slug"] == product.slug:
                    raise DuplicateSlugError(product.slug)
            data[self.collection].append(product.to_dict())
            self._save_data(data)

        logger.info("Added product %s (%s)", product.id, product.slug)
        return product

    def update_product(self, product_id: str, changes: dict[str, Any]) -> Product:
        """
        Apply an admin edit to a product.

        Args:
            product_id: Product ID.
            changes: Field values to set; keys must be in ALLOWED_UPDATE_FIELDS.

        Raises:
            InvalidProductError: If a field isn't editable or a value is invalid.
            ProductNotFoundError: If product doesn't exist.
            DuplicateSlugError: If the new slug is taken by another product.
        """
        unknown = set(changes) - ALLOWED_UPDATE_FIELDS
        if unknown:
            raise InvalidProductError(f"fields not editable: {', '.join(sorted(unknown))}")
        validate_product_fields(changes)

        with self._lock():
            data = self._load_data()
            records = data[self.collection]
            target = next((p for p in records if p["id"] == product_id), None)
            if target is None:
                raise ProductNotFoundError(product_id)

            new_slug = changes.get("slug")
            if new_slug and new_slug != target["slug"]:
                if any(p["slug"] == new_slug for p in records if p["id"] != product_id):
                    raise DuplicateSlugError(new_slug)

            target.update(changes)
            target["updated_at"] = _utc_now()
            self._save_data(data)

        logger.info("Updated product %s: %s", product_id, ", ".join(sorted(changes)))
        return Product.from_dict(target)

    def remove_product(self, product_id: str) -> Product:
        """
        Delete a product from the catalog.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        with self._lock():
            data = self._load_data()
            records = data[self.collection]
            for i, p in enumerate(records):
                if p["id"] == product_id:
                    removed = Product.from_dict(records.pop(i))
                    self._save_data(data)
                    logger.info("Removed product %s (%s)", removed.id, removed.slug)
                    return removed

        raise ProductNotFoundError(product_id)
