"""Data models for cicadacove.

All monetary amounts are integer minor units (cents).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import uuid


PRODUCT_STATUSES = ("available", "sold", "reserved")
ORDER_STATUSES = ("pending", "paid", "failed", "refunded")
PROFILE_ROLES = ("customer", "admin")


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    return str(uuid.uuid4())


def _check_non_negative_int(name: str, value: Any) -> None:
    """Reject anything but a non-negative int (bools included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")


@dataclass
class Product:
    """A catalog entry. Vintage pieces are usually one-offs."""

    id: str
    slug: str
    title: str
    designer: str
    price: int  # cents
    condition: str
    images: list[str] = field(default_factory=list)
    status: str = "available"  # "available"|"sold"|"reserved"
    era: str | None = None
    description: str | None = None
    materials: str | None = None
    measurements: str | None = None
    category: str | None = None
    featured: bool = False
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def is_available(self) -> bool:
        return self.status == "available"

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "designer": self.designer,
            "price": self.price,
            "condition": self.condition,
            "images": list(self.images),
            "status": self.status,
            "era": self.era,
            "description": self.description,
            "materials": self.materials,
            "measurements": self.measurements,
            "category": self.category,
            "featured": self.featured,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            slug=data["slug"],
            title=data["title"],
            designer=data["designer"],
            price=data["price"],
            condition=data["condition"],
            images=data.get("images", []),
            status=data.get("status", "available"),
            era=data.get("era"),
            description=data.get("description"),
            materials=data.get("materials"),
            measurements=data.get("measurements"),
            category=data.get("category"),
            featured=data.get("featured", False),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(cls, **fields: Any) -> "Product":
        """Create a new product with generated ID and timestamps."""
        now = _utc_now()
        return cls(id=_generate_id(), created_at=now, updated_at=now, **fields)


@dataclass
class ProductSnapshot:
    """The slice of a product a cart keeps, frozen at add-to-cart time."""

    id: str
    slug: str
    title: str
    price: int
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "price": self.price,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductSnapshot":
        """
        Raises:
            KeyError: If a required field is missing.
            TypeError: If a field has the wrong type.
            ValueError: If the price is negative.
        """
        snapshot = cls(
            id=data["id"],
            slug=data.get("slug", ""),
            title=data["title"],
            price=data["price"],
            image=data.get("image"),
        )
        for name in ("id", "slug", "title"):
            if not isinstance(getattr(snapshot, name), str):
                raise TypeError(f"product {name} must be a string")
        if snapshot.image is not None and not isinstance(snapshot.image, str):
            raise TypeError("product image must be a string")
        _check_non_negative_int("product price", snapshot.price)
        return snapshot

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            slug=product.slug,
            title=product.title,
            price=product.price,
            image=product.primary_image,
        )


@dataclass
class CartItem:
    """A line in the shopper's cart."""

    product: ProductSnapshot
    quantity: int  # >= 1

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        item = cls(
            product=ProductSnapshot.from_dict(data["product"]),
            quantity=data["quantity"],
        )
        _check_non_negative_int("quantity", item.quantity)
        return item


@dataclass
class Address:
    first_name: str
    last_name: str
    address1: str
    city: str
    state: str
    postal_code: str
    country: str
    email: str
    address2: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address1": self.address1,
            "address2": self.address2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "email": self.email,
            "phone": self.phone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Address":
        return cls(
            first_name=data["first_name"],
            last_name=data["last_name"],
            address1=data["address1"],
            address2=data.get("address2"),
            city=data["city"],
            state=data["state"],
            postal_code=data["postal_code"],
            country=data["country"],
            email=data["email"],
            phone=data.get("phone"),
        )


@dataclass
class OrderLineItem:
    """A product line as it was priced when the order was placed."""

    product_id: str
    title: str
    unit_price: int
    quantity: int
    image: str | None = None

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "title": self.title,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderLineItem":
        return cls(
            product_id=data["product_id"],
            title=data["title"],
            unit_price=data["unit_price"],
            quantity=data["quantity"],
            image=data.get("image"),
        )


@dataclass
class Order:
    """A placed order. Only webhook callbacks change it after creation."""

    id: str
    items: list[OrderLineItem]
    shipping_address: Address
    billing_address: Address
    shipping_method: str
    subtotal: int
    shipping: int
    tax: int
    total: int  # subtotal + shipping + tax
    customer_email: str
    status: str = "pending"  # "pending"|"paid"|"failed"|"refunded"
    currency: str = "usd"
    payment_session_id: str | None = None
    payment_intent_id: str | None = None
    notes: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "items": [i.to_dict() for i in self.items],
            "shipping_address": self.shipping_address.to_dict(),
            "billing_address": self.billing_address.to_dict(),
            "shipping_method": self.shipping_method,
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "tax": self.tax,
            "total": self.total,
            "customer_email": self.customer_email,
            "status": self.status,
            "currency": self.currency,
            "payment_session_id": self.payment_session_id,
            "payment_intent_id": self.payment_intent_id,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            items=[OrderLineItem.from_dict(i) for i in data.get("items", [])],
            shipping_address=Address.from_dict(data["shipping_address"]),
            billing_address=Address.from_dict(data["billing_address"]),
            shipping_method=data["shipping_method"],
            subtotal=data["subtotal"],
            shipping=data["shipping"],
            tax=data["tax"],
            total=data["total"],
            customer_email=data["customer_email"],
            status=data.get("status", "pending"),
            currency=data.get("currency", "usd"),
            payment_session_id=data.get("payment_session_id"),
            payment_intent_id=data.get("payment_intent_id"),
            notes=data.get("notes"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


def generate_order_id() -> str:
    return _generate_id()


@dataclass
class Profile:
    """A registered shopper or staff member."""

    id: str
    email: str
    role: str  # "customer"|"admin"
    api_token: str
    created_at: str = field(default_factory=_utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "api_token": self.api_token,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            id=data["id"],
            email=data["email"],
            role=data.get("role", "customer"),
            api_token=data["api_token"],
            created_at=data.get("created_at", ""),
        )

    @classmethod
    def create(cls, email: str, role: str, api_token: str) -> "Profile":
        return cls(id=_generate_id(), email=email.lower(), role=role, api_token=api_token)
