"""Order pricing: shipping tiers, tax estimate and order summaries.

Every amount is an integer number of cents. The functions here are pure and
shared by the cart, the checkout service and the CLI quote command so that
all of them agree on the same total.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

SHIPPING_RATES: dict[str, int] = {
    "standard": 1500,
    "express": 2500,
    "overnight": 4500,
}
SHIPPING_ALIASES: dict[str, str] = {
    "expedited": "express",
}
DEFAULT_SHIPPING_METHOD = "standard"

# Standard shipping is waived at or above this subtotal
FREE_SHIPPING_THRESHOLD = 50000

TAX_RATE = Decimal("0.08")


class PricedLine(Protocol):
    """Anything with a quantity and a line total (cart items, order lines)."""

    quantity: int

    @property
    def line_total(self) -> int: ...


@dataclass(frozen=True)
class OrderSummary:
    subtotal: int
    shipping: int
    tax: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "tax": self.tax,
            "total": self.total,
        }


def normalize_shipping_method(method: str | None) -> str:
    """Map a shipping-method tag to its canonical tier name.

    Aliases resolve to their tier; unknown or empty tags fall back to standard.
    """
    tag = (method or "").strip().lower()
    tag = SHIPPING_ALIASES.get(tag, tag)
    if tag not in SHIPPING_RATES:
        return DEFAULT_SHIPPING_METHOD
    return tag


def shipping_cost(method: str | None, subtotal: int) -> int:
    """Flat shipping fee for a method given the cart subtotal."""
    if subtotal <= 0:
        return 0
    tier = normalize_shipping_method(method)
    if tier == "standard" and subtotal >= FREE_SHIPPING_THRESHOLD:
        return 0
    return SHIPPING_RATES[tier]


def estimate_tax(subtotal: int) -> int:
    """Flat-rate tax estimate, rounded half-up to the nearest cent."""
    tax = (Decimal(subtotal) * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(tax)


def subtotal(items: Iterable[PricedLine]) -> int:
    return sum(item.line_total for item in items)


def item_count(items: Iterable[PricedLine]) -> int:
    return sum(item.quantity for item in items)


def order_summary(items: Iterable[PricedLine], method: str | None) -> OrderSummary:
    """Compute subtotal, shipping, tax and total for a set of lines."""
    sub = subtotal(items)
    ship = shipping_cost(method, sub)
    tax = estimate_tax(sub)
    return OrderSummary(subtotal=sub, shipping=ship, tax=tax, total=sub + ship + tax)


def format_cents(amount: int) -> str:
    """Render cents as a dollar string, e.g. 45000 -> '$450.00'."""
    sign = "-" if amount < 0 else ""
    dollars, cents = divmod(abs(amount), 100)
    return f"{sign}${dollars:,}.{cents:02d}"


def parse_price(value: str) -> int:
    """
    Parse a dollar amount such as '450' or '450.00' into cents.

    Raises:
        ValueError: If the value isn't a non-negative amount with at most two decimals.
    """
    try:
        amount = Decimal(value.strip().lstrip("$").replace(",", ""))
    except ArithmeticError as e:
        raise ValueError(f"invalid price: {value!r}") from e
    if not amount.is_finite() or amount < 0 or amount != amount.quantize(Decimal("0.01")):
        raise ValueError(f"invalid price: {value!r}")
    return int(amount * 100)
