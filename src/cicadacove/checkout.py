"""Server-side checkout: trusted repricing, payment session creation, order capture."""

import logging
from dataclasses import dataclass

from .catalog_store import CatalogStore
from .errors import EmptyCartError, InvalidQuantityError, ProductUnavailableError
from .models import Address, Order, OrderLineItem, generate_order_id
from .order_store import OrderStore
from .payments import CheckoutSessionRequest, PaymentGateway, SessionLineItem
from .pricing import OrderSummary, normalize_shipping_method, order_summary
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutLine:
    product_id: str
    quantity: int


@dataclass
class CheckoutRequest:
    items: list[CheckoutLine]
    shipping_address: Address
    shipping_method: str
    billing_address: Address | None = None


@dataclass
class CheckoutResult:
    url: str
    order: Order


def merge_lines(lines: list[CheckoutLine]) -> list[CheckoutLine]:
    """Collapse repeated product IDs into one line, keeping first-seen order."""
    quantities: dict[str, int] = {}
    for line in lines:
        if line.quantity < 1:
            raise InvalidQuantityError(line.quantity)
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return [CheckoutLine(product_id=pid, quantity=qty) for pid, qty in quantities.items()]


class CheckoutService:
    """Turns a submitted cart into a payment session and a pending order."""

    def __init__(
        self,
        catalog: CatalogStore,
        orders: OrderStore,
        gateway: PaymentGateway,
        settings: Settings,
    ):
        self.catalog = catalog
        self.orders = orders
        self.gateway = gateway
        self.settings = settings

    def price_lines(self, lines: list[CheckoutLine]) -> list[OrderLineItem]:
        """
        Price lines from the catalog, never from client-supplied amounts.

        Raises:
            ProductUnavailableError: If any product is missing or not available.
        """
        products = self.catalog.get_many([line.product_id for line in lines])
        unavailable = [
            line.product_id
            for line in lines
            if line.product_id not in products or not products[line.product_id].is_available
        ]
        if unavailable:
            raise ProductUnavailableError(unavailable)

        priced = []
        for line in lines:
            product = products[line.product_id]
            priced.append(
                OrderLineItem(
                    product_id=product.id,
                    title=product.title,
                    unit_price=product.price,
                    quantity=line.quantity,
                    image=product.primary_image,
                )
            )
        return priced

    def build_session_request(
        self,
        order_id: str,
        items: list[OrderLineItem],
        summary: OrderSummary,
        shipping_method: str,
        customer_email: str,
    ) -> CheckoutSessionRequest:
        """Mirror the priced order as payment-page lines that add up to its total."""
        line_items = [
            SessionLineItem(
                name=item.title,
                unit_amount=item.unit_price,
                quantity=item.quantity,
                image=item.image,
                product_id=item.product_id,
            )
            for item in items
        ]
        if summary.shipping > 0:
            line_items.append(
                SessionLineItem(name=f"Shipping ({shipping_method})", unit_amount=summary.shipping)
            )
        if summary.tax > 0:
            line_items.append(SessionLineItem(name="Estimated tax", unit_amount=summary.tax))

        app_url = self.settings.app_url
        return CheckoutSessionRequest(
            order_id=order_id,
            line_items=line_items,
            customer_email=customer_email,
            success_url=f"{app_url}/checkout/confirmation?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{app_url}/checkout?canceled=true",
            currency=self.settings.currency,
            metadata={"shipping_method": shipping_method},
            allowed_countries=self.settings.allowed_countries,
        )

    def create_session(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Validate and reprice the cart, open a payment session, record the order.

        The order is only written once the processor has accepted the session,
        so a gateway failure leaves nothing behind.

        Raises:
            EmptyCartError: If there are no items.
            InvalidQuantityError: If a quantity is below one.
            ProductUnavailableError: If any product is missing or not available.
            PaymentGatewayError: If the processor fails (message forwarded).
        """
        if not request.items:
            raise EmptyCartError()

        lines = merge_lines(request.items)
        items = self.price_lines(lines)
        method = normalize_shipping_method(request.shipping_method)
        summary = order_summary(items, method)

        order_id = generate_order_id()
        customer_email = request.shipping_address.email
        session_request = self.build_session_request(
            order_id, items, summary, method, customer_email
        )
        session = self.gateway.create_checkout_session(session_request)

        order = Order(
            id=order_id,
            items=items,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address or request.shipping_address,
            shipping_method=method,
            subtotal=summary.subtotal,
            shipping=summary.shipping,
            tax=summary.tax,
            total=summary.total,
            customer_email=customer_email,
            currency=self.settings.currency,
            payment_session_id=session.id,
            payment_intent_id=session.payment_intent_id,
        )
        self.orders.add_order(order)

        logger.info(
            "Checkout session %s opened for order %s (%d items, total %d)",
            session.id,
            order.id,
            len(items),
            order.total,
        )
        return CheckoutResult(url=session.url, order=order)
