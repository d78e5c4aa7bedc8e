"""Custom exceptions for cicadacove."""


class CicadaCoveError(Exception):
    """Base exception for all cicadacove errors."""

    pass


class ProductNotFoundError(CicadaCoveError):
    """Raised when a product ID or slug doesn't exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Product not found: {key}")


class DuplicateSlugError(CicadaCoveError):
    """Raised when creating or renaming a product onto an existing slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"A product with slug '{slug}' already exists")


class InvalidProductError(CicadaCoveError):
    """Raised when product data fails validation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid product: {reason}")


class ProductUnavailableError(CicadaCoveError):
    """Raised when checkout references products that are missing or not for sale."""

    def __init__(self, product_ids: list[str]):
        self.product_ids = product_ids
        super().__init__(
            "One or more products are no longer available: " + ", ".join(product_ids)
        )


class EmptyCartError(CicadaCoveError):
    """Raised when checking out a cart with no items."""

    def __init__(self) -> None:
        super().__init__("Cart cannot be empty")


class InvalidQuantityError(CicadaCoveError):
    """Raised when a cart quantity is not a positive integer."""

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Invalid quantity: {quantity}")


class CartItemNotFoundError(CicadaCoveError):
    """Raised when a cart operation targets a product that isn't in the cart."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not in cart: {product_id}")


class OrderNotFoundError(CicadaCoveError):
    """Raised when an order ID or payment session ID doesn't exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Order not found: {key}")


class AuthenticationError(CicadaCoveError):
    """Raised when a request carries no valid session token."""

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(reason)


class PermissionDeniedError(CicadaCoveError):
    """Raised when an authenticated profile lacks the required role."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"{role.capitalize()} privileges required")


class DuplicateProfileError(CicadaCoveError):
    """Raised when registering a profile whose email is already taken."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Profile already exists for {email}")


class WebhookSignatureError(CicadaCoveError):
    """Raised when a webhook payload fails signature verification."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Webhook signature verification failed: {reason}")


class PaymentGatewayError(CicadaCoveError):
    """Raised when the payment processor rejects or fails a request.

    The upstream message is kept verbatim so callers can surface it.
    """

    def __init__(self, message: str):
        self.upstream_message = message
        super().__init__(message)


class StorageError(CicadaCoveError):
    """Raised when a data file can't be read or has an unsupported layout."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage error at {path}: {reason}")


class CheckoutRequestError(CicadaCoveError):
    """Raised by the checkout client when the checkout API answers with an error."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Checkout failed ({status_code}): {detail}")


class InvalidRoleError(CicadaCoveError):
    """Raised when a profile role isn't recognised."""

    def __init__(self, role: str, allowed: tuple[str, ...]):
        self.role = role
        super().__init__(f"Invalid role '{role}' (expected one of: {', '.join(allowed)})")


class ConfigurationError(CicadaCoveError):
    """Raised when an environment setting can't be parsed."""

    def __init__(self, name: str, value: str, expected: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid {name}={value!r}: expected {expected}")
