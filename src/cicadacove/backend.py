"""The storefront's service handle: stores and payment gateway, built once per process."""

from dataclasses import dataclass

from .catalog_store import CatalogStore
from .checkout import CheckoutService
from .order_store import OrderStore
from .payments import PaymentGateway, StripeGateway
from .profile_store import ProfileStore
from .settings import Settings
from .webhooks import WebhookHandler


@dataclass
class Backend:
    settings: Settings
    catalog: CatalogStore
    orders: OrderStore
    profiles: ProfileStore
    gateway: PaymentGateway

    @classmethod
    def from_settings(cls, settings: Settings, gateway: PaymentGateway | None = None) -> "Backend":
        """
        Wire stores under ``settings.data_dir``.

        Args:
            settings: Runtime configuration.
            gateway: Override the payment gateway (for testing).
        """
        return cls(
            settings=settings,
            catalog=CatalogStore(settings.data_dir),
            orders=OrderStore(settings.data_dir),
            profiles=ProfileStore(settings.data_dir),
            gateway=gateway
            or StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret),
        )

    def checkout_service(self) -> CheckoutService:
        return CheckoutService(self.catalog, self.orders, self.gateway, self.settings)

    def webhook_handler(self) -> WebhookHandler:
        return WebhookHandler(self.orders)
