"""Pytest fixtures for cicadacove tests."""

import json
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cicadacove.api import create_app
from cicadacove.backend import Backend
from cicadacove.errors import PaymentGatewayError, WebhookSignatureError
from cicadacove.models import Address, Product
from cicadacove.payments import CheckoutSession, CheckoutSessionRequest, WebhookEvent
from cicadacove.settings import Settings


class FakeGateway:
    """In-memory PaymentGateway that records session requests."""

    VALID_SIGNATURE = "t=1,v1=valid"

    def __init__(self):
        self.requests: list[CheckoutSessionRequest] = []
        self.fail_with: str | None = None
        # Real Stripe sessions have no payment intent until the shopper pays
        self.assign_payment_intents = True

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        if self.fail_with:
            raise PaymentGatewayError(self.fail_with)
        self.requests.append(request)
        n = len(self.requests)
        return CheckoutSession(
            id=f"cs_test_{n}",
            url=f"https://checkout.stripe.test/pay/cs_test_{n}",
            payment_intent_id=f"pi_test_{n}" if self.assign_payment_intents else None,
        )

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        if not signature:
            raise WebhookSignatureError("missing Stripe-Signature header")
        if signature != self.VALID_SIGNATURE:
            raise WebhookSignatureError("No signatures found matching the expected signature")
        return WebhookEvent.from_payload(json.loads(payload))


def make_product(**overrides) -> Product:
    """Build a product with sensible defaults."""
    fields = {
        "slug": "ysl-peasant-blouse",
        "title": "YSL Peasant Blouse",
        "designer": "Yves Saint Laurent",
        "price": 45000,
        "condition": "excellent",
        "images": ["https://img.test/ysl-1.jpg", "https://img.test/ysl-2.jpg"],
        "era": "1970s",
        "description": "Silk peasant blouse from the Russian collection.",
        "category": "tops",
    }
    fields.update(overrides)
    created_at = fields.pop("created_at", None)
    product = Product.create(**fields)
    if created_at:
        product.created_at = product.updated_at = created_at
    return product


def make_address(**overrides) -> Address:
    fields = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address1": "12 Marylebone Rd",
        "city": "Portland",
        "state": "OR",
        "postal_code": "97205",
        "country": "US",
        "email": "ada@example.com",
    }
    fields.update(overrides)
    return Address.from_dict(fields)


def make_event(event_type: str, obj: dict, event_id: str = "evt_test") -> WebhookEvent:
    return WebhookEvent(id=event_id, type=event_type, data=obj)


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    return Settings(
        data_dir=temp_dir / "data",
        app_url="https://shop.test",
        cors_origins=["https://shop.test"],
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def backend(settings, gateway):
    return Backend.from_settings(settings, gateway=gateway)


@pytest.fixture
def products(backend):
    """Seed the catalog with three pieces: two available, one sold."""
    blouse = backend.catalog.add_product(make_product(created_at="2024-03-01T10:00:00Z"))
    coat = backend.catalog.add_product(
        make_product(
            slug="chanel-boucle-coat",
            title="Chanel Boucle Coat",
            designer="Chanel",
            price=120000,
            era="1990s",
            description="Pink boucle wool coat.",
            category="outerwear",
            featured=True,
            created_at="2024-03-02T10:00:00Z",
        )
    )
    scarf = backend.catalog.add_product(
        make_product(
            slug="hermes-silk-scarf",
            title="Hermes Silk Scarf",
            designer="Hermes",
            price=9500,
            era="1980s",
            description="Carre in blue and gold.",
            category="accessories",
            status="sold",
            created_at="2024-03-03T10:00:00Z",
        )
    )
    return {"blouse": blouse, "coat": coat, "scarf": scarf}


@pytest.fixture
def api_client(backend):
    return TestClient(create_app(backend))


@pytest.fixture
def admin_headers(backend):
    profile = backend.profiles.add_profile("curator@cicadacove.test", role="admin")
    return {"Authorization": f"Bearer {profile.api_token}"}


@pytest.fixture
def customer_headers(backend):
    profile = backend.profiles.add_profile("shopper@example.com")
    return {"Authorization": f"Bearer {profile.api_token}"}
