"""FastAPI REST API for the Cicada Cove storefront."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from . import __version__
from .backend import Backend
from .catalog_store import ProductQuery
from .checkout import CheckoutLine, CheckoutRequest
from .errors import (
    AuthenticationError,
    CartItemNotFoundError,
    CicadaCoveError,
    DuplicateProfileError,
    DuplicateSlugError,
    EmptyCartError,
    InvalidProductError,
    InvalidQuantityError,
    InvalidRoleError,
    OrderNotFoundError,
    PaymentGatewayError,
    PermissionDeniedError,
    ProductNotFoundError,
    ProductUnavailableError,
    StorageError,
    WebhookSignatureError,
)
from .models import Address, Order, Product, Profile

logger = logging.getLogger(__name__)


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    slug: str
    title: str
    designer: str
    price: int  # cents
    condition: str
    images: list[str]
    status: str
    era: Optional[str] = None
    description: Optional[str] = None
    materials: Optional[str] = None
    measurements: Optional[str] = None
    category: Optional[str] = None
    featured: bool = False
    created_at: str
    updated_at: str


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    total: int
    limit: int
    offset: int


class ProductCreateRequest(BaseModel):
    """Request body for adding a product."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    designer: str = Field(..., min_length=1)
    price: int = Field(..., ge=0, description="Price in cents")
    condition: str = Field(..., min_length=1)
    images: list[str] = Field(..., min_length=1, description="Image URLs, first is the cover")
    status: Literal["available", "sold", "reserved"] = "available"
    era: Optional[str] = None
    description: Optional[str] = None
    materials: Optional[str] = None
    measurements: Optional[str] = None
    category: Optional[str] = None
    featured: bool = False


_NON_NULLABLE = ("title", "slug", "designer", "price", "condition", "images", "status", "featured")


class ProductUpdateRequest(BaseModel):
    """Admin edit. Only the listed fields may change; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    designer: Optional[str] = Field(None, min_length=1)
    price: Optional[int] = Field(None, ge=0)
    condition: Optional[str] = Field(None, min_length=1)
    images: Optional[list[str]] = Field(None, min_length=1)
    status: Optional[Literal["available", "sold", "reserved"]] = None
    era: Optional[str] = None
    description: Optional[str] = None
    materials: Optional[str] = None
    measurements: Optional[str] = None
    category: Optional[str] = None
    featured: Optional[bool] = None

    @field_validator(*_NON_NULLABLE)
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class AddressSchema(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    address1: str = Field(..., min_length=1)
    address2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None

    def to_address(self) -> Address:
        return Address(**self.model_dump())


class CheckoutItemSchema(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class CheckoutRequestSchema(BaseModel):
    """Request body for starting checkout. Prices are never accepted from the client."""

    items: list[CheckoutItemSchema] = Field(..., min_length=1)
    shipping_address: AddressSchema
    billing_address: Optional[AddressSchema] = None
    shipping_method: str = Field(..., min_length=1)


class CheckoutResponse(BaseModel):
    url: str
    order_id: str


class OrderLineItemSchema(BaseModel):
    product_id: str
    title: str
    unit_price: int
    quantity: int
    image: Optional[str] = None


class OrderSchema(BaseModel):
    id: str
    status: str
    items: list[OrderLineItemSchema]
    shipping_method: str
    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str
    customer_email: str
    created_at: str
    updated_at: str


class WebhookAck(BaseModel):
    received: bool = True


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(**product.to_dict())


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(
        id=order.id,
        status=order.status,
        items=[OrderLineItemSchema(**i.to_dict()) for i in order.items],
        shipping_method=order.shipping_method,
        subtotal=order.subtotal,
        shipping=order.shipping,
        tax=order.tax,
        total=order.total,
        currency=order.currency,
        customer_email=order.customer_email,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# --- Dependencies ---


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def require_admin(
    authorization: Optional[str] = Header(default=None),
    backend: Backend = Depends(get_backend),
) -> Profile:
    return backend.profiles.require_admin(authorization)


# --- Exception Handlers ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ProductNotFoundError: 404,
    OrderNotFoundError: 404,
    CartItemNotFoundError: 404,
    DuplicateSlugError: 409,
    DuplicateProfileError: 409,
    InvalidProductError: 400,
    InvalidRoleError: 400,
    ProductUnavailableError: 400,
    EmptyCartError: 400,
    InvalidQuantityError: 400,
    WebhookSignatureError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    PaymentGatewayError: 500,
    StorageError: 500,
}


async def cicadacove_error_handler(request: Request, exc: CicadaCoveError) -> JSONResponse:
    """Map CicadaCoveError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and query strings are client errors (400)."""
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
    ]
    summary = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'][1:]) or 'body'}: {e['msg']}" for e in errors
    )
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"Invalid input: {summary}",
            "error_type": "ValidationError",
            "errors": errors,
        },
    )


# --- Endpoints ---


router = APIRouter(prefix="/api")


@router.get("/health")
def health_check(backend: Backend = Depends(get_backend)):
    """Health check endpoint."""
    try:
        return {"status": "ok", "product_count": backend.catalog.count()}
    except CicadaCoveError as e:
        return {"status": "error", "detail": str(e)}


# --- Catalog Endpoints ---


@router.get("/products", response_model=ProductListResponse)
def list_products(
    designer: Optional[str] = None,
    era: Optional[str] = None,
    condition: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[int] = Query(default=None, ge=0, description="Cents"),
    max_price: Optional[int] = Query(default=None, ge=0, description="Cents"),
    search: Optional[str] = None,
    featured: bool = False,
    status: Literal["available", "sold", "reserved", "all"] = "available",
    sort_by: Literal["created_at", "price", "title", "era", "designer"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(default=12, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    backend: Backend = Depends(get_backend),
):
    """List products with optional filtering, sorting and pagination."""
    query = ProductQuery(
        designer=designer,
        era=era,
        condition=condition,
        category=category,
        min_price=min_price,
        max_price=max_price,
        search=search,
        featured=featured,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    products, total = backend.catalog.list_products(query)
    return ProductListResponse(
        products=[product_to_schema(p) for p in products],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/products/{slug}", response_model=ProductSchema)
def get_product(slug: str, backend: Backend = Depends(get_backend)):
    """Get a single product by slug."""
    return product_to_schema(backend.catalog.get_by_slug(slug))


# --- Checkout Endpoints ---


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(request: CheckoutRequestSchema, backend: Backend = Depends(get_backend)):
    """Reprice the cart, open a payment session and return the redirect URL."""
    checkout_request = CheckoutRequest(
        items=[CheckoutLine(product_id=i.product_id, quantity=i.quantity) for i in request.items],
        shipping_address=request.shipping_address.to_address(),
        billing_address=request.billing_address.to_address() if request.billing_address else None,
        shipping_method=request.shipping_method,
    )
    result = backend.checkout_service().create_session(checkout_request)
    return CheckoutResponse(url=result.url, order_id=result.order.id)


@router.get("/checkout/sessions/{session_id}", response_model=OrderSchema)
def get_checkout_order(session_id: str, backend: Backend = Depends(get_backend)):
    """Look up the order behind a payment session (confirmation page)."""
    order = backend.orders.find_by_session(session_id)
    if order is None:
        raise OrderNotFoundError(session_id)
    return order_to_schema(order)


@router.post("/stripe/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    backend: Backend = Depends(get_backend),
):
    """
    Receive payment processor callbacks.

    Acknowledged with 200 whenever the payload verifies, including events for
    unknown orders, so the processor doesn't keep retrying them.
    """
    payload = await request.body()
    event = backend.gateway.parse_webhook(payload, stripe_signature)
    backend.webhook_handler().handle(event)
    return WebhookAck(received=True)


# --- Admin Endpoints ---


@router.get("/admin/products", response_model=ProductListResponse)
def admin_list_products(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    backend: Backend = Depends(get_backend),
    _admin: Profile = Depends(require_admin),
):
    """List every product regardless of status."""
    query = ProductQuery(status="all", limit=limit, offset=offset)
    products, total = backend.catalog.list_products(query)
    return ProductListResponse(
        products=[product_to_schema(p) for p in products],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/admin/products", response_model=ProductSchema, status_code=201)
def admin_create_product(
    request: ProductCreateRequest,
    backend: Backend = Depends(get_backend),
    _admin: Profile = Depends(require_admin),
):
    """Add a product to the catalog."""
    product = Product.create(**request.model_dump())
    return product_to_schema(backend.catalog.add_product(product))


@router.get("/admin/products/{product_id}", response_model=ProductSchema)
def admin_get_product(
    product_id: str,
    backend: Backend = Depends(get_backend),
    _admin: Profile = Depends(require_admin),
):
    return product_to_schema(backend.catalog.get_product(product_id))


@router.patch("/admin/products/{product_id}", response_model=ProductSchema)
def admin_update_product(
    product_id: str,
    request: ProductUpdateRequest,
    backend: Backend = Depends(get_backend),
    _admin: Profile = Depends(require_admin),
):
    """Edit a product. Only fields present in the body are changed."""
    changes = request.model_dump(exclude_unset=True)
    return product_to_schema(backend.catalog.update_product(product_id, changes))


@router.delete("/admin/products/{product_id}", response_model=ProductSchema)
def admin_delete_product(
    product_id: str,
    backend: Backend = Depends(get_backend),
    _admin: Profile = Depends(require_admin),
):
    return product_to_schema(backend.catalog.remove_product(product_id))


# --- FastAPI App ---


def create_app(backend: Backend) -> FastAPI:
    """Build the API around an explicitly constructed backend handle."""
    app = FastAPI(
        title="Cicada Cove API",
        description="Catalog, checkout and payment webhooks for the Cicada Cove storefront",
        version=__version__,
    )
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=backend.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CicadaCoveError, cicadacove_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


def create_app_from_env() -> FastAPI:
    """App factory for ``uvicorn --factory``: settings, logging and backend from the environment."""
    from .logging_config import setup_logging
    from .settings import Settings

    settings = Settings.from_env()
    setup_logging(settings)
    return create_app(Backend.from_settings(settings))
