"""Command-line interface for cicadacove."""

import argparse
import json
import sys

import httpx

from . import __version__
from .backend import Backend
from .cart import Cart, ClientStorage
from .catalog_store import ProductQuery
from .checkout_client import submit_checkout
from .errors import CartItemNotFoundError, CicadaCoveError
from .logging_config import setup_logging
from .models import Address, Product
from .pricing import SHIPPING_RATES, format_cents, normalize_shipping_method, parse_price
from .settings import Settings


def get_backend() -> Backend:
    """Build the backend handle for the configured data directory."""
    return Backend.from_settings(Settings.from_env())


def get_cart(settings: Settings | None = None) -> Cart:
    settings = settings or Settings.from_env()
    return Cart.load(ClientStorage(settings.data_dir))


def _resolve_cart_product_id(cart: Cart, ref: str) -> str:
    """Accept a product ID or slug for lines already in the cart."""
    for item in cart.items:
        if item.product.id == ref or item.product.slug == ref:
            return item.product.id
    raise CartItemNotFoundError(ref)


def format_product(product: Product) -> str:
    era = f", {product.era}" if product.era else ""
    return (
        f"  {product.id[:8]}  {product.slug}\n"
        f"           {product.title} ({product.designer}{era}) "
        f"{format_cents(product.price)} [{product.status}]"
    )


def print_cart(cart: Cart, shipping_method: str) -> None:
    if not cart:
        print("Cart is empty.")
        return

    print(f"Cart ({cart.item_count} items):")
    for item in cart.items:
        print(
            f"  {item.quantity} x {item.product.title}  "
            f"{format_cents(item.product.price)}  = {format_cents(item.line_total)}"
        )
    summary = cart.summary(shipping_method)
    print()
    print(f"  Subtotal:  {format_cents(summary.subtotal)}")
    print(f"  Shipping:  {format_cents(summary.shipping)} ({normalize_shipping_method(shipping_method)})")
    print(f"  Tax (est): {format_cents(summary.tax)}")
    print(f"  Total:     {format_cents(summary.total)}")


# --- Server ---


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = Settings.from_env()
        print("Starting Cicada Cove API server...")
        print(f"Data directory: {settings.data_dir}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        uvicorn.run(
            "cicadacove.api:create_app_from_env",
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker to avoid concurrent write issues
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Products ---


def cmd_products_list(args: argparse.Namespace) -> int:
    """List catalog products."""
    try:
        backend = get_backend()
        query = ProductQuery(
            status="all" if args.all else "available",
            designer=args.designer,
            sort_by="created_at",
            limit=args.limit,
        )
        products, total = backend.catalog.list_products(query)

        if not products:
            print("No products found.")
            return 0

        if args.json:
            print(json.dumps([p.to_dict() for p in products], indent=2))
        else:
            print(f"Products ({len(products)} of {total}):")
            print()
            for p in products:
                print(format_product(p))

        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_add(args: argparse.Namespace) -> int:
    """Add a product to the catalog."""
    try:
        price = parse_price(args.price)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        backend = get_backend()
        product = Product.create(
            slug=args.slug,
            title=args.title,
            designer=args.designer,
            price=price,
            condition=args.condition,
            images=args.image or [],
            era=args.era,
            description=args.description,
            category=args.category,
        )
        backend.catalog.add_product(product)

        print(f"Added product: {product.id[:8]}")
        print(f"  Slug:  {product.slug}")
        print(f"  Price: {format_cents(product.price)}")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_remove(args: argparse.Namespace) -> int:
    """Remove a product from the catalog."""
    try:
        backend = get_backend()
        product = backend.catalog.remove_product(args.product_id)
        print(f"Removed product: {product.id[:8]} ({product.slug})")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Orders ---


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List placed orders."""
    try:
        backend = get_backend()
        orders = backend.orders.list_orders(status=args.status)

        if not orders:
            print("No orders found.")
            return 0

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
        else:
            print(f"Orders ({len(orders)}):")
            print()
            for o in orders:
                print(f"  {o.id[:8]}  {o.status:<9} {format_cents(o.total):>12}  {o.customer_email}")

        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_show(args: argparse.Namespace) -> int:
    """Show one order in full."""
    try:
        backend = get_backend()
        order = backend.orders.get_order(args.order_id)
        print(json.dumps(order.to_dict(), indent=2))
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Profiles ---


def cmd_profiles_add(args: argparse.Namespace) -> int:
    """Register a profile and print its API token."""
    try:
        backend = get_backend()
        profile = backend.profiles.add_profile(args.email, role=args.role)

        print(f"Added {profile.role} profile: {profile.email}")
        print(f"  Token: {profile.api_token}")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Cart ---


def cmd_cart_show(args: argparse.Namespace) -> int:
    """Show the saved cart."""
    try:
        cart = get_cart()
        if args.json:
            data = {
                "items": cart.to_list(),
                "item_count": cart.item_count,
                "summary": cart.summary(args.method).to_dict(),
            }
            print(json.dumps(data, indent=2))
        else:
            print_cart(cart, args.method)
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cart_add(args: argparse.Namespace) -> int:
    """Add a catalog product to the cart by slug."""
    try:
        settings = Settings.from_env()
        backend = Backend.from_settings(settings)
        product = backend.catalog.get_by_slug(args.slug)
        if not product.is_available:
            print(f"Error: {product.title} is {product.status}", file=sys.stderr)
            return 1

        cart = get_cart(settings)
        item = cart.add_item(product, args.quantity)
        print(f"Added {product.title} (now {item.quantity} in cart)")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cart_update(args: argparse.Namespace) -> int:
    """Set a cart line's quantity (0 removes it)."""
    try:
        cart = get_cart()
        product_id = _resolve_cart_product_id(cart, args.product)
        cart.update_quantity(product_id, args.quantity)
        print(f"Cart now holds {cart.item_count} items ({format_cents(cart.subtotal)})")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cart_remove(args: argparse.Namespace) -> int:
    """Remove a line from the cart."""
    try:
        cart = get_cart()
        cart.remove_item(_resolve_cart_product_id(cart, args.product))
        print(f"Removed {args.product}")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cart_clear(args: argparse.Namespace) -> int:
    """Empty the cart."""
    try:
        cart = get_cart()
        cart.clear()
        print("Cart cleared.")
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _load_address(path: str) -> Address:
    with open(path, "r", encoding="utf-8") as f:
        return Address.from_dict(json.load(f))


def cmd_cart_checkout(args: argparse.Namespace) -> int:
    """Send the cart to the checkout API and print the payment page URL."""
    try:
        settings = Settings.from_env()
        shipping_address = _load_address(args.address)
        billing_address = _load_address(args.billing) if args.billing else None
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: could not read address: {e}", file=sys.stderr)
        return 1

    try:
        cart = get_cart(settings)
        url = submit_checkout(
            cart,
            shipping_address,
            args.method,
            billing_address=billing_address,
            base_url=args.api_url or settings.api_url,
            timeout=settings.request_timeout,
        )
        print("Continue to payment:")
        print(f"  {url}")
        return 0

    except httpx.HTTPError as e:
        print(f"Error: could not reach checkout API: {e}", file=sys.stderr)
        return 1
    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_quote(args: argparse.Namespace) -> int:
    """Print the order summary for the saved cart."""
    try:
        cart = get_cart()
        summary = cart.summary(args.method)
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print_cart(cart, args.method)
        return 0

    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cicadacove",
        description="Run and manage the Cicada Cove vintage storefront.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level", help="Override LOG_LEVEL (e.g. DEBUG, INFO, WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    method_choices = sorted(SHIPPING_RATES)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # products (subcommand group)
    products_parser = subparsers.add_parser("products", help="Manage the catalog")
    products_subparsers = products_parser.add_subparsers(dest="products_command")

    products_list_parser = products_subparsers.add_parser("list", help="List products")
    products_list_parser.add_argument("--all", "-a", action="store_true", help="Include sold and reserved")
    products_list_parser.add_argument("--designer", help="Only this designer")
    products_list_parser.add_argument("--limit", type=int, default=50, help="Maximum rows (default: 50)")
    products_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    products_add_parser = products_subparsers.add_parser("add", help="Add a product")
    products_add_parser.add_argument("slug", help="URL slug, e.g. 1970s-ysl-peasant-blouse")
    products_add_parser.add_argument("--title", "-t", required=True)
    products_add_parser.add_argument("--designer", "-d", required=True)
    products_add_parser.add_argument("--price", required=True, help="Price in dollars, e.g. 450.00")
    products_add_parser.add_argument("--condition", "-c", required=True)
    products_add_parser.add_argument("--era", "-e")
    products_add_parser.add_argument("--category")
    products_add_parser.add_argument("--description")
    products_add_parser.add_argument(
        "--image", "-i", action="append", help="Image URL (repeatable, at least one; first is the cover)"
    )

    products_remove_parser = products_subparsers.add_parser("remove", help="Remove a product")
    products_remove_parser.add_argument("product_id", help="Product ID")

    # orders (subcommand group)
    orders_parser = subparsers.add_parser("orders", help="Inspect orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument(
        "--status", choices=["pending", "paid", "failed", "refunded"], help="Filter by status"
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_show_parser = orders_subparsers.add_parser("show", help="Show an order")
    orders_show_parser.add_argument("order_id", help="Order ID")

    # profiles (subcommand group)
    profiles_parser = subparsers.add_parser("profiles", help="Manage profiles")
    profiles_subparsers = profiles_parser.add_subparsers(dest="profiles_command")

    profiles_add_parser = profiles_subparsers.add_parser("add", help="Register a profile")
    profiles_add_parser.add_argument("email")
    profiles_add_parser.add_argument(
        "--role", choices=["customer", "admin"], default="customer", help="Role (default: customer)"
    )

    # cart (subcommand group)
    cart_parser = subparsers.add_parser("cart", help="Work with the saved cart")
    cart_subparsers = cart_parser.add_subparsers(dest="cart_command")

    cart_show_parser = cart_subparsers.add_parser("show", help="Show the cart")
    cart_show_parser.add_argument("--method", "-m", default="standard", choices=method_choices)
    cart_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    cart_add_parser = cart_subparsers.add_parser("add", help="Add a product by slug")
    cart_add_parser.add_argument("slug")
    cart_add_parser.add_argument("--quantity", "-q", type=int, default=1)

    cart_update_parser = cart_subparsers.add_parser("update", help="Set a line's quantity")
    cart_update_parser.add_argument("product", help="Product ID or slug")
    cart_update_parser.add_argument("quantity", type=int)

    cart_remove_parser = cart_subparsers.add_parser("remove", help="Remove a line")
    cart_remove_parser.add_argument("product", help="Product ID or slug")

    cart_subparsers.add_parser("clear", help="Empty the cart")

    cart_checkout_parser = cart_subparsers.add_parser("checkout", help="Check out the cart")
    cart_checkout_parser.add_argument(
        "--address", "-a", required=True, help="Path to a JSON shipping address"
    )
    cart_checkout_parser.add_argument("--billing", help="Path to a JSON billing address")
    cart_checkout_parser.add_argument("--method", "-m", default="standard", choices=method_choices)
    cart_checkout_parser.add_argument("--api-url", help="Storefront API base URL")

    # quote
    quote_parser = subparsers.add_parser("quote", help="Price the saved cart")
    quote_parser.add_argument("--method", "-m", default="standard", choices=method_choices)
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


GROUP_COMMANDS = {
    "products": ("products_command", {
        "list": cmd_products_list,
        "add": cmd_products_add,
        "remove": cmd_products_remove,
    }),
    "orders": ("orders_command", {
        "list": cmd_orders_list,
        "show": cmd_orders_show,
    }),
    "profiles": ("profiles_command", {
        "add": cmd_profiles_add,
    }),
    "cart": ("cart_command", {
        "show": cmd_cart_show,
        "add": cmd_cart_add,
        "update": cmd_cart_update,
        "remove": cmd_cart_remove,
        "clear": cmd_cart_clear,
        "checkout": cmd_cart_checkout,
    }),
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        setup_logging(Settings.from_env(), level=args.log_level or "WARNING", stream=sys.stderr)
    except CicadaCoveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command in GROUP_COMMANDS:
        dest, handlers = GROUP_COMMANDS[args.command]
        sub = getattr(args, dest, None)
        if not sub:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub](args)

    commands = {
        "serve": cmd_serve,
        "quote": cmd_quote,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
