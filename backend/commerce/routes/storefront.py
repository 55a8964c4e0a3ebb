# Overview: Flask API routes for the public storefront; parses input and returns JSON responses.

"""
Storefront routes (shopper facing).

MULTI-TENANT: the store is named by the URL segment; it may also be sent in
X-Tenant-Slug, in which case both must agree.

Catalog reads are anonymous and only expose active, public products. Carts
are owned by X-User-Id when present, otherwise by the X-Cart-Session token.
"""
from flask import Blueprint, g, request

from ..decorators import optional_user, require_tenant, require_user
from ..errors import AuthenticationError
from ..http import bad_request, created, ok
from ..rules import with_cart_item_rules
from ..services import cart_service, categories_service, orders_service, products_service, tenant_user_service
from ..validation import validate_body, validate_headers, validate_query
from ..validation.schemas import (
    cart_item_schema,
    cart_item_update_schema,
    cart_session_headers_schema,
    checkout_schema,
    order_query_schema,
    product_query_schema,
    tenant_user_create_schema,
)

storefront_bp = Blueprint("storefront", __name__, url_prefix="/api/storefront/<tenant_slug>")


def _owner(headers: dict) -> dict:
    return {"customer_id": headers.get("user_id"), "session_id": headers.get("cart_session")}


# =============================================================================
# CATALOG
# =============================================================================

@storefront_bp.get("/products")
@require_tenant
@validate_query(product_query_schema)
def list_products(query, tenant_slug):
    return ok(products_service.list_products(g.tenant_id, query, storefront=True))


@storefront_bp.get("/products/<int:product_id>")
@require_tenant
def get_product(tenant_slug, product_id):
    return ok(products_service.get_product(g.tenant_id, product_id, storefront=True).to_dict())


@storefront_bp.get("/categories")
@require_tenant
def list_categories(tenant_slug):
    return ok(categories_service.list_categories(g.tenant_id, active_only=True))


@storefront_bp.get("/search")
@require_tenant
def search(tenant_slug):
    """
    Query params:
    - q: search term (required, max 100 chars)
    - limit: int (default 10, max 50)
    """
    term = (request.args.get("q") or "").strip()
    if not term:
        return bad_request("Search term is required", "MISSING_SEARCH_TERM")
    if len(term) > 100:
        return bad_request("Search term too long", "VALIDATION_ERROR")
    limit = max(1, min(request.args.get("limit", 10, type=int) or 10, 50))
    return ok(products_service.search_products(g.tenant_id, term, limit=limit))


# =============================================================================
# CART
# =============================================================================

@storefront_bp.get("/cart")
@require_tenant
@validate_headers(cart_session_headers_schema)
def get_cart(headers, tenant_slug):
    return ok(cart_service.cart_view(cart_service.get_cart(g.tenant_id, **_owner(headers))))


@storefront_bp.post("/cart/items")
@require_tenant
@validate_headers(cart_session_headers_schema)
@validate_body(cart_item_schema)
@with_cart_item_rules
def add_cart_item(data, headers, tenant_slug):
    cart = cart_service.add_item(g.tenant_id, data, **_owner(headers))
    return created(cart_service.cart_view(cart))


@storefront_bp.patch("/cart/items/<int:item_id>")
@require_tenant
@validate_headers(cart_session_headers_schema)
@validate_body(cart_item_update_schema)
def update_cart_item(data, headers, tenant_slug, item_id):
    cart = cart_service.update_item(g.tenant_id, item_id, data["quantity"], **_owner(headers))
    return ok(cart_service.cart_view(cart))


@storefront_bp.delete("/cart/items/<int:item_id>")
@require_tenant
@validate_headers(cart_session_headers_schema)
def remove_cart_item(headers, tenant_slug, item_id):
    cart = cart_service.remove_item(g.tenant_id, item_id, **_owner(headers))
    return ok(cart_service.cart_view(cart))


@storefront_bp.delete("/cart")
@require_tenant
@validate_headers(cart_session_headers_schema)
def clear_cart(headers, tenant_slug):
    return ok(cart_service.cart_view(cart_service.clear_cart(g.tenant_id, **_owner(headers))))


@storefront_bp.post("/checkout")
@require_tenant
@validate_headers(cart_session_headers_schema)
@validate_body(checkout_schema)
def checkout(data, headers, tenant_slug):
    """
    Turn the cart into an order. Guests are recorded as guest customers of
    the store unless the store disables guest checkout.
    """
    owner = _owner(headers)
    checkout_settings = (g.tenant.settings or {}).get("checkout") or {}
    if owner["customer_id"] is None and not checkout_settings.get("allowGuestCheckout", True):
        raise AuthenticationError("Sign in to check out", code="GUEST_CHECKOUT_DISABLED")

    order = cart_service.checkout(g.tenant_id, data, **owner)
    tenant_user_service.find_or_create_tenant_user(
        g.tenant_id,
        data["customer"]["email"],
        name=data["customer"].get("name"),
        phone=data["customer"].get("phone"),
        is_guest=owner["customer_id"] is None,
    )
    return created(order.to_dict())


# =============================================================================
# CUSTOMER ACCOUNT
# =============================================================================

@storefront_bp.get("/orders")
@require_tenant
@require_user
@validate_query(order_query_schema)
def my_orders(query, tenant_slug):
    return ok(orders_service.list_orders(g.tenant_id, query, customer_id=g.user_id))


@storefront_bp.get("/orders/<int:order_id>")
@require_tenant
@require_user
def my_order(tenant_slug, order_id):
    return ok(orders_service.get_order(g.tenant_id, order_id, customer_id=g.user_id).to_dict())


@storefront_bp.post("/customers/signup")
@require_tenant
@require_user
@validate_body(tenant_user_create_schema)
def signup(data, tenant_slug):
    """Registers the signed-in user with this store, adopting a guest record with the same email."""
    return created(tenant_user_service.register_customer(g.tenant_id, g.user_id, data))


@storefront_bp.get("/customers/me")
@require_tenant
@optional_user
def me(tenant_slug):
    if g.user_id is None:
        return ok(None)
    return ok(tenant_user_service.find_by_global_user_id(g.tenant_id, g.user_id))
