"""
Cart Service - storefront carts and checkout.

A cart belongs to a signed-in customer (X-User-Id) or to an anonymous
session token (X-Cart-Session). Carts expire CART_TTL_DAYS after their last
change; an expired cart is emptied the next time it is fetched.

Checkout turns the cart into an order priced from the product rows (never
from client input) and empties the cart in the same transaction.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from ..errors import BusinessRuleViolation, NotFoundError, ValidationError
from ..models import Cart, CartItem, Product, Tenant
from ..rules import enforce, validate_cart_item
from ..tenancy import tenant_transaction
from ..time_utils import days_from_now
from .concurrency import run_with_retry
from .orders_service import create_order_locked


def _ttl_days() -> int:
    return current_app.config.get("CART_TTL_DAYS", 30)


def _owner_clause(customer_id: str | None, session_id: str | None):
    if customer_id:
        return Cart.customer_id == customer_id
    if session_id:
        return Cart.session_id == session_id
    raise ValidationError(
        "A cart session or user id is required",
        code="CART_OWNER_REQUIRED",
    )


def _find_cart(session, tenant_id: int, customer_id: str | None, session_id: str | None) -> Cart | None:
    stmt = (
        select(Cart)
        .where(Cart.tenant_id == tenant_id, _owner_clause(customer_id, session_id))
        .order_by(Cart.id.desc())
    )
    return session.execute(stmt).scalars().first()


def _get_or_create(session, tenant_id: int, customer_id: str | None, session_id: str | None) -> Cart:
    cart = _find_cart(session, tenant_id, customer_id, session_id)
    if cart is not None and cart.is_expired():
        cart.items.clear()
    if cart is None:
        cart = Cart(tenant_id=tenant_id, customer_id=customer_id, session_id=None if customer_id else session_id)
        session.add(cart)
    cart.expires_at = days_from_now(_ttl_days())
    session.flush()
    return cart


def cart_view(cart: Cart) -> dict:
    """Cart payload with line prices and a running subtotal."""
    data = cart.to_dict()
    subtotal = 0.0
    lines = []
    for item in cart.items:
        line = item.to_dict()
        product = item.product
        if product is not None:
            line["name"] = product.name
            line["price"] = product.price
            line["lineTotal"] = round(product.price * item.quantity, 2)
            subtotal += line["lineTotal"]
        lines.append(line)
    data["items"] = lines
    data["itemCount"] = sum(item.quantity for item in cart.items)
    data["subtotal"] = round(subtotal, 2)
    return data


def get_cart(tenant_id: int, *, customer_id: str | None = None, session_id: str | None = None) -> Cart:
    with tenant_transaction(tenant_id) as session:
        return _get_or_create(session, tenant_id, customer_id, session_id)


def add_item(
    tenant_id: int,
    data: dict,
    *,
    customer_id: str | None = None,
    session_id: str | None = None,
) -> Cart:
    """
    Add a line, merging with an existing line for the same product/variant.

    The merged quantity is what gets checked against the per-item limit and
    available stock.
    """
    with tenant_transaction(tenant_id) as session:
        cart = _get_or_create(session, tenant_id, customer_id, session_id)
        variant_id = data.get("variant_id")
        existing = next(
            (i for i in cart.items if i.product_id == data["product_id"] and i.variant_id == variant_id),
            None,
        )
        quantity = data["quantity"] + (existing.quantity if existing is not None else 0)
        enforce(validate_cart_item(tenant_id, data["product_id"], quantity))

        if existing is not None:
            existing.quantity = quantity
        else:
            cart.items.append(CartItem(
                tenant_id=tenant_id,
                product_id=data["product_id"],
                variant_id=variant_id,
                quantity=quantity,
            ))
        session.flush()
    return cart


def _cart_item(cart: Cart, item_id: int) -> CartItem:
    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        raise NotFoundError("Cart item not found", code="CART_ITEM_NOT_FOUND")
    return item


def update_item(
    tenant_id: int,
    item_id: int,
    quantity: int,
    *,
    customer_id: str | None = None,
    session_id: str | None = None,
) -> Cart:
    with tenant_transaction(tenant_id) as session:
        cart = _get_or_create(session, tenant_id, customer_id, session_id)
        item = _cart_item(cart, item_id)
        enforce(validate_cart_item(tenant_id, item.product_id, quantity))
        item.quantity = quantity
        session.flush()
    return cart


def remove_item(
    tenant_id: int,
    item_id: int,
    *,
    customer_id: str | None = None,
    session_id: str | None = None,
) -> Cart:
    with tenant_transaction(tenant_id) as session:
        cart = _get_or_create(session, tenant_id, customer_id, session_id)
        cart.items.remove(_cart_item(cart, item_id))
        session.flush()
    return cart


def clear_cart(tenant_id: int, *, customer_id: str | None = None, session_id: str | None = None) -> Cart:
    with tenant_transaction(tenant_id) as session:
        cart = _get_or_create(session, tenant_id, customer_id, session_id)
        cart.items.clear()
        session.flush()
    return cart


def checkout(
    tenant_id: int,
    data: dict,
    *,
    customer_id: str | None = None,
    session_id: str | None = None,
):
    """
    Convert the cart into an order.

    Args:
        data: CheckoutSchema output (customer, addresses, shipping/tax/discount, notes)

    Raises:
        BusinessRuleViolation: CART_EMPTY or any order-creation rule
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            cart = _find_cart(session, tenant_id, customer_id, session_id)
            if cart is None or cart.is_expired() or not cart.items:
                raise BusinessRuleViolation("Cart is empty", code="CART_EMPTY")

            products = {
                p.id: p
                for p in session.execute(
                    select(Product).where(
                        Product.tenant_id == tenant_id,
                        Product.id.in_({i.product_id for i in cart.items}),
                    )
                ).scalars()
            }
            items = []
            for line in cart.items:
                product = products.get(line.product_id)
                items.append({
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                    "name": product.name if product is not None else f"Product {line.product_id}",
                    "price": product.price if product is not None else 0,
                    "quantity": line.quantity,
                    "image_url": _primary_image(product),
                })

            tenant = session.get(Tenant, tenant_id)
            order_data = {
                **data,
                "items": items,
                "currency": (tenant.settings or {}).get("currency", "USD"),
            }
            order_data["total"] = round(
                sum(i["price"] * i["quantity"] for i in items)
                + data.get("tax_amount", 0)
                + data.get("shipping_amount", 0)
                - data.get("discount_amount", 0),
                2,
            )
            if order_data["total"] < 0:
                raise BusinessRuleViolation(
                    "Discount exceeds order amount",
                    code="INVALID_DISCOUNT",
                    details={"discount": data.get("discount_amount", 0), "calculated": order_data["total"]},
                )
            order = create_order_locked(session, tenant_id, order_data, customer_id=customer_id)
            cart.items.clear()
            session.flush()

        current_app.logger.info(
            "Checkout completed: tenant=%s cart=%s order=%s", tenant_id, cart.id, order.order_number
        )
        return order

    return run_with_retry(_op)


def _primary_image(product: Product | None) -> str | None:
    if product is None or not product.images:
        return None
    primary = next((img for img in product.images if img.get("isPrimary")), None)
    return (primary or product.images[0]).get("url")
