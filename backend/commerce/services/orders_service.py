"""
Orders Service - order intake and lifecycle.

WHY: An order is the only place stock leaves the shelf. Creation re-checks
every line against locked product rows and decrements stock in the same
transaction, so two checkouts racing for the last unit cannot both succeed.

DESIGN:
- create_order_locked() is the inner form (no commit, no retry) shared with
  cart checkout; create_order() wraps it in tenant_transaction + retry
- Line items freeze product name and unit price at order time
- Status changes follow rules.orders.STATUS_TRANSITIONS; cancelling returns
  the stock through RETURN movements
"""
from __future__ import annotations

import secrets

from flask import current_app
from sqlalchemy import asc, desc, select

from ..errors import NotFoundError
from ..models import Order, OrderItem, Product
from ..rules import enforce, validate_order_creation, validate_order_status_transition
from ..tenancy import tenant_transaction
from ..time_utils import as_utc_naive, utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import record_movement
from .pagination import paginate

SORT_COLUMNS = {
    "createdAt": Order.created_at,
    "total": Order.total,
    "orderNumber": Order.order_number,
    "status": Order.status,
}


def generate_order_number(session, tenant_id: int) -> str:
    """PREFIX-YYYYMMDD-XXXXXX, unique within the tenant."""
    prefix = current_app.config.get("ORDER_NUMBER_PREFIX", "ORD")
    while True:
        candidate = f"{prefix}-{utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"
        exists = session.execute(
            select(Order.id).where(Order.tenant_id == tenant_id, Order.order_number == candidate)
        ).scalar()
        if exists is None:
            return candidate


def _filtered(tenant_id: int, filters: dict, customer_id: str | None):
    stmt = select(Order).where(Order.tenant_id == tenant_id)
    if customer_id is not None:
        stmt = stmt.where(Order.customer_id == customer_id)
    for field in ("status", "payment_status", "fulfillment_status", "order_number"):
        if filters.get(field):
            stmt = stmt.where(getattr(Order, field) == filters[field])
    if filters.get("date_from"):
        stmt = stmt.where(Order.created_at >= as_utc_naive(filters["date_from"]))
    if filters.get("date_to"):
        stmt = stmt.where(Order.created_at <= as_utc_naive(filters["date_to"]))
    if filters.get("customer_email"):
        stmt = stmt.where(Order.customer["email"].as_string() == filters["customer_email"])

    column = SORT_COLUMNS.get(filters.get("sort_by") or "createdAt", Order.created_at)
    direction = asc if filters.get("sort_order") == "asc" else desc
    return stmt.order_by(direction(column), direction(Order.id))


def list_orders(tenant_id: int, filters: dict | None = None, *, customer_id: str | None = None) -> dict:
    filters = filters or {}
    with tenant_transaction(tenant_id) as session:
        return paginate(
            session,
            _filtered(tenant_id, filters, customer_id),
            page=filters.get("page", 1),
            limit=filters.get("limit", 20),
        )


def get_order(tenant_id: int, order_id: int, *, customer_id: str | None = None) -> Order:
    with tenant_transaction(tenant_id) as session:
        stmt = select(Order).where(Order.tenant_id == tenant_id, Order.id == order_id)
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        order = session.execute(stmt).scalar()
    if order is None:
        raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
    return order


def create_order_locked(
    session,
    tenant_id: int,
    data: dict,
    *,
    customer_id: str | None = None,
    created_by: str | None = None,
) -> Order:
    """
    Core order creation without commit or retry.

    Must run inside tenant_transaction(tenant_id). Product rows are locked by
    the order rule before stock is decremented.
    """
    enforce(validate_order_creation(tenant_id, data, lock=True))

    items = data["items"]
    subtotal = round(sum(item["price"] * item["quantity"] for item in items), 2)
    order = Order(
        tenant_id=tenant_id,
        order_number=data.get("order_number") or generate_order_number(session, tenant_id),
        customer_id=customer_id or data.get("customer_id"),
        status="pending",
        payment_status=data.get("payment_status", "pending"),
        fulfillment_status="unfulfilled",
        subtotal=subtotal,
        tax_amount=data.get("tax_amount") or 0,
        shipping_amount=data.get("shipping_amount") or 0,
        discount_amount=data.get("discount_amount") or 0,
        total=data["total"],
        currency=data.get("currency", "USD"),
        customer=data["customer"],
        shipping_address=data["shipping_address"],
        billing_address=data.get("billing_address") or data["shipping_address"],
        notes=data.get("notes"),
    )
    for item in items:
        order.items.append(OrderItem(
            tenant_id=tenant_id,
            product_id=item["product_id"],
            variant_id=item.get("variant_id"),
            name=item["name"],
            price=item["price"],
            quantity=item["quantity"],
            total=round(item["price"] * item["quantity"], 2),
            image_url=item.get("image_url"),
        ))
    session.add(order)
    session.flush()

    for item in items:
        product = session.get(Product, item["product_id"])
        record_movement(
            session, product, "OUT", item["quantity"], "Order placed",
            reference=order.order_number, created_by=created_by,
        )
    session.flush()
    return order


def create_order(tenant_id: int, data: dict, *, customer_id: str | None = None, created_by: str | None = None) -> Order:
    """
    Create an order and decrement stock atomically.

    Raises:
        BusinessRuleViolation: INVALID_QUANTITY, INVALID_PRODUCT,
            INSUFFICIENT_INVENTORY or INVALID_ORDER_TOTAL
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            order = create_order_locked(session, tenant_id, data, customer_id=customer_id, created_by=created_by)
        current_app.logger.info(
            "Order created: tenant=%s number=%s total=%s items=%s",
            tenant_id, order.order_number, order.total, len(order.items),
        )
        return order

    return run_with_retry(_op)


def update_status(tenant_id: int, order_id: int, new_status: str, *, created_by: str | None = None) -> Order:
    """
    Move an order along the status graph.

    shipped/delivered stamp their timestamps; cancelled restocks every line.
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            order = session.execute(
                lock_for_update(select(Order).where(Order.tenant_id == tenant_id, Order.id == order_id))
            ).scalar()
            if order is None:
                raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
            enforce(validate_order_status_transition(order.status, new_status))

            previous = order.status
            order.status = new_status
            if new_status == "shipped":
                order.shipped_at = utcnow()
                order.fulfillment_status = "fulfilled"
            elif new_status == "delivered":
                order.delivered_at = utcnow()
            elif new_status == "refunded":
                order.payment_status = "refunded"
            elif new_status == "cancelled":
                for item in order.items:
                    product = session.execute(
                        lock_for_update(select(Product).where(Product.id == item.product_id))
                    ).scalar_one()
                    record_movement(
                        session, product, "RETURN", item.quantity, "Order cancelled",
                        reference=order.order_number, created_by=created_by,
                    )
            session.flush()
        current_app.logger.info(
            "Order status changed: tenant=%s number=%s %s -> %s",
            tenant_id, order.order_number, previous, new_status,
        )
        return order

    return run_with_retry(_op)
