"""Order rules: line item sanity, stock sufficiency, declared totals and the status graph."""
from __future__ import annotations

from typing import Mapping

from sqlalchemy import select

from ..models import Product
from ..tenancy import tenant_transaction
from .results import PASS, RuleResult, fail

TOTAL_TOLERANCE = 0.01

STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered",),
    "delivered": ("refunded",),
    "cancelled": (),
    "refunded": (),
}
TERMINAL_STATUSES = tuple(status for status, nxt in STATUS_TRANSITIONS.items() if not nxt)


def calculate_total(data: Mapping) -> float:
    subtotal = sum(item["price"] * item["quantity"] for item in data.get("items") or [])
    total = (
        subtotal
        + (data.get("tax_amount") or 0)
        + (data.get("shipping_amount") or 0)
        - (data.get("discount_amount") or 0)
    )
    return round(total, 2)


def validate_order_creation(tenant_id: int, data: Mapping, *, lock: bool = False) -> RuleResult:
    """
    ``lock=True`` takes row locks on the referenced products; callers pass it
    when the same transaction goes on to decrement stock.
    """
    items = data.get("items") or []
    for item in items:
        if item["quantity"] <= 0:
            return fail("Item quantity must be greater than 0", "INVALID_QUANTITY", {"productId": item["product_id"]})

    with tenant_transaction(tenant_id) as session:
        stmt = select(Product).where(
            Product.tenant_id == tenant_id,
            Product.id.in_({item["product_id"] for item in items}),
        )
        if lock:
            stmt = stmt.with_for_update()
        products = {p.id: p for p in session.execute(stmt).scalars()}

        requested: dict[int, int] = {}
        for item in items:
            product = products.get(item["product_id"])
            if product is None or product.status != "active":
                return fail(
                    f"Product {item['product_id']} not found or inactive",
                    "INVALID_PRODUCT",
                    {"productId": item["product_id"]},
                )
            requested[product.id] = requested.get(product.id, 0) + item["quantity"]

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.is_stock_limited and product.quantity < quantity:
                return fail(
                    f"Insufficient inventory for product {product.name}. "
                    f"Available: {product.quantity}, Requested: {quantity}",
                    "INSUFFICIENT_INVENTORY",
                    {"productId": product_id, "available": product.quantity, "requested": quantity},
                )

    calculated = calculate_total(data)
    provided = data.get("total")
    if provided is None or abs(provided - calculated) > TOTAL_TOLERANCE:
        return fail(
            "Order total does not match calculated total",
            "INVALID_ORDER_TOTAL",
            {"provided": provided, "calculated": calculated},
        )
    return PASS


def validate_order_status_transition(current_status: str, new_status: str) -> RuleResult:
    allowed = STATUS_TRANSITIONS.get(current_status, ())
    if new_status not in allowed:
        return fail(
            f"Invalid status transition from {current_status} to {new_status}",
            "INVALID_STATUS_TRANSITION",
            {"currentStatus": current_status, "newStatus": new_status, "validTransitions": list(allowed)},
        )
    return PASS
