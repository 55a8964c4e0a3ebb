from __future__ import annotations

from sqlalchemy import select

from ..models import Product
from ..tenancy import tenant_transaction
from .results import PASS, RuleResult, fail

MAX_QUANTITY_PER_ITEM = 100


def validate_cart_item(tenant_id: int, product_id: int, quantity: int) -> RuleResult:
    """Quantity must sit in [1, 100]; the product must be active and in stock."""
    if quantity <= 0:
        return fail("Quantity must be greater than 0", "INVALID_QUANTITY", {"requested": quantity})
    if quantity > MAX_QUANTITY_PER_ITEM:
        return fail(
            f"Maximum quantity per item is {MAX_QUANTITY_PER_ITEM}",
            "QUANTITY_EXCEEDED",
            {"maxQuantity": MAX_QUANTITY_PER_ITEM, "requested": quantity},
        )

    with tenant_transaction(tenant_id) as session:
        product = session.execute(
            select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
        ).scalar()
        if product is None or product.status != "active":
            return fail("Product not found or inactive", "INVALID_PRODUCT", {"productId": product_id})

        if product.is_stock_limited and product.quantity < quantity:
            return fail(
                "Insufficient inventory",
                "INSUFFICIENT_INVENTORY",
                {"productId": product_id, "available": product.quantity, "requested": quantity},
            )
    return PASS
