"""
Product rules.

Pure checks on the payload run first, then the checks that read tenant
state. All reads go through tenant_transaction so a rule evaluated inside a
service's write transaction sees (and locks) the same rows.
"""
from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import func, select

from ..models import Category, Product, Tenant
from ..tenancy import tenant_transaction
from .results import PASS, RuleResult, fail
from .tenants import product_limit


def _check_prices(price: Any, compare_at_price: Any) -> RuleResult:
    if compare_at_price is not None and price is not None and compare_at_price <= price:
        return fail("Compare at price must be greater than regular price", "INVALID_COMPARE_PRICE")
    if price is not None and price <= 0:
        return fail("Price must be greater than 0", "INVALID_PRICE")
    return PASS


def _check_inventory(inventory: Mapping | None) -> RuleResult:
    if not inventory or not inventory.get("track_quantity"):
        return PASS
    if inventory.get("quantity", 0) < 0:
        return fail("Inventory quantity cannot be negative", "INVALID_INVENTORY")
    if inventory.get("low_stock_threshold", 0) < 0:
        return fail("Low stock threshold cannot be negative", "INVALID_LOW_STOCK_THRESHOLD")
    return PASS


def _check_sku(session, tenant_id: int, sku: str | None, exclude_id: int | None = None) -> RuleResult:
    if not sku:
        return PASS
    stmt = select(Product.id).where(Product.tenant_id == tenant_id, Product.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    existing = session.execute(stmt).scalar()
    if existing is not None:
        return fail("SKU already exists", "DUPLICATE_SKU", {"sku": sku, "existingProductId": existing})
    return PASS


def _check_categories(session, tenant_id: int, category_ids) -> RuleResult:
    if not category_ids:
        return PASS
    found = set(
        session.execute(
            select(Category.id).where(Category.tenant_id == tenant_id, Category.id.in_(set(category_ids)))
        ).scalars()
    )
    for category_id in category_ids:
        if category_id not in found:
            return fail(
                f"Category {category_id} does not exist or does not belong to this tenant",
                "INVALID_CATEGORY",
                {"categoryId": category_id},
            )
    return PASS


def validate_product_creation(tenant_id: int, data: Mapping) -> RuleResult:
    for result in (
        _check_prices(data.get("price"), data.get("compare_at_price")),
        _check_inventory(data.get("inventory")),
    ):
        if not result.valid:
            return result

    with tenant_transaction(tenant_id) as session:
        tenant = session.get(Tenant, tenant_id)
        if tenant is None:
            return fail("Tenant not found", "TENANT_NOT_FOUND")

        current = session.execute(
            select(func.count(Product.id)).where(Product.tenant_id == tenant_id, Product.status != "archived")
        ).scalar_one()
        limit = product_limit(tenant.plan)
        if current >= limit:
            return fail(
                f"Product limit reached. Maximum {limit} products allowed for {tenant.plan} plan.",
                "PRODUCT_LIMIT_EXCEEDED",
                {"current": current, "limit": limit, "plan": tenant.plan},
            )

        result = _check_sku(session, tenant_id, data.get("sku"))
        if not result.valid:
            return result
        return _check_categories(session, tenant_id, data.get("categories"))


def validate_product_update(tenant_id: int, product_id: int, data: Mapping) -> RuleResult:
    with tenant_transaction(tenant_id) as session:
        product = session.execute(
            select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
        ).scalar()
        if product is None:
            return fail("Product not found", "PRODUCT_NOT_FOUND", {"productId": product_id})

        sku = data.get("sku")
        if sku and sku != product.sku:
            result = _check_sku(session, tenant_id, sku, exclude_id=product.id)
            if not result.valid:
                return result

        if "price" in data and data["price"] is not None and data["price"] <= 0:
            return fail("Price must be greater than 0", "INVALID_PRICE")

        price = data["price"] if "price" in data else product.price
        compare_at = data["compare_at_price"] if "compare_at_price" in data else product.compare_at_price
        result = _check_prices(price, compare_at)
        if not result.valid:
            return result

        if "inventory" in data:
            merged = {
                "track_quantity": product.track_quantity,
                "quantity": product.quantity,
                "low_stock_threshold": product.low_stock_threshold,
                **(data["inventory"] or {}),
            }
            result = _check_inventory(merged)
            if not result.valid:
                return result

        if "categories" in data:
            return _check_categories(session, tenant_id, data["categories"])
    return PASS
