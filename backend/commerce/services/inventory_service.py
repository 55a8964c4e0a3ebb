"""
Inventory Service: stock movements on tracked products.

WHY: Product.quantity is the only stock figure the storefront reads, so every
change to it goes through record_movement() which appends a StockMovement in
the same transaction. Order creation, cancellation and manual adjustments all
land here.

DESIGN:
- IN / RETURN add, OUT subtracts, ADJUSTMENT sets the absolute quantity
- Untracked products still get a movement row but their quantity is not touched
- Stock never goes below zero unless the product allows backorder
- Public operations lock the product row and retry on optimistic-lock conflicts
"""
from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import select

from ..errors import BusinessRuleViolation, NotFoundError
from ..models import Product, StockMovement
from ..tenancy import TenantRepository, tenant_transaction
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry

SEVERITY_ORDER = {"CRITICAL": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}


def _movement_delta(product: Product, movement_type: str, quantity: int) -> int:
    if movement_type in ("IN", "RETURN"):
        return quantity
    if movement_type == "OUT":
        return -quantity
    if movement_type == "ADJUSTMENT":
        return quantity - product.quantity
    raise ValueError(f"Unknown movement type: {movement_type}")


def record_movement(
    session,
    product: Product,
    movement_type: str,
    quantity: int,
    reason: str,
    *,
    reference: str | None = None,
    created_by: str | None = None,
) -> StockMovement:
    """Core movement logic without locking, retry or commit."""
    delta = _movement_delta(product, movement_type, quantity) if product.track_quantity else 0
    new_quantity = product.quantity + delta
    if new_quantity < 0 and not product.allow_backorder:
        raise BusinessRuleViolation(
            "Stock movement would make quantity negative",
            code="INSUFFICIENT_INVENTORY",
            details={"productId": product.id, "available": product.quantity, "requested": quantity},
        )
    product.quantity = new_quantity

    movement = StockMovement(
        tenant_id=product.tenant_id,
        product_id=product.id,
        type=movement_type,
        quantity_delta=delta,
        quantity_after=new_quantity,
        reason=reason,
        reference=reference,
        created_by=created_by,
    )
    session.add(movement)
    return movement


def _locked_product(session, tenant_id: int, product_id: int) -> Product:
    stmt = select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
    product = session.execute(lock_for_update(stmt)).scalar()
    if product is None:
        raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
    return product


def adjust_stock(tenant_id: int, product_id: int, data: dict, *, created_by: str | None = None) -> dict:
    """
    Apply a manual stock movement.

    Args:
        data: StockAdjustmentSchema output (type, quantity, reason, reference)

    Returns:
        {"product": ..., "movement": ...}
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            product = _locked_product(session, tenant_id, product_id)
            movement = record_movement(
                session,
                product,
                data["type"],
                data["quantity"],
                data["reason"],
                reference=data.get("reference"),
                created_by=created_by,
            )
            session.flush()
        current_app.logger.info(
            "Stock movement: tenant=%s product=%s type=%s delta=%s after=%s",
            tenant_id, product_id, movement.type, movement.quantity_delta, movement.quantity_after,
        )
        return {"product": product.to_dict(), "movement": movement.to_dict()}

    return run_with_retry(_op)


def list_movements(tenant_id: int, *, product_id: int | None = None, limit: int = 50) -> list[dict]:
    where = {"product_id": product_id} if product_id is not None else None
    rows = TenantRepository(StockMovement, tenant_id).find_many(
        where,
        order_by=[StockMovement.created_at.desc(), StockMovement.id.desc()],
        limit=limit,
    )
    return [m.to_dict() for m in rows]


def low_stock_report(tenant_id: int) -> list[dict]:
    """
    Tracked, non-archived products at or below their threshold.

    Out of stock is CRITICAL; at or below half the threshold is HIGH;
    anything else under the threshold is MEDIUM.
    """
    products = TenantRepository(Product, tenant_id).find_many(
        criteria=[
            Product.track_quantity.is_(True),
            Product.status != "archived",
            Product.quantity <= Product.low_stock_threshold,
        ],
        order_by=[Product.quantity.asc(), Product.id.asc()],
    )
    alerts = []
    for product in products:
        threshold = product.low_stock_threshold
        if product.quantity <= 0:
            alert_type, severity = "OUT_OF_STOCK", "CRITICAL"
        elif product.quantity <= threshold / 2:
            alert_type, severity = "LOW_STOCK", "HIGH"
        else:
            alert_type, severity = "LOW_STOCK", "MEDIUM"
        alerts.append({
            "productId": product.id,
            "productName": product.name,
            "sku": product.sku,
            "currentStock": product.quantity,
            "threshold": threshold,
            "alertType": alert_type,
            "severity": severity,
        })
    alerts.sort(key=lambda a: -SEVERITY_ORDER[a["severity"]])
    return alerts


def inventory_summary(tenant_id: int) -> dict:
    repo = TenantRepository(Product, tenant_id)
    tracked = repo.find_many(criteria=[Product.track_quantity.is_(True), Product.status != "archived"])
    week_ago = utcnow() - timedelta(days=7)
    recent = TenantRepository(StockMovement, tenant_id).count(criteria=[StockMovement.created_at >= week_ago])
    return {
        "totalProducts": len(tracked),
        "lowStockProducts": sum(1 for p in tracked if 0 < p.quantity <= p.low_stock_threshold),
        "outOfStockProducts": sum(1 for p in tracked if p.quantity <= 0),
        "totalValue": round(sum(p.quantity * p.price for p in tracked), 2),
        "recentMovements": recent,
    }
