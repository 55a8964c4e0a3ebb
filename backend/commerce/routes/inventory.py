# Overview: Flask API routes for stock movements and low-stock reporting; parses input and returns JSON responses.

"""
Inventory routes.

SECURITY:
- Reports and movement history require VIEWER
- Manual adjustments require STAFF

Movement types: IN and RETURN add stock, OUT removes it, ADJUSTMENT sets the
absolute on-hand quantity (stock counts).
"""
from flask import Blueprint, g, request

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..services import inventory_service
from ..validation import validate_body
from ..validation.schemas import stock_adjustment_schema

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/admin/<tenant_slug>/inventory")


@inventory_bp.get("/movements")
@require_tenant
@require_user
@require_role("VIEWER")
def list_movements(tenant_slug):
    """
    Query params:
    - productId: int (optional)
    - limit: int (default 50, max 200)
    """
    product_id = request.args.get("productId", type=int)
    limit = min(request.args.get("limit", 50, type=int) or 50, 200)
    return ok(inventory_service.list_movements(g.tenant_id, product_id=product_id, limit=limit))


@inventory_bp.post("/products/<int:product_id>/adjust")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(stock_adjustment_schema)
def adjust_stock(data, tenant_slug, product_id):
    return created(inventory_service.adjust_stock(g.tenant_id, product_id, data, created_by=g.user_id))


@inventory_bp.get("/low-stock")
@require_tenant
@require_user
@require_role("VIEWER")
def low_stock(tenant_slug):
    return ok(inventory_service.low_stock_report(g.tenant_id))


@inventory_bp.get("/summary")
@require_tenant
@require_user
@require_role("VIEWER")
def summary(tenant_slug):
    return ok(inventory_service.inventory_summary(g.tenant_id))
