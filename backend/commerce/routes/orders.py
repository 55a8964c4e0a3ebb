# Overview: Flask API routes for merchant order management; parses input and returns JSON responses.

"""
Admin order routes.

- GET    /api/admin/<tenant_slug>/orders               list with filters
- GET    /api/admin/<tenant_slug>/orders/<id>          detail
- POST   /api/admin/<tenant_slug>/orders               manual order (phone / in-person)
- PATCH  /api/admin/<tenant_slug>/orders/<id>/status   move along the status graph
"""
from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..rules import with_order_creation_rules, with_order_status_rules
from ..services import orders_service
from ..validation import validate_body, validate_query
from ..validation.schemas import order_create_schema, order_query_schema, order_status_update_schema

orders_bp = Blueprint("orders", __name__, url_prefix="/api/admin/<tenant_slug>/orders")


@orders_bp.get("")
@require_tenant
@require_user
@require_role("VIEWER")
@validate_query(order_query_schema)
def list_orders(query, tenant_slug):
    return ok(orders_service.list_orders(g.tenant_id, query))


@orders_bp.get("/<int:order_id>")
@require_tenant
@require_user
@require_role("VIEWER")
def get_order(tenant_slug, order_id):
    return ok(orders_service.get_order(g.tenant_id, order_id).to_dict())


@orders_bp.post("")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(order_create_schema)
@with_order_creation_rules
def create_order(data, tenant_slug):
    order = orders_service.create_order(g.tenant_id, data, created_by=g.user_id)
    return created(order.to_dict())


@orders_bp.patch("/<int:order_id>/status")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(order_status_update_schema)
@with_order_status_rules
def update_order_status(data, tenant_slug, order_id):
    order = orders_service.update_status(g.tenant_id, order_id, data["status"], created_by=g.user_id)
    return ok(order.to_dict())
