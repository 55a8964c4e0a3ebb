# Overview: Flask API routes for merchant-side customer (tenant user) records; parses input and returns JSON responses.

from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..services import tenant_user_service
from ..validation import validate_body, validate_body_partial, validate_query
from ..validation.schemas import (
    tenant_user_create_schema,
    tenant_user_query_schema,
    tenant_user_update_schema,
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/admin/<tenant_slug>/customers")


@customers_bp.get("")
@require_tenant
@require_user
@require_role("VIEWER")
@validate_query(tenant_user_query_schema)
def list_customers(query, tenant_slug):
    return ok(tenant_user_service.list_tenant_users(
        g.tenant_id,
        page=query["page"],
        limit=query["limit"],
        search=query.get("search"),
    ))


@customers_bp.get("/<customer_id>")
@require_tenant
@require_user
@require_role("VIEWER")
def get_customer(tenant_slug, customer_id):
    return ok(tenant_user_service.get_tenant_user(g.tenant_id, customer_id))


@customers_bp.post("")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(tenant_user_create_schema)
def create_customer(data, tenant_slug):
    return created(tenant_user_service.create_tenant_user(g.tenant_id, data))


@customers_bp.patch("/<customer_id>")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body_partial(tenant_user_update_schema)
def update_customer(data, tenant_slug, customer_id):
    return ok(tenant_user_service.update_tenant_user(g.tenant_id, customer_id, data))


@customers_bp.delete("/<customer_id>")
@require_tenant
@require_user
@require_role("ADMIN")
def deactivate_customer(tenant_slug, customer_id):
    """Soft delete: the record stays and keeps its link to the global user."""
    return ok(tenant_user_service.deactivate_tenant_user(g.tenant_id, customer_id))
