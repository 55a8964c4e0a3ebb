# Overview: Flask API routes for merchant product management; parses input and returns JSON responses.

"""
Admin product routes.

MULTI-TENANT: every route is bound to the tenant named in the URL by
@require_tenant; services receive g.tenant_id and nothing else.

SECURITY:
- Read operations require VIEWER
- Write operations require STAFF
"""
from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..rules import with_product_creation_rules, with_product_update_rules
from ..services import products_service
from ..validation import validate_body, validate_body_partial, validate_query
from ..validation.schemas import product_create_schema, product_query_schema, product_update_schema

products_bp = Blueprint("products", __name__, url_prefix="/api/admin/<tenant_slug>/products")


@products_bp.get("")
@require_tenant
@require_user
@require_role("VIEWER")
@validate_query(product_query_schema)
def list_products(query, tenant_slug):
    """
    Query params: page, limit, sortBy, sortOrder, categoryId, status,
    priceMin, priceMax, inStock, isBestSeller, isNewArrival, isFeatured,
    tags (comma separated), search.
    """
    return ok(products_service.list_products(g.tenant_id, query))


@products_bp.get("/<int:product_id>")
@require_tenant
@require_user
@require_role("VIEWER")
def get_product(tenant_slug, product_id):
    return ok(products_service.get_product(g.tenant_id, product_id).to_dict())


@products_bp.post("")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(product_create_schema)
@with_product_creation_rules
def create_product(data, tenant_slug):
    product = products_service.create_product(g.tenant_id, data, created_by=g.user_id)
    return created(product.to_dict())


@products_bp.patch("/<int:product_id>")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body_partial(product_update_schema)
@with_product_update_rules
def update_product(data, tenant_slug, product_id):
    product = products_service.update_product(g.tenant_id, product_id, data, created_by=g.user_id)
    return ok(product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_tenant
@require_user
@require_role("ADMIN")
def archive_product(tenant_slug, product_id):
    """Products are archived, never removed; order history keeps pointing at them."""
    product = products_service.archive_product(g.tenant_id, product_id)
    return ok(product.to_dict())
