# Overview: Flask API routes for merchant category management; parses input and returns JSON responses.

from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..rules import with_category_creation_rules, with_category_deletion_rules, with_category_update_rules
from ..services import categories_service
from ..validation import validate_body, validate_body_partial
from ..validation.schemas import category_create_schema, category_update_schema

categories_bp = Blueprint("categories", __name__, url_prefix="/api/admin/<tenant_slug>/categories")


@categories_bp.get("")
@require_tenant
@require_user
@require_role("VIEWER")
def list_categories(tenant_slug):
    return ok(categories_service.list_categories(g.tenant_id))


@categories_bp.get("/<int:category_id>")
@require_tenant
@require_user
@require_role("VIEWER")
def get_category(tenant_slug, category_id):
    return ok(categories_service.get_category(g.tenant_id, category_id).to_dict())


@categories_bp.post("")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body(category_create_schema)
@with_category_creation_rules
def create_category(data, tenant_slug):
    """Slug is optional; when omitted it is derived from the name."""
    return created(categories_service.create_category(g.tenant_id, data).to_dict())


@categories_bp.patch("/<int:category_id>")
@require_tenant
@require_user
@require_role("STAFF")
@validate_body_partial(category_update_schema)
@with_category_update_rules
def update_category(data, tenant_slug, category_id):
    return ok(categories_service.update_category(g.tenant_id, category_id, data).to_dict())


@categories_bp.delete("/<int:category_id>")
@require_tenant
@require_user
@require_role("ADMIN")
@with_category_deletion_rules
def delete_category(tenant_slug, category_id):
    categories_service.delete_category(g.tenant_id, category_id)
    return ok({"id": category_id, "deleted": True})
