# Overview: Flask API routes for store settings and custom domain; parses input and returns JSON responses.

from __future__ import annotations

from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import ok
from ..services import tenant_service
from ..validation import validate_body, validate_body_partial
from ..validation.schemas import domain_change_schema, store_settings_update_schema

settings_bp = Blueprint("settings", __name__, url_prefix="/api/admin/<tenant_slug>/settings")


@settings_bp.get("")
@require_tenant
@require_user
@require_role("VIEWER")
def get_settings(tenant_slug):
    return ok(tenant_service.get_settings(g.tenant_id))


@settings_bp.patch("")
@require_tenant
@require_user
@require_role("ADMIN")
@validate_body_partial(store_settings_update_schema)
def update_settings(changes, tenant_slug):
    """Nested groups (theme, checkout, notifications, social) merge one level deep."""
    return ok(tenant_service.update_settings(g.tenant_id, changes))


@settings_bp.put("/domain")
@require_tenant
@require_user
@require_role("OWNER")
@validate_body(domain_change_schema)
def change_domain(data, tenant_slug):
    """Requires a plan with custom domains; ``null`` removes the domain."""
    tenant = tenant_service.change_domain(g.tenant_id, data["domain"])
    return ok(tenant.to_dict())
