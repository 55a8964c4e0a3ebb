# Overview: Flask API routes for platform administration of merchants; parses input and returns JSON responses.

"""
Platform admin routes (operator facing, not tenant scoped).

SECURITY: all routes require a PlatformAdmin row for the X-User-Id caller.
- Listing: any platform role
- Onboarding, status and domain changes: SUPER_ADMIN or SUPPORT
- Plan changes: SUPER_ADMIN or BILLING
"""
from flask import Blueprint, request

from ..decorators import require_platform_role, require_user
from ..http import bad_request, created, ok
from ..models.tenancy import PLANS, TENANT_STATUSES
from ..services import tenant_service
from ..validation import validate_body
from ..validation.schemas import (
    domain_change_schema,
    plan_change_schema,
    tenant_onboarding_schema,
    tenant_status_change_schema,
)

platform_bp = Blueprint("platform", __name__, url_prefix="/api/platform/tenants")


@platform_bp.get("")
@require_user
@require_platform_role()
def list_tenants():
    """
    Query params:
    - status, plan: exact filters
    - page, limit: pagination (limit max 100)
    """
    status = request.args.get("status")
    plan = request.args.get("plan")
    if status and status not in TENANT_STATUSES:
        return bad_request(f"Invalid status: {status}", "VALIDATION_ERROR")
    if plan and plan not in PLANS:
        return bad_request(f"Invalid plan: {plan}", "VALIDATION_ERROR")
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    limit = max(1, min(request.args.get("limit", 20, type=int) or 20, 100))
    return ok(tenant_service.list_tenants(status=status, plan=plan, page=page, limit=limit))


@platform_bp.get("/<int:tenant_id>")
@require_user
@require_platform_role()
def get_tenant(tenant_id):
    return ok(tenant_service.get_tenant(tenant_id).to_dict())


@platform_bp.post("")
@require_user
@require_platform_role("SUPER_ADMIN", "SUPPORT")
@validate_body(tenant_onboarding_schema)
def onboard_tenant(data):
    return created(tenant_service.onboard_tenant(data).to_dict())


@platform_bp.patch("/<int:tenant_id>/status")
@require_user
@require_platform_role("SUPER_ADMIN", "SUPPORT")
@validate_body(tenant_status_change_schema)
def change_status(data, tenant_id):
    return ok(tenant_service.change_status(tenant_id, data["status"]).to_dict())


@platform_bp.patch("/<int:tenant_id>/plan")
@require_user
@require_platform_role("SUPER_ADMIN", "BILLING")
@validate_body(plan_change_schema)
def change_plan(data, tenant_id):
    """Upgrades only; downgrades are rejected with PLAN_DOWNGRADE_NOT_ALLOWED."""
    return ok(tenant_service.change_plan(tenant_id, data["plan"]).to_dict())


@platform_bp.patch("/<int:tenant_id>/domain")
@require_user
@require_platform_role("SUPER_ADMIN", "SUPPORT")
@validate_body(domain_change_schema)
def change_domain(data, tenant_id):
    return ok(tenant_service.change_domain(tenant_id, data["domain"]).to_dict())
