# Overview: Flask API routes for tenant staff memberships; parses input and returns JSON responses.

"""
Staff membership routes.

Roles rank OWNER > ADMIN > STAFF > VIEWER. An actor may only grant or
revoke roles below their own (owners may manage everyone), and a tenant
always keeps at least one active owner.
"""
from flask import Blueprint, g

from ..decorators import require_role, require_tenant, require_user
from ..http import created, ok
from ..services import membership_service
from ..validation import validate_body
from ..validation.schemas import member_invite_schema, member_role_schema

members_bp = Blueprint("members", __name__, url_prefix="/api/admin/<tenant_slug>/members")


@members_bp.get("")
@require_tenant
@require_user
@require_role("ADMIN")
def list_members(tenant_slug):
    return ok(membership_service.list_members(g.tenant_id))


@members_bp.post("")
@require_tenant
@require_user
@require_role("ADMIN")
@validate_body(member_invite_schema)
def add_member(data, tenant_slug):
    membership = membership_service.add_member(
        g.tenant_id,
        email=data["email"],
        name=data.get("name"),
        role=data["role"],
        actor_role=g.member_role,
    )
    return created(membership.to_dict())


@members_bp.patch("/<int:membership_id>")
@require_tenant
@require_user
@require_role("ADMIN")
@validate_body(member_role_schema)
def change_role(data, tenant_slug, membership_id):
    membership = membership_service.change_role(
        g.tenant_id, membership_id, data["role"], actor_role=g.member_role
    )
    return ok(membership.to_dict())


@members_bp.delete("/<int:membership_id>")
@require_tenant
@require_user
@require_role("ADMIN")
def deactivate_member(tenant_slug, membership_id):
    membership = membership_service.deactivate_member(g.tenant_id, membership_id, actor_role=g.member_role)
    return ok(membership.to_dict())
