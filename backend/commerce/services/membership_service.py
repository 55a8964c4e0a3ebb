# Overview: Service-layer operations for tenant memberships (staff roles per tenant).

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, select

from ..errors import BusinessRuleViolation, NotFoundError
from ..extensions import db
from ..models import Membership, PlatformAdmin, User
from ..rules import enforce, validate_role_change
from ..tenancy import TenantRepository, tenant_transaction


def get_active_membership(tenant_id: int, user_id: int) -> Membership | None:
    return TenantRepository(Membership, tenant_id).find_unique({"user_id": user_id, "is_active": True})


def get_platform_role(user_id: int) -> str | None:
    return db.session.execute(select(PlatformAdmin.role).where(PlatformAdmin.user_id == user_id)).scalar()


def list_members(tenant_id: int) -> list[dict]:
    members = TenantRepository(Membership, tenant_id).find_many(order_by=[Membership.id])
    out = []
    for m in members:
        row = m.to_dict()
        row["user"] = {"id": m.user.id, "email": m.user.email, "name": m.user.name} if m.user else None
        out.append(row)
    return out


def _get_member(tenant_id: int, membership_id: int) -> Membership:
    membership = TenantRepository(Membership, tenant_id).get(membership_id)
    if membership is None:
        raise NotFoundError("Member not found", code="MEMBER_NOT_FOUND")
    return membership


def _ensure_not_last_owner(tenant_id: int, membership: Membership) -> None:
    if membership.role != "OWNER" or not membership.is_active:
        return
    owners = db.session.execute(
        select(func.count(Membership.id)).where(
            Membership.tenant_id == tenant_id,
            Membership.role == "OWNER",
            Membership.is_active.is_(True),
        )
    ).scalar_one()
    if owners <= 1:
        raise BusinessRuleViolation("A tenant must keep at least one owner", code="LAST_OWNER")


def add_member(tenant_id: int, *, email: str, name: str | None, role: str, actor_role: str) -> Membership:
    """Invite a user by email; reactivates a previously removed membership."""
    email = email.lower()
    with tenant_transaction(tenant_id) as session:
        user = session.execute(select(User).where(User.email == email)).scalar()
        if user is None:
            user = User(email=email, name=name or email.split("@", 1)[0], role="admin")
            session.add(user)
            session.flush()

        membership = TenantRepository(Membership, tenant_id).find_unique({"user_id": user.id})
        current_role = membership.role if membership is not None and membership.is_active else "VIEWER"
        enforce(validate_role_change(actor_role, current_role, role))

        if membership is None:
            membership = Membership(tenant_id=tenant_id, user_id=user.id, role=role, is_active=True)
            session.add(membership)
        else:
            membership.role = role
            membership.is_active = True
        session.flush()

    current_app.logger.info("Member added: tenant=%s user=%s role=%s", tenant_id, membership.user_id, role)
    return membership


def change_role(tenant_id: int, membership_id: int, role: str, *, actor_role: str) -> Membership:
    with tenant_transaction(tenant_id):
        membership = _get_member(tenant_id, membership_id)
        enforce(validate_role_change(actor_role, membership.role, role))
        if role != "OWNER":
            _ensure_not_last_owner(tenant_id, membership)
        membership.role = role
    return membership


def deactivate_member(tenant_id: int, membership_id: int, *, actor_role: str) -> Membership:
    """Removal keeps the row; the membership simply stops granting access."""
    with tenant_transaction(tenant_id):
        membership = _get_member(tenant_id, membership_id)
        enforce(validate_role_change(actor_role, membership.role, membership.role))
        _ensure_not_last_owner(tenant_id, membership)
        membership.is_active = False
    current_app.logger.info("Member deactivated: tenant=%s membership=%s", tenant_id, membership_id)
    return membership
