from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .mixins import TenantScopedMixin, TimestampMixin

PLANS = ("free", "basic", "premium", "enterprise")
TENANT_STATUSES = ("active", "inactive", "suspended", "pending")
MEMBER_ROLES = ("OWNER", "ADMIN", "STAFF", "VIEWER")
PLATFORM_ROLES = ("SUPER_ADMIN", "SUPPORT", "BILLING")


class Tenant(TimestampMixin, db.Model):
    """
    Multi-tenant root: every merchant is a Tenant.

    DESIGN:
    - slug is globally unique, lowercase, and immutable once assigned
    - domain is an optional custom domain resolved when the host has no slug
    - settings is an open-ended map validated loosely by StoreSettingsSchema
    - tenants are never hard-deleted outside the CLI purge command
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(100), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    domain = db.Column(db.String(253), nullable=True, unique=True, index=True)

    plan = db.Column(db.String(16), nullable=False, default="free")
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    settings = db.Column(db.JSON, nullable=False, default=dict)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    logo_url = db.Column(db.String(2048), nullable=True)
    website_url = db.Column(db.String(2048), nullable=True)
    subscription_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    owner = db.relationship("User", foreign_keys=[owner_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r} plan={self.plan}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "domain": self.domain,
            "plan": self.plan,
            "status": self.status,
            "settings": self.settings or {},
            "ownerId": self.owner_id,
            "logoUrl": self.logo_url,
            "websiteUrl": self.website_url,
            "subscriptionExpiresAt": to_utc_z(self.subscription_expires_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class User(TimestampMixin, db.Model):
    """Global identity; tenant access is granted through Membership rows."""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(16), nullable=True)
    role = db.Column(db.String(16), nullable=False, default="customer")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    phone_verified = db.Column(db.Boolean, nullable=False, default=False)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
            "isActive": self.is_active,
            "emailVerified": self.email_verified,
            "phoneVerified": self.phone_verified,
            "lastLoginAt": to_utc_z(self.last_login_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Membership(TenantScopedMixin, TimestampMixin, db.Model):
    """Per-tenant role of a global user. Removal deactivates, never deletes."""
    __tablename__ = "memberships"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default="VIEWER")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "userId": self.user_id,
            "role": self.role,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class PlatformAdmin(TimestampMixin, db.Model):
    __tablename__ = "platform_admins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    role = db.Column(db.String(16), nullable=False, default="SUPPORT")

    user = db.relationship("User")
