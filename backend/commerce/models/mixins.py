from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..time_utils import utcnow


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=db.func.now(),
    )


class TenantScopedMixin:
    """
    Marks a model as owned by exactly one tenant.

    MULTI-TENANT: every ORM SELECT issued inside tenant_transaction() gets a
    ``tenant_id = :tenant`` criteria for all models carrying this mixin, and
    flushes refuse rows belonging to any other tenant (see commerce.tenancy).
    """

    @declared_attr
    def tenant_id(cls):
        return db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
