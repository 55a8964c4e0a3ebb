from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .mixins import TenantScopedMixin

MOVEMENT_TYPES = ("IN", "OUT", "ADJUSTMENT", "RETURN")


class StockMovement(TenantScopedMixin, db.Model):
    """
    Append-only record of every change to a tracked product quantity.

    quantity_delta is signed (IN/RETURN positive, OUT negative, ADJUSTMENT
    whatever moves the count to the requested value); quantity_after is the
    on-hand figure once the movement is applied.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_tenant_product_created", "tenant_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    reference = db.Column(db.String(64), nullable=True, index=True)
    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "productId": self.product_id,
            "type": self.type,
            "quantityDelta": self.quantity_delta,
            "quantityAfter": self.quantity_after,
            "reason": self.reason,
            "reference": self.reference,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
        }
