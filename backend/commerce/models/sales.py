from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import MONEY
from .mixins import TenantScopedMixin, TimestampMixin

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded", "partially_refunded")
FULFILLMENT_STATUSES = ("unfulfilled", "partial", "fulfilled")


class Order(TenantScopedMixin, TimestampMixin, db.Model):
    """
    Order document created at checkout.

    Line items are frozen copies of product name and unit price. Status moves
    along the transition graph in rules.orders; delivered/cancelled/refunded
    orders are otherwise immutable.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_number"),
        db.Index("ix_orders_tenant_status_created", "tenant_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), nullable=False)
    customer_id = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending")
    payment_status = db.Column(db.String(24), nullable=False, default="pending")
    fulfillment_status = db.Column(db.String(16), nullable=False, default="unfulfilled")

    subtotal = db.Column(MONEY, nullable=False)
    tax_amount = db.Column(MONEY, nullable=False, default=0)
    shipping_amount = db.Column(MONEY, nullable=False, default=0)
    discount_amount = db.Column(MONEY, nullable=False, default=0)
    total = db.Column(MONEY, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    customer = db.Column(db.JSON, nullable=False)
    shipping_address = db.Column(db.JSON, nullable=False)
    billing_address = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.String(1000), nullable=True)

    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "orderNumber": self.order_number,
            "customerId": self.customer_id,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "fulfillmentStatus": self.fulfillment_status,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "taxAmount": self.tax_amount,
            "shippingAmount": self.shipping_amount,
            "discountAmount": self.discount_amount,
            "total": self.total,
            "currency": self.currency,
            "customer": self.customer,
            "shippingAddress": self.shipping_address,
            "billingAddress": self.billing_address,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "shippedAt": to_utc_z(self.shipped_at),
            "deliveredAt": to_utc_z(self.delivered_at),
        }


class OrderItem(TenantScopedMixin, db.Model):
    """Individual line items on an order."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    variant_id = db.Column(db.String(64), nullable=True)

    name = db.Column(db.String(200), nullable=False)
    price = db.Column(MONEY, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(MONEY, nullable=False)
    image_url = db.Column(db.String(2048), nullable=True)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "total": self.total,
            "imageUrl": self.image_url,
        }


class Cart(TenantScopedMixin, TimestampMixin, db.Model):
    """Shopping cart owned by a customer or an anonymous session."""
    __tablename__ = "carts"
    __table_args__ = (
        db.Index("ix_carts_tenant_session", "tenant_id", "session_id"),
        db.Index("ix_carts_tenant_customer", "tenant_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), nullable=True)
    session_id = db.Column(db.String(128), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "CartItem",
        back_populates="cart",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "customerId": self.customer_id,
            "sessionId": self.session_id,
            "items": [item.to_dict() for item in self.items],
            "expiresAt": to_utc_z(self.expires_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class CartItem(TenantScopedMixin, db.Model):
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", "variant_id", name="uq_cart_items_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    variant_id = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    cart = db.relationship("Cart", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "quantity": self.quantity,
            "addedAt": to_utc_z(self.added_at),
        }
