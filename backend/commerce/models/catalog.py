from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .mixins import TenantScopedMixin, TimestampMixin

PRODUCT_STATUSES = ("draft", "active", "inactive", "archived")
PRODUCT_VISIBILITY = ("public", "private", "unlisted")
CATEGORY_STATUSES = ("active", "inactive")

MONEY = db.Numeric(10, 2, asdecimal=False)

product_categories = db.Table(
    "product_categories",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("category_id", db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(TenantScopedMixin, TimestampMixin, db.Model):
    """
    Category tree node.

    MULTI-TENANT: slug is unique within a tenant; parent must live in the same
    tenant and the parent chain must stay acyclic (enforced by rules.categories).
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "slug", name="uq_categories_tenant_slug"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    slug = db.Column(db.String(100), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    image_url = db.Column(db.String(2048), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    seo = db.Column(db.JSON, nullable=True)

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "slug": self.slug,
            "parentId": self.parent_id,
            "imageUrl": self.image_url,
            "status": self.status,
            "sortOrder": self.sort_order,
            "seo": self.seo,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Product(TenantScopedMixin, TimestampMixin, db.Model):
    """
    Product master data.

    SKU is optional but unique within a tenant when present. The inventory
    sub-record is stored flat and exposed as a nested ``inventory`` object.
    version_id is an optimistic lock so concurrent stock decrements cannot
    both win.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_status", "tenant_id", "status"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(2000), nullable=True)

    price = db.Column(MONEY, nullable=False)
    compare_at_price = db.Column(MONEY, nullable=True)
    cost_price = db.Column(MONEY, nullable=True)

    sku = db.Column(db.String(100), nullable=True)
    barcode = db.Column(db.String(100), nullable=True)
    weight = db.Column(MONEY, nullable=True)
    dimensions = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="draft")
    visibility = db.Column(db.String(16), nullable=False, default="public")

    track_quantity = db.Column(db.Boolean, nullable=False, default=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    allow_backorder = db.Column(db.Boolean, nullable=False, default=False)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)

    images = db.Column(db.JSON, nullable=False, default=list)
    tags = db.Column(db.JSON, nullable=False, default=list)
    is_best_seller = db.Column(db.Boolean, nullable=False, default=False)
    is_new_arrival = db.Column(db.Boolean, nullable=False, default=False)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    seo = db.Column(db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    categories = db.relationship("Category", secondary=product_categories, lazy="selectin")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} tenant_id={self.tenant_id}>"

    @property
    def category_ids(self) -> list[int]:
        return sorted(c.id for c in self.categories)

    @property
    def is_stock_limited(self) -> bool:
        return bool(self.track_quantity and not self.allow_backorder)

    def inventory_dict(self) -> dict:
        return {
            "trackQuantity": self.track_quantity,
            "quantity": self.quantity,
            "allowBackorder": self.allow_backorder,
            "lowStockThreshold": self.low_stock_threshold,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "compareAtPrice": self.compare_at_price,
            "costPrice": self.cost_price,
            "sku": self.sku,
            "barcode": self.barcode,
            "weight": self.weight,
            "dimensions": self.dimensions,
            "status": self.status,
            "visibility": self.visibility,
            "inventory": self.inventory_dict(),
            "images": self.images or [],
            "categories": self.category_ids,
            "tags": self.tags or [],
            "isBestSeller": self.is_best_seller,
            "isNewArrival": self.is_new_arrival,
            "isFeatured": self.is_featured,
            "seo": self.seo,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
