"""
Products Service with Multi-Tenant Support

MULTI-TENANT: every operation takes the tenant id resolved for the request
and runs inside tenant_transaction, so the rule check and the write share one
transaction and one tenant binding.

- list_products / search_products: filters, sorting and pagination
- create_product / update_product: business rules enforced before the write
- archive_product: products are never hard-deleted (orders reference them)
"""
from __future__ import annotations

from sqlalchemy import String, asc, cast, desc, or_, select

from ..errors import NotFoundError
from ..models import Category, Product, product_categories
from ..rules import enforce, validate_product_creation, validate_product_update
from ..tenancy import tenant_transaction
from ..validation.schemas import ImageSchema
from .concurrency import run_with_retry
from .inventory_service import record_movement
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "price", "compare_at_price", "cost_price", "sku", "barcode",
    "weight", "dimensions", "status", "visibility", "images", "tags",
    "is_best_seller", "is_new_arrival", "is_featured", "seo",
}
INVENTORY_FIELDS = ("track_quantity", "allow_backorder", "low_stock_threshold")

image_list_schema = ImageSchema(many=True)

SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
}


def apply_product_patch(session, p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k == "images":
            v = image_list_schema.dump(v or [])
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(p, k, v)

    inventory = patch.get("inventory") or {}
    for k in INVENTORY_FIELDS:
        if k in inventory:
            setattr(p, k, inventory[k])

    if "categories" in patch:
        ids = patch["categories"] or []
        p.categories = list(
            session.execute(
                select(Category).where(Category.tenant_id == p.tenant_id, Category.id.in_(ids))
            ).scalars()
        ) if ids else []


def _filtered(tenant_id: int, filters: dict, *, storefront: bool):
    stmt = select(Product).where(Product.tenant_id == tenant_id)

    if storefront:
        stmt = stmt.where(Product.status == "active", Product.visibility == "public")
    elif filters.get("status"):
        stmt = stmt.where(Product.status == filters["status"])
    else:
        stmt = stmt.where(Product.status != "archived")

    if filters.get("category_id") is not None:
        stmt = stmt.join(product_categories, product_categories.c.product_id == Product.id).where(
            product_categories.c.category_id == filters["category_id"]
        )
    if filters.get("price_min") is not None:
        stmt = stmt.where(Product.price >= filters["price_min"])
    if filters.get("price_max") is not None:
        stmt = stmt.where(Product.price <= filters["price_max"])
    if filters.get("in_stock") is True:
        stmt = stmt.where(
            or_(Product.track_quantity.is_(False), Product.allow_backorder.is_(True), Product.quantity > 0)
        )
    elif filters.get("in_stock") is False:
        stmt = stmt.where(Product.track_quantity.is_(True), Product.quantity <= 0)
    for flag in ("is_best_seller", "is_new_arrival", "is_featured"):
        if filters.get(flag) is not None:
            stmt = stmt.where(getattr(Product, flag).is_(filters[flag]))
    for tag in filters.get("tags") or []:
        stmt = stmt.where(cast(Product.tags, String).like(f'%"{tag}"%'))
    if filters.get("search"):
        term = f"%{filters['search']}%"
        stmt = stmt.where(or_(Product.name.ilike(term), Product.sku.ilike(term), Product.description.ilike(term)))

    column = SORT_COLUMNS.get(filters.get("sort_by") or "createdAt", Product.created_at)
    direction = asc if filters.get("sort_order") == "asc" else desc
    return stmt.order_by(direction(column), direction(Product.id))


def list_products(tenant_id: int, filters: dict | None = None, *, storefront: bool = False) -> dict:
    """
    Tenant-scoped product listing.

    Args:
        filters: ProductQuerySchema output (filters plus page/limit/sort)
        storefront: restrict to active, public products

    Returns:
        Dict with 'items', 'count' and 'pagination'.
    """
    filters = filters or {}
    with tenant_transaction(tenant_id) as session:
        return paginate(
            session,
            _filtered(tenant_id, filters, storefront=storefront),
            page=filters.get("page", 1),
            limit=filters.get("limit", 20),
        )


def search_products(tenant_id: int, term: str, *, limit: int = 10) -> list[dict]:
    result = list_products(tenant_id, {"search": term, "limit": limit, "sort_by": "name", "sort_order": "asc"},
                           storefront=True)
    return result["items"]


def get_product(tenant_id: int, product_id: int, *, storefront: bool = False) -> Product:
    with tenant_transaction(tenant_id) as session:
        stmt = select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
        if storefront:
            stmt = stmt.where(Product.status == "active", Product.visibility != "private")
        product = session.execute(stmt).scalar()
    if product is None:
        raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
    return product


def create_product(tenant_id: int, data: dict, *, created_by: str | None = None) -> Product:
    """
    Create a product after the product-creation rules pass.

    The plan limit, SKU and category checks run in the same transaction as
    the insert. Initial tracked stock is recorded as an IN movement.

    Raises:
        BusinessRuleViolation: any product-creation rule failed
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            enforce(validate_product_creation(tenant_id, data))

            inventory = data.get("inventory") or {}
            p = Product(
                tenant_id=tenant_id,
                track_quantity=inventory.get("track_quantity", False),
                quantity=0,
                allow_backorder=inventory.get("allow_backorder", False),
                low_stock_threshold=inventory.get("low_stock_threshold", 5),
            )
            apply_product_patch(session, p, data)
            session.add(p)
            session.flush()

            initial = inventory.get("quantity", 0)
            if p.track_quantity and initial:
                record_movement(session, p, "IN", initial, "Initial stock", created_by=created_by)
            else:
                p.quantity = initial
            session.flush()
        return p

    return run_with_retry(_op)


def update_product(tenant_id: int, product_id: int, data: dict, *, created_by: str | None = None) -> Product:
    """
    Update a product.

    A changed inventory quantity on a tracked product is written as an
    ADJUSTMENT movement rather than a bare column update.

    Raises:
        BusinessRuleViolation: PRODUCT_NOT_FOUND, DUPLICATE_SKU, price or inventory rules
    """
    def _op():
        with tenant_transaction(tenant_id) as session:
            result = validate_product_update(tenant_id, product_id, data)
            if result.code == "PRODUCT_NOT_FOUND":
                raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
            enforce(result)

            p = session.execute(
                select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
            ).scalar_one()
            apply_product_patch(session, p, data)

            inventory = data.get("inventory") or {}
            if "quantity" in inventory and inventory["quantity"] != p.quantity:
                if p.track_quantity:
                    record_movement(session, p, "ADJUSTMENT", inventory["quantity"], "Product edit",
                                    created_by=created_by)
                else:
                    p.quantity = inventory["quantity"]
            session.flush()
        return p

    return run_with_retry(_op)


def archive_product(tenant_id: int, product_id: int) -> Product:
    """Soft-delete: status becomes 'archived'; the row and its history stay."""
    with tenant_transaction(tenant_id):
        p = get_product(tenant_id, product_id)
        p.status = "archived"
    return p
