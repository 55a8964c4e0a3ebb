"""
Declarative shapes for every persisted entity and every API input.

Conventions:
- external keys are camelCase (``data_key``), loaded dicts are snake_case
- unknown keys are rejected at every nesting level (marshmallow RAISE)
- full schemas describe a stored entity; create variants drop the
  server-assigned fields; update variants load with ``partial=True`` so every
  field is optional and no defaults are applied
- JSON body numbers are strict: "12" is not an integer and true is not a price
"""
from __future__ import annotations

import numbers
from typing import Any

from marshmallow import RAISE, Schema, ValidationError as MarshmallowValidationError, fields, validate as v
from marshmallow import validates_schema

from ..errors import ValidationError
from ..models import (
    CATEGORY_STATUSES,
    FULFILLMENT_STATUSES,
    MEMBER_ROLES,
    MOVEMENT_TYPES,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    PLANS,
    PRODUCT_STATUSES,
    PRODUCT_VISIBILITY,
    TENANT_STATUSES,
)

MAX_MONEY = 999999.99
SLUG_PATTERN = r"^[a-z0-9\-_]+$"
PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

SERVER_FIELDS = ("id", "tenant_id", "created_at", "updated_at")


class StrictInteger(fields.Integer):
    """Integer that refuses strings, floats and booleans."""

    def __init__(self, **kwargs):
        kwargs.setdefault("strict", True)
        super().__init__(**kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool):
            raise self.make_error("invalid")
        return super()._deserialize(value, attr, data, **kwargs)


class StrictFloat(fields.Float):
    """Float that only accepts JSON numbers."""

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise self.make_error("invalid")
        return super()._deserialize(value, attr, data, **kwargs)


class CommaList(fields.List):
    """List that also accepts a single comma separated string (query strings)."""

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",") if part.strip()]
        return super()._deserialize(value, attr, data, **kwargs)


def Money(**kwargs):
    return StrictFloat(validate=v.Range(min=0, max=MAX_MONEY), **kwargs)


def Slug(**kwargs):
    return fields.String(
        validate=[v.Length(min=1, max=100), v.Regexp(SLUG_PATTERN, error="Invalid slug format")],
        **kwargs,
    )


def Phone(**kwargs):
    return fields.String(validate=v.Regexp(PHONE_PATTERN, error="Invalid phone number"), **kwargs)


def Timestamp(**kwargs):
    return fields.DateTime(format="iso", **kwargs)


class BaseSchema(Schema):
    class Meta:
        unknown = RAISE


# ---------------------------------------------------------------------------
# Shared nested shapes
# ---------------------------------------------------------------------------


class SeoSchema(BaseSchema):
    title = fields.String(validate=v.Length(max=60, error="SEO title too long"))
    description = fields.String(validate=v.Length(max=160, error="SEO description too long"))
    keywords = fields.List(fields.String(validate=v.Length(max=50)), load_default=list)


class DimensionsSchema(BaseSchema):
    length = Money()
    width = Money()
    height = Money()


class InventorySchema(BaseSchema):
    track_quantity = fields.Boolean(data_key="trackQuantity", load_default=False)
    quantity = StrictInteger(validate=v.Range(min=0), load_default=0)
    allow_backorder = fields.Boolean(data_key="allowBackorder", load_default=False)
    low_stock_threshold = StrictInteger(data_key="lowStockThreshold", validate=v.Range(min=0), load_default=5)


class ImageSchema(BaseSchema):
    url = fields.URL(required=True, error_messages={"invalid": "Invalid image URL"})
    alt = fields.String(validate=v.Length(max=200, error="Alt text too long"))
    is_primary = fields.Boolean(data_key="isPrimary", load_default=False)


class CustomerInfoSchema(BaseSchema):
    email = fields.Email(required=True, validate=v.Length(max=254, error="Email too long"))
    name = fields.String(required=True, validate=v.Length(min=1, error="Customer name is required"))
    phone = Phone()


class AddressSchema(BaseSchema):
    name = fields.String(required=True, validate=v.Length(min=1))
    company = fields.String()
    address1 = fields.String(required=True, validate=v.Length(min=1, error="Address is required"))
    address2 = fields.String()
    city = fields.String(required=True, validate=v.Length(min=1, error="City is required"))
    state = fields.String(required=True, validate=v.Length(min=1, error="State is required"))
    zip = fields.String(required=True, validate=v.Length(min=1, error="ZIP code is required"))
    country = fields.String(required=True, validate=v.Length(equal=2, error="Country must be 2 characters"))
    phone = Phone()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class UserSchema(BaseSchema):
    id = StrictInteger(required=True)
    email = fields.Email(required=True, validate=v.Length(max=254, error="Email too long"))
    name = fields.String(required=True, validate=v.Length(min=1, max=100))
    phone = Phone()
    role = fields.String(validate=v.OneOf(("customer", "admin", "owner")), load_default="customer")
    is_active = fields.Boolean(data_key="isActive", load_default=True)
    email_verified = fields.Boolean(data_key="emailVerified", load_default=False)
    phone_verified = fields.Boolean(data_key="phoneVerified", load_default=False)
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")
    last_login_at = Timestamp(data_key="lastLoginAt")


class TenantSchema(BaseSchema):
    id = StrictInteger(required=True)
    slug = Slug(required=True)
    name = fields.String(required=True, validate=v.Length(min=1, max=100, error="Name must be 1-100 characters"))
    description = fields.String(validate=v.Length(max=500, error="Description too long"))
    domain = fields.String(validate=v.Length(min=3, max=253), allow_none=True)
    logo_url = fields.URL(data_key="logoUrl")
    website_url = fields.URL(data_key="websiteUrl")
    status = fields.String(validate=v.OneOf(TENANT_STATUSES), load_default="active")
    plan = fields.String(validate=v.OneOf(PLANS), load_default="free")
    settings = fields.Dict(keys=fields.String())
    owner_id = StrictInteger(data_key="ownerId", required=True)
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")
    subscription_expires_at = Timestamp(data_key="subscriptionExpiresAt")


class TenantOnboardingSchema(BaseSchema):
    """Platform onboarding: the tenant plus its owner identity."""
    slug = Slug(required=True)
    name = fields.String(required=True, validate=v.Length(min=1, max=100))
    description = fields.String(validate=v.Length(max=500, error="Description too long"))
    plan = fields.String(validate=v.OneOf(PLANS), load_default="free")
    status = fields.String(validate=v.OneOf(TENANT_STATUSES), load_default="active")
    owner_email = fields.Email(data_key="ownerEmail", required=True)
    owner_name = fields.String(data_key="ownerName", required=True, validate=v.Length(min=1, max=100))


class ProductSchema(BaseSchema):
    id = StrictInteger(required=True)
    tenant_id = StrictInteger(data_key="tenantId", required=True)
    name = fields.String(required=True, validate=v.Length(min=1, max=200, error="Name must be 1-200 characters"))
    description = fields.String(validate=v.Length(max=2000, error="Description too long"))
    price = Money(required=True)
    compare_at_price = Money(data_key="compareAtPrice", allow_none=True)
    cost_price = Money(data_key="costPrice", allow_none=True)
    sku = fields.String(validate=v.Length(max=100, error="SKU too long"), allow_none=True)
    barcode = fields.String(validate=v.Length(max=100, error="Barcode too long"), allow_none=True)
    weight = Money(allow_none=True)
    dimensions = fields.Nested(DimensionsSchema)
    status = fields.String(validate=v.OneOf(PRODUCT_STATUSES), load_default="draft")
    visibility = fields.String(validate=v.OneOf(PRODUCT_VISIBILITY), load_default="public")
    inventory = fields.Nested(InventorySchema)
    images = fields.List(fields.Nested(ImageSchema), load_default=list)
    categories = fields.List(StrictInteger(), load_default=list)
    tags = fields.List(fields.String(validate=v.Length(max=50)), load_default=list)
    is_best_seller = fields.Boolean(data_key="isBestSeller", load_default=False)
    is_new_arrival = fields.Boolean(data_key="isNewArrival", load_default=False)
    is_featured = fields.Boolean(data_key="isFeatured", load_default=False)
    seo = fields.Nested(SeoSchema)
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")


class CategorySchema(BaseSchema):
    id = StrictInteger(required=True)
    tenant_id = StrictInteger(data_key="tenantId", required=True)
    name = fields.String(required=True, validate=v.Length(min=1, max=100, error="Name must be 1-100 characters"))
    description = fields.String(validate=v.Length(max=500, error="Description too long"))
    slug = Slug(required=True)
    parent_id = StrictInteger(data_key="parentId", allow_none=True)
    image_url = fields.URL(data_key="imageUrl")
    status = fields.String(validate=v.OneOf(CATEGORY_STATUSES), load_default="active")
    sort_order = StrictInteger(data_key="sortOrder", validate=v.Range(min=0), load_default=0)
    seo = fields.Nested(SeoSchema)
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")


class CategoryCreateSchema(CategorySchema):
    """Slug may be omitted on create; the service derives it from the name."""
    slug = Slug()


class OrderItemSchema(BaseSchema):
    product_id = StrictInteger(data_key="productId", required=True)
    variant_id = fields.String(data_key="variantId", validate=v.Length(min=1))
    name = fields.String(required=True, validate=v.Length(min=1, error="Product name is required"))
    price = Money(required=True)
    quantity = StrictInteger(required=True, validate=v.Range(min=1, error="Quantity must be at least 1"))
    total = Money(required=True)
    image_url = fields.URL(data_key="imageUrl")


class OrderSchema(BaseSchema):
    id = StrictInteger(required=True)
    tenant_id = StrictInteger(data_key="tenantId", required=True)
    customer_id = fields.String(data_key="customerId", validate=v.Length(min=1))
    order_number = fields.String(data_key="orderNumber", required=True, validate=v.Length(min=1, max=50))
    status = fields.String(validate=v.OneOf(ORDER_STATUSES), load_default="pending")
    payment_status = fields.String(data_key="paymentStatus", validate=v.OneOf(PAYMENT_STATUSES), load_default="pending")
    fulfillment_status = fields.String(
        data_key="fulfillmentStatus", validate=v.OneOf(FULFILLMENT_STATUSES), load_default="unfulfilled"
    )
    items = fields.List(
        fields.Nested(OrderItemSchema),
        required=True,
        validate=v.Length(min=1, error="Order must have at least one item"),
    )
    subtotal = Money(required=True)
    tax_amount = Money(data_key="taxAmount", load_default=0.0)
    shipping_amount = Money(data_key="shippingAmount", load_default=0.0)
    discount_amount = Money(data_key="discountAmount", load_default=0.0)
    total = Money(required=True)
    currency = fields.String(validate=v.Length(equal=3, error="Currency must be 3 characters"), load_default="USD")
    customer = fields.Nested(CustomerInfoSchema, required=True)
    shipping_address = fields.Nested(AddressSchema, data_key="shippingAddress", required=True)
    billing_address = fields.Nested(AddressSchema, data_key="billingAddress", required=True)
    notes = fields.String(validate=v.Length(max=1000, error="Notes too long"))
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")
    shipped_at = Timestamp(data_key="shippedAt")
    delivered_at = Timestamp(data_key="deliveredAt")


class OrderCreateSchema(OrderSchema):
    """Order number is generated when the caller does not supply one."""
    order_number = fields.String(data_key="orderNumber", validate=v.Length(min=1, max=50))


class CartItemSchema(BaseSchema):
    product_id = StrictInteger(data_key="productId", required=True)
    variant_id = fields.String(data_key="variantId", validate=v.Length(min=1), allow_none=True)
    quantity = StrictInteger(required=True, validate=v.Range(min=1, error="Quantity must be at least 1"))
    added_at = Timestamp(data_key="addedAt")


class CartSchema(BaseSchema):
    id = StrictInteger(required=True)
    tenant_id = StrictInteger(data_key="tenantId", required=True)
    customer_id = fields.String(data_key="customerId", validate=v.Length(min=1))
    session_id = fields.String(data_key="sessionId")
    items = fields.List(fields.Nested(CartItemSchema), load_default=list)
    expires_at = Timestamp(data_key="expiresAt")
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")


class CartItemUpdateSchema(BaseSchema):
    # Range is left to the cart rules so the caller gets QUANTITY_EXCEEDED details.
    quantity = StrictInteger(required=True)


class CheckoutSchema(BaseSchema):
    customer = fields.Nested(CustomerInfoSchema, required=True)
    shipping_address = fields.Nested(AddressSchema, data_key="shippingAddress", required=True)
    billing_address = fields.Nested(AddressSchema, data_key="billingAddress")
    shipping_amount = Money(data_key="shippingAmount", load_default=0.0)
    tax_amount = Money(data_key="taxAmount", load_default=0.0)
    discount_amount = Money(data_key="discountAmount", load_default=0.0)
    notes = fields.String(validate=v.Length(max=1000, error="Notes too long"))


class SocialLinksSchema(BaseSchema):
    facebook = fields.URL()
    instagram = fields.URL()
    twitter = fields.URL()
    youtube = fields.URL()
    tiktok = fields.URL()
    linkedin = fields.URL()
    snapchat = fields.URL()
    whatsapp = fields.String()


class ThemeSchema(BaseSchema):
    primary_color = fields.String(
        data_key="primaryColor", validate=v.Regexp(COLOR_PATTERN, error="Invalid color format"), load_default="#000000"
    )
    secondary_color = fields.String(
        data_key="secondaryColor", validate=v.Regexp(COLOR_PATTERN, error="Invalid color format"), load_default="#666666"
    )
    font_family = fields.String(data_key="fontFamily", validate=v.Length(max=100), load_default="Inter")


class CheckoutSettingsSchema(BaseSchema):
    require_shipping_address = fields.Boolean(data_key="requireShippingAddress", load_default=True)
    require_billing_address = fields.Boolean(data_key="requireBillingAddress", load_default=True)
    allow_guest_checkout = fields.Boolean(data_key="allowGuestCheckout", load_default=True)
    auto_fulfillment = fields.Boolean(data_key="autoFulfillment", load_default=False)


class NotificationSettingsSchema(BaseSchema):
    email = fields.Boolean(load_default=True)
    sms = fields.Boolean(load_default=False)
    push = fields.Boolean(load_default=False)


class StoreSettingsSchema(BaseSchema):
    name = fields.String(required=True, validate=v.Length(min=1, max=100, error="Name must be 1-100 characters"))
    description = fields.String(validate=v.Length(max=500, error="Description too long"))
    logo_url = fields.URL(data_key="logoUrl")
    favicon_url = fields.URL(data_key="faviconUrl")
    website_url = fields.URL(data_key="websiteUrl")
    social = fields.Nested(SocialLinksSchema)
    currency = fields.String(validate=v.Length(equal=3, error="Currency must be 3 characters"), load_default="USD")
    timezone = fields.String(load_default="UTC")
    language = fields.String(validate=v.Length(equal=2, error="Language must be 2 characters"), load_default="en")
    theme = fields.Nested(ThemeSchema)
    checkout = fields.Nested(CheckoutSettingsSchema)
    notifications = fields.Nested(NotificationSettingsSchema)


class MembershipSchema(BaseSchema):
    id = StrictInteger(required=True)
    tenant_id = StrictInteger(data_key="tenantId", required=True)
    user_id = StrictInteger(data_key="userId", required=True)
    role = fields.String(validate=v.OneOf(MEMBER_ROLES), load_default="VIEWER")
    is_active = fields.Boolean(data_key="isActive", load_default=True)
    created_at = Timestamp(data_key="createdAt")
    updated_at = Timestamp(data_key="updatedAt")


class MemberInviteSchema(BaseSchema):
    email = fields.Email(required=True)
    name = fields.String(validate=v.Length(min=1, max=100))
    role = fields.String(validate=v.OneOf(MEMBER_ROLES), load_default="VIEWER")


class MemberRoleSchema(BaseSchema):
    role = fields.String(required=True, validate=v.OneOf(MEMBER_ROLES))


class TenantUserSchema(BaseSchema):
    user_id = fields.String(data_key="userId", validate=v.Length(min=1), allow_none=True)
    email = fields.Email(validate=v.Length(max=254, error="Email too long"), allow_none=True)
    phone = Phone(allow_none=True)
    name = fields.String(validate=v.Length(min=1, max=100), allow_none=True)
    is_guest = fields.Boolean(data_key="isGuest", load_default=True)
    is_active = fields.Boolean(data_key="isActive", load_default=True)

    @validates_schema
    def _needs_contact(self, data, **kwargs):
        if kwargs.get("partial"):
            return
        if not data.get("email") and not data.get("phone"):
            raise MarshmallowValidationError("Email or phone is required", "email")


class StockAdjustmentSchema(BaseSchema):
    type = fields.String(required=True, validate=v.OneOf(MOVEMENT_TYPES))
    quantity = StrictInteger(required=True, validate=v.Range(min=0))
    reason = fields.String(required=True, validate=v.Length(min=1, max=255))
    reference = fields.String(validate=v.Length(max=64))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class PaginationSchema(BaseSchema):
    page = fields.Integer(validate=v.Range(min=1), load_default=1)
    limit = fields.Integer(validate=v.Range(min=1, max=100), load_default=20)
    sort_by = fields.String(data_key="sortBy")
    sort_order = fields.String(data_key="sortOrder", validate=v.OneOf(("asc", "desc")), load_default="desc")


class ProductFiltersSchema(BaseSchema):
    category_id = fields.Integer(data_key="categoryId")
    status = fields.String(validate=v.OneOf(PRODUCT_STATUSES))
    price_min = fields.Float(data_key="priceMin", validate=v.Range(min=0))
    price_max = fields.Float(data_key="priceMax", validate=v.Range(min=0))
    in_stock = fields.Boolean(data_key="inStock")
    is_best_seller = fields.Boolean(data_key="isBestSeller")
    is_new_arrival = fields.Boolean(data_key="isNewArrival")
    is_featured = fields.Boolean(data_key="isFeatured")
    tags = CommaList(fields.String())
    search = fields.String(validate=v.Length(max=100, error="Search term too long"))


class OrderFiltersSchema(BaseSchema):
    status = fields.String(validate=v.OneOf(ORDER_STATUSES))
    payment_status = fields.String(data_key="paymentStatus", validate=v.OneOf(PAYMENT_STATUSES))
    fulfillment_status = fields.String(data_key="fulfillmentStatus", validate=v.OneOf(FULFILLMENT_STATUSES))
    date_from = fields.DateTime(data_key="dateFrom", format="iso")
    date_to = fields.DateTime(data_key="dateTo", format="iso")
    customer_email = fields.Email(data_key="customerEmail")
    order_number = fields.String(data_key="orderNumber", validate=v.Length(max=50))


class ProductQuerySchema(PaginationSchema, ProductFiltersSchema):
    pass


class OrderQuerySchema(PaginationSchema, OrderFiltersSchema):
    pass


class TenantUserQuerySchema(PaginationSchema):
    search = fields.String(validate=v.Length(max=100))


class OrderStatusUpdateSchema(BaseSchema):
    status = fields.String(required=True, validate=v.OneOf(ORDER_STATUSES))


class PlanChangeSchema(BaseSchema):
    plan = fields.String(required=True)


class TenantStatusChangeSchema(BaseSchema):
    status = fields.String(required=True, validate=v.OneOf(TENANT_STATUSES))


class DomainChangeSchema(BaseSchema):
    domain = fields.String(
        required=True,
        allow_none=True,
        validate=v.Regexp(r"^(?=.{3,253}$)[a-z0-9-]+(\.[a-z0-9-]+)+$", error="Invalid domain"),
    )


class CartSessionHeadersSchema(BaseSchema):
    """Anonymous cart owner; header names arrive lowercased."""
    cart_session = fields.String(data_key="x-cart-session", validate=v.Length(min=8, max=128))
    user_id = fields.String(data_key="x-user-id", validate=v.Length(min=1, max=64))


class SlugParamsSchema(BaseSchema):
    tenant_slug = Slug(required=True)


class IdParamsSchema(SlugParamsSchema):
    id = fields.Integer(required=True, validate=v.Range(min=1))


# Variants. Update variants carry partial=True so no defaults are applied.
user_schema = UserSchema()
user_create_schema = UserSchema(exclude=("id", "created_at", "updated_at", "last_login_at"))
user_update_schema = UserSchema(exclude=("id", "created_at", "updated_at", "last_login_at"), partial=True)

tenant_schema = TenantSchema()
tenant_create_schema = TenantSchema(exclude=("id", "created_at", "updated_at"))
tenant_update_schema = TenantSchema(exclude=("id", "slug", "created_at", "updated_at"), partial=True)
tenant_onboarding_schema = TenantOnboardingSchema()

product_schema = ProductSchema()
product_create_schema = ProductSchema(exclude=SERVER_FIELDS)
product_update_schema = ProductSchema(exclude=SERVER_FIELDS, partial=True)

category_schema = CategorySchema()
category_create_schema = CategoryCreateSchema(exclude=SERVER_FIELDS)
category_update_schema = CategorySchema(exclude=SERVER_FIELDS, partial=True)

order_schema = OrderSchema()
order_create_schema = OrderCreateSchema(exclude=SERVER_FIELDS + ("shipped_at", "delivered_at"))
order_update_schema = OrderSchema(exclude=SERVER_FIELDS + ("shipped_at", "delivered_at"), partial=True)
order_item_schema = OrderItemSchema()

cart_schema = CartSchema()
cart_create_schema = CartSchema(exclude=SERVER_FIELDS)
cart_update_schema = CartSchema(exclude=SERVER_FIELDS, partial=True)
cart_item_schema = CartItemSchema(exclude=("added_at",))
cart_item_update_schema = CartItemUpdateSchema()
checkout_schema = CheckoutSchema()

store_settings_schema = StoreSettingsSchema()
store_settings_update_schema = StoreSettingsSchema(partial=True)

membership_schema = MembershipSchema()
member_invite_schema = MemberInviteSchema()
member_role_schema = MemberRoleSchema()

tenant_user_create_schema = TenantUserSchema()
tenant_user_update_schema = TenantUserSchema(exclude=("user_id",), partial=True)
stock_adjustment_schema = StockAdjustmentSchema()

pagination_schema = PaginationSchema()
product_filters_schema = ProductFiltersSchema()
order_filters_schema = OrderFiltersSchema()
product_query_schema = ProductQuerySchema()
order_query_schema = OrderQuerySchema()
tenant_user_query_schema = TenantUserQuerySchema()
order_status_update_schema = OrderStatusUpdateSchema()
plan_change_schema = PlanChangeSchema()
tenant_status_change_schema = TenantStatusChangeSchema()
domain_change_schema = DomainChangeSchema()
cart_session_headers_schema = CartSessionHeadersSchema()
id_params_schema = IdParamsSchema()


# ---------------------------------------------------------------------------
# Error flattening
# ---------------------------------------------------------------------------

_MISSING = object()


def _received(data: Any, path: list) -> Any:
    current = data
    for part in path:
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and isinstance(part, int) and 0 <= part < len(current):
            current = current[part]
        else:
            return None
    return current


def _flatten(messages: Any, data: Any, path: list, out: list[dict]) -> None:
    if isinstance(messages, dict):
        for key, nested in messages.items():
            if key == "_schema":
                _flatten(nested, data, path, out)
            else:
                _flatten(nested, data, path + [key], out)
        return
    if isinstance(messages, list) and messages and all(isinstance(m, str) for m in messages):
        for message in messages:
            out.append({
                "field": ".".join(str(p) for p in path),
                "message": message,
                "received": _received(data, path),
            })
        return
    if isinstance(messages, str):
        out.append({"field": ".".join(str(p) for p in path), "message": messages, "received": _received(data, path)})
        return
    for item in messages or []:
        _flatten(item, data, path, out)


def flatten_errors(messages: Any, data: Any) -> list[dict]:
    """Turn marshmallow's nested messages into ``[{field, message, received}]``."""
    out: list[dict] = []
    _flatten(messages, data, [], out)
    return out


def validate(schema: Schema, data: Any, partial: bool | None = None, *, unknown: str | None = None) -> dict:
    """
    Validate ``data`` against ``schema``.

    Returns the cleaned dict or raises ValidationError listing every
    violation. ``partial=None`` keeps the schema's own setting.
    """
    try:
        return schema.load(data, partial=partial, unknown=unknown)
    except MarshmallowValidationError as exc:
        raise ValidationError("Validation failed", errors=flatten_errors(exc.messages, data)) from None


def validate_safe(schema: Schema, data: Any, partial: bool | None = None) -> tuple[bool, Any]:
    """Non-raising form: ``(True, cleaned)`` or ``(False, errors)``."""
    try:
        return True, validate(schema, data, partial)
    except ValidationError as exc:
        return False, exc.errors
