from .tenancy import Tenant, User, Membership, PlatformAdmin, PLANS, TENANT_STATUSES, MEMBER_ROLES, PLATFORM_ROLES
from .catalog import Product, Category, product_categories, PRODUCT_STATUSES, PRODUCT_VISIBILITY, CATEGORY_STATUSES
from .sales import Order, OrderItem, Cart, CartItem, ORDER_STATUSES, PAYMENT_STATUSES, FULFILLMENT_STATUSES
from .inventory import StockMovement, MOVEMENT_TYPES
from .mixins import TenantScopedMixin, TimestampMixin

__all__ = [
    'Tenant', 'User', 'Membership', 'PlatformAdmin',
    'Product', 'Category', 'product_categories',
    'Order', 'OrderItem', 'Cart', 'CartItem',
    'StockMovement',
    'TenantScopedMixin', 'TimestampMixin',
    'PLANS', 'TENANT_STATUSES', 'MEMBER_ROLES', 'PLATFORM_ROLES',
    'PRODUCT_STATUSES', 'PRODUCT_VISIBILITY', 'CATEGORY_STATUSES',
    'ORDER_STATUSES', 'PAYMENT_STATUSES', 'FULFILLMENT_STATUSES',
    'MOVEMENT_TYPES',
]
