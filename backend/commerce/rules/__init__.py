"""
Business rules: cross-entity constraints evaluated against tenant state.

Every rule returns a RuleResult and never writes. Services call ``enforce``
inside the same tenant_transaction as the write they guard.
"""
from ..errors import BusinessRuleViolation
from .results import RuleResult
from .products import validate_product_creation, validate_product_update
from .orders import validate_order_creation, validate_order_status_transition, calculate_total
from .categories import validate_category_creation, validate_category_update, validate_category_deletion
from .tenants import validate_tenant_slug, validate_plan_upgrade, validate_custom_domain, product_limit
from .carts import validate_cart_item
from .memberships import role_satisfies, validate_role_change
from .middleware import (
    with_business_rule,
    with_product_creation_rules,
    with_product_update_rules,
    with_category_creation_rules,
    with_category_update_rules,
    with_category_deletion_rules,
    with_order_creation_rules,
    with_order_status_rules,
    with_cart_item_rules,
)


def enforce(result: RuleResult) -> None:
    """Raise BusinessRuleViolation for a failed result."""
    if not result.valid:
        raise BusinessRuleViolation.from_result(result)


__all__ = [
    'RuleResult', 'enforce',
    'validate_product_creation', 'validate_product_update',
    'validate_order_creation', 'validate_order_status_transition', 'calculate_total',
    'validate_category_creation', 'validate_category_update', 'validate_category_deletion',
    'validate_tenant_slug', 'validate_plan_upgrade', 'validate_custom_domain', 'product_limit',
    'validate_cart_item',
    'role_satisfies', 'validate_role_change',
    'with_business_rule', 'with_product_creation_rules', 'with_product_update_rules',
    'with_category_creation_rules', 'with_category_update_rules', 'with_category_deletion_rules',
    'with_order_creation_rules', 'with_order_status_rules', 'with_cart_item_rules',
]
