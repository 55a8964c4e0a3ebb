# Overview: View decorators that evaluate business rules after input validation.

from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import current_app

from ..http import error_response, request_context
from . import carts, categories, orders, products
from .contexts import (
    CartItemContext,
    CategoryCreationContext,
    CategoryDeletionContext,
    CategoryUpdateContext,
    OrderCreationContext,
    OrderStatusContext,
    ProductCreationContext,
    ProductUpdateContext,
)
from .results import RuleResult


def with_business_rule(rule: Callable[..., RuleResult], context_factory: Callable):
    """
    Build a typed context with ``context_factory(data, view_kwargs)``, run
    ``rule(context)`` and short-circuit with 400 when it fails.

    Sits inside the validation decorators: the validated payload, when there
    is one, arrives as the first positional argument and is passed through.
    Persistence errors are not caught here; they reach the app's 500 handler.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = args[0] if args else None
            context = context_factory(data, kwargs)
            result = rule(context)
            if not result.valid:
                current_app.logger.warning(
                    "Business rule failed: %s (%s) details=%s",
                    result.code,
                    result.error,
                    result.details,
                    extra=request_context(),
                )
                return error_response(
                    result.error or "Business rule validation failed",
                    result.code or "BUSINESS_RULE_VIOLATION",
                    404 if (result.code or "").endswith("_NOT_FOUND") else 400,
                    result.details,
                )
            return f(*args, **kwargs)

        return decorated_function

    return decorator


with_product_creation_rules = with_business_rule(
    lambda c: products.validate_product_creation(c.tenant_id, c.data),
    ProductCreationContext.from_request,
)
with_product_update_rules = with_business_rule(
    lambda c: products.validate_product_update(c.tenant_id, c.product_id, c.data),
    ProductUpdateContext.from_request,
)
with_category_creation_rules = with_business_rule(
    lambda c: categories.validate_category_creation(c.tenant_id, c.data),
    CategoryCreationContext.from_request,
)
with_category_update_rules = with_business_rule(
    lambda c: categories.validate_category_update(c.tenant_id, c.category_id, c.data),
    CategoryUpdateContext.from_request,
)
with_category_deletion_rules = with_business_rule(
    lambda c: categories.validate_category_deletion(c.tenant_id, c.category_id),
    CategoryDeletionContext.from_request,
)
with_order_creation_rules = with_business_rule(
    lambda c: orders.validate_order_creation(c.tenant_id, c.data),
    OrderCreationContext.from_request,
)
with_order_status_rules = with_business_rule(
    lambda c: orders.validate_order_status_transition(c.current_status, c.new_status),
    OrderStatusContext.from_request,
)
with_cart_item_rules = with_business_rule(
    lambda c: carts.validate_cart_item(c.tenant_id, c.product_id, c.quantity),
    CartItemContext.from_request,
)
