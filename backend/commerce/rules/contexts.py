"""
Typed inputs for each rule family.

A context is built once at the API boundary from the view's route
parameters, the validated payload and the tenant bound to the request, and
then handed to exactly one rule.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import g
from sqlalchemy import select

from ..errors import NotFoundError, TenantAccessError
from ..models import Order
from ..tenancy import tenant_transaction


def _request_tenant_id() -> int:
    tenant_id = getattr(g, "tenant_id", None)
    if tenant_id is None:
        raise TenantAccessError("Tenant context is required")
    return tenant_id


@dataclass(frozen=True)
class ProductCreationContext:
    tenant_id: int
    data: Mapping[str, Any]

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), data)


@dataclass(frozen=True)
class ProductUpdateContext:
    tenant_id: int
    product_id: int
    data: Mapping[str, Any]

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), view_kwargs["product_id"], data)


@dataclass(frozen=True)
class CategoryCreationContext:
    tenant_id: int
    data: Mapping[str, Any]

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), data)


@dataclass(frozen=True)
class CategoryUpdateContext:
    tenant_id: int
    category_id: int
    data: Mapping[str, Any]

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), view_kwargs["category_id"], data)


@dataclass(frozen=True)
class CategoryDeletionContext:
    tenant_id: int
    category_id: int

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), view_kwargs["category_id"])


@dataclass(frozen=True)
class OrderCreationContext:
    tenant_id: int
    data: Mapping[str, Any]

    @classmethod
    def from_request(cls, data, view_kwargs):
        return cls(_request_tenant_id(), data)


@dataclass(frozen=True)
class OrderStatusContext:
    tenant_id: int
    order_id: int
    current_status: str
    new_status: str

    @classmethod
    def from_request(cls, data, view_kwargs):
        tenant_id = _request_tenant_id()
        order_id = view_kwargs["order_id"]
        with tenant_transaction(tenant_id) as session:
            current = session.execute(
                select(Order.status).where(Order.tenant_id == tenant_id, Order.id == order_id)
            ).scalar()
        if current is None:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
        return cls(tenant_id, order_id, current, data["status"])


@dataclass(frozen=True)
class CartItemContext:
    tenant_id: int
    product_id: int
    quantity: int

    @classmethod
    def from_request(cls, data, view_kwargs):
        product_id = view_kwargs.get("product_id", data.get("product_id"))
        return cls(_request_tenant_id(), product_id, data["quantity"])
