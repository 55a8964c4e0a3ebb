"""Category rules: per-tenant slug uniqueness, parent existence, acyclic hierarchy, safe deletion."""
from __future__ import annotations

from typing import Mapping

from sqlalchemy import select

from ..models import Category, Product, product_categories
from ..tenancy import tenant_transaction
from .results import PASS, RuleResult, fail


def _parent_map(session, tenant_id: int) -> dict[int, int | None]:
    rows = session.execute(select(Category.id, Category.parent_id).where(Category.tenant_id == tenant_id))
    return {row.id: row.parent_id for row in rows}


def would_create_cycle(parents: Mapping[int, int | None], parent_id: int, category_id: int | None) -> bool:
    """
    Walk up from the proposed parent. A revisited node or reaching the
    category itself means the new edge closes a loop.
    """
    visited: set[int] = set()
    current = parent_id
    while current is not None:
        if current in visited or current == category_id:
            return True
        visited.add(current)
        current = parents.get(current)
    return False


def _check_slug(session, tenant_id: int, slug: str | None, category_id: int | None) -> RuleResult:
    if not slug:
        return PASS
    stmt = select(Category.id).where(Category.tenant_id == tenant_id, Category.slug == slug)
    if category_id is not None:
        stmt = stmt.where(Category.id != category_id)
    existing = session.execute(stmt).scalar()
    if existing is not None:
        return fail(
            "Category slug already exists",
            "DUPLICATE_SLUG",
            {"slug": slug, "existingCategoryId": existing},
        )
    return PASS


def _check_parent(session, tenant_id: int, parent_id: int | None, category_id: int | None) -> RuleResult:
    if parent_id is None:
        return PASS
    if category_id is not None and parent_id == category_id:
        return fail("A category cannot be its own parent", "CIRCULAR_REFERENCE", {"categoryId": category_id})
    parents = _parent_map(session, tenant_id)
    if parent_id not in parents:
        return fail("Parent category not found", "PARENT_CATEGORY_NOT_FOUND", {"parentId": parent_id})
    if would_create_cycle(parents, parent_id, category_id):
        return fail(
            "Cannot create circular reference in category hierarchy",
            "CIRCULAR_REFERENCE",
            {"categoryId": category_id, "parentId": parent_id},
        )
    return PASS


def validate_category_creation(tenant_id: int, data: Mapping, category_id: int | None = None) -> RuleResult:
    with tenant_transaction(tenant_id) as session:
        result = _check_slug(session, tenant_id, data.get("slug"), category_id)
        if not result.valid:
            return result
        return _check_parent(session, tenant_id, data.get("parent_id"), category_id)


def validate_category_update(tenant_id: int, category_id: int, data: Mapping) -> RuleResult:
    with tenant_transaction(tenant_id) as session:
        category = session.execute(
            select(Category).where(Category.tenant_id == tenant_id, Category.id == category_id)
        ).scalar()
        if category is None:
            return fail("Category not found", "CATEGORY_NOT_FOUND", {"categoryId": category_id})

        if data.get("slug") and data["slug"] != category.slug:
            result = _check_slug(session, tenant_id, data["slug"], category_id)
            if not result.valid:
                return result

        if "parent_id" in data and data["parent_id"] != category.parent_id:
            return _check_parent(session, tenant_id, data["parent_id"], category_id)
    return PASS


def validate_category_deletion(tenant_id: int, category_id: int) -> RuleResult:
    with tenant_transaction(tenant_id) as session:
        child_ids = list(
            session.execute(
                select(Category.id).where(Category.tenant_id == tenant_id, Category.parent_id == category_id)
            ).scalars()
        )
        if child_ids:
            return fail(
                "Cannot delete category with child categories",
                "HAS_CHILD_CATEGORIES",
                {"childCount": len(child_ids), "childIds": child_ids},
            )

        product_ids = list(
            session.execute(
                select(Product.id)
                .join(product_categories, product_categories.c.product_id == Product.id)
                .where(Product.tenant_id == tenant_id, product_categories.c.category_id == category_id)
            ).scalars()
        )
        if product_ids:
            return fail(
                "Cannot delete category with products",
                "HAS_PRODUCTS",
                {"productCount": len(product_ids), "productIds": product_ids},
            )
    return PASS
