# Overview: Service-layer operations for the per-tenant category tree.

from __future__ import annotations

import re
import unicodedata

from flask import current_app
from sqlalchemy import select

from ..errors import NotFoundError
from ..models import Category
from ..rules import (
    enforce,
    validate_category_creation,
    validate_category_deletion,
    validate_category_update,
)
from ..tenancy import TenantRepository, tenant_transaction

SLUG_MAX_LENGTH = 100
CATEGORY_MUTABLE_FIELDS = ("name", "description", "slug", "parent_id", "image_url", "status", "sort_order", "seo")

ARABIC_TO_LATIN = {
    "ا": "a", "أ": "a", "إ": "i", "آ": "a", "ب": "b", "ت": "t", "ث": "th", "ج": "j",
    "ح": "h", "خ": "kh", "د": "d", "ذ": "dh", "ر": "r", "ز": "z", "س": "s", "ش": "sh",
    "ص": "s", "ض": "d", "ط": "t", "ظ": "z", "ع": "a", "غ": "gh", "ف": "f", "ق": "q",
    "ك": "k", "ل": "l", "م": "m", "ن": "n", "ه": "h", "و": "w", "ي": "y", "ى": "a",
    "ة": "h", "ؤ": "w", "ئ": "y",
}


def slugify(value: str | None) -> str:
    """
    Lowercase ASCII slug. Arabic letters are transliterated, accents are
    stripped and anything else outside [a-z0-9-] is dropped.

    >>> slugify("Café Crème")
    'cafe-creme'
    """
    if not value:
        return "category"
    s = "".join(ARABIC_TO_LATIN.get(ch, ch) for ch in value)
    s = unicodedata.normalize("NFD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch)).lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    s = re.sub(r"\s+", "-", s.strip())
    s = re.sub(r"-+", "-", s)
    return s or "category"


def unique_slug(session, tenant_id: int, name: str, current_id: int | None = None) -> str:
    """Slug for ``name`` not yet used in the tenant; suffixes keep it within SLUG_MAX_LENGTH."""
    base = slugify(name)[:SLUG_MAX_LENGTH].rstrip("-") or "category"
    stmt = select(Category.slug).where(Category.tenant_id == tenant_id, Category.slug.like(f"{base[:SLUG_MAX_LENGTH - 10]}%"))
    if current_id is not None:
        stmt = stmt.where(Category.id != current_id)
    taken = set(session.execute(stmt).scalars())
    candidate, i = base, 1
    while candidate in taken:
        suffix = f"-{i}"
        candidate = base[:SLUG_MAX_LENGTH - len(suffix)].rstrip("-") + suffix
        i += 1
    return candidate


def list_categories(tenant_id: int, *, active_only: bool = False) -> list[dict]:
    criteria = [Category.status == "active"] if active_only else []
    rows = TenantRepository(Category, tenant_id).find_many(
        criteria=criteria,
        order_by=[Category.sort_order.asc(), Category.name.asc(), Category.id.asc()],
    )
    return [c.to_dict() for c in rows]


def get_category(tenant_id: int, category_id: int) -> Category:
    category = TenantRepository(Category, tenant_id).get(category_id)
    if category is None:
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
    return category


def create_category(tenant_id: int, data: dict) -> Category:
    """
    Create a category. A missing slug is derived from the name and made
    unique within the tenant by appending -1, -2, ...
    """
    data = dict(data)
    with tenant_transaction(tenant_id) as session:
        if not data.get("slug"):
            data["slug"] = unique_slug(session, tenant_id, data["name"])
        enforce(validate_category_creation(tenant_id, data))

        category = Category(tenant_id=tenant_id)
        for k in CATEGORY_MUTABLE_FIELDS:
            if k in data:
                setattr(category, k, data[k])
        session.add(category)
        session.flush()

    current_app.logger.info("Category created: tenant=%s id=%s slug=%s", tenant_id, category.id, category.slug)
    return category


def update_category(tenant_id: int, category_id: int, data: dict) -> Category:
    with tenant_transaction(tenant_id):
        result = validate_category_update(tenant_id, category_id, data)
        if result.code == "CATEGORY_NOT_FOUND":
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
        enforce(result)

        category = get_category(tenant_id, category_id)
        for k in CATEGORY_MUTABLE_FIELDS:
            if k in data:
                setattr(category, k, data[k])
    return category


def delete_category(tenant_id: int, category_id: int) -> None:
    """Only leaf categories with no products can be removed."""
    with tenant_transaction(tenant_id) as session:
        category = get_category(tenant_id, category_id)
        enforce(validate_category_deletion(tenant_id, category_id))
        session.delete(category)
    current_app.logger.info("Category deleted: tenant=%s id=%s", tenant_id, category_id)
