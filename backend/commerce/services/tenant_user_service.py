"""
Tenant Users - per-store customer records in the document store.

WHY: A shopper's relationship with each store is separate from their global
identity. Guests check out with only an email; if they register later the
guest record is linked to the global user instead of being duplicated.

INVARIANTS:
1. All access goes through DocumentStore.for_tenant(), so every query carries
   the tenantId filter
2. Email is unique per tenant (stored lowercased)
3. Guest -> registered is one-way: linking sets isGuest=False and is
   idempotent for the same global user; a record already linked to a
   different user is a conflict
4. Deactivation is a soft delete; the link to the global user is kept
"""
from __future__ import annotations

import re

from flask import current_app

from ..errors import ConflictError, NotFoundError
from ..extensions import mongo
from .pagination import pagination_meta

COLLECTION = "tenant_users"

FIELD_MAP = {
    "user_id": "userId",
    "email": "email",
    "phone": "phone",
    "name": "name",
    "is_guest": "isGuest",
    "is_active": "isActive",
}


def _collection(tenant_id: int):
    return mongo.for_tenant(COLLECTION, tenant_id)


def _to_document(data: dict) -> dict:
    doc = {FIELD_MAP[k]: v for k, v in data.items() if k in FIELD_MAP}
    if doc.get("email"):
        doc["email"] = doc["email"].lower()
    return doc


def get_tenant_user(tenant_id: int, tenant_user_id: str) -> dict:
    doc = _collection(tenant_id).get(tenant_user_id)
    if doc is None:
        raise NotFoundError("Customer not found", code="TENANT_USER_NOT_FOUND")
    return doc


def find_by_email(tenant_id: int, email: str) -> dict | None:
    return _collection(tenant_id).find_one({"email": email.lower()})


def find_by_global_user_id(tenant_id: int, user_id: str) -> dict | None:
    return _collection(tenant_id).find_one({"userId": user_id})


def create_tenant_user(tenant_id: int, data: dict) -> dict:
    """
    Args:
        data: TenantUserSchema output (snake_case)

    Raises:
        ConflictError: DUPLICATE_EMAIL when the email is already registered
    """
    doc = {"userId": None, "email": None, "phone": None, "name": None, "isGuest": True, "isActive": True}
    doc.update(_to_document(data))
    if doc["email"] and find_by_email(tenant_id, doc["email"]) is not None:
        raise ConflictError(
            "A customer with this email already exists",
            code="DUPLICATE_EMAIL",
            details={"email": doc["email"]},
        )
    if doc["userId"]:
        doc["isGuest"] = False
    created = _collection(tenant_id).create(doc)
    current_app.logger.info("Tenant user created: tenant=%s id=%s guest=%s", tenant_id, created["id"], created["isGuest"])
    return created


def find_or_create_tenant_user(tenant_id: int, email: str, **options) -> dict:
    """Existing record for ``email`` or a new guest record (checkout path)."""
    existing = find_by_email(tenant_id, email)
    if existing is not None:
        return existing
    data = {"email": email, "is_guest": options.pop("is_guest", True), **options}
    return create_tenant_user(tenant_id, data)


def update_tenant_user(tenant_id: int, tenant_user_id: str, data: dict) -> dict:
    changes = _to_document(data)
    changes.pop("userId", None)
    if changes.get("email"):
        other = find_by_email(tenant_id, changes["email"])
        if other is not None and other["id"] != tenant_user_id:
            raise ConflictError(
                "A customer with this email already exists",
                code="DUPLICATE_EMAIL",
                details={"email": changes["email"]},
            )
    updated = _collection(tenant_id).update(tenant_user_id, changes)
    if updated is None:
        raise NotFoundError("Customer not found", code="TENANT_USER_NOT_FOUND")
    return updated


def link_to_global_user(tenant_id: int, tenant_user_id: str, user_id: str) -> dict:
    """
    Promote a guest record to a registered customer.

    Raises:
        ConflictError: ALREADY_LINKED when linked to a different global user
    """
    current = get_tenant_user(tenant_id, tenant_user_id)
    if current.get("userId") == user_id and not current.get("isGuest"):
        return current
    if current.get("userId") and current["userId"] != user_id:
        raise ConflictError(
            "Customer is already linked to another account",
            code="ALREADY_LINKED",
            details={"tenantUserId": tenant_user_id},
        )
    linked = _collection(tenant_id).update(tenant_user_id, {"userId": user_id, "isGuest": False})
    current_app.logger.info("Tenant user linked: tenant=%s id=%s user=%s", tenant_id, tenant_user_id, user_id)
    return linked


def register_customer(tenant_id: int, user_id: str, data: dict) -> dict:
    """
    Storefront signup: reuse the guest record for this email when there is
    one, otherwise create a registered record.
    """
    existing = find_by_global_user_id(tenant_id, user_id)
    if existing is not None:
        return existing
    guest = find_by_email(tenant_id, data["email"]) if data.get("email") else None
    if guest is not None:
        linked = link_to_global_user(tenant_id, guest["id"], user_id)
        changes = {k: v for k, v in data.items() if k in ("name", "phone") and v}
        return update_tenant_user(tenant_id, linked["id"], changes) if changes else linked
    return create_tenant_user(tenant_id, {**data, "user_id": user_id, "is_guest": False})


def list_tenant_users(tenant_id: int, *, page: int = 1, limit: int = 20, search: str | None = None) -> dict:
    where = {}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        where["$or"] = [{"email": pattern}, {"name": pattern}, {"phone": pattern}]
    collection = _collection(tenant_id)
    total = collection.count(where)
    items = collection.find_many(
        where,
        sort=[("createdAt", -1)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {"items": items, "count": len(items), "pagination": pagination_meta(page, limit, total)}


def deactivate_tenant_user(tenant_id: int, tenant_user_id: str) -> dict:
    updated = _collection(tenant_id).update(tenant_user_id, {"isActive": False})
    if updated is None:
        raise NotFoundError("Customer not found", code="TENANT_USER_NOT_FOUND")
    return updated
