"""
Multi-Tenant Service: Tenant Resolution, Onboarding and Lifecycle

WHY: Every storefront and admin request starts by mapping a host name or an
explicit slug onto a tenant. Lookups are cached because a single page load
resolves the same tenant many times; every tenant mutation in this module
invalidates the cached entries so a suspended or re-domained tenant is never
served stale.

INVARIANTS:
1. Slugs are lowercase, unique, never reserved, and immutable after onboarding
2. Cached lookups (positive and negative) are keyed by the lowercased slug or
   domain and dropped on every tenant mutation
3. Plans only move forward (see rules.tenants.validate_plan_upgrade)
4. Onboarding creates the tenant and its OWNER membership in one transaction

USAGE:
    from commerce.services.tenant_service import get_resolver, parse_host

    info = get_resolver().by_slug("acme")
    kind, value = parse_host("acme.localhost:3000")   # ("slug", "acme")
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from sqlalchemy import func, select

from ..errors import NotFoundError
from ..extensions import cache, db
from ..models import Membership, Tenant, User
from ..rules import enforce, validate_custom_domain, validate_plan_upgrade, validate_tenant_slug
from ..tenancy import tenant_transaction
from ..validation.schemas import store_settings_schema, store_settings_update_schema, validate
from .pagination import paginate

MISSING = "__tenant_missing__"
LOCAL_MARKERS = ("localhost",)


@dataclass(frozen=True)
class TenantInfo:
    """Cache-safe snapshot of a tenant row."""
    id: int
    slug: str
    name: str
    plan: str
    status: str
    domain: str | None = None
    settings: dict = field(default_factory=dict)

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantInfo":
        return cls(
            id=tenant.id,
            slug=tenant.slug,
            name=tenant.name,
            plan=tenant.plan,
            status=tenant.status,
            domain=tenant.domain,
            settings=dict(tenant.settings or {}),
        )

    @property
    def is_available(self) -> bool:
        return self.status in ("active", "pending")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "plan": self.plan,
            "status": self.status,
            "domain": self.domain,
            "settings": self.settings,
        }


def parse_host(host: str | None) -> tuple[str, str] | None:
    """
    Classify a Host header value.

    Returns ("slug", label) or ("domain", name), or None when the host
    carries no tenant (bare "localhost", IPs without labels, empty input).

    - "acme.localhost:3000" -> ("slug", "acme")
    - "shop.example.com"    -> ("slug", "shop")
    - "example.com"         -> ("domain", "example.com")
    """
    if not host:
        return None
    hostname = host.strip().lower().split(":", 1)[0].rstrip(".")
    parts = [p for p in hostname.split(".") if p]
    if not parts:
        return None
    if all(p.isdigit() for p in parts):
        return None

    if any(marker in parts for marker in LOCAL_MARKERS):
        if len(parts) >= 2 and parts[0] not in LOCAL_MARKERS:
            return ("slug", parts[0])
        return None
    if len(parts) == 2:
        return ("domain", hostname)
    if len(parts) >= 3:
        return ("slug", parts[0])
    return None


class TenantResolver:
    """
    Slug/domain -> TenantInfo with a TTL cache in front of the database.

    The cache is any Flask-Caching compatible object (get/set/delete_many).
    """

    def __init__(self, cache_backend, timeout: int = 60):
        self.cache = cache_backend
        self.timeout = timeout

    @staticmethod
    def slug_key(slug: str) -> str:
        return f"tenant:slug:{slug.lower()}"

    @staticmethod
    def domain_key(domain: str) -> str:
        return f"tenant:domain:{domain.lower()}"

    def _cached(self, key: str, load) -> TenantInfo | None:
        hit = self.cache.get(key)
        if hit == MISSING:
            return None
        if hit is not None:
            return hit

        tenant = load()
        info = TenantInfo.from_model(tenant) if tenant is not None else None
        self.cache.set(key, info if info is not None else MISSING, timeout=self.timeout)
        return info

    def by_slug(self, slug: str | None) -> TenantInfo | None:
        if not slug:
            return None
        normalized = slug.lower()
        return self._cached(
            self.slug_key(normalized),
            lambda: db.session.execute(select(Tenant).where(Tenant.slug == normalized)).scalar(),
        )

    def by_domain(self, domain: str | None) -> TenantInfo | None:
        if not domain:
            return None
        normalized = domain.lower()
        return self._cached(
            self.domain_key(normalized),
            lambda: db.session.execute(select(Tenant).where(func.lower(Tenant.domain) == normalized)).scalar(),
        )

    def resolve_host(self, host: str | None) -> TenantInfo | None:
        parsed = parse_host(host)
        if parsed is None:
            return None
        kind, value = parsed
        return self.by_slug(value) if kind == "slug" else self.by_domain(value)

    def invalidate(self, tenant: Any, *extra_domains: str | None) -> None:
        """Drop every cached key that may point at ``tenant``."""
        keys = [self.slug_key(tenant.slug)]
        for domain in (getattr(tenant, "domain", None), *extra_domains):
            if domain:
                keys.append(self.domain_key(domain))
        self.cache.delete_many(*keys)


def get_resolver() -> TenantResolver:
    return TenantResolver(cache, current_app.config.get("TENANT_CACHE_TIMEOUT", 60))


def _load_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found", code="TENANT_NOT_FOUND")
    return tenant


def get_tenant(tenant_id: int) -> Tenant:
    return _load_tenant(tenant_id)


def list_tenants(*, status: str | None = None, plan: str | None = None, page: int = 1, limit: int = 20) -> dict:
    stmt = select(Tenant)
    if status:
        stmt = stmt.where(Tenant.status == status)
    if plan:
        stmt = stmt.where(Tenant.plan == plan)
    stmt = stmt.order_by(Tenant.created_at.desc(), Tenant.id.desc())
    return paginate(db.session, stmt, page=page, limit=limit)


def onboard_tenant(data: dict) -> Tenant:
    """
    Create a tenant, its owner user (if new) and the OWNER membership.

    Args:
        data: Output of TenantOnboardingSchema (snake_case keys)

    Raises:
        BusinessRuleViolation: reserved or duplicate slug
    """
    slug = data["slug"].lower()
    enforce(validate_tenant_slug(slug))

    owner = db.session.execute(select(User).where(User.email == data["owner_email"].lower())).scalar()
    if owner is None:
        owner = User(email=data["owner_email"].lower(), name=data["owner_name"], role="owner")
        db.session.add(owner)

    settings = store_settings_schema.dump(validate(store_settings_schema, {"name": data["name"]}))
    tenant = Tenant(
        slug=slug,
        name=data["name"],
        description=data.get("description"),
        plan=data.get("plan", "free"),
        status=data.get("status", "active"),
        settings=settings,
        owner=owner,
    )
    db.session.add(tenant)
    try:
        db.session.flush()
        with tenant_transaction(tenant.id) as session:
            session.add(Membership(tenant_id=tenant.id, user_id=owner.id, role="OWNER", is_active=True))
    except Exception:
        db.session.rollback()
        raise

    get_resolver().invalidate(tenant)
    current_app.logger.info("Tenant onboarded: slug=%s id=%s owner=%s", tenant.slug, tenant.id, owner.id)
    return tenant


def get_settings(tenant_id: int) -> dict:
    return dict(_load_tenant(tenant_id).settings or {})


def _merge_settings(current: dict, patch: dict) -> dict:
    merged = dict(current)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def update_settings(tenant_id: int, changes: dict) -> dict:
    """
    Apply a partial StoreSettings update.

    ``changes`` is the snake_case output of the update schema; settings are
    stored in their external (camelCase) form.
    """
    with tenant_transaction(tenant_id):
        tenant = _load_tenant(tenant_id)
        patch = store_settings_update_schema.dump(changes)
        tenant.settings = _merge_settings(tenant.settings or {}, patch)
        if "name" in changes:
            tenant.name = changes["name"]
        if "description" in changes:
            tenant.description = changes["description"]
    get_resolver().invalidate(tenant)
    return dict(tenant.settings)


def change_plan(tenant_id: int, new_plan: str) -> Tenant:
    with tenant_transaction(tenant_id):
        tenant = _load_tenant(tenant_id)
        enforce(validate_plan_upgrade(tenant.plan, new_plan))
        previous = tenant.plan
        tenant.plan = new_plan
    get_resolver().invalidate(tenant)
    current_app.logger.info("Tenant plan changed: id=%s %s -> %s", tenant.id, previous, new_plan)
    return tenant


def change_status(tenant_id: int, status: str) -> Tenant:
    with tenant_transaction(tenant_id):
        tenant = _load_tenant(tenant_id)
        previous = tenant.status
        tenant.status = status
    get_resolver().invalidate(tenant)
    current_app.logger.info("Tenant status changed: id=%s %s -> %s", tenant.id, previous, status)
    return tenant


def change_domain(tenant_id: int, domain: str | None) -> Tenant:
    domain = domain.lower() if domain else None
    with tenant_transaction(tenant_id):
        tenant = _load_tenant(tenant_id)
        enforce(validate_custom_domain(tenant, domain))
        previous = tenant.domain
        tenant.domain = domain
    get_resolver().invalidate(tenant, previous)
    return tenant
