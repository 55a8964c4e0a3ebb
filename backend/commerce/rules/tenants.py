"""Tenant rules: slug reservation and uniqueness, plan moves, custom domains."""
from __future__ import annotations

from sqlalchemy import func, select

from ..extensions import db
from ..models import Tenant
from .results import PASS, RuleResult, fail

RESERVED_SLUGS = (
    "admin", "api", "app", "www", "mail", "ftp", "blog", "shop", "store",
    "support", "help", "docs", "status", "dashboard", "login", "signup",
    "register", "account", "profile", "settings", "billing", "payment",
)

PLAN_ORDER = ("free", "basic", "premium", "enterprise")
PLAN_PRODUCT_LIMITS = {"free": 10, "basic": 100, "premium": 1000, "enterprise": 10000}
PLANS_WITH_CUSTOM_DOMAIN = ("basic", "premium", "enterprise")


def product_limit(plan: str) -> int:
    return PLAN_PRODUCT_LIMITS.get(plan, PLAN_PRODUCT_LIMITS["free"])


def validate_tenant_slug(slug: str) -> RuleResult:
    normalized = (slug or "").lower()
    if normalized in RESERVED_SLUGS:
        return fail(
            "This slug is reserved and cannot be used",
            "RESERVED_SLUG",
            {"slug": slug, "reservedSlugs": list(RESERVED_SLUGS)},
        )

    existing = db.session.execute(
        select(Tenant.id).where(func.lower(Tenant.slug) == normalized)
    ).scalar()
    if existing is not None:
        return fail(
            "Tenant slug already exists",
            "DUPLICATE_SLUG",
            {"slug": slug, "existingTenantId": existing},
        )
    return PASS


def validate_plan_upgrade(current_plan: str, new_plan: str) -> RuleResult:
    """
    Plans only move forward along free -> basic -> premium -> enterprise.

    Staying on the same plan is allowed; downgrades are refused outright.
    """
    if current_plan not in PLAN_ORDER or new_plan not in PLAN_ORDER:
        return fail("Invalid plan", "INVALID_PLAN", {"currentPlan": current_plan, "newPlan": new_plan})
    if PLAN_ORDER.index(new_plan) < PLAN_ORDER.index(current_plan):
        return fail(
            "Cannot downgrade plan directly. Contact support for assistance.",
            "PLAN_DOWNGRADE_NOT_ALLOWED",
            {"currentPlan": current_plan, "newPlan": new_plan},
        )
    return PASS


def validate_custom_domain(tenant: Tenant, domain: str | None) -> RuleResult:
    if domain is None:
        return PASS
    if tenant.plan not in PLANS_WITH_CUSTOM_DOMAIN:
        return fail(
            f"Custom domains are not available on the {tenant.plan} plan",
            "PLAN_FEATURE_UNAVAILABLE",
            {"plan": tenant.plan, "feature": "customDomain"},
        )
    owner = db.session.execute(
        select(Tenant.id).where(func.lower(Tenant.domain) == domain.lower(), Tenant.id != tenant.id)
    ).scalar()
    if owner is not None:
        return fail("Domain is already in use", "DUPLICATE_DOMAIN", {"domain": domain})
    return PASS
