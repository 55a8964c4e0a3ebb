# Overview: Request decorators binding tenant, user and role context for API routes.

from functools import wraps

from flask import current_app, g, request

from .http import error_response, request_context
from .rules.memberships import role_satisfies
from .services import membership_service
from .services.tenant_service import get_resolver


def _slug_from_request(kwargs):
    """
    Returns (slug, None) or (None, error_response).

    URL segment wins; the header must agree with it when both are present.
    """
    url_slug = kwargs.get("tenant_slug")
    header_slug = request.headers.get(current_app.config.get("TENANT_SLUG_HEADER", "X-Tenant-Slug"))
    if url_slug and header_slug and url_slug.lower() != header_slug.lower():
        current_app.logger.warning(
            "Tenant mismatch: url=%s header=%s", url_slug, header_slug, extra=request_context()
        )
        return None, error_response(
            "Tenant in URL does not match tenant header",
            "TENANT_MISMATCH",
            400,
            {"urlSlug": url_slug, "headerSlug": header_slug},
        )
    return url_slug or header_slug, None


def require_tenant(f):
    """
    Resolve the tenant for this request.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant: TenantInfo snapshot (cached lookup)
    - g.tenant_id: integer id every service call is scoped to

    Resolution order: ``<tenant_slug>`` URL segment, X-Tenant-Slug header,
    then the Host header (subdomain or custom domain).

    Returns 400 TENANT_MISMATCH, 404 TENANT_NOT_FOUND or 403 TENANT_UNAVAILABLE.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        slug, failure = _slug_from_request(kwargs)
        if failure is not None:
            return failure

        resolver = get_resolver()
        tenant = resolver.by_slug(slug) if slug else resolver.resolve_host(request.host)
        if tenant is None:
            return error_response("Tenant not found", "TENANT_NOT_FOUND", 404)
        if not tenant.is_available:
            return error_response(
                "Store is not available",
                "TENANT_UNAVAILABLE",
                403,
                {"status": tenant.status},
            )

        g.tenant = tenant
        g.tenant_id = tenant.id
        return f(*args, **kwargs)

    return decorated_function


def require_user(f):
    """
    Require the identity header set by the upstream gateway.

    Sets g.user_id (string, as forwarded).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = request.headers.get(current_app.config.get("USER_ID_HEADER", "X-User-Id"))
        if not user_id:
            return error_response("Authentication required", "UNAUTHORIZED", 401)
        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function


def optional_user(f):
    """Like require_user but anonymous requests pass with g.user_id = None."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user_id = request.headers.get(current_app.config.get("USER_ID_HEADER", "X-User-Id")) or None
        return f(*args, **kwargs)

    return decorated_function


def _numeric_user_id():
    try:
        return int(g.user_id)
    except (AttributeError, TypeError, ValueError):
        return None


def require_role(required: str):
    """
    Require an active membership in g.tenant with at least ``required``.

    Must be applied after require_tenant and require_user. Sets g.member_role.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = _numeric_user_id()
            if user_id is None:
                return error_response("Authentication required", "UNAUTHORIZED", 401)

            membership = membership_service.get_active_membership(g.tenant_id, user_id)
            if membership is None or not role_satisfies(membership.role, required):
                current_app.logger.warning(
                    "Role check failed: required=%s actual=%s",
                    required,
                    membership.role if membership is not None else None,
                    extra=request_context(),
                )
                return error_response(
                    "Insufficient permissions",
                    "FORBIDDEN",
                    403,
                    {"requiredRole": required},
                )

            g.member_role = membership.role
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_platform_role(*roles):
    """Require a PlatformAdmin row with one of ``roles`` (any role when empty)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = _numeric_user_id()
            if user_id is None:
                return error_response("Authentication required", "UNAUTHORIZED", 401)

            role = membership_service.get_platform_role(user_id)
            if role is None or (roles and role not in roles):
                current_app.logger.warning("Platform role check failed: role=%s", role, extra=request_context())
                return error_response("Platform admin access required", "FORBIDDEN", 403)

            g.platform_role = role
            return f(*args, **kwargs)

        return decorated_function
    return decorator
