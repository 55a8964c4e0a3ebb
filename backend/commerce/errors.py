"""
Error taxonomy shared by validation, business rules, persistence and routes.

Every error carries a machine-readable ``code`` and optional ``details`` so the
HTTP layer can render the ``{ok, error, code, details}`` envelope without
inspecting error messages.

- ValidationError: input shape/bounds problem (400, never retried)
- BusinessRuleViolation: domain constraint failed (400)
- NotFoundError: entity missing or owned by another tenant (404)
- TenantAccessError: cross-tenant access attempt (404, existence not revealed)
- AuthenticationError: 401 (signed-in caller required)
- ConflictError: state conflict such as re-linking a tenant user (409)
- InfrastructureError: persistence failure (500, details withheld)
"""
from __future__ import annotations

from typing import Any


class CommerceError(Exception):
    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        payload = {"ok": False, "error": self.message, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(CommerceError):
    """400-level input problem."""
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", errors: list[dict] | None = None, **kwargs):
        kwargs.setdefault("details", errors)
        super().__init__(message, **kwargs)
        self.errors = errors or []


class BusinessRuleViolation(CommerceError):
    default_code = "BUSINESS_RULE_VIOLATION"

    @classmethod
    def from_result(cls, result) -> "BusinessRuleViolation":
        return cls(
            result.error or "Business rule validation failed",
            code=result.code,
            details=result.details,
        )


class NotFoundError(CommerceError):
    status_code = 404
    default_code = "NOT_FOUND"


class TenantAccessError(NotFoundError):
    """Raised when cross-tenant access is attempted."""
    default_code = "TENANT_ACCESS_DENIED"


class AuthenticationError(CommerceError):
    status_code = 401
    default_code = "UNAUTHORIZED"


class ConflictError(CommerceError):
    """409-level state conflict."""
    status_code = 409
    default_code = "CONFLICT"


class InfrastructureError(CommerceError):
    status_code = 500
    default_code = "INFRASTRUCTURE_ERROR"
