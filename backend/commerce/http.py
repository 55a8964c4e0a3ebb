# Overview: JSON response envelope and request context helpers shared by routes and middleware.

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

NO_STORE = {"Cache-Control": "no-store"}


def ok(data: Any = None, status: int = 200):
    return jsonify({"ok": True, "data": data}), status, NO_STORE


def created(data: Any):
    return ok(data, 201)


def error_response(error: str, code: str, status: int, details: Any = None):
    payload = {"ok": False, "error": error, "code": code}
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status, NO_STORE


def bad_request(error: str, code: str = "BAD_REQUEST", details: Any = None):
    return error_response(error, code, 400, details)


def request_context() -> dict:
    """Fields attached to every log record emitted while handling a request."""
    tenant = getattr(g, "tenant", None)
    return {
        "method": request.method,
        "path": request.path,
        "tenant_id": tenant.id if tenant is not None else None,
        "tenant_slug": tenant.slug if tenant is not None else None,
        "user_id": getattr(g, "user_id", None),
        "remote_addr": request.remote_addr,
        "request_id": request.headers.get("X-Request-Id"),
    }
