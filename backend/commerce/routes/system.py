# Overview: Flask API routes for service health and version information.

"""
System health and version endpoints.

Checks the relational database, the document store and the tenant cache so a
load balancer can take an instance out of rotation when one of them fails.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import cache, db, mongo
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _timed(check):
    start_time = time.time()
    try:
        details = check()
        status = "healthy"
        error = None
    except Exception:
        current_app.logger.exception("Health check failed: %s", check.__name__)
        details = None
        status = "unhealthy"
        error = f"{check.__name__} failed"

    result = {"status": status, "latency_ms": round((time.time() - start_time) * 1000, 2)}
    if details is not None:
        result["details"] = details
    if error is not None:
        result["error"] = error
    return result


def database():
    db.session.execute(text("SELECT 1"))
    db.session.rollback()
    return {"dialect": db.engine.dialect.name}


def document_store():
    mongo.db.command("ping")
    return {"database": mongo.db.name}


def tenant_cache():
    cache.set("health:ping", "pong", timeout=5)
    return {"roundTrip": cache.get("health:ping") == "pong"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all dependencies healthy
    - 503: at least one dependency unhealthy
    """
    started = time.time()
    checks = {
        "database": _timed(database),
        "document_store": _timed(document_store),
        "cache": _timed(tenant_cache),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())
    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - started) * 1000, 2),
        "checks": checks,
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    return {
        "api_version": "1.0.0",
        "environment": "production" if not current_app.debug else "development",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
