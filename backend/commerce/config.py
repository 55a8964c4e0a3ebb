# backend/commerce/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Relational backend. PostgreSQL enables row-level security policies;
    # SQLite is fine for local development and tests.
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///commerce.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Document backend (tenant users)
    MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "commerce")

    # Tenant lookup cache (Flask-Caching). Set CACHE_TYPE=RedisCache and
    # CACHE_REDIS_URL to share the cache between workers.
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "SimpleCache")
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL")
    CACHE_DEFAULT_TIMEOUT = 300
    TENANT_CACHE_TIMEOUT = int(os.environ.get("TENANT_CACHE_TIMEOUT", "60"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Header set by the upstream identity gateway once a session is verified
    USER_ID_HEADER = "X-User-Id"
    TENANT_SLUG_HEADER = "X-Tenant-Slug"
    CART_SESSION_HEADER = "X-Cart-Session"

    # Storefront origins allowed to call the API from a browser
    CORS_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if origin.strip()
    )

    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ORD")
    CART_TTL_DAYS = int(os.environ.get("CART_TTL_DAYS", "30"))
