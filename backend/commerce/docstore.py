# Overview: Document-store extension and tenant-filtered collection accessor.

from __future__ import annotations

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from flask import Flask
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from .errors import TenantAccessError
from .time_utils import to_utc_z, utcnow

TENANT_FIELD = "tenantId"


class DocumentStore:
    """
    Flask extension owning the MongoClient.

    Tests hand in a mongomock client through ``init_app(app, client=...)``.
    """

    def __init__(self, app: Flask | None = None):
        self.client: MongoClient | None = None
        self.db: Database | None = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask, client=None) -> None:
        if client is None:
            client = MongoClient(
                app.config["MONGO_URI"],
                tz_aware=False,
                connect=False,
                serverSelectionTimeoutMS=app.config.get("MONGO_TIMEOUT_MS", 5000),
            )
        self.client = client
        self.db = client[app.config["MONGO_DB_NAME"]]
        app.extensions["docstore"] = self

    def collection(self, name: str) -> Collection:
        if self.db is None:
            raise RuntimeError("DocumentStore is not initialised; call init_app() first")
        return self.db[name]

    def for_tenant(self, name: str, tenant_id: int) -> "TenantCollection":
        return TenantCollection(self.collection(name), tenant_id)


def _object_id(doc_id: str) -> ObjectId | None:
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        return None


def serialize(doc: dict | None) -> dict | None:
    """Convert a raw document into its API form (``_id`` becomes ``id``)."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        elif hasattr(value, "isoformat"):
            out[key] = to_utc_z(value)
        else:
            out[key] = value
    return out


class TenantCollection:
    """
    The only sanctioned path to tenant-owned documents.

    MULTI-TENANT: every query is ANDed with ``tenantId == tenant_id``; a
    filter or payload naming a different tenantId raises TenantAccessError.
    """

    def __init__(self, collection: Collection, tenant_id: int):
        if tenant_id is None:
            raise TenantAccessError("Tenant context is required")
        self.collection = collection
        self.tenant_id = tenant_id

    def _check_tenant(self, payload: dict | None) -> None:
        if payload and TENANT_FIELD in payload and payload[TENANT_FIELD] != self.tenant_id:
            raise TenantAccessError(
                "Cross-tenant document access denied",
                details={"tenantId": self.tenant_id},
            )

    def _scoped(self, where: dict | None = None) -> dict:
        where = dict(where or {})
        self._check_tenant(where)
        where[TENANT_FIELD] = self.tenant_id
        return where

    def find_many(
        self,
        where: dict | None = None,
        *,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict]:
        cursor = self.collection.find(self._scoped(where))
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize(doc) for doc in cursor]

    def find_one(self, where: dict | None = None) -> dict | None:
        return serialize(self.collection.find_one(self._scoped(where)))

    def get(self, doc_id: str) -> dict | None:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        return self.find_one({"_id": oid})

    def count(self, where: dict | None = None) -> int:
        return self.collection.count_documents(self._scoped(where))

    def create(self, data: dict) -> dict:
        self._check_tenant(data)
        now = utcnow()
        doc = {**data, TENANT_FIELD: self.tenant_id, "createdAt": now, "updatedAt": now}
        doc.pop("_id", None)
        doc.pop("id", None)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize(doc)

    def update(self, doc_id: str, data: dict) -> dict | None:
        self._check_tenant(data)
        oid = _object_id(doc_id)
        if oid is None:
            return None
        changes = {k: v for k, v in data.items() if k not in ("_id", "id", TENANT_FIELD, "createdAt")}
        changes["updatedAt"] = utcnow()
        doc = self.collection.find_one_and_update(
            self._scoped({"_id": oid}),
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(doc)

    def delete(self, doc_id: str) -> bool:
        oid = _object_id(doc_id)
        if oid is None:
            return False
        return self.collection.delete_one(self._scoped({"_id": oid})).deleted_count == 1
