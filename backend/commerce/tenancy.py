"""
Tenant-scoped persistence.

Everything that reads or writes tenant-owned rows goes through
``tenant_transaction``. While a tenant is bound to the session:

- every ORM SELECT gets ``tenant_id = :tenant`` on all TenantScopedMixin
  models (including joined and aliased ones)
- new tenant-scoped rows inherit the bound tenant; flushing a row that
  belongs to another tenant raises TenantAccessError
- on PostgreSQL ``app.current_tenant_id`` is set for the transaction so the
  row-level security policies installed by migrations apply as well

Selecting tenant-scoped models with no tenant bound is refused unless the
caller opts out explicitly with ``unscoped()`` (platform tooling only).
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from sqlalchemy import event, func, select, text
from sqlalchemy.orm import Session, with_loader_criteria

from .errors import TenantAccessError
from .extensions import db
from .models.mixins import TenantScopedMixin

TENANT_KEY = "commerce.tenant_id"
UNSCOPED_KEY = "commerce.unscoped"


def current_tenant_id(session: Session | None = None) -> int | None:
    session = session if session is not None else db.session
    return session.info.get(TENANT_KEY)


def _set_database_tenant(session, tenant_id: int) -> None:
    if db.engine.dialect.name == "postgresql":
        session.execute(
            text("SELECT set_config('app.current_tenant_id', :tid, true)"),
            {"tid": str(tenant_id)},
        )


@contextmanager
def tenant_transaction(tenant_id: int) -> Iterator[Session]:
    """
    Run a block inside one transaction bound to ``tenant_id``.

    Nested calls for the same tenant join the outer transaction; the outer
    block commits. A nested call for another tenant raises TenantAccessError.
    """
    if tenant_id is None:
        raise TenantAccessError("Tenant context is required")

    session = db.session
    bound = session.info.get(TENANT_KEY)
    if bound is not None:
        if bound != tenant_id:
            raise TenantAccessError(
                "Cannot open a transaction for another tenant",
                details={"bound": bound, "requested": tenant_id},
            )
        yield session
        return

    session.info[TENANT_KEY] = tenant_id
    try:
        _set_database_tenant(session, tenant_id)
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.info.pop(TENANT_KEY, None)


@contextmanager
def unscoped() -> Iterator[Session]:
    """Allow cross-tenant reads (CLI purge, platform reports)."""
    session = db.session
    previous = session.info.get(UNSCOPED_KEY, False)
    session.info[UNSCOPED_KEY] = True
    try:
        yield session
    finally:
        session.info[UNSCOPED_KEY] = previous


def _touches_tenant_models(orm_execute_state) -> bool:
    return any(
        isinstance(mapper.class_, type) and issubclass(mapper.class_, TenantScopedMixin)
        for mapper in orm_execute_state.all_mappers
    )


@event.listens_for(Session, "do_orm_execute")
def _add_tenant_criteria(orm_execute_state):
    if not orm_execute_state.is_select:
        return
    if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
        return

    session = orm_execute_state.session
    tenant_id = session.info.get(TENANT_KEY)
    if tenant_id is None:
        if not session.info.get(UNSCOPED_KEY) and _touches_tenant_models(orm_execute_state):
            raise TenantAccessError("Tenant context is required for tenant-owned data")
        return

    orm_execute_state.statement = orm_execute_state.statement.options(
        with_loader_criteria(
            TenantScopedMixin,
            lambda cls: cls.tenant_id == tenant_id,
            include_aliases=True,
        )
    )


@event.listens_for(Session, "before_flush")
def _guard_tenant_writes(session, flush_context, instances):
    tenant_id = session.info.get(TENANT_KEY)
    if tenant_id is None:
        return

    for obj in session.new:
        if not isinstance(obj, TenantScopedMixin):
            continue
        if obj.tenant_id is None:
            obj.tenant_id = tenant_id
        elif obj.tenant_id != tenant_id:
            raise TenantAccessError(
                "Refusing to write a row for another tenant",
                details={"bound": tenant_id, "row": obj.tenant_id},
            )

    for obj in list(session.dirty) + list(session.deleted):
        if isinstance(obj, TenantScopedMixin) and obj.tenant_id != tenant_id:
            raise TenantAccessError(
                "Refusing to modify a row owned by another tenant",
                details={"bound": tenant_id, "row": obj.tenant_id},
            )


class TenantRepository:
    """
    CRUD over one tenant-scoped model for one tenant.

    ``where`` is an equality mapping of attribute name to value; ``criteria``
    takes extra SQL expressions. Each call is its own transaction unless an
    enclosing tenant_transaction for the same tenant is active.
    """

    def __init__(self, model, tenant_id: int):
        if not (isinstance(model, type) and issubclass(model, TenantScopedMixin)):
            raise TypeError(f"{model!r} is not a tenant-scoped model")
        if tenant_id is None:
            raise TenantAccessError("Tenant context is required")
        self.model = model
        self.tenant_id = tenant_id

    def _statement(self, where: dict | None, criteria: Iterable[Any]):
        where = dict(where or {})
        if "tenant_id" in where and where.pop("tenant_id") != self.tenant_id:
            raise TenantAccessError("Cross-tenant query denied")
        stmt = select(self.model).where(self.model.tenant_id == self.tenant_id)
        for name, value in where.items():
            stmt = stmt.where(getattr(self.model, name) == value)
        for clause in criteria:
            stmt = stmt.where(clause)
        return stmt

    def find_many(
        self,
        where: dict | None = None,
        *,
        criteria: Iterable[Any] = (),
        order_by: Iterable[Any] = (),
        offset: int | None = None,
        limit: int | None = None,
        for_update: bool = False,
    ) -> list:
        stmt = self._statement(where, criteria)
        order_by = list(order_by)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        if for_update:
            stmt = stmt.with_for_update()
        with tenant_transaction(self.tenant_id) as session:
            return list(session.execute(stmt).scalars().unique())

    def find_unique(self, where: dict | None = None, *, criteria: Iterable[Any] = (), for_update: bool = False):
        stmt = self._statement(where, criteria)
        if for_update:
            stmt = stmt.with_for_update()
        with tenant_transaction(self.tenant_id) as session:
            return session.execute(stmt).scalars().first()

    def get(self, obj_id: int, *, for_update: bool = False):
        return self.find_unique({"id": obj_id}, for_update=for_update)

    def count(self, where: dict | None = None, *, criteria: Iterable[Any] = ()) -> int:
        subquery = self._statement(where, criteria).subquery()
        stmt = select(func.count()).select_from(subquery)
        with tenant_transaction(self.tenant_id) as session:
            return int(session.execute(stmt).scalar_one())

    def create(self, data: dict):
        data = dict(data)
        if data.get("tenant_id", self.tenant_id) != self.tenant_id:
            raise TenantAccessError("Cannot create a row for another tenant")
        data["tenant_id"] = self.tenant_id
        with tenant_transaction(self.tenant_id) as session:
            obj = self.model(**data)
            session.add(obj)
            session.flush()
            return obj

    def update(self, obj_id: int, data: dict):
        if data.get("tenant_id", self.tenant_id) != self.tenant_id:
            raise TenantAccessError("tenant_id is immutable")
        with tenant_transaction(self.tenant_id) as session:
            obj = self.get(obj_id)
            if obj is None:
                return None
            for name, value in data.items():
                if name in ("id", "tenant_id"):
                    continue
                setattr(obj, name, value)
            session.flush()
            return obj

    def delete(self, obj_id: int) -> bool:
        with tenant_transaction(self.tenant_id) as session:
            obj = self.get(obj_id)
            if obj is None:
                return False
            session.delete(obj)
            session.flush()
            return True
