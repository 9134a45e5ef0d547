# Overview: Service-layer operations for concurrency; atomic upserts and retry on lock contention.

from __future__ import annotations

import time
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert(
    session: Session,
    model,
    values: dict[str, Any],
    *,
    conflict_columns: Iterable[str],
    update_columns: Iterable[str],
) -> int:
    """
    INSERT ... ON CONFLICT (conflict_columns) DO UPDATE ... RETURNING id.

    One statement, so two syncs racing on the same natural key cannot both
    insert; the loser updates the winner's row. Columns missing from
    update_columns are written on insert only.

    Returns the primary key of the inserted or updated row.
    """
    dialect = session.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upsert not supported on dialect {dialect!r}")

    stmt = insert(model).values(**values)
    set_ = {column: stmt.excluded[column] for column in update_columns}
    # onupdate defaults are not applied by ON CONFLICT DO UPDATE
    if "updated_at" in model.__table__.c:
        set_["updated_at"] = func.now()

    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_=set_,
    ).returning(model.id)
    return session.execute(stmt).scalar_one()


def run_with_retry(func, *, session: Session, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (SQLite "database is locked", deadlocks) and
    StaleDataError. The session is rolled back before each retry.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc

