"""Dialect-aware ``INSERT ... ON CONFLICT DO UPDATE`` statements."""

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def upsert_statement(db: AsyncSession, model, values: dict, conflict_columns: list, update_columns: list[str]):
    """
    Build an upsert for ``model`` on the session's dialect.

    On conflict over ``conflict_columns`` every column in ``update_columns``
    is overwritten with the incoming value.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upserts are not supported on the '{dialect}' dialect")

    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={name: stmt.excluded[name] for name in update_columns},
    )
