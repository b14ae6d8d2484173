"""
Database compatibility helpers for SQLite and PostgreSQL.
"""
from typing import Any, Dict, List

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.database import is_sqlite, utcnow


def _insert(table):
    if is_sqlite:
        return sqlite.insert(table)
    return postgresql.insert(table)


def upsert_statement(model, rows: List[Dict[str, Any]]):
    """INSERT ... ON CONFLICT (id) DO UPDATE ... RETURNING * for rows sharing one column set.

    Only the columns present in the rows are overwritten on conflict, and the
    update is skipped when the existing row belongs to another owner.
    """
    table = model.__table__
    stmt = _insert(table).values(rows)
    update_cols = {
        name: stmt.excluded[name]
        for name in rows[0].keys()
        if name not in ("id", "user_id")
    }
    # onupdate hooks don't fire for ON CONFLICT updates
    if "updated_at" in table.c:
        update_cols["updated_at"] = utcnow()
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.id],
        set_=update_cols,
        where=table.c.user_id == stmt.excluded.user_id,
    )
    return stmt.returning(*table.c)


async def upsert_rows(db: AsyncSession, model, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Upsert storage-shaped rows keyed by id; returns the stored rows.

    A repeated id keeps its last copy, since one ON CONFLICT statement can't
    touch the same row twice. Rows with different optional columns can't
    share one VALUES list, so they are grouped by column set. All groups run
    on the caller's transaction.
    """
    latest: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        latest[row["id"]] = row
    rows = list(latest.values())

    groups: Dict[tuple, List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(tuple(sorted(row.keys())), []).append(row)

    stored: Dict[str, Dict[str, Any]] = {}
    for group in groups.values():
        result = await db.execute(upsert_statement(model, group))
        for r in result.mappings().all():
            stored[r["id"]] = dict(r)

    # Keep request order
    return [stored[row["id"]] for row in rows if row["id"] in stored]
