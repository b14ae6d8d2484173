"""
Shared request pipeline pieces: owner-scoped queries, targeted writes that
report zero-row matches as 404, and the response envelope.

Rows owned by someone else are indistinguishable from missing rows.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import HTTPException
from sqlalchemy import select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.services.auth_client import Identity
from chicken_manager.utils.helpers import timestamp


def envelope(message: str, data: Any = None) -> Dict[str, Any]:
    body = {"message": message, "timestamp": timestamp()}
    if data is not None:
        body["data"] = data
    return body


def row_dict(obj) -> Dict[str, Any]:
    """Column values of an ORM instance"""
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}


def owned(model, user: Identity):
    """SELECT scoped to the caller's rows"""
    return (
        select(model)
        .where(model.user_id == user.id)
        .execution_options(populate_existing=True)
    )


async def get_owned(db: AsyncSession, model, record_id: str, user: Identity, detail: str = "Record not found"):
    result = await db.execute(owned(model, user).where(model.id == record_id))
    obj = result.scalar_one_or_none()
    if obj is None:
        raise HTTPException(status_code=404, detail=detail)
    return obj


async def update_owned(
    db: AsyncSession,
    model,
    record_id: str,
    user: Identity,
    values: Dict[str, Any],
    detail: str = "Record not found",
) -> Dict[str, Any]:
    """UPDATE ... WHERE id AND user_id; returns the updated row"""
    values = {k: v for k, v in values.items() if k not in ("id", "user_id")}
    if not values:
        obj = await get_owned(db, model, record_id, user, detail)
        return row_dict(obj)

    result = await db.execute(
        update(model)
        .where(model.id == record_id, model.user_id == user.id)
        .values(**values)
        .returning(*model.__table__.c)
    )
    row = result.mappings().one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail=detail)
    return dict(row)


async def delete_owned(
    db: AsyncSession,
    model,
    record_id: str,
    user: Identity,
    detail: str = "Record not found",
) -> None:
    """DELETE ... WHERE id AND user_id; zero matched rows is a 404"""
    result = await db.execute(
        delete(model)
        .where(model.id == record_id, model.user_id == user.id)
    )
    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail=detail)



@asynccontextmanager
async def storage_errors(db: AsyncSession, action: str):
    """Roll back and surface storage failures as a 500 carrying the cause"""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        raise HTTPException(
            status_code=500,
            detail={"message": f"Error {action}", "error": str(getattr(e, "orig", None) or e)},
        )
