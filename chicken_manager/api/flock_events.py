"""
Flock timeline API - events entered directly plus mirrors of batch events
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Union

from chicken_manager.database import get_db
from chicken_manager.models.flock import FlockEvent
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.upsert_mapper import FlockEventIn, map_flock_event, map_records
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, delete_owned, storage_errors
from chicken_manager.utils.db_compat import upsert_rows

router = APIRouter()


@router.get("/")
async def list_flock_events(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(
        owned(FlockEvent, current_user).order_by(FlockEvent.date.desc(), FlockEvent.created_at.desc())
    )
    return envelope("Flock events fetched", [row_dict(e) for e in result.scalars().all()])


@router.post("/")
async def save_flock_events(
    data: Union[FlockEventIn, List[FlockEventIn]],
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    rows = map_records(data, current_user.id, map_flock_event)
    async with storage_errors(db, "saving flock events"):
        saved = await upsert_rows(db, FlockEvent, rows)
        await db.commit()
    return envelope("Flock events saved successfully", saved)


@router.delete("/{event_id}")
async def delete_flock_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    await delete_owned(db, FlockEvent, event_id, current_user, "Flock event not found")
    await db.commit()
    return envelope("Flock event deleted")
