"""
Egg production log API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Union
from datetime import date

from chicken_manager.database import get_db
from chicken_manager.models.production import EggEntry
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.upsert_mapper import EggEntryIn, map_egg_entry, map_records
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, delete_owned, storage_errors
from chicken_manager.utils.db_compat import upsert_rows
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/")
async def list_egg_entries(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Egg entries, newest first, optionally within [startDate, endDate]"""
    query = owned(EggEntry, current_user).order_by(EggEntry.date.desc(), EggEntry.created_at.desc())
    if start_date:
        query = query.where(EggEntry.date >= start_date)
    if end_date:
        query = query.where(EggEntry.date <= end_date)

    result = await db.execute(query)
    return envelope("Egg entries fetched", [row_dict(e) for e in result.scalars().all()])


@router.post("/")
async def save_egg_entries(
    data: Union[EggEntryIn, List[EggEntryIn]],
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Insert or update one entry or a list of entries by id"""
    rows = map_records(data, current_user.id, map_egg_entry)
    async with storage_errors(db, "saving egg entries"):
        saved = await upsert_rows(db, EggEntry, rows)
        await db.commit()

    logger.info(f"Saved {len(saved)} egg entries for user {current_user.id}")
    return envelope("Egg entries saved successfully", saved)


@router.delete("/{entry_id}")
async def delete_egg_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    await delete_owned(db, EggEntry, entry_id, current_user, "Egg entry not found")
    await db.commit()
    return envelope("Egg entry deleted")
