"""
Production overview API - recent egg log and month-over-month change
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from chicken_manager.database import get_db
from chicken_manager.models.production import EggEntry
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import production_stats
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict
from chicken_manager.utils.helpers import days_ago, month_bounds, previous_month_key

router = APIRouter()


async def eggs_in_month(db: AsyncSession, current_user: Identity, key: str) -> int:
    start, end = month_bounds(key)
    result = await db.execute(
        select(func.coalesce(func.sum(EggEntry.count), 0))
        .where(EggEntry.user_id == current_user.id, EggEntry.date >= start, EggEntry.date < end)
    )
    return result.scalar() or 0


@router.get("/")
async def get_production(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(
        owned(EggEntry, current_user).where(EggEntry.date >= days_ago(30)).order_by(EggEntry.date.desc())
    )
    entries = [row_dict(e) for e in result.scalars().all()]
    previous = await eggs_in_month(db, current_user, previous_month_key())
    return envelope("Production data", production_stats(entries, previous))
