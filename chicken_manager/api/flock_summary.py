"""
Flock summary API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.database import get_db
from chicken_manager.models.flock import DeathRecord, FlockBatch
from chicken_manager.models.production import EggEntry
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import flock_summary
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict
from chicken_manager.utils.helpers import days_ago

router = APIRouter()


@router.get("/")
async def get_flock_summary(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(owned(FlockBatch, current_user).where(FlockBatch.is_active == True))
    batches = [row_dict(b) for b in result.scalars().all()]

    deaths = []
    if batches:
        result = await db.execute(
            owned(DeathRecord, current_user).where(DeathRecord.batch_id.in_([b["id"] for b in batches]))
        )
        deaths = [row_dict(d) for d in result.scalars().all()]

    result = await db.execute(owned(EggEntry, current_user).where(EggEntry.date >= days_ago(30)))
    eggs = [row_dict(e) for e in result.scalars().all()]

    return envelope("Flock summary", flock_summary(batches, deaths, eggs))
