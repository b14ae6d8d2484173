"""
Feed inventory API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Union

from chicken_manager.config import get_settings
from chicken_manager.database import get_db
from chicken_manager.models.finance import FeedInventory
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import feed_stats, low_stock_alerts
from chicken_manager.services.upsert_mapper import FeedEntryIn, map_feed_entry, map_records
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, delete_owned, storage_errors
from chicken_manager.utils.db_compat import upsert_rows
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)
settings = get_settings()


async def _inventory(db: AsyncSession, current_user: Identity):
    result = await db.execute(owned(FeedInventory, current_user).order_by(FeedInventory.created_at.desc()))
    return [row_dict(f) for f in result.scalars().all()]


@router.get("/")
async def list_feed(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    return envelope("Feed inventory fetched", await _inventory(db, current_user))


@router.get("/summary")
async def feed_summary(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    inventory = await _inventory(db, current_user)
    return envelope("Feed summary", feed_stats(inventory, settings.LOW_STOCK_THRESHOLD))


@router.get("/low-stock")
async def feed_low_stock(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    inventory = await _inventory(db, current_user)
    return envelope("Low stock feed", low_stock_alerts(inventory, settings.LOW_STOCK_THRESHOLD))


@router.post("/")
async def save_feed(
    data: Union[FeedEntryIn, List[FeedEntryIn]],
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    rows = map_records(data, current_user.id, map_feed_entry)
    async with storage_errors(db, "saving feed inventory"):
        saved = await upsert_rows(db, FeedInventory, rows)
        await db.commit()

    logger.info(f"Saved {len(saved)} feed entries for user {current_user.id}")
    return envelope("Feed inventory saved successfully", saved)


@router.delete("/{feed_id}")
async def delete_feed(
    feed_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    await delete_owned(db, FeedInventory, feed_id, current_user, "Feed entry not found")
    await db.commit()
    return envelope("Feed entry deleted")
