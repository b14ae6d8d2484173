"""
Batch events API - per-batch timeline whose writes propagate to the batch
and to the flock timeline
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import datetime as dt
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chicken_manager.database import get_db
from chicken_manager.models.flock import BatchEvent, BatchEventType, FlockBatch
from chicken_manager.services import batch_events as propagation
from chicken_manager.services.auth_client import Identity
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, delete_owned, get_owned, owned, row_dict
from chicken_manager.api.flock_batches import get_active_batch
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


# --- Pydantic Schemas ---

class BatchEventCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_id: str = Field(validation_alias=AliasChoices("batchId", "batch_id"))
    date: dt.date
    type: BatchEventType
    description: str = Field(min_length=1)
    affected_count: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("affectedCount", "affected_count")
    )
    notes: Optional[str] = None


class BatchEventUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_id: str = Field(validation_alias=AliasChoices("eventId", "event_id"))
    date: Optional[dt.date] = None
    type: Optional[BatchEventType] = None
    description: Optional[str] = None
    affected_count: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("affectedCount", "affected_count")
    )
    notes: Optional[str] = None


class EventRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(validation_alias=AliasChoices("eventId", "event_id"))


# --- Endpoints ---

@router.get("/")
async def list_batch_events(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    if not batch_id:
        raise HTTPException(status_code=400, detail="batchId parameter required")

    result = await db.execute(
        owned(BatchEvent, current_user)
        .where(BatchEvent.batch_id == batch_id)
        .order_by(BatchEvent.date.desc(), BatchEvent.created_at.desc())
    )
    return envelope("Batch events fetched", [row_dict(e) for e in result.scalars().all()])


@router.post("/", status_code=201)
async def create_batch_event(
    data: BatchEventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    batch = await get_active_batch(db, data.batch_id, current_user)

    event = BatchEvent(
        user_id=current_user.id,
        batch_id=batch.id,
        date=data.date,
        type=data.type.value,
        description=data.description,
        affected_count=data.affected_count,
        notes=data.notes,
    )
    db.add(event)
    await db.flush()

    await propagation.propagate_create(db, event, batch)
    await db.commit()

    logger.info(f"Created {event.type} event {event.id} on batch {batch.id}")
    return envelope("Batch event created", row_dict(event))


@router.put("/")
async def update_batch_event(
    data: BatchEventUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    event = await get_owned(db, BatchEvent, data.event_id, current_user, "Event not found")
    batch = await get_owned(db, FlockBatch, event.batch_id, current_user, "Batch not found")
    previous_type = event.type

    values = data.model_dump(exclude_none=True, exclude={"event_id"})
    if "type" in values:
        values["type"] = values["type"].value
    for key, value in values.items():
        setattr(event, key, value)
    await db.flush()

    await propagation.propagate_update(db, event, batch, previous_type)
    await db.commit()
    return envelope("Batch event updated", row_dict(event))


@router.delete("/")
async def delete_batch_event(
    data: EventRef,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    event = await get_owned(db, BatchEvent, data.event_id, current_user, "Event not found")
    batch = await get_owned(db, FlockBatch, event.batch_id, current_user, "Batch not found")
    event_type = event.type
    mirrors = await propagation.mirror_ids(db, event)

    await delete_owned(db, BatchEvent, event.id, current_user, "Event not found")
    db.expunge(event)
    await propagation.propagate_delete(db, event_type, batch, current_user.id, mirrors)
    await db.commit()
    return envelope("Batch event deleted")
