"""
Death records API - mortality log; every change is reflected in the batch's
current bird count within the same transaction
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
import datetime as dt
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chicken_manager.database import get_db
from chicken_manager.models.flock import DeathCause, DeathRecord, FlockBatch
from chicken_manager.services.auth_client import Identity
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, get_owned, row_dict
from chicken_manager.api.flock_batches import get_active_batch
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


# --- Pydantic Schemas ---

class DeathRecordCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_id: str = Field(validation_alias=AliasChoices("batchId", "batch_id"))
    date: dt.date
    count: int
    cause: DeathCause
    description: str = Field(min_length=1)
    notes: Optional[str] = None


class DeathRecordUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    record_id: str = Field(validation_alias=AliasChoices("recordId", "record_id"))
    date: Optional[dt.date] = None
    count: Optional[int] = None
    cause: Optional[DeathCause] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class RecordRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(validation_alias=AliasChoices("recordId", "record_id"))


# --- Helper ---

def _with_batch(record: DeathRecord, batch: FlockBatch) -> dict:
    data = row_dict(record)
    data.update(batch_name=batch.batch_name, breed=batch.breed, batch_type=batch.type)
    return data


# --- Endpoints ---

@router.get("/")
async def list_death_records(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    query = (
        select(DeathRecord, FlockBatch)
        .join(FlockBatch, DeathRecord.batch_id == FlockBatch.id)
        .where(DeathRecord.user_id == current_user.id, FlockBatch.user_id == current_user.id)
        .order_by(DeathRecord.date.desc())
        .execution_options(populate_existing=True)
    )
    if batch_id:
        query = query.where(DeathRecord.batch_id == batch_id)

    result = await db.execute(query)
    return envelope("Death records fetched", [_with_batch(r, b) for r, b in result.all()])


@router.post("/", status_code=201)
async def create_death_record(
    data: DeathRecordCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    if data.count <= 0:
        raise HTTPException(status_code=400, detail="Count must be greater than 0")

    batch = await get_active_batch(db, data.batch_id, current_user)
    if data.count > batch.current_count:
        raise HTTPException(
            status_code=400,
            detail=(
                f'Cannot record {data.count} deaths. Batch "{batch.batch_name}" '
                f"only has {batch.current_count} birds remaining."
            ),
        )

    record = DeathRecord(
        user_id=current_user.id,
        batch_id=batch.id,
        date=data.date,
        count=data.count,
        cause=data.cause.value,
        description=data.description,
        notes=data.notes,
    )
    db.add(record)
    batch.current_count = max(0, batch.current_count - data.count)
    await db.commit()

    logger.info(f"Recorded {data.count} deaths on batch {batch.id}")
    return envelope("Death record created", _with_batch(record, batch))


@router.put("/")
async def update_death_record(
    data: DeathRecordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    record = await get_owned(db, DeathRecord, data.record_id, current_user, "Record not found")
    batch = await get_owned(db, FlockBatch, record.batch_id, current_user, "Record not found")

    if data.count is not None:
        if data.count <= 0:
            raise HTTPException(status_code=400, detail="Count must be greater than 0")
        difference = data.count - record.count
        if difference > batch.current_count:
            raise HTTPException(
                status_code=400,
                detail=(
                    f'Cannot update death count. Batch "{batch.batch_name}" '
                    f"only has {batch.current_count} birds remaining."
                ),
            )
        batch.current_count = max(0, batch.current_count - difference)

    values = data.model_dump(exclude_none=True, exclude={"record_id"})
    if "cause" in values:
        values["cause"] = values["cause"].value
    for key, value in values.items():
        setattr(record, key, value)

    await db.commit()
    return envelope("Death record updated", _with_batch(record, batch))


@router.delete("/")
async def delete_death_record(
    data: RecordRef,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Remove the record and give its birds back to the batch"""
    record = await get_owned(db, DeathRecord, data.record_id, current_user, "Record not found")
    batch = await get_owned(db, FlockBatch, record.batch_id, current_user, "Record not found")

    batch.current_count += record.count
    await db.delete(record)
    await db.commit()
    return envelope("Death record deleted")
