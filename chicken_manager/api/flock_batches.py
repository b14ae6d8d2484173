"""
Flock batches API - groups of birds acquired together
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import datetime as dt
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chicken_manager.database import get_db
from chicken_manager.models.finance import Expense
from chicken_manager.models.flock import AgeAtAcquisition, BatchType, FlockBatch
from chicken_manager.services.auth_client import Identity
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, get_owned, owned, row_dict, update_owned
from chicken_manager.utils.validators import clean_text
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


# --- Pydantic Schemas ---

class FlockBatchCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_name: str = Field(min_length=1, validation_alias=AliasChoices("batchName", "batch_name"))
    breed: str = Field(min_length=1)
    acquisition_date: dt.date = Field(validation_alias=AliasChoices("acquisitionDate", "acquisition_date"))
    initial_count: int = Field(gt=0, validation_alias=AliasChoices("initialCount", "initial_count"))
    type: BatchType
    age_at_acquisition: AgeAtAcquisition = Field(
        validation_alias=AliasChoices("ageAtAcquisition", "age_at_acquisition")
    )
    expected_laying_start_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("expectedLayingStartDate", "expected_laying_start_date")
    )
    actual_laying_start_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("actualLayingStartDate", "actual_laying_start_date")
    )
    source: str = Field(min_length=1)
    cost: float = Field(0, ge=0)
    notes: Optional[str] = None
    hens_count: int = Field(0, ge=0, validation_alias=AliasChoices("hensCount", "hens_count"))
    roosters_count: int = Field(0, ge=0, validation_alias=AliasChoices("roostersCount", "roosters_count"))
    chicks_count: int = Field(0, ge=0, validation_alias=AliasChoices("chicksCount", "chicks_count"))


class FlockBatchUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_id: str = Field(validation_alias=AliasChoices("batchId", "batch_id"))
    batch_name: Optional[str] = Field(None, validation_alias=AliasChoices("batchName", "batch_name"))
    breed: Optional[str] = None
    acquisition_date: Optional[dt.date] = Field(None, validation_alias=AliasChoices("acquisitionDate", "acquisition_date"))
    initial_count: Optional[int] = Field(None, gt=0, validation_alias=AliasChoices("initialCount", "initial_count"))
    current_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("currentCount", "current_count"))
    type: Optional[BatchType] = None
    age_at_acquisition: Optional[AgeAtAcquisition] = Field(
        None, validation_alias=AliasChoices("ageAtAcquisition", "age_at_acquisition")
    )
    expected_laying_start_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("expectedLayingStartDate", "expected_laying_start_date")
    )
    actual_laying_start_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("actualLayingStartDate", "actual_laying_start_date")
    )
    source: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    is_active: Optional[bool] = Field(None, validation_alias=AliasChoices("isActive", "is_active"))
    hens_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("hensCount", "hens_count"))
    roosters_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("roostersCount", "roosters_count"))
    chicks_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("chicksCount", "chicks_count"))


class BatchRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batch_id: str = Field(validation_alias=AliasChoices("batchId", "batch_id"))


# --- Endpoints ---

@router.get("/")
async def list_flock_batches(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Active batches, newest acquisition first, or one batch by batchId"""
    query = owned(FlockBatch, current_user).where(FlockBatch.is_active == True)
    if batch_id:
        result = await db.execute(query.where(FlockBatch.id == batch_id))
        batch = result.scalar_one_or_none()
        if not batch:
            raise HTTPException(status_code=404, detail="Batch not found")
        return envelope("Flock batch fetched", row_dict(batch))

    result = await db.execute(query.order_by(FlockBatch.acquisition_date.desc()))
    return envelope("Flock batches fetched", [row_dict(b) for b in result.scalars().all()])


@router.post("/", status_code=201)
async def create_flock_batch(
    data: FlockBatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    counted = data.hens_count + data.roosters_count + data.chicks_count
    if counted != data.initial_count:
        raise HTTPException(
            status_code=400,
            detail=(
                "Individual bird counts must add up to initial count "
                f"(hens {data.hens_count}, roosters {data.roosters_count}, "
                f"chicks {data.chicks_count}, expected {data.initial_count})"
            ),
        )
    if data.actual_laying_start_date and data.actual_laying_start_date < data.acquisition_date:
        raise HTTPException(status_code=400, detail="Laying start date cannot be before acquisition date")

    values = data.model_dump()
    values["type"] = data.type.value
    values["age_at_acquisition"] = data.age_at_acquisition.value
    values["notes"] = clean_text(data.notes)
    batch = FlockBatch(user_id=current_user.id, current_count=data.initial_count, **values)
    db.add(batch)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A batch with this name already exists")

    if data.cost > 0:
        # The acquisition cost shows up with the other expenses
        try:
            async with db.begin_nested():
                db.add(Expense(
                    user_id=current_user.id,
                    date=data.acquisition_date,
                    category="Birds",
                    description=f"Batch acquisition: {data.batch_name} ({data.initial_count} {data.type.value})",
                    amount=data.cost,
                ))
        except Exception as e:
            logger.warning(f"Could not record acquisition expense for batch {batch.id}: {e}")

    await db.commit()
    logger.info(f"Created flock batch {batch.id} for user {current_user.id}")
    return envelope("Flock batch created", row_dict(batch))


@router.put("/")
async def update_flock_batch(
    data: FlockBatchUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    values = data.model_dump(exclude_none=True, exclude={"batch_id"})
    for key in ("type", "age_at_acquisition"):
        if key in values:
            values[key] = values[key].value

    try:
        row = await update_owned(db, FlockBatch, data.batch_id, current_user, values, "Batch not found")
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A batch with this name already exists")
    return envelope("Flock batch updated", row)


@router.delete("/")
async def deactivate_flock_batch(
    data: BatchRef,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Soft delete: the batch and its history stay, hidden from listings"""
    await update_owned(db, FlockBatch, data.batch_id, current_user, {"is_active": False}, "Batch not found")
    await db.commit()
    return envelope("Batch deactivated successfully")


async def get_active_batch(db: AsyncSession, batch_id: str, current_user: Identity) -> FlockBatch:
    batch = await get_owned(db, FlockBatch, batch_id, current_user, "Batch not found")
    if not batch.is_active:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch
