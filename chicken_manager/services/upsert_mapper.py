"""
Upsert mapper - client-shaped records (camelCase, UI naming) to storage rows.

Optional fields are copied only when they carry a truthy value, so a partial
record never nulls out columns of the row it updates. Ids are kept only when
they are well-formed UUIDs; anything else becomes a fresh row.
"""
import datetime as dt
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chicken_manager.database import new_id
from chicken_manager.models.flock import FlockEventType
from chicken_manager.utils.helpers import today
from chicken_manager.utils.validators import is_valid_uuid


# --- Client shapes ---

class ClientRecord(BaseModel):
    # Owner fields sent by the client are dropped here; the server stamps its own
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None


class EggEntryIn(ClientRecord):
    date: dt.date
    count: int = Field(ge=0)
    size: Optional[str] = None
    color: Optional[str] = None
    notes: Optional[str] = None


class ExpenseIn(ClientRecord):
    category: str = Field(min_length=1)
    amount: float = Field(ge=0)
    date: dt.date
    description: str


class FeedEntryIn(ClientRecord):
    brand: str = Field(min_length=1)
    quantity: float = Field(ge=0)
    unit: str = Field(min_length=1)
    total_cost: float = Field(
        ge=0, validation_alias=AliasChoices("totalCost", "total_cost", "cost")
    )
    price_per_unit: Optional[float] = Field(
        None, validation_alias=AliasChoices("pricePerUnit", "price_per_unit")
    )
    opened_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("openedDate", "opened_date")
    )
    depleted_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("depletedDate", "depleted_date")
    )


class FlockEventIn(ClientRecord):
    date: dt.date
    type: FlockEventType
    description: str = Field(min_length=1)
    affected_birds: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("affectedBirds", "affected_birds")
    )
    notes: Optional[str] = None


class FlockProfileIn(ClientRecord):
    hens: int = Field(0, ge=0)
    roosters: int = Field(0, ge=0)
    chicks: int = Field(0, ge=0)
    brooding: int = Field(0, ge=0)
    breed_types: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("breedTypes", "breed_types")
    )
    flock_start_date: Optional[dt.date] = Field(
        None, validation_alias=AliasChoices("flockStartDate", "flock_start_date")
    )
    farm_name: Optional[str] = Field(None, validation_alias=AliasChoices("farmName", "farm_name"))
    location: Optional[str] = None
    notes: Optional[str] = None


# --- Mapping ---

def _base(record: ClientRecord, user_id: str) -> Dict[str, Any]:
    return {
        "id": record.id if is_valid_uuid(record.id) else new_id(),
        "user_id": user_id,
    }


def _copy_truthy(row: Dict[str, Any], **optional) -> Dict[str, Any]:
    for column, value in optional.items():
        if value:
            row[column] = value
    return row


def map_egg_entry(record: EggEntryIn, user_id: str) -> Dict[str, Any]:
    row = _base(record, user_id)
    row.update(date=record.date, count=record.count)
    return _copy_truthy(row, size=record.size, color=record.color, notes=record.notes)


def map_expense(record: ExpenseIn, user_id: str) -> Dict[str, Any]:
    row = _base(record, user_id)
    row.update(
        category=record.category,
        amount=record.amount,
        date=record.date,
        description=record.description,
    )
    return row


def map_feed_entry(record: FeedEntryIn, user_id: str) -> Dict[str, Any]:
    row = _base(record, user_id)
    row.update(
        name=record.brand,
        quantity=float(record.quantity),
        unit=record.unit,
        total_cost=float(record.total_cost),
    )
    return _copy_truthy(
        row,
        cost_per_unit=record.price_per_unit,
        purchase_date=record.opened_date,
        expiry_date=record.depleted_date,
    )


def map_flock_event(record: FlockEventIn, user_id: str) -> Dict[str, Any]:
    row = _base(record, user_id)
    row.update(date=record.date, type=record.type.value, description=record.description)
    return _copy_truthy(row, affected_birds=record.affected_birds, notes=record.notes)


BIRD_COUNTS = ("hens", "roosters", "chicks", "brooding")


def map_flock_profile(
    record: FlockProfileIn, user_id: str, existing: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Defaults fill a new profile; an update writes only what the record carries"""
    breed = ", ".join(record.breed_types) if record.breed_types else None

    if existing is None:
        row = _base(record, user_id)
        row.update(
            farm_name=record.farm_name or "Default Farm",
            location=record.location or "Default Location",
            flock_size=sum(getattr(record, name) for name in BIRD_COUNTS),
            breed=breed or "Mixed",
            start_date=record.flock_start_date or today(),
            hens=record.hens,
            roosters=record.roosters,
            chicks=record.chicks,
            brooding=record.brooding,
        )
        return _copy_truthy(row, notes=record.notes)

    counts = {
        name: getattr(record, name) if name in record.model_fields_set else (existing.get(name) or 0)
        for name in BIRD_COUNTS
    }
    row = {"id": existing["id"], "user_id": user_id, **counts, "flock_size": sum(counts.values())}
    return _copy_truthy(
        row,
        farm_name=record.farm_name,
        location=record.location,
        breed=breed,
        start_date=record.flock_start_date,
        notes=record.notes,
    )


def map_records(
    payload: Union[ClientRecord, List[ClientRecord]],
    user_id: str,
    mapper: Callable[[Any, str], Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Map one record or a list of records to storage rows owned by user_id"""
    records = payload if isinstance(payload, list) else [payload]
    return [mapper(record, user_id) for record in records]
