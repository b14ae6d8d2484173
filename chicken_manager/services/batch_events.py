"""
Batch event propagation.

A batch event is the source of truth. After it is written, three derived
things follow it:
- the batch's brooding_count, replayed from all of its brooding events
- the batch's actual_laying_start_date, the earliest laying_start event
- a mirror row on the flock timeline, linked by source_batch_event_id

Each step runs in its own savepoint. A failing step is logged and rolled
back on its own; the batch event write is never undone by it.
"""
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.models.flock import BatchEvent, BatchEventType, FlockBatch, FlockEvent, FlockEventType
from chicken_manager.utils.logger import get_logger

logger = get_logger(__name__)

BROODING_TYPES = {BatchEventType.BROODING_START.value, BatchEventType.BROODING_STOP.value}
LAYING_START = BatchEventType.LAYING_START.value

# batch event type -> (flock event type, description template)
MIRROR_MAPPING = {
    "health_check": (FlockEventType.OTHER, "Health check performed on {batch} batch"),
    "vaccination": (FlockEventType.OTHER, "Vaccination administered to {batch} batch"),
    "relocation": (FlockEventType.OTHER, "{batch} batch relocated"),
    "breeding": (FlockEventType.BROODY, "Breeding activity in {batch} batch"),
    "laying_start": (FlockEventType.LAYING_START, "{batch} batch started laying eggs"),
    "production_note": (FlockEventType.OTHER, "Production update for {batch} batch"),
    "brooding_start": (FlockEventType.BROODY, "Brooding started in {batch} batch"),
    "brooding_stop": (FlockEventType.OTHER, "Brooding ended in {batch} batch"),
}


def mirror_fields(event: BatchEvent, batch_name: str) -> dict:
    """Flock timeline columns for a batch event"""
    if event.type in MIRROR_MAPPING:
        flock_type, template = MIRROR_MAPPING[event.type]
        description = template.format(batch=batch_name)
    else:
        flock_type = FlockEventType.OTHER
        description = f"{batch_name}: {event.description}"

    notes = f"From {batch_name} batch: {event.notes}" if event.notes else f"From {batch_name} batch"
    return {
        "date": event.date,
        "type": flock_type.value,
        "description": description,
        "affected_birds": event.affected_count or None,
        "notes": notes,
    }


def replay_brooding_count(events: Iterable[BatchEvent]) -> int:
    """Net brooding hens after replaying events in order, never below zero"""
    count = 0
    for event in events:
        amount = event.affected_count or 1
        if event.type == BatchEventType.BROODING_START.value:
            count += amount
        elif event.type == BatchEventType.BROODING_STOP.value:
            count -= amount
    return max(0, count)


async def recompute_brooding_count(db: AsyncSession, batch: FlockBatch) -> int:
    result = await db.execute(
        select(BatchEvent)
        .where(
            BatchEvent.batch_id == batch.id,
            BatchEvent.user_id == batch.user_id,
            BatchEvent.type.in_(BROODING_TYPES),
        )
        .order_by(BatchEvent.date, BatchEvent.created_at, BatchEvent.id)
    )
    batch.brooding_count = replay_brooding_count(result.scalars().all())
    await db.flush()
    return batch.brooding_count


async def apply_laying_start(db: AsyncSession, batch: FlockBatch, event: BatchEvent) -> None:
    """Earliest laying_start wins"""
    current = batch.actual_laying_start_date
    if current is None or event.date < current:
        batch.actual_laying_start_date = event.date
        await db.flush()


async def recompute_laying_start(db: AsyncSession, batch: FlockBatch) -> None:
    result = await db.execute(
        select(func.min(BatchEvent.date)).where(
            BatchEvent.batch_id == batch.id,
            BatchEvent.user_id == batch.user_id,
            BatchEvent.type == LAYING_START,
        )
    )
    batch.actual_laying_start_date = result.scalar()
    await db.flush()


async def sync_mirror(db: AsyncSession, event: BatchEvent, batch: FlockBatch) -> FlockEvent:
    """Create or rewrite the timeline row mirroring this event"""
    result = await db.execute(
        select(FlockEvent).where(
            FlockEvent.source_batch_event_id == event.id,
            FlockEvent.user_id == event.user_id,
        )
    )
    mirror = result.scalars().first()
    if mirror is None:
        mirror = FlockEvent(user_id=event.user_id, source_batch_event_id=event.id)
        db.add(mirror)

    for key, value in mirror_fields(event, batch.batch_name).items():
        setattr(mirror, key, value)
    await db.flush()
    return mirror


async def mirror_ids(db: AsyncSession, event: BatchEvent) -> List[str]:
    result = await db.execute(
        select(FlockEvent.id).where(
            FlockEvent.source_batch_event_id == event.id,
            FlockEvent.user_id == event.user_id,
        )
    )
    return list(result.scalars().all())


async def remove_mirrors(db: AsyncSession, user_id: str, ids: List[str]) -> None:
    if ids:
        await db.execute(delete(FlockEvent).where(FlockEvent.id.in_(ids), FlockEvent.user_id == user_id))


async def best_effort(db: AsyncSession, step: str, step_fn, *args) -> bool:
    """Run one propagation step in a savepoint; log and roll back on failure"""
    try:
        async with db.begin_nested():
            await step_fn(db, *args)
        return True
    except Exception as e:
        logger.warning(f"Batch event propagation step '{step}' failed: {e}")
        # Rolling back the savepoint expired whatever the step touched
        for obj in args:
            if hasattr(obj, "__table__") and inspect(obj).persistent:
                await db.refresh(obj)
        return False


async def propagate_create(db: AsyncSession, event: BatchEvent, batch: FlockBatch) -> None:
    if event.type in BROODING_TYPES:
        await best_effort(db, "brooding count", recompute_brooding_count, batch)
    elif event.type == LAYING_START:
        await best_effort(db, "laying start", apply_laying_start, batch, event)
    await best_effort(db, "timeline mirror", sync_mirror, event, batch)


async def propagate_update(
    db: AsyncSession, event: BatchEvent, batch: FlockBatch, previous_type: Optional[str] = None
) -> None:
    touched = {event.type, previous_type or event.type}
    if touched & BROODING_TYPES:
        await best_effort(db, "brooding count", recompute_brooding_count, batch)
    if LAYING_START in touched:
        await best_effort(db, "laying start", recompute_laying_start, batch)
    await best_effort(db, "timeline mirror", sync_mirror, event, batch)


async def propagate_delete(
    db: AsyncSession, event_type: str, batch: FlockBatch, user_id: str, mirrors: List[str]
) -> None:
    """Called after the event row is gone; mirrors were looked up before the delete"""
    if event_type in BROODING_TYPES:
        await best_effort(db, "brooding count", recompute_brooding_count, batch)
    elif event_type == LAYING_START:
        await best_effort(db, "laying start", recompute_laying_start, batch)
    await best_effort(db, "timeline mirror", remove_mirrors, user_id, mirrors)
