"""
Flock profile API - the owner's farm-level bird counts, one profile per owner
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.database import get_db
from chicken_manager.models.flock import FlockProfile
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.upsert_mapper import FlockProfileIn, map_flock_profile
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, storage_errors
from chicken_manager.utils.db_compat import upsert_rows
from chicken_manager.utils.validators import is_valid_uuid

router = APIRouter()


async def _current_profile(
    db: AsyncSession, current_user: Identity, profile_id: Optional[str] = None
) -> Optional[FlockProfile]:
    """The profile named by profile_id, else the owner's most recently updated one"""
    if is_valid_uuid(profile_id):
        result = await db.execute(owned(FlockProfile, current_user).where(FlockProfile.id == profile_id))
        profile = result.scalars().first()
        if profile:
            return profile

    result = await db.execute(
        owned(FlockProfile, current_user).order_by(FlockProfile.updated_at.desc()).limit(1)
    )
    return result.scalars().first()


@router.get("/")
async def get_flock_profile(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Most recently updated profile, or null when none exists yet"""
    profile = await _current_profile(db, current_user)
    return envelope("Flock profile fetched", row_dict(profile) if profile else None)


@router.post("/")
async def save_flock_profile(
    data: FlockProfileIn,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    async with storage_errors(db, "saving flock profile"):
        profile = await _current_profile(db, current_user, data.id)
        row = map_flock_profile(data, current_user.id, row_dict(profile) if profile else None)
        saved = await upsert_rows(db, FlockProfile, [row])
        await db.commit()
    return envelope("Flock profile saved successfully", saved[0] if saved else None)
