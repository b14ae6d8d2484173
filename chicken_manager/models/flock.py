"""
Flock models - profile, batches, batch events, flock timeline and mortality
"""
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Float, Boolean, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import enum

from chicken_manager.database import Base, new_id, utcnow


class BatchType(str, enum.Enum):
    HENS = "hens"
    ROOSTERS = "roosters"
    CHICKS = "chicks"
    MIXED = "mixed"


class AgeAtAcquisition(str, enum.Enum):
    CHICK = "chick"
    JUVENILE = "juvenile"
    ADULT = "adult"


class BatchEventType(str, enum.Enum):
    HEALTH_CHECK = "health_check"
    VACCINATION = "vaccination"
    RELOCATION = "relocation"
    BREEDING = "breeding"
    LAYING_START = "laying_start"
    PRODUCTION_NOTE = "production_note"
    BROODING_START = "brooding_start"
    BROODING_STOP = "brooding_stop"
    FLOCK_ADDED = "flock_added"
    OTHER = "other"


class FlockEventType(str, enum.Enum):
    ACQUISITION = "acquisition"
    LAYING_START = "laying_start"
    BROODY = "broody"
    HATCHING = "hatching"
    OTHER = "other"


class DeathCause(str, enum.Enum):
    PREDATOR = "predator"
    DISEASE = "disease"
    AGE = "age"
    INJURY = "injury"
    UNKNOWN = "unknown"
    CULLED = "culled"
    OTHER = "other"


class FlockProfile(Base):
    __tablename__ = "flock_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    farm_name = Column(String, nullable=False, default="Default Farm")
    location = Column(String, nullable=True)
    flock_size = Column(Integer, nullable=False, default=0)
    breed = Column(String, nullable=True)  # comma-joined breed list
    start_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    hens = Column(Integer, default=0)
    roosters = Column(Integer, default=0)
    chicks = Column(Integer, default=0)
    brooding = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class FlockBatch(Base):
    __tablename__ = "flock_batches"
    __table_args__ = (
        UniqueConstraint("user_id", "batch_name", name="uq_flock_batches_user_name"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    batch_name = Column(String, nullable=False)
    breed = Column(String, nullable=False)
    acquisition_date = Column(Date, nullable=False)
    initial_count = Column(Integer, nullable=False)
    current_count = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    age_at_acquisition = Column(String, nullable=False)
    expected_laying_start_date = Column(Date, nullable=True)
    actual_laying_start_date = Column(Date, nullable=True)
    source = Column(String, nullable=False)
    cost = Column(Float, default=0)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Per-type breakdown; brooding_count is derived from batch events
    hens_count = Column(Integer, default=0)
    roosters_count = Column(Integer, default=0)
    chicks_count = Column(Integer, default=0)
    brooding_count = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    events = relationship("BatchEvent", back_populates="batch", cascade="all, delete-orphan")
    death_records = relationship("DeathRecord", back_populates="batch", cascade="all, delete-orphan")


class BatchEvent(Base):
    __tablename__ = "batch_events"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    batch_id = Column(String(36), ForeignKey("flock_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    affected_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    batch = relationship("FlockBatch", back_populates="events")


class FlockEvent(Base):
    __tablename__ = "flock_events"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    flock_profile_id = Column(String(36), ForeignKey("flock_profiles.id"), nullable=True)
    # Set on mirrors of batch events; null for events entered directly
    source_batch_event_id = Column(
        String(36), ForeignKey("batch_events.id", ondelete="SET NULL"), nullable=True, index=True
    )
    date = Column(Date, nullable=False)
    type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    affected_birds = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class DeathRecord(Base):
    __tablename__ = "death_records"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    batch_id = Column(String(36), ForeignKey("flock_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    count = Column(Integer, nullable=False)
    cause = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    batch = relationship("FlockBatch", back_populates="death_records")
