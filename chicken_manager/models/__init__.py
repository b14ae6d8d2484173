from chicken_manager.models.flock import (
    FlockProfile, FlockBatch, BatchEvent, FlockEvent, DeathRecord,
    BatchType, AgeAtAcquisition, BatchEventType, FlockEventType, DeathCause,
)
from chicken_manager.models.production import EggEntry
from chicken_manager.models.finance import Expense, FeedInventory
from chicken_manager.models.crm import Customer, Sale

__all__ = [
    "FlockProfile",
    "FlockBatch",
    "BatchEvent",
    "FlockEvent",
    "DeathRecord",
    "BatchType",
    "AgeAtAcquisition",
    "BatchEventType",
    "FlockEventType",
    "DeathCause",
    "EggEntry",
    "Expense",
    "FeedInventory",
    "Customer",
    "Sale",
]
