"""SQLAlchemy ORM models for POPS."""

from pops.models.base import Base
from pops.models.environment import EnvironmentRecord
from pops.models.mirror import Budget, Entity, InventoryItem, Transaction, WishListItem
from pops.models.sync import SyncCursor

__all__ = [
    "Base",
    "Budget",
    "Entity",
    "EnvironmentRecord",
    "InventoryItem",
    "SyncCursor",
    "Transaction",
    "WishListItem",
]
