"""Tracker models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin
from .opportunity import Opportunity
from .disposition import Disposition
from .action_item import ActionItem
from .history import DispositionHistory

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "Opportunity",
    "Disposition",
    "ActionItem",
    "DispositionHistory",
]
