"""
Progress schemas for Shekho.

Defines the learner's persisted progress and per-unit availability.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UnitAvailability(str, Enum):
    """Unit availability status for the home screen."""
    LOCKED = "locked"
    AVAILABLE = "available"
    COMPLETED = "completed"


class ProgressState(BaseModel):
    completed_units: set[str] = set()
    current_focus: Optional[str] = None

    @classmethod
    def empty(cls) -> "ProgressState":
        return cls()

    def is_completed(self, unit_key: str) -> bool:
        return unit_key in self.completed_units
