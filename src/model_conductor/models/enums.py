"""Shared enums for Model Conductor models."""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class Role(str, Enum):
    PLANNER = "planner"
    PRIMARY = "primary"
    CODER = "coder"
    EMBEDDING = "embedding"

    @classmethod
    def selection_order(cls) -> Tuple["Role", ...]:
        """Planner first so its choice can seed the primary/coder fallback."""
        return (cls.PLANNER, cls.PRIMARY, cls.CODER, cls.EMBEDDING)
