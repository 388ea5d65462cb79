from __future__ import annotations

from enum import Enum
from typing import List, Union

from pydantic import BaseModel, Field


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    MIXED = "mixed"


class ColumnStats(BaseModel):
    """Read-only per-column snapshot, recomputed for every request."""
    name: str
    type: ColumnType
    missing_count: int
    unique_count: int
    sample: List[Union[bool, int, float, str]] = Field(default_factory=list)
