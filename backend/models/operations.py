"""Cleaning operation vocabulary and execution outcomes.

Operations are declarative: the interpretation gateway builds them, the
executor consumes them, and the chat transcript keeps them for display.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from models.dataset import Dataset


class OperationType(str, Enum):
    """Closed set of cleaning operations."""
    FILL_MISSING = "FILL_MISSING"
    DROP_MISSING = "DROP_MISSING"
    CONVERT_TYPE = "CONVERT_TYPE"
    RENAME_COLUMN = "RENAME_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    FILTER_ROWS = "FILTER_ROWS"
    MAP_VALUES = "MAP_VALUES"
    UNKNOWN = "UNKNOWN"


class TargetType(str, Enum):
    """Types a column can be converted to."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


# Predicates understood by FILTER_ROWS; the first group compares against `value`.
COMPARISON_OPERATORS = ("==", "!=", ">", "<", ">=", "<=", "contains")
NULL_OPERATORS = ("is_null", "not_null")
FILTER_OPERATORS = COMPARISON_OPERATORS + NULL_OPERATORS


class CleaningOperation(BaseModel):
    """A single requested transformation.

    Both snake_case and camelCase keys are accepted on input
    (``target_type``/``targetType``, ``new_name``/``newName``).
    """
    model_config = ConfigDict(populate_by_name=True)

    type: OperationType
    description: str
    column: Optional[str] = None
    value: Optional[Union[bool, int, float, str]] = None
    target_type: Optional[TargetType] = Field(
        default=None, validation_alias=AliasChoices("target_type", "targetType")
    )
    mapping: Optional[Dict[str, Optional[Union[bool, int, float, str]]]] = None
    new_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("new_name", "newName")
    )
    operator: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, OperationType):
            return value
        name = str(value or "").strip().upper()
        if name in OperationType.__members__:
            return OperationType[name]
        return OperationType.UNKNOWN

    @field_validator("target_type", mode="before")
    @classmethod
    def _normalize_target_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, TargetType):
            return value
        name = str(value).strip().lower()
        return name if name in {t.value for t in TargetType} else None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value).strip().lower()


class OutcomeStatus(str, Enum):
    """Result of executing one operation."""
    APPLIED = "applied"
    SKIPPED = "skipped"


@dataclass
class OperationOutcome:
    """Tagged result of one execution.

    A skipped outcome carries the exact input dataset and the reason its
    preconditions failed.

    Attributes:
        operation: The operation that was executed.
        status: Applied or skipped.
        dataset: Resulting dataset (the input itself when skipped).
        message: Human-readable summary.
        reason: Why the operation was skipped, empty when applied.
    """
    operation: CleaningOperation
    status: OutcomeStatus
    dataset: Dataset
    message: str = ""
    reason: str = ""

    @property
    def applied(self) -> bool:
        return self.status == OutcomeStatus.APPLIED
