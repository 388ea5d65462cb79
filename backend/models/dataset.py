"""Tabular dataset model shared by the parser, profiler, executor and exporter.

A dataset is an ordered list of columns (fixed when the CSV is parsed) and an
ordered list of rows. Each row maps column name to a cell, and a cell is one of
``str``, ``int``, ``float``, ``bool`` or ``None``.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

Cell = Union[str, int, float, bool, None]
Row = Dict[str, Cell]

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def is_number(value: Any) -> bool:
    """True for int/float cells (booleans are not numbers)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_missing(value: Any) -> bool:
    """A cell is missing when it is None or an empty string."""
    return value is None or value == ""


def parse_number(text: str) -> Optional[Union[int, float]]:
    """Parse a whole field as a decimal number.

    Integral text becomes an ``int``, anything else numeric a ``float``.
    Partial matches (``"12abc"``) and non-decimal forms return None.
    """
    text = text.strip()
    if _INT_RE.fullmatch(text):
        try:
            return int(text)
        except ValueError:
            # exceeds the interpreter's int string-conversion limit
            pass
    if _NUMBER_RE.fullmatch(text):
        number = float(text)
        return number if math.isfinite(number) else None
    return None


def cell_to_text(value: Cell) -> str:
    """Render a cell as text.

    None renders empty, booleans lower-case, integral floats without a
    fractional part (``30.0`` -> ``"30"``).
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


@dataclass(frozen=True)
class Dataset:
    """Immutable-by-convention table: columns plus rows.

    Operations never edit a Dataset they were given; they build a new one.
    """
    columns: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def has_column(self, column: Optional[str]) -> bool:
        return column is not None and column in self.columns

    def copy_rows(self) -> List[Row]:
        """Shallow-copy every row so callers can edit the copies freely."""
        return [dict(row) for row in self.rows]

    def page(self, page: int, page_size: int) -> List[Row]:
        """Return the rows of a 1-indexed page."""
        skip = (max(page, 1) - 1) * page_size
        return [dict(row) for row in self.rows[skip:skip + page_size]]

    @classmethod
    def from_records(cls, records: List[Row], columns: Optional[List[str]] = None) -> "Dataset":
        """Build a dataset from row dicts.

        Without explicit columns the schema is the first row's keys.
        """
        if columns is None:
            columns = list(records[0].keys()) if records else []
        return cls(columns=list(columns), rows=[dict(r) for r in records])
