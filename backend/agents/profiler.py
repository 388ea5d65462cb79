"""Deterministic column profiler.

Computes per-column statistics (inferred type, missing count, distinct count
and sample values) for the interpretation prompt and the stats view. No LLM
involvement, and nothing is cached: every call profiles the dataset it is
given.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from config import settings
from models.dataset import Cell, Dataset, cell_to_text, is_missing, is_number
from models.stats import ColumnStats, ColumnType

logger = logging.getLogger(__name__)


def _distinct_key(value: Cell) -> Tuple[str, Any]:
    # True == 1 in Python, so the kind is part of the key
    if isinstance(value, bool):
        return ("boolean", value)
    if is_number(value):
        return ("number", value)
    return ("string", value)


def _infer_type(num_count: int, bool_count: int, other_count: int) -> ColumnType:
    if num_count and not other_count and not bool_count:
        return ColumnType.NUMBER
    if bool_count and not other_count and not num_count:
        return ColumnType.BOOLEAN
    if num_count and (other_count or bool_count):
        return ColumnType.MIXED
    return ColumnType.STRING


def profile_column(dataset: Dataset, column: str) -> ColumnStats:
    """Profile a single column over every row of the dataset."""
    missing = 0
    num_count = bool_count = other_count = 0
    distinct: Dict[Tuple[str, Any], Cell] = {}

    for row in dataset.rows:
        value = row.get(column)
        if is_missing(value):
            missing += 1
            continue
        distinct.setdefault(_distinct_key(value), value)
        if isinstance(value, bool):
            bool_count += 1
        elif is_number(value):
            num_count += 1
        else:
            other_count += 1

    return ColumnStats(
        name=column,
        type=_infer_type(num_count, bool_count, other_count),
        missing_count=missing,
        unique_count=len(distinct),
        sample=list(distinct.values())[: settings.data.sample_size],
    )


def profile_columns(dataset: Dataset) -> List[ColumnStats]:
    """Profile every column of the dataset.

    Args:
        dataset: Dataset to profile.

    Returns:
        One ColumnStats per column in schema order; empty when there are no rows.
    """
    if dataset.is_empty:
        return []
    return [profile_column(dataset, column) for column in dataset.columns]


def summarize_stats(stats: List[ColumnStats]) -> str:
    """Render stats as the one-line-per-column summary sent to the model."""
    lines = []
    for s in stats:
        samples = ", ".join(cell_to_text(v) for v in s.sample)
        lines.append(
            f"{s.name}: {s.type.value}, missing: {s.missing_count}, "
            f"unique: {s.unique_count}, samples: [{samples}]"
        )
    return "\n".join(lines)
