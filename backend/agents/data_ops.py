"""Cleaning operation executor.

This module provides the DataOperator class for applying cleaning operations
to a Dataset. Every operation works on shallow copies of the rows, so the
dataset passed in is never modified and intermediate results of a sequence
never alias each other.

Operations and their required fields:
  - FILL_MISSING (column, value): replace null cells
  - DROP_MISSING (column): remove rows with a null cell
  - CONVERT_TYPE (column, target_type): cast to string, number or boolean
  - RENAME_COLUMN (column, new_name): rename, keeping column order
  - DROP_COLUMN (column): remove the column from every row
  - FILTER_ROWS (column, operator[, value]): keep rows matching a predicate
  - MAP_VALUES (column, mapping): replace values found in the mapping

An operation whose required fields are missing or invalid is skipped and the
input dataset is returned as is.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Union

from models.dataset import Cell, Dataset, Row, cell_to_text, is_missing, is_number, parse_number
from models.operations import (
    COMPARISON_OPERATORS,
    FILTER_OPERATORS,
    CleaningOperation,
    OperationOutcome,
    OperationType,
    OutcomeStatus,
    TargetType,
)

logger = logging.getLogger(__name__)

TRUE_STRINGS = ("true", "1", "yes")


def to_number(value: Cell) -> Optional[Union[int, float]]:
    """Numeric form of a cell, None when it has none."""
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        return parse_number(value)
    return None


def convert_to_number(value: Cell) -> Optional[Union[int, float]]:
    """CONVERT_TYPE to number: blank text becomes 0, unparseable text None."""
    if isinstance(value, str) and not value.strip():
        return 0
    return to_number(value)


def to_boolean(value: Cell) -> bool:
    return cell_to_text(value).lower() in TRUE_STRINGS


_CONVERTERS: Dict[TargetType, Callable[[Cell], Cell]] = {
    TargetType.NUMBER: convert_to_number,
    TargetType.STRING: cell_to_text,
    TargetType.BOOLEAN: to_boolean,
}


def _matches(cell: Cell, operator: str, value: Cell) -> bool:
    """Evaluate a FILTER_ROWS predicate against one cell."""
    if operator == "is_null":
        return is_missing(cell)
    if operator == "not_null":
        return not is_missing(cell)
    if is_missing(cell):
        return False

    if operator == "contains":
        return cell_to_text(value).lower() in cell_to_text(cell).lower()

    left, right = to_number(cell), to_number(value)
    if left is None or right is None or isinstance(cell, bool) != isinstance(value, bool):
        left, right = cell_to_text(cell), cell_to_text(value)

    if operator == "==":
        return left == right
    if operator == "!=":
        return left != right
    try:
        if operator == ">":
            return left > right
        if operator == "<":
            return left < right
        if operator == ">=":
            return left >= right
        if operator == "<=":
            return left <= right
    except TypeError:
        return False
    return False


class DataOperator:
    """Apply cleaning operations to a dataset, one at a time.

    Attributes:
        dataset: Current result; replaced after each applied operation.
        original_shape: (rows, columns) of the dataset the operator started with.
        operations_log: One line per executed operation.
    """

    def __init__(self, dataset: Dataset):
        self.dataset = dataset
        self.original_shape = (len(dataset), len(dataset.columns))
        self.operations_log: List[str] = []

    # ---- Internal helpers -------------------------------------------------

    def _skip(self, op: CleaningOperation, reason: str) -> OperationOutcome:
        return OperationOutcome(
            operation=op,
            status=OutcomeStatus.SKIPPED,
            dataset=self.dataset,
            message=f"Skipped {op.type.value}: {reason}",
            reason=reason,
        )

    def _applied(self, op: CleaningOperation, columns: List[str], rows: List[Row], message: str) -> OperationOutcome:
        return OperationOutcome(
            operation=op,
            status=OutcomeStatus.APPLIED,
            dataset=Dataset(columns=columns, rows=rows),
            message=message,
        )

    def _check_column(self, op: CleaningOperation) -> Optional[str]:
        """Return a skip reason when the operation's column is unusable."""
        if not op.column:
            return "no column given"
        if not self.dataset.has_column(op.column):
            return f"column '{op.column}' not found"
        return None

    # ---- Public API -------------------------------------------------------

    def execute(self, operation: CleaningOperation) -> OperationOutcome:
        """Execute a single operation.

        Args:
            operation: Operation to apply.

        Returns:
            Applied outcome with the new dataset, or skipped outcome carrying
            the unchanged input.
        """
        op_map: Dict[OperationType, Callable[[CleaningOperation], OperationOutcome]] = {
            OperationType.FILL_MISSING: self._fill_missing,
            OperationType.DROP_MISSING: self._drop_missing,
            OperationType.CONVERT_TYPE: self._convert_type,
            OperationType.RENAME_COLUMN: self._rename_column,
            OperationType.DROP_COLUMN: self._drop_column,
            OperationType.FILTER_ROWS: self._filter_rows,
            OperationType.MAP_VALUES: self._map_values,
        }

        handler = op_map.get(operation.type)
        if handler is None:
            outcome = self._skip(operation, "unsupported operation")
        else:
            outcome = handler(operation)

        if outcome.applied:
            self.dataset = outcome.dataset
        else:
            logger.debug("Operation skipped: %s", outcome.reason)
        self.operations_log.append(f"{operation.type.value}: {outcome.status.value}")
        return outcome

    def get_result(self) -> Dataset:
        return self.dataset

    # ---- Operations -------------------------------------------------------

    def _fill_missing(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)
        if op.value is None:
            return self._skip(op, "no fill value given")

        rows = self.dataset.copy_rows()
        count = 0
        for row in rows:
            if op.column in row and row[op.column] is None:
                row[op.column] = op.value
                count += 1
        return self._applied(
            op, list(self.dataset.columns), rows,
            f"Filled {count} missing values in '{op.column}' with {op.value!r}.",
        )

    def _drop_missing(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)

        rows = [row for row in self.dataset.copy_rows() if not (op.column in row and row[op.column] is None)]
        removed = len(self.dataset) - len(rows)
        return self._applied(
            op, list(self.dataset.columns), rows,
            f"Removed {removed} rows with missing '{op.column}'. Now {len(rows)} rows.",
        )

    def _convert_type(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)
        if op.target_type is None:
            return self._skip(op, "no target type given")

        convert = _CONVERTERS[op.target_type]
        rows = self.dataset.copy_rows()
        failed = 0
        for row in rows:
            value = row.get(op.column)
            if value is None:
                continue
            row[op.column] = convert(value)
            if row[op.column] is None:
                failed += 1

        message = f"Converted '{op.column}' to {op.target_type.value}."
        if failed:
            message += f" {failed} values could not be converted and were set to null."
        return self._applied(op, list(self.dataset.columns), rows, message)

    def _rename_column(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)
        new_name = (op.new_name or "").strip()
        if not new_name:
            return self._skip(op, "no new column name given")
        if new_name == op.column:
            return self._skip(op, f"column is already named '{new_name}'")
        if self.dataset.has_column(new_name):
            return self._skip(op, f"column '{new_name}' already exists")

        def rename(name: str) -> str:
            return new_name if name == op.column else name

        columns = [rename(c) for c in self.dataset.columns]
        rows = [{rename(k): v for k, v in row.items()} for row in self.dataset.rows]
        return self._applied(op, columns, rows, f"Renamed '{op.column}' to '{new_name}'.")

    def _drop_column(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)

        columns = [c for c in self.dataset.columns if c != op.column]
        rows = [{k: v for k, v in row.items() if k != op.column} for row in self.dataset.rows]
        return self._applied(op, columns, rows, f"Dropped column '{op.column}'.")

    def _filter_rows(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)
        if op.operator not in FILTER_OPERATORS:
            return self._skip(op, f"unsupported filter operator {op.operator!r}")
        if op.operator in COMPARISON_OPERATORS and op.value is None:
            return self._skip(op, f"operator '{op.operator}' needs a value")

        rows = [
            row for row in self.dataset.copy_rows()
            if _matches(row.get(op.column), op.operator, op.value)
        ]
        removed = len(self.dataset) - len(rows)
        return self._applied(
            op, list(self.dataset.columns), rows,
            f"Filtered to {len(rows)} rows (removed {removed}).",
        )

    def _map_values(self, op: CleaningOperation) -> OperationOutcome:
        reason = self._check_column(op)
        if reason:
            return self._skip(op, reason)
        if op.mapping is None:
            return self._skip(op, "no mapping given")

        rows = self.dataset.copy_rows()
        count = 0
        for row in rows:
            value = row.get(op.column)
            if value is None:
                continue
            key = cell_to_text(value)
            if key in op.mapping:
                row[op.column] = op.mapping[key]
                count += 1
        return self._applied(
            op, list(self.dataset.columns), rows,
            f"Mapped {count} values in '{op.column}'.",
        )


def apply_operation(dataset: Dataset, operation: CleaningOperation) -> Dataset:
    """Apply one operation and return the resulting dataset.

    A skipped operation returns the very dataset that was passed in.
    """
    return DataOperator(dataset).execute(operation).dataset
