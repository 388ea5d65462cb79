"""Dataset repository.

This module implements the Repository pattern for dataset state management.
States live in process memory only; nothing is persisted across restarts.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from models.dataset_state import DatasetState


class DatasetNotFoundError(ValueError):
    """Raised when a dataset id is unknown."""
    pass


class DatasetRepository:
    """In-memory repository for dataset states.

    Attributes:
        _states: Dataset states keyed by dataset id.
    """

    def __init__(self) -> None:
        self._states: Dict[str, DatasetState] = {}

    async def get(self, dataset_id: str) -> DatasetState:
        """Get a dataset state by ID.

        Args:
            dataset_id: Unique dataset identifier.

        Returns:
            DatasetState instance.

        Raises:
            DatasetNotFoundError: If dataset not found.
        """
        state = self._states.get(dataset_id)
        if state is None:
            raise DatasetNotFoundError(f"Dataset {dataset_id} not found")
        return state

    async def get_or_none(self, dataset_id: str) -> DatasetState | None:
        return self._states.get(dataset_id)

    async def save(self, state: DatasetState) -> DatasetState:
        """Save or replace a dataset state.

        Args:
            state: Dataset state to save.

        Returns:
            The saved state.
        """
        self._states[state.dataset_id] = state
        return state

    async def delete(self, dataset_id: str) -> bool:
        """Delete a dataset state.

        Args:
            dataset_id: Dataset ID to delete.

        Returns:
            True if deleted, False if not found.
        """
        return self._states.pop(dataset_id, None) is not None

    async def exists(self, dataset_id: str) -> bool:
        return dataset_id in self._states

    async def list_ids(self) -> List[str]:
        return list(self._states)


@lru_cache(maxsize=1)
def get_repository() -> DatasetRepository:
    """Get the process-wide repository instance."""
    return DatasetRepository()
