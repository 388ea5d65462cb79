"""Repository package for data access patterns.

This package provides repository implementations following the Repository pattern,
abstracting data access from business logic.
"""
from repositories.dataset import DatasetNotFoundError, DatasetRepository, get_repository

__all__ = ["DatasetNotFoundError", "DatasetRepository", "get_repository"]
