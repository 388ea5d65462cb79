"""Pytest configuration and fixtures.

This module provides fixtures for:
- A fresh in-memory repository per test
- A scripted interpretation gateway standing in for the LLM
- FastAPI test client wired to both
"""
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from api.routes import get_interpreter
from main import app
from models.dataset import Dataset
from models.operations import CleaningOperation
from repositories.dataset import DatasetRepository, get_repository
from services.llm.interpreter import InterpretationFailure


class ScriptedGateway:
    """Interpretation gateway returning canned operations.

    Attributes:
        operations: Operations returned by the next interpret call.
        error: When set, interpret raises InterpretationFailure with it.
        calls: (request, stats) pairs received.
    """

    def __init__(self) -> None:
        self.operations: List[CleaningOperation] = []
        self.error: Optional[str] = None
        self.calls: list = []

    async def interpret(self, request, stats):
        self.calls.append((request, stats))
        if self.error:
            raise InterpretationFailure(self.error)
        return list(self.operations)


@pytest.fixture
def sample_csv() -> bytes:
    return (
        "name,age,city,active\n"
        "Alice,30,NYC,true\n"
        "Bob,,LA,false\n"
        "Charlie,25,,true\n"
        "Dana,41,NYC,\n"
    ).encode("utf-8")


@pytest.fixture
def repo() -> DatasetRepository:
    return DatasetRepository()


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def client(repo, gateway):
    """Create a test client with isolated state and a scripted gateway."""
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_interpreter] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def people() -> Dataset:
    return Dataset(
        columns=["name", "age", "city"],
        rows=[
            {"name": "Alice", "age": 30, "city": "NYC"},
            {"name": "Bob", "age": None, "city": "LA"},
            {"name": "Charlie", "age": 25, "city": None},
            {"name": "Dana", "age": 41, "city": "NYC"},
        ],
    )
