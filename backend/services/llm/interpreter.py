"""Cleaning-request interpretation service.

This module turns a natural-language cleaning request plus the current
column statistics into a list of CleaningOperation values. It never applies
anything; application is a separate, user-confirmed step.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from agents.profiler import summarize_stats
from config import settings
from models.dataset import parse_number
from models.operations import CleaningOperation, OperationType
from models.stats import ColumnStats, ColumnType
from protocols import LLMClient
from services.llm.client import LLMAPIError, LLMRateLimitError, get_llm_client, parse_json_response
from services.llm.prompts import build_interpreter_prompt, build_interpreter_request

logger = logging.getLogger(__name__)

# Operations whose `value` is compared with or written into the column
_VALUE_OPERATIONS = (OperationType.FILL_MISSING, OperationType.FILTER_ROWS)


class InterpretationFailure(Exception):
    """Raised when a request could not be interpreted.

    Covers a missing API key, upstream errors and unparseable model output.
    """
    pass


def _coerce_value(op: CleaningOperation, stats_by_name: Dict[str, ColumnStats]) -> CleaningOperation:
    """Convert textual values to the column's kind (models often quote numbers)."""
    if op.type not in _VALUE_OPERATIONS or not isinstance(op.value, str):
        return op
    stats = stats_by_name.get(op.column or "")
    if stats is None:
        return op

    if stats.type == ColumnType.NUMBER:
        number = parse_number(op.value)
        if number is not None:
            return op.model_copy(update={"value": number})
    elif stats.type == ColumnType.BOOLEAN and op.value.strip().lower() in ("true", "false"):
        return op.model_copy(update={"value": op.value.strip().lower() == "true"})
    return op


def parse_operations(payload: Any, stats: Optional[List[ColumnStats]] = None) -> List[CleaningOperation]:
    """Build operations from a parsed model response.

    Accepts a JSON array or an object with an ``operations`` array. Entries
    that are not objects or fail validation are dropped; an unknown ``type``
    becomes UNKNOWN; a missing description is synthesized.

    Args:
        payload: Parsed JSON.
        stats: Column statistics used to coerce fill and filter values.

    Returns:
        Operations in response order.
    """
    if isinstance(payload, dict):
        payload = payload.get("operations", [])
    if not isinstance(payload, list):
        return []

    stats_by_name = {s.name: s for s in stats or []}
    operations: List[CleaningOperation] = []
    for item in payload:
        if not isinstance(item, dict):
            logger.info("Dropping non-object operation entry: %r", item)
            continue
        item = dict(item)
        description = item.get("description")
        if description in (None, ""):
            target = f" on '{item['column']}'" if item.get("column") else ""
            item["description"] = f"{item.get('type', 'UNKNOWN')}{target}"
        else:
            item["description"] = str(description)
        try:
            op = CleaningOperation.model_validate(item)
        except ValidationError as e:
            logger.info("Dropping invalid operation entry %r: %s", item, e)
            continue
        operations.append(_coerce_value(op, stats_by_name))
    return operations


class InterpreterService:
    """Interpretation gateway backed by an LLM.

    Attributes:
        _client: LLM client, resolved lazily so a missing key surfaces as an
            InterpretationFailure at request time.
        _model: Optional model override.
    """

    def __init__(self, client: Optional[LLMClient] = None, model: Optional[str] = None):
        """Initialize the interpreter.

        Args:
            client: LLM client instance (uses default if None).
            model: Optional model identifier to override the default.
        """
        self._client = client
        self._model = model

    def _get_client(self) -> LLMClient:
        if self._client is None:
            try:
                self._client = get_llm_client()
            except ValueError as e:
                raise InterpretationFailure("API key not found") from e
        return self._client

    async def interpret(self, request: str, stats: List[ColumnStats]) -> List[CleaningOperation]:
        """Interpret a cleaning request.

        Args:
            request: User's cleaning request.
            stats: Current column statistics.

        Returns:
            Candidate operations; empty when nothing applicable was found.

        Raises:
            InterpretationFailure: If the model could not be reached or its
                response could not be parsed.
        """
        client = self._get_client()
        messages = [
            {"role": "system", "content": build_interpreter_prompt()},
            {"role": "user", "content": build_interpreter_request(request, summarize_stats(stats))},
        ]

        try:
            response = await client.complete(
                messages,
                model=self._model,
                temperature=settings.llm.temperature,
                max_tokens=settings.llm.max_tokens,
            )
        except (LLMRateLimitError, LLMAPIError) as e:
            logger.warning("Interpretation request failed: %s", e)
            raise InterpretationFailure(str(e)) from e

        if not response.strip():
            return []

        payload = parse_json_response(response)
        if payload is None:
            raise InterpretationFailure("Failed to parse cleaning operations from LLM response")

        operations = parse_operations(payload, stats)
        logger.info("Interpreted %r into %d operations", request[:50], len(operations))
        return operations
