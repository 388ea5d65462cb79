"""Abstract protocols (interfaces) for dependency inversion.

This module defines abstract interfaces that decouple components from their
concrete implementations, enabling:
- Easy testing with mock implementations
- Swapping the model provider without changing the orchestrator

Note: We use typing.Protocol for structural subtyping (duck typing).
"""
from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from models.operations import CleaningOperation
    from models.stats import ColumnStats


# Type aliases
Message = Dict[str, Any]


class LLMClient(Protocol):
    """Protocol for LLM API clients.

    Implementations should handle the specifics of communicating with
    different LLM providers (OpenAI, OpenRouter, Anthropic, etc.).
    """

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[Message],
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1500,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: Conversation history.
            model: Model identifier (uses default if None).
            temperature: Sampling temperature.
            max_tokens: Maximum tokens in response.

        Returns:
            The model's response text.
        """
        ...


class InterpretationGateway(Protocol):
    """Protocol for turning a natural-language request into operations.

    Implementations return an empty list when nothing applicable was found
    and raise InterpretationFailure for credential, upstream or format
    problems. They never apply operations themselves.
    """

    @abstractmethod
    async def interpret(
        self,
        request: str,
        stats: List["ColumnStats"],
    ) -> List["CleaningOperation"]:
        """Interpret a cleaning request.

        Args:
            request: The user's request text.
            stats: Current column statistics.

        Returns:
            Candidate operations, in the order they should be applied.
        """
        ...
