"""LLM services package.

This package provides modular LLM functionality:
- client: LLM API client abstraction
- interpreter: Cleaning-request interpretation
- prompts: Prompt templates
"""
from services.llm.client import OpenRouterClient, get_llm_client
from services.llm.interpreter import InterpretationFailure, InterpreterService

__all__ = [
    "OpenRouterClient",
    "get_llm_client",
    "InterpretationFailure",
    "InterpreterService",
]
