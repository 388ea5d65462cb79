"""Dataset workflow: upload, interpretation and the LangGraph apply pipeline.

This module provides:
1. Dataset upload and initial parsing
2. Interpretation of chat requests into candidate operations
3. Sequential, user-confirmed application of operations with LangGraph
4. State management through the dataset repository
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, TypedDict

from langgraph.graph import END, StateGraph

from agents.data_ops import DataOperator
from agents.ingestion import IngestionAgent
from agents.profiler import profile_columns
from models.dataset import Dataset
from models.dataset_state import ChatMessage, DatasetState
from models.operations import CleaningOperation, OutcomeStatus
from protocols import InterpretationGateway
from repositories.dataset import DatasetRepository
from services.llm.interpreter import InterpretationFailure

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "Please upload a dataset first."
NO_OPERATIONS_MESSAGE = (
    "I couldn't identify any specific cleaning operations from your request. "
    "Could you rephrase?"
)
INTERPRETATION_ERROR_MESSAGE = (
    "Sorry, I encountered an error processing your request. "
    "Please check your API key and try again."
)
APPLIED_MESSAGE = "Operations applied successfully! The dataset has been updated."
NOTHING_APPLIED_MESSAGE = "None of the operations could be applied. The dataset is unchanged."


class StaleDatasetError(Exception):
    """Raised when operations target a dataset version that is no longer current."""

    def __init__(self, dataset_id: str, expected: int, current: int):
        super().__init__(
            f"Dataset {dataset_id} is at version {current}, operations were prepared for version {expected}"
        )
        self.expected = expected
        self.current = current


# ============================================================================
# Step Results
# ============================================================================

@dataclass
class StepResult:
    """Result of executing a single operation.

    Attributes:
        step_num: 1-based position in the confirmed list.
        description: Human-readable description from the operation.
        operation: Operation type executed.
        status: Applied or skipped.
        message: Result or skip message.
        rows_before: Row count before the operation.
        rows_after: Row count after the operation.
    """
    step_num: int
    description: str
    operation: str
    status: OutcomeStatus
    message: str = ""
    rows_before: int = 0
    rows_after: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload


# ============================================================================
# Workflow State
# ============================================================================

class ApplyState(TypedDict):
    """State passed between nodes in the apply graph."""
    operations: List[CleaningOperation]
    current_step_idx: int
    dataset: Any  # Dataset - using Any for TypedDict compatibility
    results: List[StepResult]
    final_message: str
    success: bool


# ============================================================================
# LangGraph Apply Nodes
# ============================================================================

def prepare_node(state: ApplyState) -> ApplyState:
    """Reset the cursor before the first operation."""
    return {**state, "current_step_idx": 0, "results": []}


def execute_step_node(state: ApplyState) -> ApplyState:
    """Execute the current operation against the latest dataset."""
    idx = state["current_step_idx"]
    operation = state["operations"][idx]
    dataset: Dataset = state["dataset"]

    outcome = DataOperator(dataset).execute(operation)
    result = StepResult(
        step_num=idx + 1,
        description=operation.description,
        operation=operation.type.value,
        status=outcome.status,
        message=outcome.message,
        rows_before=len(dataset),
        rows_after=len(outcome.dataset),
    )
    return {
        **state,
        "dataset": outcome.dataset,
        "results": list(state["results"]) + [result],
        "current_step_idx": idx + 1,
    }


def validate_step_node(state: ApplyState) -> ApplyState:
    """Flag steps that removed almost every row."""
    if not state["results"]:
        return state

    last_result = state["results"][-1]
    if last_result.status == OutcomeStatus.APPLIED and last_result.rows_before > 0:
        removal_rate = 1 - (last_result.rows_after / last_result.rows_before)
        if removal_rate > 0.9:
            last_result.message += f" Warning: removed {removal_rate * 100:.1f}% of rows."
        if last_result.rows_after == 0:
            last_result.message += " Warning: dataset is now empty."
    return state


def finalize_node(state: ApplyState) -> ApplyState:
    """Create the final summary message."""
    results = state["results"]
    applied = sum(1 for r in results if r.status == OutcomeStatus.APPLIED)
    total = len(state["operations"])

    parts = [APPLIED_MESSAGE if applied else NOTHING_APPLIED_MESSAGE]
    for result in results:
        icon = "✓" if result.status == OutcomeStatus.APPLIED else "⊘"
        parts.append(f"\n{icon} Step {result.step_num}: {result.description} - {result.message}")

    dataset: Dataset = state["dataset"]
    parts.append(f"\n\nSummary: {applied}/{total} operations applied")
    parts.append(f"\nResult: {len(dataset)} rows × {len(dataset.columns)} columns")

    return {
        **state,
        "final_message": "".join(parts),
        "success": applied > 0,
    }


# ============================================================================
# Conditional Edge Functions
# ============================================================================

def should_continue(state: ApplyState) -> Literal["execute", "finalize"]:
    """Run the next operation or finish when all have been executed."""
    if state["current_step_idx"] >= len(state["operations"]):
        return "finalize"
    return "execute"


# ============================================================================
# Build Apply Graph
# ============================================================================

def create_apply_graph():
    """Create the LangGraph workflow applying operations in order.

    Returns:
        Compiled graph ready for execution.
    """
    graph = StateGraph(ApplyState)

    graph.add_node("prepare", prepare_node)
    graph.add_node("execute_step", execute_step_node)
    graph.add_node("validate", validate_step_node)
    graph.add_node("finalize", finalize_node)

    graph.set_entry_point("prepare")
    graph.add_conditional_edges(
        "prepare",
        should_continue,
        {"execute": "execute_step", "finalize": "finalize"},
    )
    graph.add_edge("execute_step", "validate")
    graph.add_conditional_edges(
        "validate",
        should_continue,
        {"execute": "execute_step", "finalize": "finalize"},
    )
    graph.add_edge("finalize", END)

    return graph.compile()


async def run_apply_workflow(
    dataset: Dataset,
    operations: List[CleaningOperation],
) -> Tuple[bool, str, Dataset, List[StepResult]]:
    """Apply operations left to right, each consuming the previous result.

    A skipped operation does not stop the ones after it.

    Args:
        dataset: Dataset to start from; never modified.
        operations: Confirmed operations.

    Returns:
        Tuple of (any_applied, final_message, result_dataset, step_results).
    """
    graph = create_apply_graph()

    initial_state: ApplyState = {
        "operations": list(operations),
        "current_step_idx": 0,
        "dataset": dataset,
        "results": [],
        "final_message": "",
        "success": False,
    }

    # two supersteps per operation plus prepare and finalize
    config = {"recursion_limit": 2 * len(operations) + 10}
    final_state = await graph.ainvoke(initial_state, config=config)

    return (
        final_state["success"],
        final_state["final_message"],
        final_state["dataset"],
        final_state["results"],
    )


# ============================================================================
# Orchestration
# ============================================================================

async def process_upload(
    repo: DatasetRepository,
    file_name: str,
    content: bytes,
    dataset_id: Optional[str] = None,
) -> DatasetState:
    """Parse an uploaded CSV, store it and greet the user.

    Args:
        repo: Dataset repository.
        file_name: Original file name.
        content: Raw file bytes.
        dataset_id: Identifier to use; generated when omitted.

    Returns:
        Created DatasetState.
    """
    state = IngestionAgent().ingest_uploaded(content, file_name, dataset_id)
    state.log_transformation("upload", {"file_name": file_name, "rows": len(state.dataset)})
    state.log_message(
        "assistant",
        f"I've loaded {file_name} with {len(state.dataset)} rows and "
        f"{len(state.dataset.columns)} columns. How would you like to clean it?",
    )
    return await repo.save(state)


async def interpret_request(
    repo: DatasetRepository,
    gateway: InterpretationGateway,
    dataset_id: str,
    text: str,
) -> ChatMessage:
    """Turn a chat message into candidate operations for the user to confirm.

    Interpretation failures become an assistant message; the dataset is
    never touched here.

    Args:
        repo: Dataset repository.
        gateway: Interpretation gateway.
        dataset_id: Target dataset.
        text: User's message.

    Returns:
        The assistant's reply, carrying operations when any were found.
    """
    state = await repo.get_or_none(dataset_id)
    if state is None:
        return ChatMessage(role="assistant", content=NO_DATA_MESSAGE)

    state.log_message("user", text)
    if not state.has_data:
        reply = state.log_message("assistant", NO_DATA_MESSAGE)
        await repo.save(state)
        return reply

    stats = profile_columns(state.dataset)
    try:
        operations = await gateway.interpret(text, stats)
    except InterpretationFailure as e:
        logger.warning("Interpretation failed for %s: %s", dataset_id, e)
        reply = state.log_message("assistant", INTERPRETATION_ERROR_MESSAGE)
        await repo.save(state)
        return reply

    if operations:
        count = len(operations)
        content = f"I've identified {count} operation{'s' if count > 1 else ''} to apply."
        reply = state.log_message("assistant", content, operations=operations)
    else:
        reply = state.log_message("assistant", NO_OPERATIONS_MESSAGE, operations=[])
    await repo.save(state)
    return reply


async def apply_operations(
    repo: DatasetRepository,
    dataset_id: str,
    operations: List[CleaningOperation],
    expected_version: Optional[int] = None,
) -> Tuple[ChatMessage, List[StepResult], DatasetState]:
    """Apply confirmed operations and store the result as a new version.

    Args:
        repo: Dataset repository.
        dataset_id: Target dataset.
        operations: Operations confirmed by the user, in order.
        expected_version: Version the operations were prepared against.

    Returns:
        Tuple of (assistant reply, step results, updated state).

    Raises:
        DatasetNotFoundError: If the dataset does not exist.
        StaleDatasetError: If the dataset changed since the operations were prepared.
    """
    state = await repo.get(dataset_id)
    if expected_version is not None and expected_version != state.current_version:
        raise StaleDatasetError(dataset_id, expected_version, state.current_version)

    success, final_message, result, results = await run_apply_workflow(state.dataset, operations)
    if success:
        version = state.replace_dataset(result)
        logger.info("Dataset %s updated to version %d", dataset_id, version)
    state.log_transformation(
        "apply",
        {
            "operations": [op.model_dump(mode="json") for op in operations],
            "results": [r.to_dict() for r in results],
            "version": state.current_version,
        },
    )
    reply = state.log_message("assistant", final_message)
    await repo.save(state)
    return reply, results, state
