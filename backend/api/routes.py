"""API routes for the Dataset Cleaner.

This module defines all REST API endpoints for:
- Dataset upload and paginated preview
- Column statistics
- Chat-based interpretation of cleaning requests
- Confirmed application of cleaning operations
- CSV export
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from agents.exporter import export_csv
from agents.profiler import profile_columns
from config import settings
from models.dataset_state import ChatMessage, DatasetState
from models.operations import CleaningOperation
from models.stats import ColumnStats
from orchestrator.workflow import (
    StaleDatasetError,
    apply_operations,
    interpret_request,
    process_upload,
)
from protocols import InterpretationGateway
from repositories.dataset import DatasetNotFoundError, DatasetRepository, get_repository
from services.llm import InterpreterService

router = APIRouter()


def get_interpreter() -> InterpretationGateway:
    """Provide the interpretation gateway (overridable in tests)."""
    return InterpreterService()


class ChatMessageRequest(BaseModel):
    """Request body for chat messages."""
    content: str


class ChatResponse(BaseModel):
    """Response body for chat messages."""
    user_message: str
    assistant_message: str
    operations: List[CleaningOperation] | None = None
    dataset_version: int | None = None


class ApplyRequest(BaseModel):
    """Request body confirming operations to apply."""
    operations: List[CleaningOperation]
    dataset_version: int | None = None


class ApplyResponse(BaseModel):
    """Response body after applying operations."""
    assistant_message: str
    steps: List[Dict[str, Any]]
    dataset_version: int
    row_count: int
    column_count: int
    preview: List[Dict[str, Any]]


class StatsResponse(BaseModel):
    dataset_id: str
    dataset_version: int
    row_count: int
    stats: List[ColumnStats]


async def _get_state(repo: DatasetRepository, dataset_id: str) -> DatasetState:
    try:
        return await repo.get(dataset_id)
    except DatasetNotFoundError:
        raise HTTPException(status_code=404, detail="Dataset not found")


def _preview(state: DatasetState, page: int = 1, page_size: Optional[int] = None) -> Dict[str, Any]:
    """Get a paginated preview of the current dataset.

    Args:
        state: Dataset state.
        page: Page number (1-indexed).
        page_size: Number of rows per page.

    Returns:
        Dictionary containing the page rows and pagination metadata.
    """
    page_size = page_size or settings.data.preview_page_size
    total_rows = len(state.dataset)
    total_pages = (total_rows + page_size - 1) // page_size
    return {
        "dataset_id": state.dataset_id,
        "dataset_version": state.current_version,
        "columns": list(state.dataset.columns),
        "preview": state.dataset.page(page, page_size),
        "row_count": total_rows,
        "column_count": len(state.dataset.columns),
        "page": page,
        "page_size": page_size,
        "total_rows": total_rows,
        "total_pages": total_pages,
    }


@router.post("/upload")
async def upload_dataset(
    file: UploadFile = File(...),
    dataset_id: Optional[str] = Form(None),
    repo: DatasetRepository = Depends(get_repository),
) -> Dict[str, object]:
    """Upload and parse a CSV dataset.

    Args:
        file: CSV file to upload.
        dataset_id: Optional identifier; generated when omitted.
        repo: Dataset repository.

    Returns:
        Dictionary with dataset info, first preview page and the greeting.
    """
    content = await file.read()
    state = await process_upload(repo, file.filename or "data.csv", content, dataset_id)
    body = _preview(state)
    body["file_name"] = state.file_name
    body["messages"] = [m.model_dump(mode="json") for m in state.chat_history]
    return body


@router.get("/datasets")
async def list_datasets(repo: DatasetRepository = Depends(get_repository)) -> Dict[str, object]:
    return {"datasets": await repo.list_ids()}


@router.get("/preview/{dataset_id}")
async def get_preview(
    dataset_id: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    repo: DatasetRepository = Depends(get_repository),
) -> Dict[str, object]:
    """Get paginated data preview.

    Raises:
        HTTPException: If dataset is not found.
    """
    state = await _get_state(repo, dataset_id)
    page_size = min(page_size or settings.data.preview_page_size, settings.data.max_page_size)
    return _preview(state, page=page, page_size=page_size)


@router.get("/stats/{dataset_id}")
async def get_stats(
    dataset_id: str,
    repo: DatasetRepository = Depends(get_repository),
) -> StatsResponse:
    """Profile the current dataset."""
    state = await _get_state(repo, dataset_id)
    return StatsResponse(
        dataset_id=dataset_id,
        dataset_version=state.current_version,
        row_count=len(state.dataset),
        stats=profile_columns(state.dataset),
    )


@router.post("/chat/{dataset_id}")
async def chat(
    dataset_id: str,
    message: ChatMessageRequest,
    repo: DatasetRepository = Depends(get_repository),
    gateway: InterpretationGateway = Depends(get_interpreter),
) -> ChatResponse:
    """Interpret a cleaning request into operations awaiting confirmation.

    Args:
        dataset_id: Unique identifier for the dataset.
        message: Chat message from the user.
        repo: Dataset repository.
        gateway: Interpretation gateway.

    Returns:
        ChatResponse with the assistant reply and any suggested operations.
    """
    reply = await interpret_request(repo, gateway, dataset_id, message.content)
    return ChatResponse(
        user_message=message.content,
        assistant_message=reply.content,
        operations=reply.operations,
        dataset_version=reply.dataset_version,
    )


@router.post("/apply/{dataset_id}")
async def apply(
    dataset_id: str,
    request: ApplyRequest,
    repo: DatasetRepository = Depends(get_repository),
) -> ApplyResponse:
    """Apply confirmed operations in order.

    Raises:
        HTTPException: 404 if the dataset is unknown, 409 if it changed since
            the operations were suggested.
    """
    try:
        reply, results, state = await apply_operations(
            repo, dataset_id, request.operations, expected_version=request.dataset_version
        )
    except DatasetNotFoundError:
        raise HTTPException(status_code=404, detail="Dataset not found")
    except StaleDatasetError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ApplyResponse(
        assistant_message=reply.content,
        steps=[r.to_dict() for r in results],
        dataset_version=state.current_version,
        row_count=len(state.dataset),
        column_count=len(state.dataset.columns),
        preview=state.dataset.page(1, settings.data.preview_page_size),
    )


@router.get("/history/{dataset_id}")
async def get_history(
    dataset_id: str,
    repo: DatasetRepository = Depends(get_repository),
) -> List[ChatMessage]:
    state = await _get_state(repo, dataset_id)
    return state.chat_history


@router.get("/download/{dataset_id}/file")
async def download_file(
    dataset_id: str,
    repo: DatasetRepository = Depends(get_repository),
) -> Response:
    """Download the current dataset as CSV.

    Raises:
        HTTPException: If the dataset is unknown or has no columns to export.
    """
    state = await _get_state(repo, dataset_id)
    if not state.dataset.columns:
        raise HTTPException(status_code=404, detail="No data to export")

    return Response(
        content=export_csv(state.dataset),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{state.export_name()}"'},
    )


@router.delete("/dataset/{dataset_id}")
async def delete_dataset(
    dataset_id: str,
    repo: DatasetRepository = Depends(get_repository),
) -> Dict[str, str]:
    """Delete a dataset and its chat history.

    Raises:
        HTTPException: If dataset is not found.
    """
    if not await repo.delete(dataset_id):
        raise HTTPException(status_code=404, detail="Dataset not found")
    return {"message": f"Dataset {dataset_id} deleted successfully"}
