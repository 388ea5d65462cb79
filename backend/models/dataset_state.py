from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.dataset import Dataset
from models.operations import CleaningOperation


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant", "system"]
    content: str
    operations: Optional[List[CleaningOperation]] = None
    dataset_version: Optional[int] = None
    timestamp: float = Field(default_factory=time.time)


class DatasetState(BaseModel):
    """Everything the service holds for one uploaded dataset.

    Each applied change stores a new Dataset and bumps ``current_version``;
    earlier versions are not kept.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    dataset_id: str
    file_name: Optional[str] = None
    current_version: int = 0
    dataset: Dataset = Field(default_factory=Dataset)
    chat_history: List[ChatMessage] = Field(default_factory=list)
    transformation_log: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return not self.dataset.is_empty

    def log_message(
        self,
        role: Literal["user", "assistant", "system"],
        content: str,
        operations: Optional[List[CleaningOperation]] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            role=role,
            content=content,
            operations=operations,
            dataset_version=self.current_version,
        )
        self.chat_history.append(message)
        return message

    def log_transformation(self, step: str, details: Dict[str, Any]) -> None:
        self.transformation_log.append({"step": step, "details": details})

    def replace_dataset(self, dataset: Dataset) -> int:
        self.dataset = dataset
        self.current_version += 1
        return self.current_version

    def export_name(self) -> str:
        return f"cleaned_{self.file_name or 'data.csv'}"
