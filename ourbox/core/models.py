from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, field_validator, model_validator, ValidationInfo

class UploadState(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCESS, UploadState.ERROR, UploadState.CANCELLED)

@dataclass(frozen=True)
class UploadSnapshot:
    """Last observed progress of one upload. Replaced as a whole, never mutated."""
    bytes_transferred: int
    total_bytes: int
    state: UploadState

@dataclass(frozen=True)
class ObjectInfo:
    """Metadata for one stored object. Sizes are raw bytes."""
    name: str
    full_path: str
    size: int
    content_type: Optional[str]
    updated: Optional[datetime]

class _NonEmptyBody(BaseModel):
    @model_validator(mode='before')
    @classmethod
    def check_for_empty_body(cls, data):
        """
        Ensures the request body is not empty.
        """
        if not data:
            raise ValueError("Request body cannot be empty")
        return data

class PathRequest(_NonEmptyBody):
    path: str

    @field_validator("path")
    @classmethod
    def not_empty(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise ValueError(f"'{info.field_name}' is a required field and cannot be empty.")
        return v

class UploadOperationRequest(_NonEmptyBody):
    operation: str
    file: str

    @field_validator("operation", "file")
    @classmethod
    def not_empty(cls, v: str, info: ValidationInfo) -> str:
        """
        Validates that the given string is not empty and provides a clear error message.
        """
        if not v.strip():
            raise ValueError(f"'{info.field_name}' is a required field and cannot be empty.")
        return v
