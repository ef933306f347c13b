"""Pydantic schemas shared by the processor and the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ProcessingStatus(str, Enum):
    """Outcome of a poll cycle or of a stored log file."""

    idle = "idle"
    processed = "processed"
    failed = "failed"


class CycleResult(BaseModel):
    """What a single poll cycle did."""

    status: ProcessingStatus
    file_name: Optional[str] = Field(
        default=None, description="Log file graded in this cycle, if any."
    )
    payload: Optional[str] = Field(
        default=None, description="Text written to the result store for the file."
    )
    pending_count: int = Field(default=0, ge=0)
    processing_ms: Optional[int] = None


class StoredResult(BaseModel):
    """Stored outcome for one log file."""

    file_name: str
    status: ProcessingStatus
    brandings: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


class PendingFiles(BaseModel):
    """Unprocessed log files, newest first."""

    files: List[str] = Field(default_factory=list)
    oldest: Optional[str] = None
