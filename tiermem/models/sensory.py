"""
Sensory tier models: raw input and its attention-gating outcome.
"""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class InputType(str, Enum):
    """Where a sensory record came from."""

    MESSAGE = "message"
    EVENT = "event"
    OBSERVATION = "observation"


class SensoryStatus(str, Enum):
    """Processing state of a sensory record."""

    PENDING = "pending"
    PROCESSING = "processing"
    PROMOTED = "promoted"
    DISCARDED = "discarded"


class SensoryRecord(BaseModel):
    """
    Raw input as it entered the system.

    Records are never deleted: discarded input stays queryable for audit.
    Only `status`, `discard_reason` and `processed_at` change after insert.
    """

    id: str = Field(..., description="Unique sensory ID (sen_xxx)")
    content: str = Field(..., description="Raw text")
    content_hash: str = Field(..., description="Stable hash used for duplicate detection")
    input_type: InputType = InputType.MESSAGE
    attention_score: float = Field(..., ge=0.0, le=1.0)
    status: SensoryStatus = SensoryStatus.PENDING
    discard_reason: str | None = None
    owner_id: str
    thread_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    processed_at: datetime | None = None


class IngestionStatus(str, Enum):
    """Outcome of an ingestion call."""

    CREATED = "created"
    DUPLICATE = "duplicate"


class IngestionResult(BaseModel):
    """Returned synchronously by ingestion; `score` is absent for duplicates."""

    status: IngestionStatus
    id: str
    score: float | None = None


def compute_content_hash(content: str) -> str:
    """
    Compute SHA256 hash of content for deduplication.

    The hash is prefixed with "sha256:" for easy identification of the algorithm used.
    Content is hashed verbatim so that only byte-identical input counts as a duplicate.

    Args:
        content: Text content to hash

    Returns:
        Hash string in format "sha256:hexdigest"
    """
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"sha256:{digest}"
