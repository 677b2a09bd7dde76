"""Owner model: the user whose memories are managed."""

from datetime import datetime

from pydantic import BaseModel, Field


class Owner(BaseModel):
    """
    The user a memory set belongs to.

    `last_active_at` is refreshed on ingestion and on get-or-create; the
    reflection pass only visits owners active inside its recency window.
    """

    id: str = Field(..., description="Unique owner ID (own_xxx)")
    external_id: str = Field(..., description="ID in the external auth system")
    name: str | None = None
    email: str | None = None
    last_active_at: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)
