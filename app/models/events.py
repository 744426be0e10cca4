"""Pydantic model for events received over the live update channel."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import LiveEventType


class LiveEvent(BaseModel):
    """A server-pushed notification.

    Embedded status fields are for display only; consumers re-fetch the
    candidate before trusting anything about its state.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: LiveEventType
    candidate_id: str | None = Field(default=None, alias="candidateId")
    application_id: str | None = Field(default=None, alias="applicationId")
    new_status: str | None = Field(default=None, alias="newStatus")
    previous_status: str | None = Field(default=None, alias="previousStatus")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | None = None
