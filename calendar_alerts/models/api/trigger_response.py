# calendar_alerts/models/api/trigger_response.py
"""
Trigger API response models.
"""

from pydantic import BaseModel, Field


class TriggerResponse(BaseModel):
    """Response after a trigger has been handed to the alert worker."""

    accepted: bool = Field(..., description="Trigger was queued")
    kind: str = Field(..., description="Trigger kind as received")
    processed: bool = Field(default=False, description="Trigger finished before responding")
    result: bool | None = Field(default=None, description="Pass result when processed")
    queue_depth: int = Field(default=0, description="Triggers waiting after this one was queued")
