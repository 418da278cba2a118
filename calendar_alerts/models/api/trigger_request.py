# calendar_alerts/models/api/trigger_request.py
"""
Trigger API request models.
Used by routes for input validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TriggerRequest(BaseModel):
    """Request for delivering a trigger to the alert worker."""

    kind: str = Field(..., min_length=1, max_length=64, description="Trigger kind")
    quiet: bool = Field(default=False, description="Quiet update (event_reminder only)")
    alarm_time: datetime | None = Field(default=None, description="Alarm time that fired")
    wait: bool = Field(default=False, description="Wait until the trigger has been processed")
