"""
Pydantic models for event and notification request validation.
"""

from datetime import datetime
from typing import List
from pydantic import BaseModel, Field


class CreateEventRequest(BaseModel):
    """Request body for proposing an event."""
    date: datetime
    location: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1, max_length=200)
    info: str = Field("", max_length=2000)
    threshold: int = Field(..., ge=1, description="Participants needed for confirmation")
    circles: List[str] = Field(..., min_length=1)


class DismissRequest(BaseModel):
    """Request body for dismissing a feed entry."""
    targetId: str = Field(..., min_length=1)
