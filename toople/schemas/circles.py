"""
Pydantic models for circle request validation.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from toople.models import Right


class CreateCircleRequest(BaseModel):
    """Request body for creating a circle."""
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, description="Derived from the name if omitted")


class AddMemberRequest(BaseModel):
    """Request body for adding a member."""
    userId: str
    rights: Optional[List[Right]] = None


class SetRightsRequest(BaseModel):
    """Request body for replacing a member's rights."""
    rights: List[Right]
