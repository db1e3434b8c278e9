"""
Rate limiting module data models.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class RateLimitEntry(BaseModel):
    """Failed-attempt counter for one client key."""

    count: int = Field(default=0, ge=0, description="Failed attempts in the current window")
    first_attempt: datetime = Field(..., description="Start of the current window")
    last_attempt: datetime = Field(..., description="Most recent failed attempt")
