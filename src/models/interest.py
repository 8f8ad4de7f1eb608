"""RequestInterest model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class InterestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RequestInterest(BaseModel):
    """A user's application to take on a request."""
    id: str
    request_id: str
    user_id: str = Field(..., description="Interested user (future accepter)")
    message: Optional[str] = Field(None, max_length=1000)
    status: InterestStatus = InterestStatus.PENDING
    created_at: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value):
        return InterestStatus.PENDING if value is None else value
