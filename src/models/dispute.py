"""Dispute model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class DisputeOutcome(str, Enum):
    """How a mediator settles a disputed deal."""
    RESUME = "resume"
    CANCEL = "cancel"


class Dispute(BaseModel):
    id: str
    deal_id: str
    reported_by: str
    reported_against: str
    reason: str
    status: DisputeStatus = DisputeStatus.OPEN
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    created_at: Optional[str] = None
