"""Deal model - agreement between a request owner and an accepted applicant."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator


class DealStatus(str, Enum):
    """Deal status values."""
    PENDING = "pending"
    PREREQUISITE_PENDING = "prerequisite_pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


# Deals a participant still has to act on
OPEN_DEAL_STATUSES = (DealStatus.PREREQUISITE_PENDING, DealStatus.ACTIVE)
# Deals that keep a request "taken"
LIVE_DEAL_STATUSES = (
    DealStatus.PENDING,
    DealStatus.PREREQUISITE_PENDING,
    DealStatus.ACTIVE,
    DealStatus.DISPUTED,
)

_FLAGS = (
    "requester_task_completed",
    "accepter_task_completed",
    "requester_verified_accepter",
    "accepter_verified_requester",
    "prerequisite_completed",
    "cancellation_agreed",
)

Role = Literal["requester", "accepter"]


class Deal(BaseModel):
    """Deal row plus derived helpers used by the lifecycle rules."""
    id: str
    request_id: str
    requester_id: str = Field(..., description="Request owner")
    accepter_id: str = Field(..., description="User whose interest was accepted")
    requester_task_completed: bool = False
    accepter_task_completed: bool = False
    requester_verified_accepter: bool = False
    accepter_verified_requester: bool = False
    prerequisite_completed: bool = False
    cancellation_requested_by: Optional[str] = None
    cancellation_agreed: bool = False
    status: DealStatus = DealStatus.PENDING
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _null_flags(cls, data):
        # Boolean columns are nullable; treat NULL as False
        if isinstance(data, dict):
            data = dict(data)
            for flag in _FLAGS:
                if data.get(flag) is None:
                    data[flag] = False
            if data.get("status") is None:
                data["status"] = DealStatus.PENDING.value
        return data

    @model_validator(mode="after")
    def _distinct_parties(self):
        if self.requester_id == self.accepter_id:
            raise ValueError("requester and accepter must be different users")
        return self

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.requester_id, self.accepter_id)

    def role_of(self, user_id: str) -> Optional[Role]:
        if user_id == self.requester_id:
            return "requester"
        if user_id == self.accepter_id:
            return "accepter"
        return None

    def other_party_id(self, user_id: str) -> Optional[str]:
        if user_id == self.requester_id:
            return self.accepter_id
        if user_id == self.accepter_id:
            return self.requester_id
        return None

    def task_completed_by(self, user_id: str) -> bool:
        role = self.role_of(user_id)
        if role == "requester":
            return self.requester_task_completed
        if role == "accepter":
            return self.accepter_task_completed
        return False

    def verified_by(self, user_id: str) -> bool:
        role = self.role_of(user_id)
        if role == "requester":
            return self.requester_verified_accepter
        if role == "accepter":
            return self.accepter_verified_requester
        return False

    @property
    def both_tasks_completed(self) -> bool:
        return self.requester_task_completed and self.accepter_task_completed

    @property
    def both_verified(self) -> bool:
        return self.requester_verified_accepter and self.accepter_verified_requester

    @property
    def ready_for_rating(self) -> bool:
        # Rejected pending deals never started; only settled cancellations are rated
        if self.status == DealStatus.CANCELLED:
            return self.cancellation_agreed
        return (
            self.status in (DealStatus.ACTIVE, DealStatus.COMPLETED)
            and self.both_tasks_completed
            and self.both_verified
        )
