"""Marketplace request models (a posting offering one thing for another)."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class RequestType(str, Enum):
    """What is offered for what."""
    SKILL_FOR_SKILL = "skill_for_skill"
    SKILL_FOR_ITEM = "skill_for_item"
    SKILL_FOR_MONEY = "skill_for_money"
    ITEM_FOR_SKILL = "item_for_skill"
    ITEM_FOR_ITEM = "item_for_item"
    ITEM_FOR_MONEY = "item_for_money"

    @property
    def involves_money(self) -> bool:
        return self.value.endswith("_money")


class RequestStatus(str, Enum):
    """Request status values."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


CATEGORIES = (
    "Design",
    "Education",
    "Tech",
    "Writing",
    "Marketing",
    "Video/Photo",
    "Music/Audio",
    "Business",
    "Other",
)

# Sentinel used by browse filters for "no category filter"
ALL_CATEGORIES = "All"


class MarketRequest(BaseModel):
    """Request row."""
    id: str = Field(..., description="Request ID (uuid)")
    user_id: str = Field(..., description="Owner profile ID")
    title: str
    description: str
    request_type: RequestType
    category: str
    offering: str
    seeking: str
    money_amount: Optional[float] = None
    has_prerequisite: bool = False
    prerequisite_description: Optional[str] = None
    deadline: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    images: Optional[list[str]] = None
    status: RequestStatus = RequestStatus.OPEN
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _null_flags(cls, data):
        if isinstance(data, dict):
            if data.get("has_prerequisite") is None:
                data = {**data, "has_prerequisite": False}
            if data.get("status") is None:
                data = {**data, "status": RequestStatus.OPEN.value}
        return data


class RequestCreate(BaseModel):
    """Input for posting a new request."""
    title: str = Field(..., max_length=120)
    description: str = Field(..., max_length=5000)
    request_type: RequestType
    category: str
    offering: str = Field(..., max_length=500)
    seeking: str = Field(..., max_length=500)
    money_amount: Optional[float] = None
    has_prerequisite: bool = False
    prerequisite_description: Optional[str] = None
    deadline: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None

    def validation_errors(self) -> dict[str, str]:
        """Field -> message for every form rule that fails."""
        errors = {}
        if len(self.title.strip()) < 10:
            errors["title"] = "Title must be at least 10 characters"
        if len(self.description.strip()) < 50:
            errors["description"] = "Description must be at least 50 characters"
        if not self.category:
            errors["category"] = "Please select a category"
        elif self.category not in CATEGORIES:
            errors["category"] = f"Unknown category: {self.category}"
        if len(self.offering.strip()) < 5:
            errors["offering"] = "Please provide more detail"
        if len(self.seeking.strip()) < 5:
            errors["seeking"] = "Please provide more detail"
        if self.request_type.involves_money and (self.money_amount is None or self.money_amount <= 0):
            errors["money_amount"] = "Please enter a valid amount"
        if self.has_prerequisite and len((self.prerequisite_description or "").strip()) < 20:
            errors["prerequisite_description"] = "Please provide detailed prerequisites"
        return errors

    def to_row(self, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "title": self.title.strip(),
            "description": self.description.strip(),
            "request_type": self.request_type.value,
            "category": self.category,
            "offering": self.offering.strip(),
            "seeking": self.seeking.strip(),
            "money_amount": self.money_amount if self.request_type.involves_money else None,
            "has_prerequisite": self.has_prerequisite,
            "prerequisite_description": self.prerequisite_description.strip() if self.has_prerequisite else None,
            "deadline": self.deadline,
            "pickup_location": self.pickup_location,
            "dropoff_location": self.dropoff_location,
            "status": RequestStatus.OPEN.value,
        }
