"""Review models."""

from typing import Optional
from pydantic import BaseModel, Field


class Review(BaseModel):
    """Post-deal rating left by one participant about the other."""
    id: str
    deal_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    created_at: Optional[str] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Stars, 1-5")
    comment: Optional[str] = Field(None, max_length=2000)
