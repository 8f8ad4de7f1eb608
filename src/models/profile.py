"""Profile model - marketplace member (one row per auth user)."""

import re
from typing import Optional
from pydantic import BaseModel, Field, field_validator

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")

# Columns a member may edit on their own profile
EDITABLE_FIELDS = (
    "username",
    "full_name",
    "bio",
    "avatar_url",
    "location",
    "phone",
    "website",
    "github",
    "linkedin",
    "twitter",
    "education",
    "work_experience",
    "portfolio_description",
    "skills",
)


class Profile(BaseModel):
    """Profile row."""
    id: str = Field(..., description="Auth user ID (uuid)")
    username: str = Field(..., description="Public handle")
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    education: Optional[str] = None
    work_experience: Optional[str] = None
    portfolio_description: Optional[str] = None
    skills: Optional[list[str]] = None
    reputation_score: int = Field(default=0, ge=0, le=100, description="Rating-derived score (0-100)")
    completed_deals: int = Field(default=0, ge=0)
    total_deals: int = Field(default=0, ge=0)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("reputation_score", "completed_deals", "total_deals", mode="before")
    @classmethod
    def _null_counter(cls, value):
        # Columns are nullable in the database
        return 0 if value is None else value

    @property
    def completion_rate(self) -> float:
        if not self.total_deals:
            return 0.0
        return self.completed_deals / self.total_deals


class ProfileUpdate(BaseModel):
    """Fields a member can change; unset fields are left alone."""
    username: Optional[str] = None
    full_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar_url: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    website: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    education: Optional[str] = None
    work_experience: Optional[str] = None
    portfolio_description: Optional[str] = None
    skills: Optional[list[str]] = None

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not USERNAME_RE.match(value):
            raise ValueError("Username must be 3-30 letters, digits or underscores")
        return value

    @field_validator("skills")
    @classmethod
    def _clean_skills(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return value
        cleaned = []
        for skill in value:
            skill = skill.strip()
            if skill and skill not in cleaned:
                cleaned.append(skill)
        return cleaned

    def to_updates(self) -> dict:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)
