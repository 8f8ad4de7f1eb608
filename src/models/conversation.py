"""Conversation and message models."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class Conversation(BaseModel):
    """Direct conversation between two members, optionally about a request."""
    id: str
    participant1_id: str
    participant2_id: str
    request_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def other_participant(self, user_id: str) -> str:
        return self.participant2_id if user_id == self.participant1_id else self.participant1_id


class Message(BaseModel):
    """Message row."""
    id: str
    conversation_id: Optional[str] = None
    sender_id: str
    receiver_id: str
    request_id: Optional[str] = None
    subject: str
    message: str
    is_read: bool = False
    created_at: Optional[str] = None

    @field_validator("is_read", mode="before")
    @classmethod
    def _null_read(cls, value):
        return bool(value)


class MessageCreate(BaseModel):
    """Input for a new message."""
    subject: str = Field("Conversation", min_length=1, max_length=200)
    message: str = Field(..., max_length=5000)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message cannot be empty")
        return value
