"""
Session Models - chat sessions and their messages.
"""

from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import Field

from .base import CamelModel, UTCDateTime, utcnow


def new_id() -> str:
    return str(uuid4())


class Attachment(CamelModel):
    """File, image or code snippet attached to a message."""
    id: str = Field(default_factory=new_id)
    type: Literal["image", "file", "code"]
    name: str
    url: Optional[str] = None
    content: Optional[str] = None
    language: Optional[str] = None


class Message(CamelModel):
    """A single chat message."""
    id: str = Field(default_factory=new_id)
    content: str = ""
    is_user: bool
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    is_loading: Optional[bool] = None
    tokens: Optional[int] = None
    model: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    is_edited: Optional[bool] = None
    original_content: Optional[str] = None  # set on first edit only


class ChatSession(CamelModel):
    """Conversation with its ordered messages."""
    id: str = Field(default_factory=new_id)
    title: str = "New Chat"
    messages: List[Message] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)
    is_archived: Optional[bool] = None
    tags: Optional[List[str]] = None
    model: Optional[str] = None
    temperature: Optional[float] = None


class SessionUpdate(CamelModel):
    """Partial session update. Only explicitly set fields are applied."""
    title: Optional[str] = None
    messages: Optional[List[Message]] = None
    updated_at: Optional[UTCDateTime] = None
    is_archived: Optional[bool] = None
    tags: Optional[List[str]] = None
    model: Optional[str] = None
    temperature: Optional[float] = None

    def changes(self) -> dict:
        """Explicitly set fields as python values."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class MessageUpdate(CamelModel):
    """Partial message update. `id` and `is_user` are deliberately absent."""
    content: Optional[str] = None
    is_loading: Optional[bool] = None
    tokens: Optional[int] = None
    model: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    is_edited: Optional[bool] = None
    original_content: Optional[str] = None

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}
