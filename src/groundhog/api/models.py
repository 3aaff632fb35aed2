"""
Pydantic models for Groundhog API requests and responses.
This module defines the request and response schemas used by the Groundhog API.
"""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from groundhog.core.patterns import DEFAULT_PATTERN
from groundhog.core.schema import AgentStep


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class SessionResponse(BaseModel):
    """Response with session information."""

    session_id: str


class MessageRequest(BaseModel):
    """Incoming user message."""

    message: str = Field("", description="User message for Groundhog")
    pattern: str = Field(DEFAULT_PATTERN, description="Name of a predefined request pattern")
    session_id: Optional[str] = Field(None, description="Session ID for conversation context")
    include_notes: bool = Field(True, description="Attach the most recent notes to the request")


class MessageResponse(BaseModel):
    """API response returned to the caller."""

    reply: str
    steps: List[AgentStep] = Field(default_factory=list)
    session_id: str


class StreamEvent(BaseModel):
    """One websocket frame sent to the client."""

    type: str = Field(..., description="'chunk', 'reply' or 'error'")
    content: str
    session_id: str | None = None
