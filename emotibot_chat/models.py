"""
Shared data models for the EmotiBot Chat service.

This module defines the core domain models used across multiple layers
of the application (orchestration, remote client, CLI, API).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Mood(str, Enum):
    """Mood tags recognised by the classifier."""

    CLARITY = "clarity"
    AWE = "awe"
    SORROW = "sorrow"
    WONDER = "wonder"
    UNDEFINED = "undefined"


class Prosody(BaseModel):
    """Speech rate and pitch, both relative to 1.0."""

    model_config = ConfigDict(frozen=True)

    rate: float = Field(1.0, description="Speaking rate multiplier")
    pitch: float = Field(1.0, description="Pitch multiplier")


class MoodStyle(BaseModel):
    """Attributes derived from a mood tag."""

    model_config = ConfigDict(frozen=True)

    color: str = Field(..., description="Display color as a hex string")
    prosody: Prosody


class ConversationState(BaseModel):
    """Represents the observable state of a conversation."""

    input: str = Field("", description="Pending user input")
    response: str = Field("", description="Last reply or error message")
    mood: Mood = Field(Mood.UNDEFINED, description="Mood of the last submission")
    voice_enabled: bool = Field(True, description="Whether replies are spoken")
    is_loading: bool = Field(False, description="Whether a request is in flight")


# Remote chat API payloads

CHAT_TEMPERATURE = 0.7


class ChatMessage(BaseModel):
    """A single role-tagged chat message."""

    role: str
    content: str


class ChatRequest(BaseModel):
    """Outbound chat-completions payload."""

    model: str
    messages: list[ChatMessage]
    temperature: float = CHAT_TEMPERATURE


class ChatResponse(BaseModel):
    """Parsed inbound payload: assistant text or a remote error message."""

    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the provider answered with a reply."""
        return self.error is None
