"""
pipelines/schemas.py

Pydantic models for the portal's in-session objects:
- Auth form state + the events that drive it
- Chat messages and conversations
- Dashboard quick answers

These are intentionally lightweight for MVP/demo.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthMode(str, Enum):
    login = "login"
    signup = "signup"
    reset = "reset"


class StatusKind(str, Enum):
    idle = "idle"
    submitting = "submitting"
    success = "success"
    failure = "failure"


FieldName = Literal["email", "password", "name", "confirm_password"]


class AuthFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str = ""
    password: str = ""
    name: str = ""
    confirm_password: str = ""


class AuthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: StatusKind = StatusKind.idle
    message: Optional[str] = None

    @property
    def is_submitting(self) -> bool:
        return self.kind == StatusKind.submitting


class AuthFlowState(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: AuthMode = AuthMode.login
    fields: AuthFields = Field(default_factory=AuthFields)
    status: AuthStatus = Field(default_factory=AuthStatus)


class AuthenticatedUser(BaseModel):
    """Handed to the surrounding app after a successful login or signup."""

    email: str
    name: str


# Events --------------------------------------------------------------------


class SwitchMode(BaseModel):
    model_config = ConfigDict(frozen=True)
    mode: AuthMode


class EditField(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: FieldName
    value: str


class SubmitStarted(BaseModel):
    model_config = ConfigDict(frozen=True)


class SubmitSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)
    message: str


class SubmitFailed(BaseModel):
    model_config = ConfigDict(frozen=True)
    message: str


class ResetCompleted(BaseModel):
    model_config = ConfigDict(frozen=True)


class SessionEnded(BaseModel):
    model_config = ConfigDict(frozen=True)


AuthEvent = Union[
    SwitchMode, EditField, SubmitStarted, SubmitSucceeded, SubmitFailed, ResetCompleted, SessionEnded
]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatContext(str, Enum):
    upload = "upload"
    medicine_search = "medicine-search"
    question = "question"


class Role(str, Enum):
    user = "user"
    assistant = "assistant"


class Message(BaseModel):
    id: int
    role: Role
    content: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    pending: bool = False


class Conversation(BaseModel):
    context: ChatContext
    turns: list[Message] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class Answer(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    question: str
    response: str
    timestamp: datetime = Field(default_factory=_utcnow)
