"""Session data model — modes, artifacts, messages, checkpoints, summaries."""

from __future__ import annotations

import time
import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Time-prefixed unique id; sorts by creation time."""
    return f"{int(time.time() * 1000):012x}-{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Mode(StrEnum):
    """How the game artifact is represented. Fixed per session."""

    BLOCKLY = "blockly"
    JAVASCRIPT = "javascript"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class TurnStatus(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


EMPTY_CONTENT: dict[Mode, str] = {
    Mode.BLOCKLY: '{"blocks":[]}',
    Mode.JAVASCRIPT: "",
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Artifact(BaseModel):
    """The live game definition of a session at one version."""

    model_config = ConfigDict(frozen=True)

    mode: Mode
    content: str
    version: int = 0

    @classmethod
    def empty(cls, mode: Mode) -> Artifact:
        return cls(mode=mode, content=EMPTY_CONTENT[mode], version=0)


class ToolCallRecord(BaseModel):
    """What the assistant asked for and how it went."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    status: ToolStatus
    error: str | None = None


class Message(BaseModel):
    """A transcript entry. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str
    position: int
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    truncated: bool = False
    created_at: float = Field(default_factory=time.time)


class Checkpoint(BaseModel):
    """Immutable named snapshot of the artifact, tied to a transcript position."""

    model_config = ConfigDict(frozen=True)

    checkpoint_id: str = Field(default_factory=new_id)
    label: str
    message_position: int
    snapshot: Artifact
    created_at: float = Field(default_factory=time.time)


class ContextSummary(BaseModel):
    """Derived description of the artifact; never the source of truth."""

    text: str
    version: int
    computed_at_turn: int = 0


class SessionRecord(BaseModel):
    """Session header as stored by a repository."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    mode: Mode
    title: str = "New Chat"
    created_at: float = Field(default_factory=time.time)
