"""LLM Provider abstraction — pluggable streaming backend for real and scripted models."""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class ProviderCapabilities(BaseModel):
    """Declares what a provider can do."""

    native_tool_calling: bool = False
    streaming: bool = False


class ChatRole(StrEnum):
    """Role of a message participant."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ChatMessage(BaseModel):
    """Single message in a conversation."""

    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    """Request payload sent to an LLM provider."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int | None = None
    temperature: float | None = None


class ToolSpec(BaseModel):
    """Specification for a tool that an LLM can call."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """A tool invocation emitted by the LLM.

    ``depends_on`` lists ``call_id`` values of earlier calls in the same turn
    that this call builds on.
    """

    call_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Response returned from a non-streaming call."""

    content: str


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class TextDelta(BaseModel):
    """A fragment of assistant text."""

    text: str


class ToolCallEvent(BaseModel):
    """A complete tool call surfaced mid-stream."""

    call: ToolCall


StreamEvent = TextDelta | ToolCallEvent


# ---------------------------------------------------------------------------
# LLMProvider ABC
# ---------------------------------------------------------------------------


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the canonical provider name."""

    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        """Describe what this provider supports."""

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Single-shot completion, used for summaries and titles."""

    @abstractmethod
    def stream(self, request: ChatRequest, tools: list[ToolSpec]) -> AsyncIterator[StreamEvent]:
        """Stream text fragments and tool calls as they arrive.

        Consumers cancel by closing the iterator (``aclose``) or by cancelling
        the task that drives it.
        """


# ---------------------------------------------------------------------------
# Scripted implementation (for testing / offline development)
# ---------------------------------------------------------------------------


ScriptItem = TextDelta | ToolCallEvent | BaseException


class ScriptedLLMProvider(LLMProvider):
    """Replays queued stream scripts, one per ``stream`` call.

    A script item that is an exception is raised at that point of the
    stream. When the queue is empty the provider answers with plain text.
    ``event_delay`` sleeps before every event, which gives cancellation and
    timeouts something to interrupt.
    """

    def __init__(
        self,
        scripts: list[list[ScriptItem]] | None = None,
        chat_replies: list[str] | None = None,
        event_delay: float = 0.0,
    ) -> None:
        self._scripts: list[list[ScriptItem]] = list(scripts or [])
        self._chat_replies: list[str] = list(chat_replies or [])
        self._event_delay = event_delay
        self.requests: list[ChatRequest] = []
        self.tool_sets: list[list[ToolSpec]] = []

    def name(self) -> str:
        return "scripted"

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(native_tool_calling=True, streaming=True)

    def queue(self, script: list[ScriptItem]) -> None:
        self._scripts.append(script)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if self._chat_replies:
            return ChatResponse(content=self._chat_replies.pop(0))
        return ChatResponse(content="ok")

    async def stream(
        self, request: ChatRequest, tools: list[ToolSpec]
    ) -> AsyncIterator[StreamEvent]:
        self.requests.append(request)
        self.tool_sets.append(list(tools))
        script = self._scripts.pop(0) if self._scripts else [TextDelta(text="Done.")]
        for item in script:
            if self._event_delay:
                await asyncio.sleep(self._event_delay)
            if isinstance(item, BaseException):
                raise item
            yield item
