"""Stateless text collaborators: artifact summaries and session titles."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .errors import SummarizationUnavailable
from .models import Mode
from .prompts import MEDIUM, SUMMARIZE_PROMPT, TITLE_PROMPT
from .provider import ChatMessage, ChatRequest, ChatRole, LLMProvider

logger = logging.getLogger(__name__)

# Below this many characters there is nothing worth summarizing.
MIN_SUMMARIZABLE_CHARS = 50

_MINIMAL: dict[Mode, str] = {
    Mode.BLOCKLY: "Empty or minimal game workspace.",
    Mode.JAVASCRIPT: "Empty or minimal game code.",
}

DEFAULT_TITLE = "New Chat"


def minimal_summary(content: str, mode: Mode) -> str | None:
    """Fixed summary for near-empty content, ``None`` when a real one is needed."""
    if len(content.strip()) < MIN_SUMMARIZABLE_CHARS:
        return _MINIMAL[mode]
    return None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


class Summarizer(ABC):
    """Abstract summarization collaborator."""

    @abstractmethod
    async def summarize(self, content: str, mode: Mode) -> str:
        """Describe the game's current gameplay. Raise :class:`SummarizationUnavailable` on failure."""


class StubSummarizer(Summarizer):
    """Deterministic summaries for tests and offline use."""

    def __init__(self, fail: bool = False) -> None:
        self._fail = fail
        self.calls = 0

    async def summarize(self, content: str, mode: Mode) -> str:
        self.calls += 1
        if self._fail:
            raise SummarizationUnavailable("stub summarizer configured to fail")
        return minimal_summary(content, mode) or (
            f"A {mode.value} game definition of {len(content)} characters."
        )


class ProviderSummarizer(Summarizer):
    """Summaries from a single non-streaming provider call."""

    def __init__(self, provider: LLMProvider, model: str, max_tokens: int = 200) -> None:
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens

    async def summarize(self, content: str, mode: Mode) -> str:
        minimal = minimal_summary(content, mode)
        if minimal is not None:
            return minimal
        label = "Blockly workspace JSON" if mode == Mode.BLOCKLY else "Game code"
        request = ChatRequest(
            model=self._model,
            messages=[
                ChatMessage(
                    role=ChatRole.USER,
                    content=f"{SUMMARIZE_PROMPT}\n\n=== {label.upper()} ===\n{content}",
                )
            ],
            max_tokens=self._max_tokens,
        )
        try:
            response = await self._provider.chat(request)
        except Exception as exc:
            raise SummarizationUnavailable(str(exc)) from exc
        text = response.content.strip()
        if not text:
            raise SummarizationUnavailable("provider returned an empty summary")
        return text


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------


class TitleGenerator(ABC):
    """Abstract title collaborator."""

    @abstractmethod
    async def generate(self, first_message: str, mode: Mode) -> str:
        """Return a short session title."""


class StubTitleGenerator(TitleGenerator):
    async def generate(self, first_message: str, mode: Mode) -> str:
        words = first_message.split()[:6]
        return " ".join(words)[:50] or DEFAULT_TITLE


class ProviderTitleGenerator(TitleGenerator):
    def __init__(self, provider: LLMProvider, model: str) -> None:
        self._provider = provider
        self._model = model

    async def generate(self, first_message: str, mode: Mode) -> str:
        prompt = TITLE_PROMPT.format(medium=MEDIUM[mode], message=first_message[:200])
        response = await self._provider.chat(
            ChatRequest(
                model=self._model,
                messages=[ChatMessage(role=ChatRole.USER, content=prompt)],
                max_tokens=30,
            )
        )
        title = response.content.strip().strip("\"'").strip()[:50]
        return title or DEFAULT_TITLE
