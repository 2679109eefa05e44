"""Bounded description of the artifact for model input."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .errors import SummarizationUnavailable
from .models import Artifact, ContextSummary
from .summarizer import Summarizer
from .telemetry import trace_summarize

logger = logging.getLogger(__name__)

PLACEHOLDER = "content present, summary unavailable"


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 chars per token)."""
    return len(text) // 4


class ContextKind(StrEnum):
    RAW = "raw"
    SUMMARY = "summary"
    PLACEHOLDER = "placeholder"


@dataclass
class ArtifactContext:
    """What the model sees of the artifact this turn."""

    kind: ContextKind
    text: str
    version: int


class ContextCompactor:
    """Keeps one summary, stamped with the artifact version it describes.

    The summary is reused while the artifact version is unchanged and it is
    younger than ``max_age_turns``; otherwise it is recomputed. Raw content
    is preferred whenever it fits in ``raw_max_tokens``.
    """

    def __init__(
        self,
        summarizer: Summarizer,
        raw_max_tokens: int = 2000,
        max_age_turns: int = 5,
    ) -> None:
        if raw_max_tokens < 0 or max_age_turns <= 0:
            msg = "raw_max_tokens must be >= 0 and max_age_turns > 0"
            raise ValueError(msg)
        self._summarizer = summarizer
        self._raw_max_tokens = raw_max_tokens
        self._max_age_turns = max_age_turns
        self._summary: ContextSummary | None = None
        self._turn = 0

    @property
    def summary(self) -> ContextSummary | None:
        return self._summary

    @property
    def turn(self) -> int:
        return self._turn

    def note_turn(self) -> None:
        """Age the current summary by one turn."""
        self._turn += 1

    def is_stale(self, artifact: Artifact) -> bool:
        if self._summary is None:
            return True
        if self._summary.version != artifact.version:
            return True
        return self._turn - self._summary.computed_at_turn >= self._max_age_turns

    def needs_summary(self, artifact: Artifact) -> bool:
        return estimate_tokens(artifact.content) > self._raw_max_tokens

    async def refresh(self, artifact: Artifact) -> ContextSummary | None:
        """Return a fresh-enough summary, or ``None`` if the summarizer failed."""
        if not self.is_stale(artifact):
            return self._summary
        with trace_summarize(artifact.version) as span:
            try:
                text = await self._summarizer.summarize(artifact.content, artifact.mode)
            except SummarizationUnavailable as exc:
                span.set_attribute("summary.available", False)
                logger.warning("summary for v%d unavailable: %s", artifact.version, exc)
                return None
            except Exception:
                span.set_attribute("summary.available", False)
                logger.warning("summarizer raised for v%d", artifact.version, exc_info=True)
                return None
        self._summary = ContextSummary(
            text=text, version=artifact.version, computed_at_turn=self._turn
        )
        return self._summary

    async def render(self, artifact: Artifact) -> ArtifactContext:
        if not self.needs_summary(artifact):
            return ArtifactContext(ContextKind.RAW, artifact.content, artifact.version)
        summary = await self.refresh(artifact)
        if summary is None:
            return ArtifactContext(ContextKind.PLACEHOLDER, PLACEHOLDER, artifact.version)
        return ArtifactContext(ContextKind.SUMMARY, summary.text, artifact.version)
