"""Tests for ContextCompactor — summary reuse, staleness and fallbacks."""

from __future__ import annotations

import pytest

from egot_core.compactor import PLACEHOLDER, ContextCompactor, ContextKind, estimate_tokens
from egot_core.errors import SummarizationUnavailable
from egot_core.models import Artifact, Mode
from egot_core.summarizer import StubSummarizer, Summarizer

BIG = "function setup() {}\nfunction draw() {}\n" + "// padding\n" * 200


def _artifact(content: str = BIG, version: int = 1) -> Artifact:
    return Artifact(mode=Mode.JAVASCRIPT, content=content, version=version)


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcdefgh") == 2


def test_invalid_thresholds_rejected() -> None:
    with pytest.raises(ValueError):
        ContextCompactor(StubSummarizer(), max_age_turns=0)


@pytest.mark.asyncio
async def test_small_content_is_sent_raw() -> None:
    summarizer = StubSummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=2000)
    context = await compactor.render(_artifact("function setup() {}"))
    assert context.kind == ContextKind.RAW
    assert context.text == "function setup() {}"
    assert summarizer.calls == 0


@pytest.mark.asyncio
async def test_large_content_is_summarized_and_stamped() -> None:
    summarizer = StubSummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=10)
    context = await compactor.render(_artifact(version=4))
    assert context.kind == ContextKind.SUMMARY
    assert context.text.startswith("A javascript game definition")
    assert compactor.summary is not None
    assert compactor.summary.version == 4


@pytest.mark.asyncio
async def test_summary_reused_while_version_unchanged() -> None:
    summarizer = StubSummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=10, max_age_turns=5)
    artifact = _artifact()
    for _ in range(3):
        await compactor.render(artifact)
        compactor.note_turn()
    assert summarizer.calls == 1


@pytest.mark.asyncio
async def test_version_change_forces_new_summary() -> None:
    summarizer = StubSummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=10)
    await compactor.render(_artifact(version=1))
    await compactor.render(_artifact(version=2))
    assert summarizer.calls == 2
    assert compactor.summary is not None
    assert compactor.summary.version == 2


@pytest.mark.asyncio
async def test_old_summary_is_recomputed() -> None:
    summarizer = StubSummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=10, max_age_turns=2)
    artifact = _artifact()
    await compactor.render(artifact)
    compactor.note_turn()
    assert compactor.is_stale(artifact) is False
    compactor.note_turn()
    assert compactor.is_stale(artifact) is True
    await compactor.render(artifact)
    assert summarizer.calls == 2
    assert compactor.summary is not None
    assert compactor.summary.computed_at_turn == 2


@pytest.mark.asyncio
async def test_summarizer_failure_falls_back_to_placeholder() -> None:
    compactor = ContextCompactor(StubSummarizer(fail=True), raw_max_tokens=10)
    context = await compactor.render(_artifact())
    assert context.kind == ContextKind.PLACEHOLDER
    assert context.text == PLACEHOLDER == "content present, summary unavailable"
    assert compactor.summary is None


class _FlakySummarizer(Summarizer):
    def __init__(self) -> None:
        self.fail = False

    async def summarize(self, content: str, mode: Mode) -> str:
        if self.fail:
            raise SummarizationUnavailable("down")
        return "A shooter."


@pytest.mark.asyncio
async def test_failure_keeps_last_good_summary_but_does_not_serve_it_for_new_version() -> None:
    summarizer = _FlakySummarizer()
    compactor = ContextCompactor(summarizer, raw_max_tokens=10)
    await compactor.render(_artifact(version=1))
    summarizer.fail = True
    context = await compactor.render(_artifact(version=2))
    assert context.kind == ContextKind.PLACEHOLDER
    assert compactor.summary is not None
    assert compactor.summary.version == 1


class _CrashingSummarizer(Summarizer):
    async def summarize(self, content: str, mode: Mode) -> str:
        raise RuntimeError("summarizer backend down")


@pytest.mark.asyncio
async def test_unexpected_summarizer_error_falls_back_to_placeholder() -> None:
    compactor = ContextCompactor(_CrashingSummarizer(), raw_max_tokens=10)
    context = await compactor.render(_artifact())
    assert context.kind == ContextKind.PLACEHOLDER
    assert context.text == PLACEHOLDER
    assert compactor.summary is None
