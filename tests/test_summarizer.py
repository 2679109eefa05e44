"""Tests for summary and title collaborators."""

from __future__ import annotations

import pytest

from egot_core.errors import SummarizationUnavailable
from egot_core.models import Mode
from egot_core.provider import ChatRequest, ChatResponse, ScriptedLLMProvider
from egot_core.summarizer import (
    DEFAULT_TITLE,
    ProviderSummarizer,
    ProviderTitleGenerator,
    StubSummarizer,
    StubTitleGenerator,
    minimal_summary,
)

LONG_CODE = "function setup() { createCanvas(400, 400); }\nfunction draw() { background(0); }\n"


class _BrokenProvider(ScriptedLLMProvider):
    async def chat(self, request: ChatRequest) -> ChatResponse:
        raise ConnectionError("provider offline")


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def test_minimal_summary_for_near_empty_content() -> None:
    assert minimal_summary("", Mode.JAVASCRIPT) == "Empty or minimal game code."
    assert minimal_summary('{"blocks":[]}', Mode.BLOCKLY) == "Empty or minimal game workspace."
    assert minimal_summary(LONG_CODE, Mode.JAVASCRIPT) is None


@pytest.mark.asyncio
async def test_provider_summarizer_skips_call_for_minimal_content() -> None:
    provider = ScriptedLLMProvider()
    summary = await ProviderSummarizer(provider, "m").summarize("", Mode.JAVASCRIPT)
    assert summary == "Empty or minimal game code."
    assert provider.requests == []


@pytest.mark.asyncio
async def test_provider_summarizer_sends_content() -> None:
    provider = ScriptedLLMProvider(chat_replies=["  A dodging game with one player.  "])
    summary = await ProviderSummarizer(provider, "m").summarize(LONG_CODE, Mode.JAVASCRIPT)
    assert summary == "A dodging game with one player."
    (request,) = provider.requests
    assert request.model == "m"
    assert "=== GAME CODE ===" in request.messages[0].content
    assert LONG_CODE in request.messages[0].content


@pytest.mark.asyncio
async def test_provider_summarizer_wraps_failures() -> None:
    with pytest.raises(SummarizationUnavailable, match="provider offline"):
        await ProviderSummarizer(_BrokenProvider(), "m").summarize(LONG_CODE, Mode.JAVASCRIPT)


@pytest.mark.asyncio
async def test_provider_summarizer_rejects_empty_answer() -> None:
    provider = ScriptedLLMProvider(chat_replies=["   "])
    with pytest.raises(SummarizationUnavailable):
        await ProviderSummarizer(provider, "m").summarize(LONG_CODE, Mode.JAVASCRIPT)


@pytest.mark.asyncio
async def test_stub_summarizer_counts_calls() -> None:
    stub = StubSummarizer()
    assert await stub.summarize(LONG_CODE, Mode.JAVASCRIPT) == (
        f"A javascript game definition of {len(LONG_CODE)} characters."
    )
    assert stub.calls == 1
    with pytest.raises(SummarizationUnavailable):
        await StubSummarizer(fail=True).summarize(LONG_CODE, Mode.JAVASCRIPT)


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_provider_title_strips_quotes_and_caps_length() -> None:
    provider = ScriptedLLMProvider(chat_replies=['"Space Shooter"', "x" * 80])
    titles = ProviderTitleGenerator(provider, "m")
    assert await titles.generate("make a space shooter", Mode.BLOCKLY) == "Space Shooter"
    assert len(await titles.generate("again", Mode.BLOCKLY)) == 50
    assert "visual blocks" in provider.requests[0].messages[0].content


@pytest.mark.asyncio
async def test_provider_title_truncates_long_first_message() -> None:
    provider = ScriptedLLMProvider(chat_replies=["Long"])
    await ProviderTitleGenerator(provider, "m").generate("y" * 500, Mode.JAVASCRIPT)
    prompt = provider.requests[0].messages[0].content
    assert "y" * 200 in prompt
    assert "y" * 201 not in prompt


@pytest.mark.asyncio
async def test_provider_title_empty_answer_falls_back() -> None:
    provider = ScriptedLLMProvider(chat_replies=['""'])
    assert await ProviderTitleGenerator(provider, "m").generate("hi", Mode.BLOCKLY) == DEFAULT_TITLE


@pytest.mark.asyncio
async def test_stub_title_uses_first_words() -> None:
    titles = StubTitleGenerator()
    title = await titles.generate("make a maze game with keys and doors please", Mode.BLOCKLY)
    assert title == "make a maze game with keys"
    assert await titles.generate("   ", Mode.BLOCKLY) == DEFAULT_TITLE
