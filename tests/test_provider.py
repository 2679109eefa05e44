"""Tests for the LLM provider abstraction and the offline providers."""

from __future__ import annotations

import pytest

from egot_core.provider import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    LLMProvider,
    ScriptedLLMProvider,
    TextDelta,
    ToolCall,
    ToolCallEvent,
    ToolSpec,
)


def _request() -> ChatRequest:
    return ChatRequest(
        model="test-model",
        messages=[ChatMessage(role=ChatRole.USER, content="make a snake game")],
    )


def test_provider_is_abstract() -> None:
    with pytest.raises(TypeError):
        LLMProvider()  # type: ignore[abstract]


def test_tool_call_defaults() -> None:
    call = ToolCall(tool_name="edit_code", arguments={"command": "view"})
    assert len(call.call_id) == 12
    assert call.depends_on == []


# ---------------------------------------------------------------------------
# ScriptedLLMProvider
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_scripted_replays_scripts_in_order() -> None:
    call = ToolCall(call_id="c1", tool_name="edit_code", arguments={"command": "view"})
    provider = ScriptedLLMProvider(
        scripts=[[TextDelta(text="Looking"), ToolCallEvent(call=call)], [TextDelta(text="Second")]]
    )
    tools = [ToolSpec(name="edit_code", description="edit")]

    first = [e async for e in provider.stream(_request(), tools)]
    second = [e async for e in provider.stream(_request(), tools)]
    third = [e async for e in provider.stream(_request(), tools)]

    assert first == [TextDelta(text="Looking"), ToolCallEvent(call=call)]
    assert second == [TextDelta(text="Second")]
    assert third == [TextDelta(text="Done.")]
    assert len(provider.requests) == 3
    assert provider.tool_sets[0] == tools


@pytest.mark.asyncio
async def test_scripted_raises_exception_items() -> None:
    provider = ScriptedLLMProvider()
    provider.queue([TextDelta(text="partial"), RuntimeError("connection reset")])
    seen = []
    with pytest.raises(RuntimeError, match="connection reset"):
        async for event in provider.stream(_request(), []):
            seen.append(event)
    assert seen == [TextDelta(text="partial")]


@pytest.mark.asyncio
async def test_scripted_chat_replies() -> None:
    provider = ScriptedLLMProvider(chat_replies=["A racing game."])
    assert (await provider.chat(_request())).content == "A racing game."
    assert (await provider.chat(_request())).content == "ok"
    assert provider.name() == "scripted"
    assert provider.capabilities().native_tool_calling is True
