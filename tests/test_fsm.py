"""Tests for the turn state machine."""

import pytest

from egot_core.fsm import TurnPhase, TurnState


def test_initial_state_is_idle():
    state = TurnState()
    assert state.phase == TurnPhase.IDLE


def test_happy_path_with_tool_calls():
    state = TurnState()
    for target in [
        TurnPhase.STREAMING,
        TurnPhase.APPLYING_TOOLS,
        TurnPhase.STREAMING,
        TurnPhase.APPLYING_TOOLS,
        TurnPhase.STREAMING,
        TurnPhase.CHECKPOINTING,
        TurnPhase.IDLE,
    ]:
        state = state.transition(target)
    assert state.phase == TurnPhase.IDLE


def test_text_only_turn_skips_checkpointing():
    state = TurnState().transition(TurnPhase.STREAMING).transition(TurnPhase.IDLE)
    assert state.phase == TurnPhase.IDLE


def test_failure_returns_to_idle():
    state = TurnState(phase=TurnPhase.APPLYING_TOOLS)
    state = state.transition(TurnPhase.FAILED).transition(TurnPhase.IDLE)
    assert state.phase == TurnPhase.IDLE


@pytest.mark.parametrize(
    ("start", "target"),
    [
        (TurnPhase.IDLE, TurnPhase.APPLYING_TOOLS),
        (TurnPhase.IDLE, TurnPhase.CHECKPOINTING),
        (TurnPhase.APPLYING_TOOLS, TurnPhase.CHECKPOINTING),
        (TurnPhase.CHECKPOINTING, TurnPhase.FAILED),
        (TurnPhase.FAILED, TurnPhase.STREAMING),
    ],
)
def test_invalid_transition_raises(start, target):
    with pytest.raises(ValueError, match="Invalid transition"):
        TurnState(phase=start).transition(target)


def test_transition_returns_new_state():
    idle = TurnState()
    streaming = idle.transition(TurnPhase.STREAMING)
    assert streaming.phase == TurnPhase.STREAMING
    assert idle.phase == TurnPhase.IDLE
