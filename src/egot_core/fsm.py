"""Finite State Machine for a conversational turn."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class TurnPhase(StrEnum):
    IDLE = "idle"
    STREAMING = "streaming"
    APPLYING_TOOLS = "applying_tools"
    CHECKPOINTING = "checkpointing"
    FAILED = "failed"


# Tool calls interleave with streamed text, so APPLYING_TOOLS returns to STREAMING.
_TRANSITIONS: dict[TurnPhase, list[TurnPhase]] = {
    TurnPhase.IDLE: [TurnPhase.STREAMING],
    TurnPhase.STREAMING: [
        TurnPhase.APPLYING_TOOLS,
        TurnPhase.CHECKPOINTING,
        TurnPhase.IDLE,
        TurnPhase.FAILED,
    ],
    TurnPhase.APPLYING_TOOLS: [TurnPhase.STREAMING, TurnPhase.FAILED],
    TurnPhase.CHECKPOINTING: [TurnPhase.IDLE],
    TurnPhase.FAILED: [TurnPhase.IDLE],
}


class TurnState(BaseModel):
    phase: TurnPhase = TurnPhase.IDLE

    def can_transition(self, target: TurnPhase) -> bool:
        return target in _TRANSITIONS.get(self.phase, [])

    def transition(self, target: TurnPhase) -> TurnState:
        if not self.can_transition(target):
            raise ValueError(f"Invalid transition: {self.phase} -> {target}")
        return TurnState(phase=target)
