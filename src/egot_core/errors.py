"""Error taxonomy for session, tool-call and turn failures."""

from __future__ import annotations


class EgotError(Exception):
    """Base class for all egot-core errors."""


# ---------------------------------------------------------------------------
# Artifact store
# ---------------------------------------------------------------------------


class VersionConflict(EgotError):
    """Raised when a compare-and-set write sees a different stored version."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Version conflict: expected {expected}, stored {actual}")


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


class ToolCallError(EgotError):
    """A tool call was rejected before anything was committed."""


class MalformedEdit(ToolCallError):
    """Tool input could not be parsed or references something that does not exist."""


class ModeMismatch(MalformedEdit):
    """Tool belongs to the other session mode."""

    def __init__(self, tool_name: str, mode: str) -> None:
        self.tool_name = tool_name
        self.mode = mode
        super().__init__(f"Tool '{tool_name}' is not available in {mode} mode")


class InvalidSource(ToolCallError):
    """Replacement source failed the well-formedness check."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid source: " + "; ".join(self.problems))


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class NotFound(EgotError):
    """A referenced record does not exist."""


class CheckpointNotFound(NotFound):
    def __init__(self, checkpoint_id: str) -> None:
        self.checkpoint_id = checkpoint_id
        super().__init__(f"Checkpoint not found: {checkpoint_id!r}")


class SessionNotFound(NotFound):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id!r}")


# ---------------------------------------------------------------------------
# Context quality
# ---------------------------------------------------------------------------


class SummarizationUnavailable(EgotError):
    """The summarization collaborator failed or returned nothing usable."""


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------


class TurnError(EgotError):
    """A conversational turn could not run to completion."""


class StreamTimeout(TurnError):
    def __init__(self, timeout_sec: float) -> None:
        self.timeout_sec = timeout_sec
        super().__init__(f"Turn exceeded its {timeout_sec}s budget")


class StreamCancelled(TurnError):
    def __init__(self) -> None:
        super().__init__("Turn cancelled by user")


class TurnInProgress(TurnError):
    """A turn is already running for this session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} already has an active turn")
