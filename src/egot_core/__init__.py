"""Egot core — session state machine for AI-assisted game building."""

from __future__ import annotations

__version__ = "0.1.0"

from .artifact_store import ArtifactStore
from .blocks import BlockWorkspace
from .checkpoints import CheckpointStore, make_label
from .compactor import PLACEHOLDER, ArtifactContext, ContextCompactor, ContextKind, estimate_tokens
from .config import EgotConfig
from .errors import (
    CheckpointNotFound,
    EgotError,
    InvalidSource,
    MalformedEdit,
    ModeMismatch,
    NotFound,
    SessionNotFound,
    StreamCancelled,
    StreamTimeout,
    SummarizationUnavailable,
    ToolCallError,
    TurnError,
    TurnInProgress,
    VersionConflict,
)
from .executor import ApplyResult, ToolCallExecutor
from .fsm import TurnPhase, TurnState
from .models import (
    Artifact,
    Checkpoint,
    ContextSummary,
    Message,
    MessageRole,
    Mode,
    SessionRecord,
    ToolCallRecord,
    ToolStatus,
    TurnStatus,
)
from .orchestrator import SessionOrchestrator, TurnResult
from .persistence import InMemorySessionRepository, SessionRepository, SqliteSessionRepository
from .provider import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    LLMProvider,
    ProviderCapabilities,
    ScriptedLLMProvider,
    TextDelta,
    ToolCall,
    ToolCallEvent,
    ToolSpec,
)
from .source_check import SourceChecker
from .summarizer import (
    ProviderSummarizer,
    ProviderTitleGenerator,
    StubSummarizer,
    StubTitleGenerator,
    Summarizer,
    TitleGenerator,
)
from .telemetry import EgotTracer, TelemetryConfig, configure_tracing, get_tracer
from .tools import CODE_TOOL, WORKSPACE_TOOL, parse_tool_call, tool_specs

__all__ = [
    "__version__",
    "ApplyResult",
    "Artifact",
    "ArtifactContext",
    "ArtifactStore",
    "BlockWorkspace",
    "CODE_TOOL",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "Checkpoint",
    "CheckpointNotFound",
    "CheckpointStore",
    "ContextCompactor",
    "ContextKind",
    "ContextSummary",
    "EgotConfig",
    "EgotError",
    "EgotTracer",
    "InMemorySessionRepository",
    "InvalidSource",
    "LLMProvider",
    "MalformedEdit",
    "Message",
    "MessageRole",
    "Mode",
    "ModeMismatch",
    "NotFound",
    "PLACEHOLDER",
    "ProviderCapabilities",
    "ProviderSummarizer",
    "ProviderTitleGenerator",
    "ScriptedLLMProvider",
    "SessionNotFound",
    "SessionOrchestrator",
    "SessionRecord",
    "SessionRepository",
    "SourceChecker",
    "SqliteSessionRepository",
    "StreamCancelled",
    "StreamTimeout",
    "StubSummarizer",
    "StubTitleGenerator",
    "SummarizationUnavailable",
    "Summarizer",
    "TelemetryConfig",
    "TextDelta",
    "TitleGenerator",
    "ToolCall",
    "ToolCallError",
    "ToolCallEvent",
    "ToolCallExecutor",
    "ToolCallRecord",
    "ToolSpec",
    "ToolStatus",
    "TurnError",
    "TurnInProgress",
    "TurnPhase",
    "TurnResult",
    "TurnState",
    "TurnStatus",
    "VersionConflict",
    "WORKSPACE_TOOL",
    "configure_tracing",
    "estimate_tokens",
    "get_tracer",
    "make_label",
    "parse_tool_call",
    "tool_specs",
]
