"""Session Orchestrator — drives one conversational turn end to end."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from .artifact_store import ArtifactStore
from .checkpoints import CheckpointStore, make_label
from .compactor import ArtifactContext, ContextCompactor, ContextKind
from .config import EgotConfig
from .errors import StreamCancelled, StreamTimeout, ToolCallError, TurnInProgress, VersionConflict
from .executor import ApplyResult, ToolCallExecutor
from .fsm import TurnPhase, TurnState
from .models import (
    EMPTY_CONTENT,
    Artifact,
    Checkpoint,
    Message,
    MessageRole,
    Mode,
    ToolCallRecord,
    ToolStatus,
    TurnStatus,
)
from .persistence import SessionRepository
from .prompts import CONTEXT_HEADER, SYSTEM_PROMPTS
from .provider import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    LLMProvider,
    StreamEvent,
    TextDelta,
    ToolCall,
    ToolCallEvent,
)
from .source_check import SourceChecker
from .summarizer import (
    DEFAULT_TITLE,
    ProviderSummarizer,
    ProviderTitleGenerator,
    Summarizer,
    TitleGenerator,
)
from .telemetry import get_tracer, trace_turn
from .tools import tool_specs

logger = logging.getLogger(__name__)

_CONTENT_LABEL: dict[Mode, str] = {
    Mode.BLOCKLY: "workspace JSON",
    Mode.JAVASCRIPT: "game code",
}


@dataclass
class TurnResult:
    """What a turn produced, as appended to the transcript."""

    status: TurnStatus
    assistant_message: Message
    tool_messages: list[Message]
    checkpoint: Checkpoint | None
    artifact: Artifact
    error: str | None = None


@dataclass
class _TurnProgress:
    text: list[str] = field(default_factory=list)
    records: list[ToolCallRecord] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    failed_ids: set[str] = field(default_factory=set)
    changed: bool = False

    def record(
        self,
        call: ToolCall,
        status: ToolStatus,
        output: str,
        error: str | None = None,
    ) -> None:
        self.records.append(
            ToolCallRecord(
                call_id=call.call_id,
                name=call.tool_name,
                input=call.arguments,
                status=status,
                error=error,
            )
        )
        self.outputs.append(output)
        if status != ToolStatus.SUCCESS:
            self.failed_ids.add(call.call_id)


def _describe(context: ArtifactContext, mode: Mode) -> str:
    if context.kind == ContextKind.RAW:
        empty = not context.text.strip() or context.text == EMPTY_CONTENT[mode]
        body = "(empty - nothing built yet)" if empty else context.text
        return f"Current {_CONTENT_LABEL[mode]} (version {context.version}):\n{body}"
    if context.kind == ContextKind.SUMMARY:
        return f"Summary of the current game (version {context.version}):\n{context.text}"
    return f"Game state (version {context.version}): {context.text}"


async def _next_event(
    events: AsyncIterator[StreamEvent], cancel: asyncio.Event | None
) -> StreamEvent | None:
    """Return the next stream event, or ``None`` once the stream ends.

    With a *cancel* event the pull is raced against it, so a provider that
    goes quiet can still be cancelled. Raises :class:`StreamCancelled`.
    """
    if cancel is None:
        return await anext(events, None)
    if cancel.is_set():
        raise StreamCancelled()
    pull = asyncio.ensure_future(anext(events, None))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({pull, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not pull.done():
            pull.cancel()
            # The generator must finish unwinding before it can be closed.
            await asyncio.wait({pull})
    if cancel.is_set():
        if not pull.cancelled():
            # Retrieve any provider error that raced the cancel.
            pull.exception()
        raise StreamCancelled()
    return pull.result()


class SessionOrchestrator:
    """Runs turns for one session: stream, apply tool calls, checkpoint.

    One turn at a time: a second :meth:`run_turn` while one is active raises
    :class:`TurnInProgress`. Edits committed during a turn are never rolled
    back, whether the turn completes, is cancelled, or fails.
    """

    def __init__(
        self,
        repository: SessionRepository,
        session_id: str,
        provider: LLMProvider,
        summarizer: Summarizer | None = None,
        title_generator: TitleGenerator | None = None,
        config: EgotConfig | None = None,
        checker: SourceChecker | None = None,
    ) -> None:
        self._repository = repository
        self._session_id = repository.get_session(session_id).session_id
        self._provider = provider
        self._config = config or EgotConfig()
        self._artifacts = ArtifactStore(repository, session_id)
        self._executor = ToolCallExecutor(self._artifacts, checker)
        self._checkpoints = CheckpointStore(repository, session_id, self._artifacts)
        self._compactor = ContextCompactor(
            summarizer if summarizer is not None
            else ProviderSummarizer(provider, self._config.model),
            raw_max_tokens=self._config.raw_context_max_tokens,
            max_age_turns=self._config.summary_max_age_turns,
        )
        self._titles = (
            title_generator if title_generator is not None
            else ProviderTitleGenerator(provider, self._config.model)
        )
        self._lock = asyncio.Lock()
        self.state = TurnState()

    # -- host accessors ------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def mode(self) -> Mode:
        return self._artifacts.mode

    @property
    def title(self) -> str:
        return self._repository.get_session(self._session_id).title

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def compactor(self) -> ContextCompactor:
        return self._compactor

    def artifact(self) -> Artifact:
        return self._artifacts.read()

    def transcript(self) -> list[Message]:
        return self._repository.list_messages(self._session_id)

    def checkpoints(self) -> list[Checkpoint]:
        return self._checkpoints.list()

    def restore_checkpoint(self, checkpoint_id: str) -> Artifact:
        return self._checkpoints.restore(checkpoint_id)

    def delete_checkpoint(self, checkpoint_id: str) -> None:
        self._checkpoints.delete(checkpoint_id)

    # -- turns ---------------------------------------------------------------

    async def run_turn(self, text: str, cancel: asyncio.Event | None = None) -> TurnResult:
        """Run one turn for the user instruction *text*.

        Setting *cancel* stops consuming the stream immediately, even while
        the provider is silent; the turn then ends ``cancelled`` with a
        truncated assistant message.
        """
        if self._lock.locked():
            raise TurnInProgress(self._session_id)
        async with self._lock:
            with trace_turn(self._session_id, self.mode.value) as span:
                result = await self._run(text, cancel)
                span.set_attribute("turn.status", result.status.value)
                span.set_attribute("artifact.version", result.artifact.version)
        return result

    async def _run(self, text: str, cancel: asyncio.Event | None) -> TurnResult:
        sid = self._session_id
        first_turn = not self.transcript()
        self._repository.add_message(sid, MessageRole.USER, text)
        logger.info("turn started on session %s (%s mode)", sid, self.mode.value)

        progress = _TurnProgress()
        status = TurnStatus.COMPLETED
        error: Exception | None = None
        self.state = TurnState().transition(TurnPhase.STREAMING)
        try:
            async with asyncio.timeout(self._config.turn_timeout_sec):
                await self._stream(progress, cancel)
        except StreamCancelled as exc:
            status, error = TurnStatus.CANCELLED, exc
            logger.info("turn on session %s cancelled", sid)
        except TimeoutError:
            status, error = TurnStatus.FAILED, StreamTimeout(self._config.turn_timeout_sec)
            logger.warning("turn on session %s timed out: %s", sid, error)
        except Exception as exc:
            status, error = TurnStatus.FAILED, exc
            logger.exception("turn on session %s failed", sid)

        assistant = self._repository.add_message(
            sid,
            MessageRole.ASSISTANT,
            "".join(progress.text),
            tool_calls=progress.records,
            truncated=status != TurnStatus.COMPLETED,
        )
        tool_messages = [
            self._repository.add_message(sid, MessageRole.TOOL, output, tool_calls=[record])
            for record, output in zip(progress.records, progress.outputs)
        ]

        checkpoint: Checkpoint | None = None
        if status == TurnStatus.FAILED:
            self.state = self.state.transition(TurnPhase.FAILED)
        elif progress.changed:
            self.state = self.state.transition(TurnPhase.CHECKPOINTING)
            checkpoint = self._checkpoints.create(
                make_label(text, self._config.label_max_chars),
                self._artifacts.read(),
                assistant.position,
            )
        self.state = self.state.transition(TurnPhase.IDLE)

        if first_turn:
            await self._set_title(text)
        self._compactor.note_turn()

        artifact = self._artifacts.read()
        logger.info(
            "turn on session %s %s: %d tool call(s), artifact v%d",
            sid, status.value, len(progress.records), artifact.version,
        )
        return TurnResult(
            status=status,
            assistant_message=assistant,
            tool_messages=tool_messages,
            checkpoint=checkpoint,
            artifact=artifact,
            error=str(error) if error is not None else None,
        )

    async def _stream(self, progress: _TurnProgress, cancel: asyncio.Event | None) -> None:
        request = await self._build_request(self._artifacts.read())
        events = self._provider.stream(request, tool_specs(self.mode))
        async with contextlib.aclosing(events):
            while (event := await _next_event(events, cancel)) is not None:
                if isinstance(event, TextDelta):
                    progress.text.append(event.text)
                elif isinstance(event, ToolCallEvent):
                    self.state = self.state.transition(TurnPhase.APPLYING_TOOLS)
                    self._handle_tool_call(event.call, progress)
                    self.state = self.state.transition(TurnPhase.STREAMING)

    async def _build_request(self, artifact: Artifact) -> ChatRequest:
        context = await self._compactor.render(artifact)
        system = (
            f"{SYSTEM_PROMPTS[artifact.mode]}\n\n"
            f"{CONTEXT_HEADER}\n{_describe(context, artifact.mode)}"
        )
        messages = [ChatMessage(role=ChatRole.SYSTEM, content=system)]
        messages.extend(
            ChatMessage(role=ChatRole(m.role.value), content=m.content)
            for m in self.transcript()
        )
        return ChatRequest(model=self._config.model, messages=messages)

    # -- tool calls ----------------------------------------------------------

    def _handle_tool_call(self, call: ToolCall, progress: _TurnProgress) -> None:
        blocked = [dep for dep in call.depends_on if dep in progress.failed_ids]
        if blocked:
            reason = f"depends on failed call(s): {', '.join(blocked)}"
            logger.warning("skipping tool call %s: %s", call.call_id, reason)
            progress.record(call, ToolStatus.SKIPPED, f"Skipped: {reason}", reason)
            return
        try:
            result = self._apply(call)
        except (ToolCallError, VersionConflict) as exc:
            logger.warning("tool call %s (%s) rejected: %s", call.call_id, call.tool_name, exc)
            get_tracer().record_event(
                "tool_call.rejected",
                {"tool.call_id": call.call_id, "error.type": type(exc).__name__},
            )
            progress.record(call, ToolStatus.FAILED, f"Error: {exc}", str(exc))
            return
        progress.changed = progress.changed or result.changed
        progress.record(call, ToolStatus.SUCCESS, result.output)

    def _apply(self, call: ToolCall) -> ApplyResult:
        try:
            return self._executor.apply(call)
        except VersionConflict as exc:
            # The executor re-reads the artifact on every call.
            logger.warning("%s while applying %s; retrying once", exc, call.call_id)
            return self._executor.apply(call)

    async def _set_title(self, first_message: str) -> None:
        budget = self._config.turn_timeout_sec
        try:
            async with asyncio.timeout(budget):
                title = await self._titles.generate(first_message, self.mode)
        except TimeoutError:
            logger.warning("title generation exceeded %ss, keeping %r", budget, DEFAULT_TITLE)
            return
        except Exception as exc:
            logger.warning("title generation failed, keeping %r: %s", DEFAULT_TITLE, exc)
            return
        self._repository.set_title(self._session_id, title or DEFAULT_TITLE)
