"""Interactive REPL over a single game-building session."""

from __future__ import annotations

import argparse
import asyncio

from . import __version__
from .config import EgotConfig
from .errors import NotFound
from .models import Mode
from .orchestrator import SessionOrchestrator, TurnResult
from .persistence import InMemorySessionRepository, SessionRepository, SqliteSessionRepository
from .provider import LLMProvider, ScriptedLLMProvider
from .summarizer import StubSummarizer, StubTitleGenerator

_HELP = """\
Commands:
  status          session, turn phase and artifact version
  show            print the current artifact
  checkpoints     list checkpoints (oldest first)
  restore <id>    make a checkpoint's snapshot live again
  delete <id>     remove a checkpoint
  help, quit/exit
Anything else, including restore/delete with a multi-word argument,
is sent to the assistant as an instruction."""


def _open_repository(config: EgotConfig) -> SessionRepository:
    if config.db_path:
        return SqliteSessionRepository(config.db_path)
    return InMemorySessionRepository()


def build_orchestrator(
    mode: Mode,
    provider: LLMProvider | None = None,
    config: EgotConfig | None = None,
) -> SessionOrchestrator:
    """Create a fresh session and an orchestrator for it.

    Without a provider the session runs on :class:`ScriptedLLMProvider` with
    stub summaries and titles, so the REPL works offline.
    """
    config = config or EgotConfig.from_env()
    repository = _open_repository(config)
    record = repository.create_session(mode)
    if provider is None:
        return SessionOrchestrator(
            repository,
            record.session_id,
            ScriptedLLMProvider(),
            summarizer=StubSummarizer(),
            title_generator=StubTitleGenerator(),
            config=config,
        )
    return SessionOrchestrator(repository, record.session_id, provider, config=config)


async def async_main(
    mode: Mode = Mode.BLOCKLY,
    provider: LLMProvider | None = None,
    config: EgotConfig | None = None,
) -> None:
    orchestrator = build_orchestrator(mode, provider, config)

    print(f"Egot REPL v{__version__} ({mode.value} mode)")
    print("Type 'help' for commands, 'quit' or 'exit' to exit")
    print()

    while True:
        try:
            user_input = input("egot> ")
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        stripped = user_input.strip()
        if not stripped:
            continue
        command, _, arg = stripped.partition(" ")
        arg = arg.strip()

        if stripped in ("quit", "exit"):
            print("Bye!")
            break
        if stripped == "help":
            print(_HELP)
            continue
        if stripped == "status":
            artifact = orchestrator.artifact()
            print(f"  Session: {orchestrator.session_id} ({orchestrator.title})")
            print(f"  Mode: {artifact.mode.value}")
            print(f"  Turn phase: {orchestrator.state.phase}")
            print(f"  Artifact version: {artifact.version}")
            print(f"  Messages: {len(orchestrator.transcript())}")
            print(f"  Checkpoints: {len(orchestrator.checkpoints())}")
            continue
        if stripped == "show":
            artifact = orchestrator.artifact()
            print(f"  [v{artifact.version}]")
            print(artifact.content or "  (empty)")
            continue
        if stripped == "checkpoints":
            checkpoints = orchestrator.checkpoints()
            if not checkpoints:
                print("  (no checkpoints)")
            for cp in checkpoints:
                print(
                    f"  {cp.checkpoint_id}  v{cp.snapshot.version}"
                    f"  @{cp.message_position}  {cp.label}"
                )
            continue
        # Multi-word lines such as "delete the score block" are instructions.
        if command in ("restore", "delete") and len(arg.split()) <= 1:
            if not arg:
                print(f"  Usage: {command} <checkpoint id>")
                continue
            try:
                if command == "restore":
                    artifact = orchestrator.restore_checkpoint(arg)
                    print(f"  Restored {arg}; artifact is now v{artifact.version}")
                else:
                    orchestrator.delete_checkpoint(arg)
                    print(f"  Deleted {arg}")
            except NotFound as exc:
                print(f"  Error: {exc}")
            continue

        result = await orchestrator.run_turn(stripped)
        _print_result(result)


def _print_result(result: TurnResult) -> None:
    """Format and print a turn result."""
    text = result.assistant_message.content.strip()
    if text:
        print(f"  {text}")
    for record in result.assistant_message.tool_calls:
        detail = f" ({record.error})" if record.error else ""
        print(f"  - {record.name} [{record.status.value}]{detail}")
    if result.checkpoint is not None:
        print(f"  Checkpoint {result.checkpoint.checkpoint_id}: {result.checkpoint.label}")
    if result.error:
        print(f"  Turn {result.status.value}: {result.error}")
    print(f"  [v{result.artifact.version}]")


def main(
    mode: Mode = Mode.BLOCKLY,
    provider: LLMProvider | None = None,
    config: EgotConfig | None = None,
) -> None:
    """Synchronous wrapper that launches :func:`async_main` via ``asyncio.run``."""
    asyncio.run(async_main(mode, provider, config))


def run(argv: list[str] | None = None) -> None:
    """Entry point for the ``egot-repl`` command."""
    parser = argparse.ArgumentParser(prog="egot-repl")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=Mode.BLOCKLY.value,
        help="artifact representation for the new session",
    )
    args = parser.parse_args(argv)
    main(Mode(args.mode))


if __name__ == "__main__":
    run()
