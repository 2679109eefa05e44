"""Egot Golden Path Demo.

Walks one block-workspace session through the checkpoint lifecycle and one
source session through a rejected edit:
1. A turn adds block b1 (version 1) and is checkpointed
2. A second turn adds block b2 (version 2)
3. Restoring the first checkpoint reverts content as version 3
4. Deleting that checkpoint leaves the artifact untouched
5. An unbalanced source replacement is rejected; the version does not move

Uses the scripted provider -- no real LLM needed.

Run: python examples/golden_path.py  (after ``pip install -e .``)
"""

from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path

from egot_core import (
    InMemorySessionRepository,
    Mode,
    ScriptedLLMProvider,
    SessionOrchestrator,
    SqliteSessionRepository,
    StubSummarizer,
    StubTitleGenerator,
    TextDelta,
    ToolCall,
    ToolCallEvent,
    ToolStatus,
)


def _check(condition: bool, msg: str) -> None:  # noqa: FBT001
    """Raise RuntimeError if *condition* is False (demo validation)."""
    if not condition:
        raise RuntimeError(msg)


def _add(call_id: str, block_id: str, block_type: str) -> ToolCallEvent:
    return ToolCallEvent(
        call=ToolCall(
            call_id=call_id,
            tool_name="edit_workspace",
            arguments={"operation": "add", "block": {"id": block_id, "type": block_type}},
        )
    )


def _ids(content: str) -> list[str]:
    return [b["id"] for b in json.loads(content)["blocks"]]


async def run_demo(db_path: Path) -> None:
    print("=" * 60)
    print("Egot Golden Path Demo")
    print("=" * 60)

    repo = SqliteSessionRepository(db_path)
    provider = ScriptedLLMProvider(
        scripts=[
            [TextDelta(text="Adding a move block."), _add("c1", "b1", "move")],
            [TextDelta(text="Adding a score block."), _add("c2", "b2", "score")],
        ]
    )
    session = repo.create_session(Mode.BLOCKLY)
    orch = SessionOrchestrator(
        repo,
        session.session_id,
        provider,
        summarizer=StubSummarizer(),
        title_generator=StubTitleGenerator(),
    )

    # ------------------------------------------------------------------
    # Step 1-2: two turns, each adding a block
    # ------------------------------------------------------------------
    print("\n[1/5] Turn: add move block")
    first = await orch.run_turn("add move block")
    print(f"  Status    : {first.status.value}")
    print(f"  Artifact  : v{first.artifact.version} {first.artifact.content}")
    _check(first.artifact.version == 1, "first edit should produce version 1")
    _check(first.checkpoint is not None, "first edit should be checkpointed")
    print(f"  Checkpoint: {first.checkpoint.checkpoint_id} ({first.checkpoint.label!r})")

    print("\n[2/5] Turn: add score block")
    second = await orch.run_turn("add score block")
    print(f"  Artifact  : v{second.artifact.version} blocks={_ids(second.artifact.content)}")
    _check(second.artifact.version == 2, "second edit should produce version 2")

    # ------------------------------------------------------------------
    # Step 3: restore advances the version
    # ------------------------------------------------------------------
    print("\n[3/5] Restoring first checkpoint...")
    restored = orch.restore_checkpoint(first.checkpoint.checkpoint_id)
    print(f"  Artifact  : v{restored.version} blocks={_ids(restored.content)}")
    _check(restored.version == 3, "restore should advance to version 3")
    _check(_ids(restored.content) == ["b1"], "restore should bring back only b1")

    # ------------------------------------------------------------------
    # Step 4: delete leaves the artifact alone
    # ------------------------------------------------------------------
    print("\n[4/5] Deleting the checkpoint...")
    orch.delete_checkpoint(first.checkpoint.checkpoint_id)
    after = orch.artifact()
    print(f"  Artifact  : v{after.version} blocks={_ids(after.content)}")
    print(f"  Remaining checkpoints: {[c.label for c in orch.checkpoints()]}")
    _check(after == restored, "deleting a checkpoint must not touch the artifact")
    repo.close()

    # ------------------------------------------------------------------
    # Step 5: invalid source is rejected before commit
    # ------------------------------------------------------------------
    print("\n[5/5] Source session: unbalanced replacement")
    broken = "function setup() {\n  createCanvas(400, 400);\n\nfunction draw() {}\n"
    js_repo = InMemorySessionRepository()
    js_provider = ScriptedLLMProvider(
        scripts=[[
            ToolCallEvent(
                call=ToolCall(
                    call_id="c1",
                    tool_name="edit_code",
                    arguments={"command": "replace", "code": broken},
                )
            )
        ]]
    )
    js = SessionOrchestrator(
        js_repo,
        js_repo.create_session(Mode.JAVASCRIPT).session_id,
        js_provider,
        summarizer=StubSummarizer(),
        title_generator=StubTitleGenerator(),
    )
    result = await js.run_turn("make a game")
    (record,) = result.assistant_message.tool_calls
    print(f"  Tool call : {record.status.value} ({record.error})")
    print(f"  Artifact  : v{result.artifact.version}")
    _check(record.status == ToolStatus.FAILED, "broken source must be rejected")
    _check(result.artifact.version == 0, "rejected edit must not advance the version")

    print("\n" + "=" * 60)
    print("Golden path completed successfully.")
    print("=" * 60)


def main() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        asyncio.run(run_demo(Path(tmpdir) / "egot.db"))


if __name__ == "__main__":
    main()
