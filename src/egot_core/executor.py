"""ToolCallExecutor — turns an assistant tool call into a validated artifact mutation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .artifact_store import ArtifactStore
from .blocks import BlockWorkspace
from .errors import MalformedEdit
from .models import Artifact, Mode
from .provider import ToolCall
from .source_check import SourceChecker
from .telemetry import trace_tool_call
from .tools import (
    AddBlock,
    Edit,
    PatchCode,
    RemoveBlock,
    ReplaceAllBlocks,
    ReplaceCode,
    UpdateBlock,
    parse_tool_call,
)

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of a successful tool application."""

    artifact: Artifact
    changed: bool
    output: str
    edit: Edit


def _numbered(text: str) -> str:
    return "\n".join(f"{i}: {line}" for i, line in enumerate(text.split("\n"), start=1))


class ToolCallExecutor:
    """Validates a tool call and applies it through one compare-and-set write.

    Failures raise :class:`~egot_core.errors.MalformedEdit`,
    :class:`~egot_core.errors.InvalidSource` or
    :class:`~egot_core.errors.VersionConflict`; in every case the artifact is
    left at the ``(version, content)`` it had before the call. Nothing is
    retried here.
    """

    def __init__(self, store: ArtifactStore, checker: SourceChecker | None = None) -> None:
        self._store = store
        self._checker = checker or SourceChecker()

    def apply(self, call: ToolCall) -> ApplyResult:
        with trace_tool_call(call.tool_name, call.call_id) as span:
            current = self._store.read()
            edit = parse_tool_call(current.mode, call.tool_name, call.arguments)

            if not edit.mutates:
                span.set_attribute("tool.changed", False)
                return ApplyResult(current, False, self._view(current), edit)

            if current.mode == Mode.BLOCKLY:
                new_content, changed, output = self._edit_workspace(current.content, edit)
            else:
                new_content, changed, output = self._edit_code(current.content, edit)

            artifact = self._store.write(current.version, new_content)
            span.set_attribute("tool.changed", changed)
            span.set_attribute("artifact.version", artifact.version)
            logger.debug(
                "applied %s (%s) -> version %d, changed=%s",
                call.tool_name, call.call_id, artifact.version, changed,
            )
            return ApplyResult(artifact, changed, output, edit)

    # -- block workspace -----------------------------------------------------

    def _edit_workspace(self, content: str, edit: Edit) -> tuple[str, bool, str]:
        workspace = BlockWorkspace.parse(content)
        before = workspace.to_json()

        if isinstance(edit, AddBlock):
            workspace.add(edit.block)
            output = f"Added block {edit.block['id']!r}."
        elif isinstance(edit, UpdateBlock):
            workspace.update(
                edit.block_id,
                fields=edit.fields,
                block_type=edit.block_type,
                parent=edit.parent,
                set_parent=edit.moves,
                input_slot=edit.input,
            )
            output = f"Updated block {edit.block_id!r}."
        elif isinstance(edit, RemoveBlock):
            removed = workspace.remove(edit.block_id)
            output = f"Removed {len(removed)} block(s): {', '.join(removed)}."
        elif isinstance(edit, ReplaceAllBlocks):
            workspace.replace_all(edit.blocks)
            output = f"Workspace replaced with {len(workspace)} block(s)."
        else:
            raise MalformedEdit(f"Unsupported workspace edit: {type(edit).__name__}")

        after = workspace.to_json()
        return after, after != before, output

    # -- source --------------------------------------------------------------

    def _edit_code(self, content: str, edit: Edit) -> tuple[str, bool, str]:
        if isinstance(edit, ReplaceCode):
            new_content = edit.code
            output = "Code replaced successfully."
        elif isinstance(edit, PatchCode):
            count = content.count(edit.old_str)
            if count == 0:
                raise MalformedEdit(
                    "No match found. Ensure old_str matches exactly including whitespace."
                )
            if count > 1:
                raise MalformedEdit(
                    f"Found {count} matches. Provide more context for a unique match."
                )
            new_content = content.replace(edit.old_str, edit.new_str, 1)
            output = "Code patched successfully."
        else:
            raise MalformedEdit(f"Unsupported code edit: {type(edit).__name__}")

        self._checker.ensure_valid(new_content)
        return new_content, new_content != content, output

    # -- view ----------------------------------------------------------------

    def _view(self, artifact: Artifact) -> str:
        if artifact.mode == Mode.BLOCKLY:
            workspace = BlockWorkspace.parse(artifact.content)
            if not len(workspace):
                return "(empty workspace - no blocks yet)"
            return f"{len(workspace)} block(s) [{workspace.summary_line()}]\n{artifact.content}"
        if not artifact.content:
            return "(empty - no code yet)"
        return _numbered(artifact.content)

