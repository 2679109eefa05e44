"""Tests for tool-call parsing and wire schemas."""

from __future__ import annotations

import pytest

from egot_core.errors import MalformedEdit, ModeMismatch
from egot_core.models import Mode
from egot_core.tools import (
    CODE_TOOL,
    WORKSPACE_TOOL,
    AddBlock,
    PatchCode,
    RemoveBlock,
    ReplaceAllBlocks,
    ReplaceCode,
    UpdateBlock,
    ViewCode,
    ViewWorkspace,
    parse_tool_call,
    tool_specs,
)

# ---------------------------------------------------------------------------
# Workspace tool
# ---------------------------------------------------------------------------


def test_parse_each_workspace_operation() -> None:
    cases = [
        ({"operation": "view"}, ViewWorkspace),
        ({"operation": "add", "block": {"id": "b1", "type": "move"}}, AddBlock),
        ({"operation": "update", "block_id": "b1", "fields": {"STEPS": 5}}, UpdateBlock),
        ({"operation": "remove", "block_id": "b1"}, RemoveBlock),
        ({"operation": "replace-all", "blocks": []}, ReplaceAllBlocks),
    ]
    for arguments, expected in cases:
        edit = parse_tool_call(Mode.BLOCKLY, WORKSPACE_TOOL, arguments)
        assert isinstance(edit, expected)


def test_view_does_not_mutate() -> None:
    assert parse_tool_call(Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "view"}).mutates is False
    assert parse_tool_call(Mode.JAVASCRIPT, CODE_TOOL, {"command": "view"}).mutates is False
    add = parse_tool_call(
        Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "add", "block": {"id": "a", "type": "x"}}
    )
    assert add.mutates is True


def test_update_type_alias_and_parent_tracking() -> None:
    edit = parse_tool_call(
        Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "update", "block_id": "b1", "type": "jump"}
    )
    assert isinstance(edit, UpdateBlock)
    assert edit.block_type == "jump"
    assert edit.moves is False

    detach = parse_tool_call(
        Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "update", "block_id": "b1", "parent": None}
    )
    assert isinstance(detach, UpdateBlock)
    assert detach.moves is True
    assert detach.parent is None


def test_update_accepts_input_slot() -> None:
    edit = parse_tool_call(
        Mode.BLOCKLY,
        WORKSPACE_TOOL,
        {"operation": "update", "block_id": "b1", "parent": "loop", "input": "DO"},
    )
    assert isinstance(edit, UpdateBlock)
    assert edit.input == "DO"
    assert edit.moves is True


def test_update_rejects_undeclared_block_type_key() -> None:
    with pytest.raises(MalformedEdit, match="block_type"):
        parse_tool_call(
            Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "update", "block_id": "b1", "block_type": "jump"}
        )


def test_update_without_changes_is_malformed() -> None:
    with pytest.raises(MalformedEdit, match="at least one"):
        parse_tool_call(Mode.BLOCKLY, WORKSPACE_TOOL, {"operation": "update", "block_id": "b1"})


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"operation": "rename"},
        {"operation": "add"},
        {"operation": "remove", "block_id": ""},
        {"operation": "remove", "block_id": "b1", "extra": True},
        {"operation": "replace-all", "blocks": "nope"},
    ],
)
def test_invalid_workspace_arguments(arguments: dict) -> None:
    with pytest.raises(MalformedEdit, match="Invalid edit_workspace arguments"):
        parse_tool_call(Mode.BLOCKLY, WORKSPACE_TOOL, arguments)


# ---------------------------------------------------------------------------
# Code tool
# ---------------------------------------------------------------------------


def test_parse_each_code_command() -> None:
    assert isinstance(parse_tool_call(Mode.JAVASCRIPT, CODE_TOOL, {"command": "view"}), ViewCode)
    replace = parse_tool_call(Mode.JAVASCRIPT, CODE_TOOL, {"command": "replace", "code": "x"})
    assert isinstance(replace, ReplaceCode)
    patch = parse_tool_call(
        Mode.JAVASCRIPT, CODE_TOOL, {"command": "patch", "old_str": "a", "new_str": ""}
    )
    assert isinstance(patch, PatchCode)


def test_patch_requires_non_empty_old_str() -> None:
    with pytest.raises(MalformedEdit):
        parse_tool_call(
            Mode.JAVASCRIPT, CODE_TOOL, {"command": "patch", "old_str": "", "new_str": "x"}
        )


# ---------------------------------------------------------------------------
# Tool routing
# ---------------------------------------------------------------------------


def test_other_modes_tool_is_rejected() -> None:
    with pytest.raises(ModeMismatch) as info:
        parse_tool_call(Mode.JAVASCRIPT, WORKSPACE_TOOL, {"operation": "view"})
    assert info.value.tool_name == WORKSPACE_TOOL
    assert "javascript" in str(info.value)

    # ModeMismatch is a MalformedEdit, so callers handle both the same way.
    with pytest.raises(MalformedEdit):
        parse_tool_call(Mode.BLOCKLY, CODE_TOOL, {"command": "view"})


def test_unknown_tool_and_non_object_arguments() -> None:
    with pytest.raises(MalformedEdit, match="Unknown tool"):
        parse_tool_call(Mode.BLOCKLY, "run_game", {})
    with pytest.raises(MalformedEdit, match="must be an object"):
        parse_tool_call(Mode.BLOCKLY, WORKSPACE_TOOL, ["view"])


def test_tool_specs_per_mode() -> None:
    (workspace,) = tool_specs(Mode.BLOCKLY)
    (code,) = tool_specs(Mode.JAVASCRIPT)
    assert workspace.name == WORKSPACE_TOOL
    assert code.name == CODE_TOOL
    assert workspace.parameters["properties"]["operation"]["enum"] == [
        "view", "add", "update", "remove", "replace-all",
    ]
    assert code.parameters["required"] == ["command"]
