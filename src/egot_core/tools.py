"""Tool protocol — wire schemas and typed edit variants per session mode.

Tool arguments arrive as untrusted JSON from the model. They are validated
into a closed set of edit variants here, before anything touches an artifact.
The schemas below are the contract with the model and must stay stable
across provider swaps.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from .errors import MalformedEdit, ModeMismatch
from .models import Mode
from .provider import ToolSpec

WORKSPACE_TOOL = "edit_workspace"
CODE_TOOL = "edit_code"

TOOL_BY_MODE: dict[Mode, str] = {
    Mode.BLOCKLY: WORKSPACE_TOOL,
    Mode.JAVASCRIPT: CODE_TOOL,
}


# ---------------------------------------------------------------------------
# Block-workspace edits
# ---------------------------------------------------------------------------


class _Edit(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def mutates(self) -> bool:
        return True


class ViewWorkspace(_Edit):
    operation: Literal["view"]

    @property
    def mutates(self) -> bool:
        return False


class AddBlock(_Edit):
    operation: Literal["add"]
    block: dict[str, Any]


class UpdateBlock(_Edit):
    operation: Literal["update"]
    block_id: str = Field(min_length=1)
    fields: dict[str, Any] | None = None
    block_type: str | None = Field(default=None, alias="type")
    parent: str | None = None
    input: str | None = Field(default=None, min_length=1)

    @property
    def moves(self) -> bool:
        return "parent" in self.model_fields_set

    @model_validator(mode="after")
    def _has_change(self) -> UpdateBlock:
        unchanged = self.fields is None and self.block_type is None and self.input is None
        if unchanged and not self.moves:
            msg = "update needs at least one of 'fields', 'type', 'parent' or 'input'"
            raise ValueError(msg)
        return self


class RemoveBlock(_Edit):
    operation: Literal["remove"]
    block_id: str = Field(min_length=1)


class ReplaceAllBlocks(_Edit):
    operation: Literal["replace-all"]
    blocks: list[dict[str, Any]]


BlockEdit = Annotated[
    ViewWorkspace | AddBlock | UpdateBlock | RemoveBlock | ReplaceAllBlocks,
    Field(discriminator="operation"),
]

# ---------------------------------------------------------------------------
# Source edits
# ---------------------------------------------------------------------------


class ViewCode(_Edit):
    command: Literal["view"]

    @property
    def mutates(self) -> bool:
        return False


class ReplaceCode(_Edit):
    command: Literal["replace"]
    code: str


class PatchCode(_Edit):
    command: Literal["patch"]
    old_str: str = Field(min_length=1)
    new_str: str


CodeEdit = Annotated[ViewCode | ReplaceCode | PatchCode, Field(discriminator="command")]

Edit = ViewWorkspace | AddBlock | UpdateBlock | RemoveBlock | ReplaceAllBlocks | ViewCode | ReplaceCode | PatchCode

_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    WORKSPACE_TOOL: TypeAdapter(BlockEdit),
    CODE_TOOL: TypeAdapter(CodeEdit),
}


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_tool_call(mode: Mode, tool_name: str, arguments: Any) -> Edit:
    """Validate raw tool arguments into a typed edit for *mode*."""
    if tool_name not in _ADAPTERS:
        raise MalformedEdit(f"Unknown tool: {tool_name!r}")
    if TOOL_BY_MODE[mode] != tool_name:
        raise ModeMismatch(tool_name, mode.value)
    if not isinstance(arguments, dict):
        raise MalformedEdit(f"Tool arguments must be an object, got {type(arguments).__name__}")
    try:
        return _ADAPTERS[tool_name].validate_python(arguments)
    except ValidationError as exc:
        raise MalformedEdit(f"Invalid {tool_name} arguments: {_describe(exc)}") from exc


# ---------------------------------------------------------------------------
# Wire schemas
# ---------------------------------------------------------------------------

_BLOCK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Stable unique block id"},
        "type": {"type": "string", "description": "Block type, e.g. p5_setup"},
        "fields": {"type": "object", "description": "Field values by field name"},
        "parent": {"type": ["string", "null"], "description": "Id of the enclosing block"},
        "input": {"type": "string", "description": "Input slot on the parent"},
    },
    "required": ["id", "type"],
}

WORKSPACE_TOOL_SPEC = ToolSpec(
    name=WORKSPACE_TOOL,
    description=(
        "View or edit the game's block workspace. Blocks are addressed by their "
        "stable id; nesting is expressed with the 'parent' id."
    ),
    parameters={
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "enum": ["view", "add", "update", "remove", "replace-all"],
            },
            "block": {**_BLOCK_SCHEMA, "description": "Block to add (add)"},
            "block_id": {"type": "string", "description": "Target block id (update, remove)"},
            "fields": {
                "type": "object",
                "description": "Fields to merge (update); a null value removes the field",
            },
            "type": {"type": "string", "description": "New block type (update)"},
            "parent": {
                "type": ["string", "null"],
                "description": "New parent id, null to detach (update)",
            },
            "input": {
                "type": "string",
                "description": "Input slot on the parent; cleared on move if omitted (update)",
            },
            "blocks": {
                "type": "array",
                "items": _BLOCK_SCHEMA,
                "description": "Complete block list (replace-all)",
            },
        },
        "required": ["operation"],
    },
)

CODE_TOOL_SPEC = ToolSpec(
    name=CODE_TOOL,
    description=(
        "View or modify the p5.js game code. 'replace' writes the complete program; "
        "'patch' swaps one exact, unique snippet."
    ),
    parameters={
        "type": "object",
        "properties": {
            "command": {"type": "string", "enum": ["view", "replace", "patch"]},
            "code": {"type": "string", "description": "Complete program (replace)"},
            "old_str": {"type": "string", "description": "Exact text to find (patch)"},
            "new_str": {"type": "string", "description": "Replacement text (patch)"},
        },
        "required": ["command"],
    },
)


def tool_specs(mode: Mode) -> list[ToolSpec]:
    """Tools offered to the model for a session in *mode*."""
    if mode == Mode.BLOCKLY:
        return [WORKSPACE_TOOL_SPEC]
    return [CODE_TOOL_SPEC]
