"""Block workspace — flat, id-indexed view of a block-program artifact.

The serialized form is ``{"blocks": [<block>, ...]}`` where each block is a
record with a stable ``id``, a ``type``, optional ``fields``, and an optional
``parent`` id (plus the ``input`` slot it occupies on that parent). Nesting is
expressed only through id references, so lookups are O(1) and edits never
have to walk an ownership tree.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import MalformedEdit


def _check_block(block: Any) -> dict[str, Any]:
    if not isinstance(block, dict):
        raise MalformedEdit(f"Block must be an object, got {type(block).__name__}")
    block_id = block.get("id")
    if not isinstance(block_id, str) or not block_id:
        raise MalformedEdit("Block 'id' must be a non-empty string")
    block_type = block.get("type")
    if not isinstance(block_type, str) or not block_type:
        raise MalformedEdit(f"Block {block_id!r}: 'type' must be a non-empty string")
    if "fields" in block and not isinstance(block["fields"], dict):
        raise MalformedEdit(f"Block {block_id!r}: 'fields' must be an object")
    parent = block.get("parent")
    if parent is not None and (not isinstance(parent, str) or not parent):
        raise MalformedEdit(f"Block {block_id!r}: 'parent' must be a block id or null")
    if "input" in block and not isinstance(block["input"], str):
        raise MalformedEdit(f"Block {block_id!r}: 'input' must be a string")
    return dict(block)


class BlockWorkspace:
    """Insertion-ordered index of block records keyed by id."""

    def __init__(self, extras: dict[str, Any] | None = None) -> None:
        self._blocks: dict[str, dict[str, Any]] = {}
        # Top-level keys other than "blocks", kept in their original order.
        self._top: dict[str, Any] = {"blocks": None}
        if extras:
            self._top.update({k: v for k, v in extras.items() if k != "blocks"})

    # -- construction --------------------------------------------------------

    @classmethod
    def parse(cls, content: str) -> BlockWorkspace:
        """Parse serialized workspace JSON, raising :class:`MalformedEdit`."""
        if not content.strip():
            return cls()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedEdit(f"Workspace is not valid JSON: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise MalformedEdit("Workspace must be a JSON object")
        blocks = data.get("blocks", [])
        if not isinstance(blocks, list):
            raise MalformedEdit("Workspace 'blocks' must be an array")
        workspace = cls()
        workspace._top = {k: (None if k == "blocks" else v) for k, v in data.items()}
        workspace._top.setdefault("blocks", None)
        workspace._load(blocks)
        return workspace

    @classmethod
    def from_blocks(cls, blocks: list[Any], extras: dict[str, Any] | None = None) -> BlockWorkspace:
        workspace = cls(extras)
        workspace._load(blocks)
        return workspace

    def _load(self, blocks: list[Any]) -> None:
        for raw in blocks:
            block = _check_block(raw)
            if block["id"] in self._blocks:
                raise MalformedEdit(f"Duplicate block id: {block['id']!r}")
            self._blocks[block["id"]] = block
        self.validate()

    def to_json(self) -> str:
        """Deterministic compact serialization."""
        payload = dict(self._top)
        payload["blocks"] = list(self._blocks.values())
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    # -- queries -------------------------------------------------------------

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def ids(self) -> list[str]:
        return list(self._blocks)

    def get(self, block_id: str) -> dict[str, Any]:
        try:
            return dict(self._blocks[block_id])
        except KeyError:
            raise MalformedEdit(f"No block with id {block_id!r}") from None

    def children(self, block_id: str) -> list[str]:
        return [bid for bid, b in self._blocks.items() if b.get("parent") == block_id]

    def descendants(self, block_id: str) -> list[str]:
        found: list[str] = []
        frontier = [block_id]
        while frontier:
            current = frontier.pop()
            for child in self.children(current):
                found.append(child)
                frontier.append(child)
        return found

    def validate(self) -> None:
        """Reject dangling parent references and parent cycles."""
        for block_id, block in self._blocks.items():
            parent = block.get("parent")
            if parent is not None and parent not in self._blocks:
                raise MalformedEdit(f"Block {block_id!r} references missing parent {parent!r}")
        for block_id in self._blocks:
            seen = {block_id}
            parent = self._blocks[block_id].get("parent")
            while parent is not None:
                if parent in seen:
                    raise MalformedEdit(f"Parent cycle through block {block_id!r}")
                seen.add(parent)
                parent = self._blocks[parent].get("parent")

    # -- edits ---------------------------------------------------------------

    def add(self, block: dict[str, Any]) -> None:
        record = _check_block(block)
        if record["id"] in self._blocks:
            raise MalformedEdit(f"Block id already exists: {record['id']!r}")
        parent = record.get("parent")
        if parent is not None and parent not in self._blocks:
            raise MalformedEdit(f"No block with id {parent!r} to attach to")
        self._blocks[record["id"]] = record

    def update(
        self,
        block_id: str,
        fields: dict[str, Any] | None = None,
        block_type: str | None = None,
        parent: str | None = None,
        set_parent: bool = False,
        input_slot: str | None = None,
    ) -> None:
        """Merge *fields* into a block (``None`` values delete), optionally retype or reparent.

        ``set_parent`` distinguishes "move to *parent*" (``None`` detaches)
        from "leave the parent alone". Moving drops the old ``input`` slot
        unless *input_slot* names the slot on the new parent.
        """
        current = self.get(block_id)
        if fields:
            merged = dict(current.get("fields", {}))
            for name, value in fields.items():
                if value is None:
                    merged.pop(name, None)
                else:
                    merged[name] = value
            current["fields"] = merged
        if block_type is not None:
            if not block_type:
                raise MalformedEdit(f"Block {block_id!r}: 'type' must be a non-empty string")
            current["type"] = block_type
        if set_parent:
            if parent is not None and parent not in self._blocks:
                raise MalformedEdit(f"No block with id {parent!r} to attach to")
            if parent == block_id or parent in self.descendants(block_id):
                raise MalformedEdit(f"Cannot attach block {block_id!r} under itself")
            current.pop("input", None)
            if parent is None:
                current.pop("parent", None)
            else:
                current["parent"] = parent
        if input_slot is not None:
            if current.get("parent") is None:
                msg = f"Block {block_id!r} has no parent to take input {input_slot!r}"
                raise MalformedEdit(msg)
            current["input"] = input_slot
        self._blocks[block_id] = current

    def remove(self, block_id: str) -> list[str]:
        """Remove a block and all of its descendants. Returns the removed ids."""
        if block_id not in self._blocks:
            raise MalformedEdit(f"No block with id {block_id!r}")
        removed = [block_id, *self.descendants(block_id)]
        for bid in removed:
            del self._blocks[bid]
        return removed

    def replace_all(self, blocks: list[Any]) -> None:
        replacement = BlockWorkspace.from_blocks(blocks)
        self._blocks = replacement._blocks

    def summary_line(self) -> str:
        """Compact one-line listing: ``id:type`` pairs."""
        return ", ".join(f"{bid}:{b['type']}" for bid, b in self._blocks.items())

