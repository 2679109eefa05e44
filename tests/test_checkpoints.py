"""Tests for CheckpointStore and checkpoint labels."""

from __future__ import annotations

import pytest

from egot_core.artifact_store import ArtifactStore
from egot_core.checkpoints import CheckpointStore, make_label
from egot_core.errors import CheckpointNotFound, NotFound
from egot_core.models import Artifact, Mode
from egot_core.persistence import InMemorySessionRepository


def _stores(mode: Mode = Mode.JAVASCRIPT) -> tuple[CheckpointStore, ArtifactStore]:
    repo = InMemorySessionRepository()
    sid = repo.create_session(mode).session_id
    artifacts = ArtifactStore(repo, sid)
    return CheckpointStore(repo, sid, artifacts), artifacts


def _commit(artifacts: ArtifactStore, content: str) -> Artifact:
    return artifacts.write(artifacts.read().version, content)


# ---------------------------------------------------------------------------
# make_label
# ---------------------------------------------------------------------------


def test_short_instruction_is_kept() -> None:
    assert make_label("add move block") == "add move block"


def test_whitespace_is_collapsed() -> None:
    assert make_label("  add\n\tmove   block ") == "add move block"


def test_long_instruction_truncates_at_word_boundary() -> None:
    label = make_label("make the player jump higher when space is pressed twice quickly")
    assert label == "make the player jump higher when space..."
    assert len(label) <= 40 + 3


def test_long_single_word_is_cut_hard() -> None:
    label = make_label("x" * 60, max_chars=10)
    assert label == "x" * 10 + "..."


def test_empty_instruction_gets_default_label() -> None:
    assert make_label("   ") == "Checkpoint"


# ---------------------------------------------------------------------------
# create / list / get
# ---------------------------------------------------------------------------


def test_create_snapshots_artifact() -> None:
    checkpoints, artifacts = _stores()
    live = _commit(artifacts, "v1")
    cp = checkpoints.create("first", live, message_position=1)
    assert cp.snapshot == live
    assert checkpoints.list() == [cp]
    assert checkpoints.get(cp.checkpoint_id) == cp


def test_get_missing_checkpoint() -> None:
    checkpoints, _ = _stores()
    with pytest.raises(CheckpointNotFound):
        checkpoints.get("missing")


# ---------------------------------------------------------------------------
# restore
# ---------------------------------------------------------------------------


def test_restore_reverts_content_and_advances_version() -> None:
    checkpoints, artifacts = _stores()
    cp = checkpoints.create("one", _commit(artifacts, "one"), 1)
    _commit(artifacts, "two")

    restored = checkpoints.restore(cp.checkpoint_id)

    assert restored.content == "one"
    assert restored.version == 3
    assert artifacts.read() == restored


def test_restore_keeps_later_checkpoints() -> None:
    checkpoints, artifacts = _stores()
    first = checkpoints.create("one", _commit(artifacts, "one"), 1)
    second = checkpoints.create("two", _commit(artifacts, "two"), 3)
    checkpoints.restore(first.checkpoint_id)
    assert checkpoints.list() == [first, second]
    # Restoring forward again is allowed.
    assert checkpoints.restore(second.checkpoint_id).content == "two"
    assert artifacts.read().version == 4


def test_restore_missing_checkpoint_changes_nothing() -> None:
    checkpoints, artifacts = _stores()
    _commit(artifacts, "one")
    before = artifacts.read()
    with pytest.raises(NotFound):
        checkpoints.restore("missing")
    assert artifacts.read() == before


class _InterferingStore(ArtifactStore):
    """Sneaks one foreign write in before the first write it is asked to do."""

    def __init__(self, inner: ArtifactStore) -> None:
        super().__init__(inner._repository, inner.session_id)
        self.interfered = False

    def write(self, expected_version: int, new_content: str) -> Artifact:
        if not self.interfered:
            self.interfered = True
            super().write(self.read().version, "foreign")
        return super().write(expected_version, new_content)


def test_restore_retries_once_after_version_conflict() -> None:
    repo = InMemorySessionRepository()
    sid = repo.create_session(Mode.JAVASCRIPT).session_id
    plain = ArtifactStore(repo, sid)
    cp_store = CheckpointStore(repo, sid, plain)
    cp = cp_store.create("one", _commit(plain, "one"), 1)

    racing = _InterferingStore(plain)
    restored = CheckpointStore(repo, sid, racing).restore(cp.checkpoint_id)

    assert restored.content == "one"
    # v1 "one", v2 "foreign", v3 restored.
    assert restored.version == 3


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


def test_delete_does_not_touch_artifact_or_other_checkpoints() -> None:
    checkpoints, artifacts = _stores()
    first = checkpoints.create("one", _commit(artifacts, "one"), 1)
    second = checkpoints.create("two", _commit(artifacts, "two"), 3)
    before = artifacts.read()

    checkpoints.delete(first.checkpoint_id)

    assert artifacts.read() == before
    assert checkpoints.list() == [second]
    assert checkpoints.get(second.checkpoint_id) == second


def test_delete_missing_checkpoint() -> None:
    checkpoints, _ = _stores()
    with pytest.raises(CheckpointNotFound):
        checkpoints.delete("missing")
