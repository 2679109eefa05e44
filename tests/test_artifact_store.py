"""Tests for ArtifactStore compare-and-set access."""

from __future__ import annotations

import pytest

from egot_core.artifact_store import ArtifactStore
from egot_core.errors import VersionConflict
from egot_core.models import Mode
from egot_core.persistence import InMemorySessionRepository


def _store(mode: Mode = Mode.JAVASCRIPT) -> ArtifactStore:
    repo = InMemorySessionRepository()
    record = repo.create_session(mode)
    return ArtifactStore(repo, record.session_id)


def test_read_returns_live_artifact() -> None:
    store = _store(Mode.BLOCKLY)
    artifact = store.read()
    assert artifact.version == 0
    assert store.mode == Mode.BLOCKLY


def test_sequential_writes_are_gapless() -> None:
    store = _store()
    versions = []
    for i in range(5):
        current = store.read()
        versions.append(store.write(current.version, f"// rev {i}").version)
    assert versions == [1, 2, 3, 4, 5]


def test_stale_write_leaves_content_untouched() -> None:
    store = _store()
    store.write(0, "let x = 1;")
    before = store.read()
    with pytest.raises(VersionConflict):
        store.write(0, "let x = 2;")
    assert store.read() == before


def test_two_stores_race_on_same_session() -> None:
    repo = InMemorySessionRepository()
    sid = repo.create_session(Mode.JAVASCRIPT).session_id
    a = ArtifactStore(repo, sid)
    b = ArtifactStore(repo, sid)
    seen_by_a = a.read()
    seen_by_b = b.read()
    a.write(seen_by_a.version, "from a")
    with pytest.raises(VersionConflict):
        b.write(seen_by_b.version, "from b")
    assert b.read().content == "from a"
