"""CheckpointStore — immutable artifact snapshots tied to transcript positions."""

from __future__ import annotations

import logging

from .artifact_store import ArtifactStore
from .errors import CheckpointNotFound, VersionConflict
from .models import Artifact, Checkpoint
from .persistence import SessionRepository
from .telemetry import trace_checkpoint

logger = logging.getLogger(__name__)

_DEFAULT_LABEL = "Checkpoint"


def make_label(instruction: str, max_chars: int = 40) -> str:
    """Derive a short human-readable label from a user instruction."""
    text = " ".join(instruction.split())
    if not text:
        return _DEFAULT_LABEL
    if len(text) <= max_chars:
        return text
    truncated = text[:max_chars]
    last_space = truncated.rfind(" ")
    if last_space > max_chars // 2:
        truncated = truncated[:last_space]
    return truncated.rstrip(" ,.;:") + "..."


class CheckpointStore:
    """Append-only collection of snapshots for one session.

    Restoring writes the snapshot content back as a *new* version; it never
    rewinds the version counter, drops later checkpoints or touches the
    transcript. Deleting removes one checkpoint and nothing else.
    """

    def __init__(
        self,
        repository: SessionRepository,
        session_id: str,
        artifact_store: ArtifactStore,
    ) -> None:
        self._repository = repository
        self._session_id = session_id
        self._artifacts = artifact_store

    def create(self, label: str, snapshot: Artifact, message_position: int) -> Checkpoint:
        checkpoint = Checkpoint(label=label, message_position=message_position, snapshot=snapshot)
        with trace_checkpoint("create", checkpoint.checkpoint_id):
            self._repository.add_checkpoint(self._session_id, checkpoint)
        logger.info(
            "checkpoint %s %r at message %d (artifact v%d)",
            checkpoint.checkpoint_id, label, message_position, snapshot.version,
        )
        return checkpoint

    def list(self) -> list[Checkpoint]:
        return self._repository.list_checkpoints(self._session_id)

    def get(self, checkpoint_id: str) -> Checkpoint:
        for checkpoint in self.list():
            if checkpoint.checkpoint_id == checkpoint_id:
                return checkpoint
        raise CheckpointNotFound(checkpoint_id)

    def restore(self, checkpoint_id: str) -> Artifact:
        """Make the snapshot's content live again as ``current.version + 1``."""
        with trace_checkpoint("restore", checkpoint_id) as span:
            checkpoint = self.get(checkpoint_id)
            current = self._artifacts.read()
            try:
                artifact = self._artifacts.write(current.version, checkpoint.snapshot.content)
            except VersionConflict:
                logger.warning("restore %s raced a concurrent write; retrying once", checkpoint_id)
                current = self._artifacts.read()
                artifact = self._artifacts.write(current.version, checkpoint.snapshot.content)
            span.set_attribute("artifact.version", artifact.version)
        logger.info(
            "restored checkpoint %s (snapshot v%d) as version %d",
            checkpoint_id, checkpoint.snapshot.version, artifact.version,
        )
        return artifact

    def delete(self, checkpoint_id: str) -> None:
        with trace_checkpoint("delete", checkpoint_id):
            if not self._repository.remove_checkpoint(self._session_id, checkpoint_id):
                raise CheckpointNotFound(checkpoint_id)
        logger.info("deleted checkpoint %s", checkpoint_id)
