"""ArtifactStore — compare-and-set access to one session's live artifact."""

from __future__ import annotations

import logging

from .models import Artifact, Mode
from .persistence import SessionRepository

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Holds the current artifact of a session.

    ``write`` is the only mutation path. It succeeds only when the caller's
    expected version matches the stored one and otherwise raises
    :class:`~egot_core.errors.VersionConflict` without touching content.
    """

    def __init__(self, repository: SessionRepository, session_id: str) -> None:
        self._repository = repository
        self._session_id = session_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def mode(self) -> Mode:
        return self.read().mode

    def read(self) -> Artifact:
        return self._repository.get(self._session_id)

    def write(self, expected_version: int, new_content: str) -> Artifact:
        artifact = self._repository.put(self._session_id, expected_version, new_content)
        logger.info(
            "artifact %s advanced to version %d (%d chars)",
            self._session_id, artifact.version, len(artifact.content),
        )
        return artifact
