"""Session persistence — the read/write contract the core needs from a document store."""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import SessionNotFound, VersionConflict
from .models import (
    Artifact,
    Checkpoint,
    Message,
    MessageRole,
    Mode,
    SessionRecord,
    ToolCallRecord,
)


def _new_record(mode: Mode, session_id: str | None) -> SessionRecord:
    if session_id is None:
        return SessionRecord(mode=mode)
    return SessionRecord(session_id=session_id, mode=mode)


class SessionRepository(ABC):
    """Abstract per-session store for artifacts, messages and checkpoints.

    Every operation is scoped to a session id. ``put`` is the only way to
    change an artifact and is compare-and-set on the stored version.
    """

    # -- sessions ------------------------------------------------------------

    @abstractmethod
    def create_session(self, mode: Mode, session_id: str | None = None) -> SessionRecord:
        """Create a session with an empty version-0 artifact."""

    @abstractmethod
    def get_session(self, session_id: str) -> SessionRecord:
        """Return the session header or raise :class:`SessionNotFound`."""

    @abstractmethod
    def set_title(self, session_id: str, title: str) -> None:
        """Replace the session title."""

    @abstractmethod
    def delete_session(self, session_id: str) -> bool:
        """Remove a session and everything it owns. Returns ``False`` if absent."""

    # -- artifact ------------------------------------------------------------

    @abstractmethod
    def get(self, session_id: str) -> Artifact:
        """Return the live artifact."""

    @abstractmethod
    def put(self, session_id: str, expected_version: int, content: str) -> Artifact:
        """Store *content* as version ``expected_version + 1``.

        Raises :class:`VersionConflict` without writing anything if the stored
        version is not *expected_version*.
        """

    # -- checkpoints ---------------------------------------------------------

    @abstractmethod
    def list_checkpoints(self, session_id: str) -> list[Checkpoint]:
        """Checkpoints in creation order."""

    @abstractmethod
    def add_checkpoint(self, session_id: str, checkpoint: Checkpoint) -> None:
        ...

    @abstractmethod
    def remove_checkpoint(self, session_id: str, checkpoint_id: str) -> bool:
        ...

    # -- messages ------------------------------------------------------------

    @abstractmethod
    def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        tool_calls: list[ToolCallRecord] | None = None,
        truncated: bool = False,
    ) -> Message:
        """Append a message at the next gapless position and return it."""

    @abstractmethod
    def list_messages(self, session_id: str) -> list[Message]:
        """Messages ordered by position."""


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemorySessionRepository(SessionRepository):
    """Dict-backed repository. All operations hold a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionRecord] = {}
        self._artifacts: dict[str, Artifact] = {}
        self._messages: dict[str, list[Message]] = {}
        self._checkpoints: dict[str, list[Checkpoint]] = {}

    def _require(self, session_id: str) -> None:
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)

    def create_session(self, mode: Mode, session_id: str | None = None) -> SessionRecord:
        record = _new_record(mode, session_id)
        with self._lock:
            if record.session_id in self._sessions:
                msg = f"Session already exists: {record.session_id!r}"
                raise ValueError(msg)
            self._sessions[record.session_id] = record
            self._artifacts[record.session_id] = Artifact.empty(mode)
            self._messages[record.session_id] = []
            self._checkpoints[record.session_id] = []
        return record

    def get_session(self, session_id: str) -> SessionRecord:
        with self._lock:
            self._require(session_id)
            return self._sessions[session_id]

    def set_title(self, session_id: str, title: str) -> None:
        with self._lock:
            self._require(session_id)
            self._sessions[session_id] = self._sessions[session_id].model_copy(
                update={"title": title}
            )

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            if session_id not in self._sessions:
                return False
            del self._sessions[session_id]
            del self._artifacts[session_id]
            del self._messages[session_id]
            del self._checkpoints[session_id]
            return True

    def get(self, session_id: str) -> Artifact:
        with self._lock:
            self._require(session_id)
            return self._artifacts[session_id]

    def put(self, session_id: str, expected_version: int, content: str) -> Artifact:
        with self._lock:
            self._require(session_id)
            current = self._artifacts[session_id]
            if current.version != expected_version:
                raise VersionConflict(expected_version, current.version)
            updated = Artifact(mode=current.mode, content=content, version=current.version + 1)
            self._artifacts[session_id] = updated
            return updated

    def list_checkpoints(self, session_id: str) -> list[Checkpoint]:
        with self._lock:
            self._require(session_id)
            return list(self._checkpoints[session_id])

    def add_checkpoint(self, session_id: str, checkpoint: Checkpoint) -> None:
        with self._lock:
            self._require(session_id)
            self._checkpoints[session_id].append(checkpoint)

    def remove_checkpoint(self, session_id: str, checkpoint_id: str) -> bool:
        with self._lock:
            self._require(session_id)
            kept = [c for c in self._checkpoints[session_id] if c.checkpoint_id != checkpoint_id]
            removed = len(kept) != len(self._checkpoints[session_id])
            self._checkpoints[session_id] = kept
            return removed

    def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        tool_calls: list[ToolCallRecord] | None = None,
        truncated: bool = False,
    ) -> Message:
        with self._lock:
            self._require(session_id)
            messages = self._messages[session_id]
            message = Message(
                role=role,
                content=content,
                position=len(messages),
                tool_calls=tool_calls or [],
                truncated=truncated,
            )
            messages.append(message)
            return message

    def list_messages(self, session_id: str) -> list[Message]:
        with self._lock:
            self._require(session_id)
            return list(self._messages[session_id])


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        mode TEXT NOT NULL,
        title TEXT NOT NULL,
        created_at REAL NOT NULL,
        content TEXT NOT NULL,
        version INTEGER NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS messages (
        session_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        tool_calls TEXT NOT NULL,
        truncated INTEGER NOT NULL,
        created_at REAL NOT NULL,
        PRIMARY KEY (session_id, position)
    )""",
    """CREATE TABLE IF NOT EXISTS checkpoints (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        session_id TEXT NOT NULL,
        label TEXT NOT NULL,
        message_position INTEGER NOT NULL,
        snapshot_mode TEXT NOT NULL,
        snapshot_content TEXT NOT NULL,
        snapshot_version INTEGER NOT NULL,
        created_at REAL NOT NULL
    )""",
)


class SqliteSessionRepository(SessionRepository):
    """SQLite-backed repository.

    The compare-and-set write is a single ``UPDATE ... WHERE version = ?``;
    a zero rowcount means another writer got there first.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = str(db_path)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        for statement in _SCHEMA:
            self._conn.execute(statement)
        self._conn.commit()

    def _require(self, session_id: str) -> tuple[str, str, int]:
        row = self._conn.execute(
            "SELECT mode, content, version FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise SessionNotFound(session_id)
        return row

    def create_session(self, mode: Mode, session_id: str | None = None) -> SessionRecord:
        record = _new_record(mode, session_id)
        empty = Artifact.empty(mode)
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO sessions (id, mode, title, created_at, content, version)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        record.session_id, mode.value, record.title,
                        record.created_at, empty.content, empty.version,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            msg = f"Session already exists: {record.session_id!r}"
            raise ValueError(msg) from exc
        return record

    def get_session(self, session_id: str) -> SessionRecord:
        row = self._conn.execute(
            "SELECT id, mode, title, created_at FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise SessionNotFound(session_id)
        return SessionRecord(session_id=row[0], mode=Mode(row[1]), title=row[2], created_at=row[3])

    def set_title(self, session_id: str, title: str) -> None:
        with self._conn:
            cur = self._conn.execute(
                "UPDATE sessions SET title = ? WHERE id = ?", (title, session_id)
            )
        if cur.rowcount == 0:
            raise SessionNotFound(session_id)

    def delete_session(self, session_id: str) -> bool:
        with self._conn:
            cur = self._conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            self._conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
            self._conn.execute("DELETE FROM checkpoints WHERE session_id = ?", (session_id,))
        return cur.rowcount > 0

    def get(self, session_id: str) -> Artifact:
        mode, content, version = self._require(session_id)
        return Artifact(mode=Mode(mode), content=content, version=version)

    def put(self, session_id: str, expected_version: int, content: str) -> Artifact:
        with self._conn:
            cur = self._conn.execute(
                "UPDATE sessions SET content = ?, version = version + 1"
                " WHERE id = ? AND version = ?",
                (content, session_id, expected_version),
            )
        if cur.rowcount == 0:
            _mode, _content, actual = self._require(session_id)
            raise VersionConflict(expected_version, actual)
        return self.get(session_id)

    def list_checkpoints(self, session_id: str) -> list[Checkpoint]:
        self._require(session_id)
        rows = self._conn.execute(
            "SELECT id, label, message_position, snapshot_mode, snapshot_content,"
            " snapshot_version, created_at FROM checkpoints"
            " WHERE session_id = ? ORDER BY seq",
            (session_id,),
        ).fetchall()
        return [
            Checkpoint(
                checkpoint_id=r[0],
                label=r[1],
                message_position=r[2],
                snapshot=Artifact(mode=Mode(r[3]), content=r[4], version=r[5]),
                created_at=r[6],
            )
            for r in rows
        ]

    def add_checkpoint(self, session_id: str, checkpoint: Checkpoint) -> None:
        self._require(session_id)
        snap = checkpoint.snapshot
        with self._conn:
            self._conn.execute(
                "INSERT INTO checkpoints (id, session_id, label, message_position,"
                " snapshot_mode, snapshot_content, snapshot_version, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    checkpoint.checkpoint_id, session_id, checkpoint.label,
                    checkpoint.message_position, snap.mode.value, snap.content,
                    snap.version, checkpoint.created_at,
                ),
            )

    def remove_checkpoint(self, session_id: str, checkpoint_id: str) -> bool:
        self._require(session_id)
        with self._conn:
            cur = self._conn.execute(
                "DELETE FROM checkpoints WHERE session_id = ? AND id = ?",
                (session_id, checkpoint_id),
            )
        return cur.rowcount > 0

    def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        tool_calls: list[ToolCallRecord] | None = None,
        truncated: bool = False,
    ) -> Message:
        self._require(session_id)
        with self._conn:
            row = self._conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 FROM messages WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            message = Message(
                role=role,
                content=content,
                position=row[0],
                tool_calls=tool_calls or [],
                truncated=truncated,
                created_at=time.time(),
            )
            self._conn.execute(
                "INSERT INTO messages (session_id, position, id, role, content,"
                " tool_calls, truncated, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    session_id, message.position, message.message_id, role.value,
                    content,
                    json.dumps([c.model_dump(mode="json") for c in message.tool_calls]),
                    1 if truncated else 0, message.created_at,
                ),
            )
        return message

    def list_messages(self, session_id: str) -> list[Message]:
        self._require(session_id)
        rows = self._conn.execute(
            "SELECT id, role, content, position, tool_calls, truncated, created_at"
            " FROM messages WHERE session_id = ? ORDER BY position",
            (session_id,),
        ).fetchall()
        return [
            Message(
                message_id=r[0],
                role=MessageRole(r[1]),
                content=r[2],
                position=r[3],
                tool_calls=[ToolCallRecord.model_validate(c) for c in json.loads(r[4])],
                truncated=bool(r[5]),
                created_at=r[6],
            )
            for r in rows
        ]

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()
