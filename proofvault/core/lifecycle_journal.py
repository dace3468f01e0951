"""Append-only, hash-chained lifecycle journal backed by SQLite.

Design:
- Append-only: only ``append()`` writes; no update, no delete.
- Hash-chained per session: each entry includes SHA-256 of the previous one.
- WAL journal mode for concurrent readers.
- entry_hash UNIQUE constraint for tamper detection.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from proofvault.core.errors import JournalUnavailable
from proofvault.core.hasher import compute_entry_hash
from proofvault.models.journal import JournalEntry

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS lifecycle_journal (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id             TEXT NOT NULL UNIQUE,
    session_id           TEXT NOT NULL,
    attempt_id           TEXT NOT NULL,
    state_transition     TEXT NOT NULL,
    timestamp_utc        TEXT NOT NULL,
    identifier           TEXT NOT NULL DEFAULT '',
    metadata_pointer     TEXT NOT NULL DEFAULT '',
    acting_address       TEXT NOT NULL DEFAULT '',
    error_code           TEXT NOT NULL DEFAULT '',
    detail               TEXT NOT NULL DEFAULT '',
    previous_entry_hash  TEXT NOT NULL DEFAULT '',
    entry_hash           TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_SESSION = """
CREATE INDEX IF NOT EXISTS idx_session ON lifecycle_journal(session_id, id);
"""

_COLUMNS = (
    "entry_id, session_id, attempt_id, state_transition, timestamp_utc, "
    "identifier, metadata_pointer, acting_address, error_code, detail, "
    "previous_entry_hash, entry_hash"
)


class JournalIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class LifecycleJournal:
    """Append-only, hash-chained lifecycle journal.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(_CREATE_JOURNAL)
                conn.execute(_CREATE_IDX_SESSION)
                conn.commit()
        except sqlite3.Error as exc:
            raise JournalUnavailable(f"Cannot open journal at {self._db_path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, entry: JournalEntry) -> JournalEntry:
        """Append an entry, computing its hash chain link.

        Returns the entry with ``previous_entry_hash`` and ``entry_hash`` set.
        Raises ``JournalUnavailable`` if the database cannot be written.
        """
        try:
            previous_hash = self._get_latest_hash(entry.session_id)

            entry_dict = entry.model_dump(mode="json")
            entry_dict["previous_entry_hash"] = previous_hash
            entry_dict["entry_hash"] = ""
            entry_hash = compute_entry_hash(entry_dict)

            sealed = entry.model_copy(
                update={"previous_entry_hash": previous_hash, "entry_hash": entry_hash}
            )
            self._insert(sealed)
        except sqlite3.Error as exc:
            raise JournalUnavailable(f"Cannot write journal at {self._db_path}: {exc}") from exc
        return sealed

    def _insert(self, entry: JournalEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO lifecycle_journal ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.entry_id,
                    entry.session_id,
                    entry.attempt_id,
                    entry.state_transition,
                    entry.timestamp_utc.isoformat(),
                    entry.identifier,
                    entry.metadata_pointer,
                    entry.acting_address,
                    entry.error_code,
                    entry.detail,
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )
            conn.commit()

    def _get_latest_hash(self, session_id: str) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM lifecycle_journal "
                "WHERE session_id = ? ORDER BY id DESC LIMIT 1",
                (session_id,),
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get_session_entries(self, session_id: str) -> list[JournalEntry]:
        """Return all entries for a session, ordered chronologically."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM lifecycle_journal "
                "WHERE session_id = ? ORDER BY id ASC",
                (session_id,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_attempt_entries(self, attempt_id: str) -> list[JournalEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM lifecycle_journal "
                "WHERE attempt_id = ? ORDER BY id ASC",
                (attempt_id,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_all_session_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT session_id FROM lifecycle_journal "
                "GROUP BY session_id ORDER BY MIN(id) ASC"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, session_id: str) -> bool:
        """Verify the hash chain for a session.

        Returns True if valid, raises ``JournalIntegrityError`` otherwise.
        """
        prev_hash = ""
        for entry in self.get_session_entries(session_id):
            if entry.previous_entry_hash != prev_hash:
                raise JournalIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )
            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise JournalIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, got {entry.entry_hash!r}"
                )
            prev_hash = entry.entry_hash
        return True

    def verify_all(self) -> bool:
        for session_id in self.get_all_session_ids():
            self.verify_chain(session_id)
        return True

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        (
            entry_id,
            session_id,
            attempt_id,
            state_transition,
            timestamp_utc,
            identifier,
            metadata_pointer,
            acting_address,
            error_code,
            detail,
            previous_entry_hash,
            entry_hash,
        ) = row
        return JournalEntry(
            entry_id=entry_id,
            session_id=session_id,
            attempt_id=attempt_id,
            state_transition=state_transition,
            timestamp_utc=datetime.fromisoformat(timestamp_utc),
            identifier=identifier,
            metadata_pointer=metadata_pointer,
            acting_address=acting_address,
            error_code=error_code,
            detail=detail,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
