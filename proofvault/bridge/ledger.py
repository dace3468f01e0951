"""Ledger bridge — the proof registry contract and a local SQLite backend.

The engine depends only on the ``ProofLedger`` Protocol.  A deployed
registry contract client satisfies it by wrapping ``mintProof``,
``verifyHash``, ``owner`` and ``totalSupply``; ``LocalProofLedger`` is the
development backend used by the CLI and the test suite.

LocalProofLedger design:
- One authority, fixed when the database is first created.
- Unique identifier constraint; token ids are sequential from 1.
- Two-phase write: ``register`` records a pending submission,
  ``wait_for_receipt`` finalizes it.  Pending rows are invisible to
  ``lookup``.
- Every finalization appends a ``ProofMinted`` event to a hash-chained
  event table (tamper evident via ``verify_events``).
"""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from proofvault.core.authority_gate import is_authorized
from proofvault.core.errors import (
    AlreadyExists,
    LedgerUnreachable,
    NotAuthorized,
    RegistrationRejected,
)
from proofvault.core.hasher import compute_entry_hash
from proofvault.core.identifiers import require_canonical
from proofvault.models.proofs import (
    LedgerLookup,
    ProofMintedEvent,
    ProofRecord,
    RegistrationReceipt,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ProofLedger(Protocol):
    """Protocol for the immutable proof registry."""

    def register(
        self, owner_address: str, identifier: str, metadata_pointer: str
    ) -> RegistrationReceipt:
        """Submit a registration.  Returning means the ledger accepted it."""
        ...

    def wait_for_receipt(
        self, receipt: RegistrationReceipt, timeout: float | None = None
    ) -> ProofRecord:
        """Block until the submission is final and return the stored record."""
        ...

    def lookup(self, identifier: str) -> LedgerLookup:
        ...

    def read_authority(self) -> str:
        ...


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_AUTHORITY = """
CREATE TABLE IF NOT EXISTS authority (
    id       INTEGER PRIMARY KEY CHECK (id = 1),
    address  TEXT NOT NULL
);
"""

_CREATE_PROOFS = """
CREATE TABLE IF NOT EXISTS proofs (
    token_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    identifier        TEXT NOT NULL UNIQUE,
    owner_address     TEXT NOT NULL,
    metadata_pointer  TEXT NOT NULL,
    tx_id             TEXT NOT NULL UNIQUE,
    submitted_at      TEXT NOT NULL,
    finalized_at      TEXT
);
"""

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS proof_events (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    token_id             INTEGER NOT NULL,
    owner_address        TEXT NOT NULL,
    identifier           TEXT NOT NULL,
    metadata_pointer     TEXT NOT NULL,
    timestamp            INTEGER NOT NULL,
    tx_id                TEXT NOT NULL,
    previous_event_hash  TEXT NOT NULL DEFAULT '',
    event_hash           TEXT NOT NULL UNIQUE
);
"""


class EventChainError(RuntimeError):
    """Raised when the ProofMinted event chain is broken."""


class LocalProofLedger:
    """SQLite-backed proof registry.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
    authority:
        Address allowed to register proofs.  Only used when the database
        is new; an existing authority is never replaced.
    """

    def __init__(self, db_path: Path, authority: str = "") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema(authority)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self, authority: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(_CREATE_AUTHORITY)
                conn.execute(_CREATE_PROOFS)
                conn.execute(_CREATE_EVENTS)
                if authority:
                    conn.execute(
                        "INSERT OR IGNORE INTO authority (id, address) VALUES (1, ?)",
                        (authority,),
                    )
                conn.commit()
        except sqlite3.Error as exc:
            raise LedgerUnreachable(f"Cannot open ledger at {self._db_path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Authority
    # ------------------------------------------------------------------

    def read_authority(self) -> str:
        """Return the recorded authority, or ``""`` if none was ever set."""
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT address FROM authority WHERE id = 1").fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def register(
        self, owner_address: str, identifier: str, metadata_pointer: str
    ) -> RegistrationReceipt:
        """Accept a registration submission.

        Raises ``NotAuthorized`` unless *owner_address* is the authority,
        ``AlreadyExists`` if the identifier was finalized before, and
        ``MalformedIdentifier`` for anything that is not a 32-byte key.

        A submission that was accepted but never finalized is superseded:
        it keeps its token id, takes the new pointer and transaction id,
        and the old transaction id stops resolving.
        """
        require_canonical(identifier)
        if not metadata_pointer:
            raise RegistrationRejected(identifier, "metadata pointer is required")

        authority = self.read_authority()
        if not is_authorized(owner_address, authority or None):
            raise NotAuthorized(owner_address, authority or None)

        existing = self._row_for(identifier)
        if existing is not None and existing[3] is not None:
            raise AlreadyExists(identifier, existing[0])

        receipt = RegistrationReceipt(
            tx_id="0x" + uuid.uuid4().hex + uuid.uuid4().hex,
            identifier=identifier,
            owner_address=owner_address,
            metadata_pointer=metadata_pointer,
        )
        params = (
            owner_address,
            metadata_pointer,
            receipt.tx_id,
            receipt.submitted_at.isoformat(),
            identifier,
        )
        try:
            with self._connect() as conn:
                if existing is None:
                    conn.execute(
                        """
                        INSERT INTO proofs
                            (owner_address, metadata_pointer, tx_id, submitted_at, identifier)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        params,
                    )
                else:
                    cursor = conn.execute(
                        """
                        UPDATE proofs
                        SET owner_address = ?, metadata_pointer = ?, tx_id = ?, submitted_at = ?
                        WHERE identifier = ? AND finalized_at IS NULL
                        """,
                        params,
                    )
                    if cursor.rowcount == 0:
                        # Finalized by another session since the read above.
                        raise sqlite3.IntegrityError("identifier already finalized")
                    logger.info(
                        "Superseding pending registration of token #%d for %s",
                        existing[0],
                        identifier,
                    )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            # Lost a race with another session registering the same identifier.
            row = self._row_for(identifier)
            if row is not None and row[3] is None:
                raise RegistrationRejected(
                    identifier, "another registration is in progress"
                ) from exc
            raise AlreadyExists(identifier, row[0] if row else None) from exc
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc

        logger.info("Accepted registration %s for %s", receipt.tx_id[:12], identifier)
        return receipt

    def wait_for_receipt(
        self, receipt: RegistrationReceipt, timeout: float | None = None
    ) -> ProofRecord:
        """Finalize a submission and emit its ``ProofMinted`` event.

        Local finality is immediate, so *timeout* is never reached.
        Finalizing twice returns the same record without a second event.
        """
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT token_id, identifier, owner_address, metadata_pointer, finalized_at "
                    "FROM proofs WHERE tx_id = ?",
                    (receipt.tx_id,),
                ).fetchone()
                if row is None:
                    raise RegistrationRejected(receipt.identifier, "unknown transaction")
                token_id, identifier, owner, pointer, finalized_at = row

                if finalized_at is None:
                    now = datetime.now(timezone.utc)
                    finalized_at = now.isoformat()
                    conn.execute(
                        "UPDATE proofs SET finalized_at = ? WHERE token_id = ?",
                        (finalized_at, token_id),
                    )
                    self._append_event(
                        conn,
                        ProofMintedEvent(
                            token_id=token_id,
                            owner_address=owner,
                            identifier=identifier,
                            metadata_pointer=pointer,
                            timestamp=int(time.time()),
                            tx_id=receipt.tx_id,
                        ),
                    )
                    conn.commit()
                    logger.info("Finalized token #%d for %s", token_id, identifier)
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc

        return ProofRecord(
            identifier=identifier,
            owner_address=owner,
            metadata_pointer=pointer,
            token_id=token_id,
            registered_at=datetime.fromisoformat(finalized_at),
        )

    def _append_event(self, conn: sqlite3.Connection, event: ProofMintedEvent) -> None:
        row = conn.execute(
            "SELECT event_hash FROM proof_events ORDER BY id DESC LIMIT 1"
        ).fetchone()
        previous_hash = row[0] if row else ""
        event_dict = event.model_dump(mode="json")
        event_dict["previous_event_hash"] = previous_hash
        event_dict["event_hash"] = ""
        event_hash = compute_entry_hash(_event_hash_fields(event_dict))
        conn.execute(
            """
            INSERT INTO proof_events
                (token_id, owner_address, identifier, metadata_pointer,
                 timestamp, tx_id, previous_event_hash, event_hash)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.token_id,
                event.owner_address,
                event.identifier,
                event.metadata_pointer,
                event.timestamp,
                event.tx_id,
                previous_hash,
                event_hash,
            ),
        )

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _row_for(self, identifier: str) -> tuple | None:
        try:
            with self._connect() as conn:
                return conn.execute(
                    "SELECT token_id, owner_address, metadata_pointer, finalized_at "
                    "FROM proofs WHERE identifier = ?",
                    (identifier,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc

    def lookup(self, identifier: str) -> LedgerLookup:
        """Return the finalized record for *identifier*, or ``exists=False``."""
        row = self._row_for(identifier)
        if row is None or row[3] is None:
            return LedgerLookup.not_found(identifier)
        token_id, owner, pointer, _ = row
        return LedgerLookup(
            identifier=identifier,
            exists=True,
            token_id=token_id,
            owner_address=owner,
            metadata_pointer=pointer,
        )

    def total_supply(self) -> int:
        """Number of finalized proofs."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM proofs WHERE finalized_at IS NOT NULL"
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc
        return row[0] if row else 0

    def events(self, identifier: str | None = None) -> list[ProofMintedEvent]:
        """Return ``ProofMinted`` events in emission order."""
        query = (
            "SELECT token_id, owner_address, identifier, metadata_pointer, timestamp, "
            "tx_id, previous_event_hash, event_hash FROM proof_events"
        )
        params: tuple = ()
        if identifier is not None:
            query += " WHERE identifier = ?"
            params = (identifier,)
        query += " ORDER BY id ASC"
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnreachable(str(exc)) from exc
        return [
            ProofMintedEvent(
                token_id=r[0],
                owner_address=r[1],
                identifier=r[2],
                metadata_pointer=r[3],
                timestamp=r[4],
                tx_id=r[5],
                previous_event_hash=r[6],
                event_hash=r[7],
            )
            for r in rows
        ]

    def verify_events(self) -> bool:
        """Walk the event chain; raise ``EventChainError`` on any break."""
        prev_hash = ""
        for event in self.events():
            if event.previous_event_hash != prev_hash:
                raise EventChainError(
                    f"Event chain broken at token #{event.token_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {event.previous_event_hash!r}"
                )
            expected = compute_entry_hash(_event_hash_fields(event.model_dump(mode="json")))
            if event.event_hash != expected:
                raise EventChainError(
                    f"Tampered event for token #{event.token_id}: "
                    f"expected hash={expected!r}, got {event.event_hash!r}"
                )
            prev_hash = event.event_hash
        return True


def _event_hash_fields(event_dict: dict) -> dict:
    return {k: v for k, v in event_dict.items() if k != "event_hash"}
