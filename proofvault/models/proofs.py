"""Ledger-side proof models.

These mirror what the ledger holds and returns; the engine never creates
a ProofRecord itself, it only reads them back.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

ZERO_ADDRESS = "0x" + "0" * 40


class ProofRecord(BaseModel):
    """A finalized registration on the ledger."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    owner_address: str
    metadata_pointer: str
    token_id: int
    registered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class LedgerLookup(BaseModel):
    """Result of ``lookup(identifier)`` — ``exists=False`` means not found."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    exists: bool
    token_id: int = 0
    owner_address: str = ZERO_ADDRESS
    metadata_pointer: str = ""

    @classmethod
    def not_found(cls, identifier: str) -> LedgerLookup:
        return cls(identifier=identifier, exists=False)


class RegistrationReceipt(BaseModel):
    """Handle for a submitted (accepted, not yet final) registration."""

    model_config = ConfigDict(frozen=True)

    tx_id: str
    identifier: str
    owner_address: str
    metadata_pointer: str
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ProofMintedEvent(BaseModel):
    """Audit event emitted by the ledger on every successful registration."""

    model_config = ConfigDict(frozen=True)

    token_id: int
    owner_address: str
    identifier: str
    metadata_pointer: str
    timestamp: int  # seconds since epoch, as the ledger reports it
    tx_id: str = ""
    previous_event_hash: str = ""
    event_hash: str = ""
