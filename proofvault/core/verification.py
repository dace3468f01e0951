"""Verification query service — does a proof exist, and what does it say?

Two facts are reported independently:

1. The ledger lookup (authoritative: exists / owner / token / pointer).
2. The metadata resolution (best effort: enriches the display only).

A metadata failure never turns an existing proof into a failed
verification, and a never-registered identifier never triggers a metadata
fetch.  ``LedgerUnreachable`` propagates: without the ledger there is no
answer to give.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from proofvault.bridge.ledger import ProofLedger
from proofvault.core.errors import MetadataUnavailable
from proofvault.core.hasher import digest_bytes
from proofvault.core.identifiers import identifier_from_digest, normalize_identifier
from proofvault.core.metadata_publisher import MetadataResolver
from proofvault.models.metadata import UNKNOWN_DISPLAY_NAME, MetadataRecord
from proofvault.models.proofs import ZERO_ADDRESS, LedgerLookup

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def format_address(address: str | None) -> str:
    """Shorten an address to ``0x1234...abcd``; "N/A" when absent or zero."""
    if not address or address.lower() == ZERO_ADDRESS:
        return NOT_AVAILABLE
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


class VerificationResult(BaseModel):
    """Ledger lookup plus (optionally) the resolved metadata record."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    lookup: LedgerLookup
    metadata: MetadataRecord | None = None
    metadata_error: str | None = None
    display_name: str = UNKNOWN_DISPLAY_NAME
    gateway_url: str = ""

    @property
    def exists(self) -> bool:
        return self.lookup.exists

    @property
    def short_owner(self) -> str:
        return format_address(self.lookup.owner_address if self.exists else None)

    @property
    def metadata_resolved(self) -> bool:
        return self.metadata is not None


class VerificationService:
    """Read-only queries against the ledger and the content store.

    Safe to call concurrently and repeatedly; nothing here writes.

    Parameters
    ----------
    ledger:
        Registry to query.
    resolver:
        Resolves metadata pointers for existing proofs.
    strict:
        Identifier normalization policy applied to caller text.
    """

    def __init__(
        self, ledger: ProofLedger, resolver: MetadataResolver, *, strict: bool = False
    ) -> None:
        self._ledger = ledger
        self._resolver = resolver
        self._strict = strict

    def verify(self, text: str) -> VerificationResult:
        """Verify caller text (hex, prefixed hex, or a QR payload)."""
        identifier = normalize_identifier(text, strict=self._strict)
        return self._verify_identifier(identifier)

    def verify_bytes(self, data: bytes) -> VerificationResult:
        """Re-derive the identifier from document bytes, then verify it."""
        return self._verify_identifier(identifier_from_digest(digest_bytes(data)))

    def _verify_identifier(self, identifier: str) -> VerificationResult:
        lookup = self._ledger.lookup(identifier)
        if not lookup.exists:
            logger.info("No proof registered for %s", identifier)
            return VerificationResult(identifier=identifier, lookup=lookup)

        pointer = lookup.metadata_pointer
        if not pointer:
            return VerificationResult(
                identifier=identifier,
                lookup=lookup,
                metadata_error="ledger record carries no metadata pointer",
            )

        gateway_url = self._resolver.gateway_url_for(pointer)
        try:
            record = self._resolver.resolve(pointer)
        except MetadataUnavailable as exc:
            logger.warning("Proof %s exists but metadata is unavailable: %s", identifier, exc)
            return VerificationResult(
                identifier=identifier,
                lookup=lookup,
                metadata_error=str(exc),
                gateway_url=gateway_url,
            )

        return VerificationResult(
            identifier=identifier,
            lookup=lookup,
            metadata=record,
            display_name=record.display_name,
            gateway_url=gateway_url,
        )
