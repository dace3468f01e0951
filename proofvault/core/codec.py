"""Transport codec — the self-describing payload carried by a QR code.

Wire format::

    {"hash": "0x...", "tokenId": "7", "metadataURI": "ipfs://...",
     "verified": true, "timestamp": "2024-05-01T12:00:00+00:00"}

Decoding is forgiving: anything that does not parse as this structure is
treated as a candidate identifier and handed to the normalizer.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from proofvault.core.identifiers import normalize_identifier


class TransportPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hash: str
    token_id: str = Field(default="", alias="tokenId")
    metadata_uri: str = Field(default="", alias="metadataURI")
    verified: bool = True
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


def encode_payload(
    identifier: str,
    token_id: int | str,
    metadata_pointer: str,
    *,
    timestamp: datetime | None = None,
) -> str:
    """Serialize a registered proof into its compact JSON payload."""
    payload = TransportPayload(
        hash=identifier,
        token_id=str(token_id),
        metadata_uri=metadata_pointer,
        timestamp=(timestamp or datetime.now(timezone.utc)).isoformat(),
    )
    return json.dumps(payload.model_dump(by_alias=True), separators=(",", ":"))


def parse_payload(text: str) -> TransportPayload | None:
    """Return the payload structure, or None if *text* is not one."""
    try:
        raw = json.loads(text.strip())
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None
    try:
        return TransportPayload.model_validate(raw)
    except ValidationError:
        return None


def decode_payload(text: str, *, strict: bool = False) -> str:
    """Extract the canonical identifier from a payload or raw identifier text."""
    payload = parse_payload(text)
    candidate = payload.hash if payload is not None else text
    return normalize_identifier(candidate, strict=strict)


def qr_filename(identifier: str) -> str:
    """File name used when the payload is saved as an image."""
    canonical = normalize_identifier(identifier)
    return f"diploma-qr-{canonical[2:10]}.png"
