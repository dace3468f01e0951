"""Identifier normalization — arbitrary caller text to a ledger key.

The ledger indexes proofs by a 32-byte value rendered as ``0x`` followed by
64 lowercase hex characters.  Callers hand us all sorts of text: bare hex,
prefixed hex, short hex, or the JSON payload carried by a QR code.

Two policies exist:

lenient (default)
    Mirrors what deployed clients have always done: short values are
    left-padded with zeros, nothing is ever truncated and nothing is
    rejected.  Non-hex text passes through the padding step unchanged.
strict
    Same unwrapping and padding, but the remainder must be 1-64 hex
    characters or ``MalformedIdentifier`` is raised.
"""

from __future__ import annotations

import json
import re

from proofvault.core.errors import MalformedIdentifier

IDENTIFIER_HEX_LENGTH = 64
IDENTIFIER_LENGTH = IDENTIFIER_HEX_LENGTH + 2
ZERO_IDENTIFIER = "0x" + "0" * IDENTIFIER_HEX_LENGTH

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_CANONICAL_RE = re.compile(r"^0x[0-9a-f]{64}$")


def _unwrap_payload(text: str) -> str:
    """Return the ``hash`` field of a JSON object payload, or the text itself."""
    if not text.startswith("{"):
        return text
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if isinstance(parsed, dict):
        inner = parsed.get("hash")
        if isinstance(inner, str) and inner:
            return _unwrap_payload(inner.strip())
    return text


def normalize_identifier(text: str, *, strict: bool = False) -> str:
    """Convert caller-supplied text into the canonical identifier form.

    Steps: trim, unwrap a JSON ``{"hash": ...}`` payload (recursively),
    strip an optional ``0x``, left-pad to 64 characters, lowercase, and
    re-attach ``0x``.  Idempotent: ``normalize(normalize(x)) == normalize(x)``.
    """
    candidate = _unwrap_payload(text.strip())
    body = candidate[2:] if candidate[:2].lower() == "0x" else candidate

    if strict:
        if not body:
            raise MalformedIdentifier(text, "empty value")
        if not _HEX_RE.match(body):
            raise MalformedIdentifier(text, "contains non-hex characters")
        if len(body) > IDENTIFIER_HEX_LENGTH:
            raise MalformedIdentifier(
                text, f"{len(body)} hex characters exceeds {IDENTIFIER_HEX_LENGTH}"
            )

    return "0x" + body.rjust(IDENTIFIER_HEX_LENGTH, "0").lower()


def is_canonical_identifier(text: str) -> bool:
    """Return True if *text* is exactly ``0x`` + 64 lowercase hex characters."""
    return bool(_CANONICAL_RE.match(text))


def identifier_from_digest(digest: str) -> str:
    """Turn a ContentDigest (exactly 64 hex characters) into its identifier."""
    body = digest.strip()
    if len(body) != IDENTIFIER_HEX_LENGTH or not _HEX_RE.match(body):
        raise MalformedIdentifier(digest, "a content digest is 64 hex characters")
    return "0x" + body.lower()


def require_canonical(identifier: str) -> str:
    """Return *identifier* unchanged, or raise if it is not canonical."""
    if not is_canonical_identifier(identifier):
        raise MalformedIdentifier(identifier, "not a 0x-prefixed 32-byte hex value")
    return identifier
