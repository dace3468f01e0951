"""Digest engine and canonical hashing helpers.

A ContentDigest is the SHA-256 of a document's raw bytes, rendered as
64 lowercase hex characters without a prefix.  The same canonical JSON
encoding is used for content-store records and journal seals so that
equal values always hash equally.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, BinaryIO

from proofvault.core.errors import DigestUnavailable

logger = logging.getLogger(__name__)

# Read size for file-backed sources; the digest is identical to a one-shot read.
_CHUNK_SIZE = 1024 * 1024


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def content_address(obj: Any) -> str:
    """SHA-256 of the canonical JSON form of a JSON-serializable object."""
    return sha256_hex(canonical_json_bytes(obj))


# ---------------------------------------------------------------------------
# Digest engine
# ---------------------------------------------------------------------------


def digest_bytes(data: bytes | bytearray | memoryview) -> str:
    """Return the ContentDigest of an in-memory byte sequence."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DigestUnavailable(type(data).__name__, "not a byte sequence")
    return hashlib.sha256(bytes(data)).hexdigest()


def digest_stream(stream: BinaryIO, *, source: str = "<stream>") -> str:
    """Return the ContentDigest of everything readable from a binary stream."""
    hasher = hashlib.sha256()
    try:
        while True:
            chunk = stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            if not isinstance(chunk, (bytes, bytearray)):
                raise DigestUnavailable(source, "stream is not opened in binary mode")
            hasher.update(chunk)
    except OSError as exc:
        raise DigestUnavailable(source, str(exc)) from exc
    return hasher.hexdigest()


def digest_file(path: Path | str) -> str:
    """Return the ContentDigest of a file on disk.

    Raises ``DigestUnavailable`` if the file cannot be opened or read.
    """
    path = Path(path)
    try:
        with path.open("rb") as fh:
            digest = digest_stream(fh, source=str(path))
    except OSError as exc:
        raise DigestUnavailable(str(path), exc.strerror or str(exc)) from exc
    logger.debug("Digest of %s: %s", path, digest)
    return digest


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a journal or event row, excluding its own ``entry_hash``."""
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
