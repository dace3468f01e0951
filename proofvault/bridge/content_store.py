"""Content store bridge — where metadata records are pinned and fetched.

The engine depends only on the ``ContentStore`` Protocol: ``put(bytes)``
returns a pointer of the form ``scheme://value`` and ``get(pointer)`` returns
the stored bytes.  Two backends ship here:

1. **LocalContentStore** — content-addressed directory store, used for
   development, tests, and offline operation.  Layout:
   ``{root}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.json``.
2. **GatewayContentStore** — pins JSON to a remote pinning service and
   reads records back through an HTTP gateway.

Backends raise ``ContentStoreError``; the metadata publisher and resolver
translate it into the engine's error taxonomy.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import requests

from proofvault.core.hasher import sha256_hex

logger = logging.getLogger(__name__)


class ContentStoreError(RuntimeError):
    """Raised when a content store cannot store or return a record."""


class ContentIntegrityError(ContentStoreError):
    """Raised when stored bytes no longer match their address."""


@runtime_checkable
class ContentStore(Protocol):
    """Protocol every content store backend must implement."""

    @property
    def scheme(self) -> str:
        """Pointer scheme this store issues (e.g. ``"ipfs"``)."""
        ...

    def put(self, data: bytes) -> str:
        """Store *data* and return its pointer."""
        ...

    def get(self, pointer: str) -> bytes:
        """Return the bytes a pointer refers to."""
        ...


# ---------------------------------------------------------------------------
# Pointer helpers
# ---------------------------------------------------------------------------


def split_pointer(pointer: str) -> tuple[str, str]:
    """Split ``scheme://value`` into ``(scheme, value)``.

    A bare value (no ``://``) yields an empty scheme.
    """
    scheme, sep, value = pointer.strip().partition("://")
    if not sep:
        return "", scheme
    return scheme.lower(), value.strip("/")


def make_pointer(scheme: str, value: str) -> str:
    """Build ``scheme://value``, accepting a value that already has the scheme."""
    _, bare = split_pointer(value)
    return f"{scheme}://{bare}"


def pointer_to_gateway_url(pointer: str, gateway_url: str) -> str:
    """Map a content pointer onto its HTTP gateway URL.

    ``ipfs://Qm123`` with gateway ``https://ipfs.io/ipfs/`` becomes
    ``https://ipfs.io/ipfs/Qm123``.  HTTP(S) pointers are returned as-is.
    """
    scheme, value = split_pointer(pointer)
    if scheme in ("http", "https"):
        return pointer
    return gateway_url.rstrip("/") + "/" + value


# ---------------------------------------------------------------------------
# Local backend
# ---------------------------------------------------------------------------


class LocalContentStore:
    """SHA-256 keyed, immutable record store on the local filesystem.

    Storing the same bytes twice is a no-op and returns the same pointer.
    There is no update or delete.

    Parameters
    ----------
    base_path:
        Root directory for record storage.
    scheme:
        Pointer scheme to issue.
    """

    def __init__(self, base_path: Path, scheme: str = "ipfs") -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._scheme = scheme

    @property
    def scheme(self) -> str:
        return self._scheme

    def _record_path(self, digest: str) -> Path:
        return self._base / digest[:2] / digest[2:4] / f"{digest}.json"

    def _digest_for(self, pointer: str) -> str:
        scheme, value = split_pointer(pointer)
        if scheme and scheme != self._scheme:
            raise ContentStoreError(
                f"Pointer {pointer!r} does not use scheme {self._scheme!r}"
            )
        if len(value) != 64 or not all(c in "0123456789abcdef" for c in value):
            raise ContentStoreError(f"Pointer {pointer!r} is not a local content address")
        return value

    def put(self, data: bytes) -> str:
        digest = sha256_hex(data)
        path = self._record_path(digest)
        try:
            if path.exists():
                if sha256_hex(path.read_bytes()) != digest:
                    raise ContentIntegrityError(
                        f"Existing record at {digest} failed integrity check"
                    )
            else:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
        except OSError as exc:
            raise ContentStoreError(f"Cannot write record {digest}: {exc}") from exc
        pointer = make_pointer(self._scheme, digest)
        logger.debug("Stored %d bytes at %s", len(data), pointer)
        return pointer

    def get(self, pointer: str) -> bytes:
        digest = self._digest_for(pointer)
        path = self._record_path(digest)
        if not path.exists():
            raise ContentStoreError(f"Record not found: {pointer}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ContentStoreError(f"Cannot read record {pointer}: {exc}") from exc
        if sha256_hex(data) != digest:
            raise ContentIntegrityError(f"Record {pointer} failed integrity check")
        return data

    def exists(self, pointer: str) -> bool:
        try:
            return self._record_path(self._digest_for(pointer)).exists()
        except ContentStoreError:
            return False


# ---------------------------------------------------------------------------
# HTTP gateway backend
# ---------------------------------------------------------------------------


class GatewayContentStore:
    """Pins records to a remote pinning API and fetches them via a gateway.

    Parameters
    ----------
    pin_endpoint:
        URL accepting a JSON ``POST`` (Pinata-style ``pinJSONToIPFS``).  The
        response must carry the content identifier in ``IpfsHash`` (or
        ``cid``).
    gateway_url:
        HTTP gateway prefix used for ``get``.
    token:
        Bearer token sent with pin requests.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional ``requests.Session`` (tests inject a stub here).
    """

    def __init__(
        self,
        pin_endpoint: str,
        gateway_url: str,
        *,
        token: str = "",
        scheme: str = "ipfs",
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self._pin_endpoint = pin_endpoint
        self._gateway_url = gateway_url
        self._token = token
        self._scheme = scheme
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def scheme(self) -> str:
        return self._scheme

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def put(self, data: bytes) -> str:
        try:
            body = json.loads(data)
        except ValueError as exc:
            raise ContentStoreError(f"Record is not JSON: {exc}") from exc

        try:
            resp = self._session.post(
                self._pin_endpoint,
                json={"pinataContent": body},
                headers=self._headers(),
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise ContentStoreError(f"Pinning request failed: {exc}") from exc
        except ValueError as exc:
            raise ContentStoreError(f"Pinning service returned non-JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ContentStoreError(
                f"Pinning service returned {type(payload).__name__}, expected an object"
            )

        cid = payload.get("IpfsHash") or payload.get("cid") or ""
        if not cid:
            raise ContentStoreError("Pinning service response carried no content identifier")
        pointer = make_pointer(self._scheme, cid)
        logger.info("Pinned metadata record at %s", pointer)
        return pointer

    def get(self, pointer: str) -> bytes:
        url = pointer_to_gateway_url(pointer, self._gateway_url)
        try:
            resp = self._session.get(url, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ContentStoreError(f"Gateway fetch of {url} failed: {exc}") from exc
        return resp.content
