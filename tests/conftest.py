"""Shared test fixtures for ProofVault."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import requests

from proofvault.bridge.content_store import ContentStoreError, LocalContentStore
from proofvault.bridge.ledger import LocalProofLedger
from proofvault.core.errors import LedgerUnreachable
from proofvault.core.hasher import digest_bytes
from proofvault.core.lifecycle_journal import LifecycleJournal
from proofvault.core.metadata_publisher import MetadataPublisher, MetadataResolver
from proofvault.core.orchestrator import ProofLifecycle
from proofvault.models.metadata import SubjectAttributes
from proofvault.models.proofs import LedgerLookup, ProofRecord, RegistrationReceipt
from proofvault.models.session import SessionContext

AUTHORITY = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
OUTSIDER = "0x1111111111111111111111111111111111111111"
GATEWAY = "https://ipfs.io/ipfs/"
DOCUMENT = b"%PDF-1.4 diploma of Ada Lovelace"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases and records."""
    return tmp_path


@pytest.fixture
def ledger(tmp_dir: Path) -> LocalProofLedger:
    """Provide a fresh LocalProofLedger whose authority is ``AUTHORITY``."""
    return LocalProofLedger(tmp_dir / "ledger.db", authority=AUTHORITY)


@pytest.fixture
def content_store(tmp_dir: Path) -> LocalContentStore:
    return LocalContentStore(tmp_dir / "content")


@pytest.fixture
def journal(tmp_dir: Path) -> LifecycleJournal:
    return LifecycleJournal(tmp_dir / "journal.db")


@pytest.fixture
def publisher(content_store: LocalContentStore) -> MetadataPublisher:
    return MetadataPublisher(content_store, external_url="https://projectvault.io")


@pytest.fixture
def resolver(content_store: LocalContentStore) -> MetadataResolver:
    return MetadataResolver(content_store, gateway_url=GATEWAY)


@pytest.fixture
def session() -> SessionContext:
    """The authority, connected with lowercase casing."""
    return SessionContext(acting_address=AUTHORITY.lower(), session_id="pv-test-session")


@pytest.fixture
def outsider_session() -> SessionContext:
    return SessionContext(acting_address=OUTSIDER, session_id="pv-outsider")


@pytest.fixture
def digest() -> str:
    return digest_bytes(DOCUMENT)


@pytest.fixture
def attributes() -> SubjectAttributes:
    return SubjectAttributes(
        name="Ada Lovelace",
        subject_id="S-1815",
        program="Analytical Engines",
        year="1843",
        file_name="diploma.pdf",
    )


@pytest.fixture
def make_lifecycle(
    publisher: MetadataPublisher,
    ledger: LocalProofLedger,
    journal: LifecycleJournal,
    session: SessionContext,
) -> Callable[..., ProofLifecycle]:
    """Factory fixture: a ProofLifecycle wired to the temp collaborators."""

    def _factory(**overrides: Any) -> ProofLifecycle:
        kwargs: dict[str, Any] = {
            "publisher": publisher,
            "ledger": ledger,
            "journal": journal,
        }
        chosen_session = overrides.pop("session", session)
        kwargs.update(overrides)
        return ProofLifecycle(chosen_session, **kwargs)

    return _factory


@pytest.fixture
def lifecycle(make_lifecycle: Callable[..., ProofLifecycle]) -> ProofLifecycle:
    return make_lifecycle()


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FailingContentStore:
    """A content store that is always unreachable."""

    scheme = "ipfs"

    def put(self, data: bytes) -> str:
        raise ContentStoreError("pinning service unreachable")

    def get(self, pointer: str) -> bytes:
        raise ContentStoreError("gateway unreachable")


class HookedContentStore:
    """Delegates to a real store, running *hook* in the middle of ``put``."""

    def __init__(self, inner: LocalContentStore, hook: Callable[[], None]) -> None:
        self._inner = inner
        self._hook = hook

    @property
    def scheme(self) -> str:
        return self._inner.scheme

    def put(self, data: bytes) -> str:
        pointer = self._inner.put(data)
        self._hook()
        return pointer

    def get(self, pointer: str) -> bytes:
        return self._inner.get(pointer)


class BlockingLedger:
    """Wraps a ledger so that finalization waits until ``release`` is set."""

    def __init__(self, inner: LocalProofLedger) -> None:
        self._inner = inner
        self.release = threading.Event()

    def register(
        self, owner_address: str, identifier: str, metadata_pointer: str
    ) -> RegistrationReceipt:
        return self._inner.register(owner_address, identifier, metadata_pointer)

    def wait_for_receipt(
        self, receipt: RegistrationReceipt, timeout: float | None = None
    ) -> ProofRecord:
        self.release.wait(5.0)
        return self._inner.wait_for_receipt(receipt, timeout)

    def lookup(self, identifier: str) -> LedgerLookup:
        return self._inner.lookup(identifier)

    def read_authority(self) -> str:
        return self._inner.read_authority()


class UnreachableLedger:
    """Every call fails as if the ledger node were down."""

    def register(self, owner_address: str, identifier: str, metadata_pointer: str):
        raise LedgerUnreachable("connection refused")

    def wait_for_receipt(self, receipt, timeout=None):
        raise LedgerUnreachable("connection refused")

    def lookup(self, identifier: str) -> LedgerLookup:
        raise LedgerUnreachable("connection refused")

    def read_authority(self) -> str:
        raise LedgerUnreachable("connection refused")


class BrokenJournal(LifecycleJournal):
    """A journal whose disk starts failing once ``broken`` is set."""

    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path)
        self.broken = False

    def _insert(self, entry) -> None:
        if self.broken:
            raise sqlite3.OperationalError("disk I/O error")
        super()._insert(entry)


class StubResponse:
    def __init__(
        self, status_code: int = 200, payload: Any = None, content: bytes = b""
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class StubHttpSession:
    """Records requests and replays canned responses, in the shape of requests.Session."""

    def __init__(
        self,
        post_response: StubResponse | None = None,
        get_response: StubResponse | None = None,
        error: Exception | None = None,
    ) -> None:
        self.post_response = post_response or StubResponse()
        self.get_response = get_response or StubResponse()
        self.error = error
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append(("POST", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.post_response

    def get(self, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append(("GET", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.get_response


# ---------------------------------------------------------------------------
# Fixtures exposing the fakes and constants to test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def authority_address() -> str:
    return AUTHORITY


@pytest.fixture
def document() -> bytes:
    return DOCUMENT


@pytest.fixture
def failing_store() -> FailingContentStore:
    return FailingContentStore()


@pytest.fixture
def make_hooked_store(
    content_store: LocalContentStore,
) -> Callable[[Callable[[], None]], HookedContentStore]:
    def _factory(hook: Callable[[], None]) -> HookedContentStore:
        return HookedContentStore(content_store, hook)

    return _factory


@pytest.fixture
def blocking_ledger(ledger: LocalProofLedger):
    blocker = BlockingLedger(ledger)
    yield blocker
    blocker.release.set()


@pytest.fixture
def broken_journal(tmp_dir: Path) -> BrokenJournal:
    return BrokenJournal(tmp_dir / "broken-journal.db")


@pytest.fixture
def unreachable_ledger() -> UnreachableLedger:
    return UnreachableLedger()


@pytest.fixture
def make_http_session() -> Callable[..., StubHttpSession]:
    def _factory(**kwargs: Any) -> StubHttpSession:
        return StubHttpSession(**kwargs)

    return _factory


@pytest.fixture
def make_response() -> Callable[..., StubResponse]:
    def _factory(**kwargs: Any) -> StubResponse:
        return StubResponse(**kwargs)

    return _factory
