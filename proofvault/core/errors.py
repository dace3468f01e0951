"""Error taxonomy for the proof lifecycle.

Every failure carries a stable ``code`` (what callers and the lifecycle
outcome report) and a human-readable message.  Where a mismatch is the
cause, both the expected and the actual value are kept as attributes so
the caller can show them side by side.
"""

from __future__ import annotations


class ProofVaultError(RuntimeError):
    """Base class for every error raised by the engine."""

    code: str = "ProofVaultError"


class DigestUnavailable(ProofVaultError):
    """Raised when a byte source cannot be read to compute a digest."""

    code = "DigestUnavailable"

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = source
        detail = f": {reason}" if reason else ""
        super().__init__(f"Unable to hash {source}{detail}")


class MalformedIdentifier(ProofVaultError):
    """Raised when text cannot be turned into a 32-byte identifier."""

    code = "MalformedIdentifier"

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        super().__init__(f"Malformed identifier {raw!r}: {reason}")


class PublishUnavailable(ProofVaultError):
    """Raised when the content store is unreachable or rejects a record."""

    code = "PublishUnavailable"

    def __init__(self, message: str, pointer_scheme: str = "") -> None:
        self.pointer_scheme = pointer_scheme
        super().__init__(message)


class MetadataUnavailable(ProofVaultError):
    """Raised when a metadata pointer cannot be resolved or parsed."""

    code = "MetadataUnavailable"

    def __init__(self, pointer: str, reason: str) -> None:
        self.pointer = pointer
        super().__init__(f"Metadata at {pointer} unavailable: {reason}")


class NotAuthorized(ProofVaultError):
    """Raised when the acting identity is not the recorded authority."""

    code = "NotAuthorized"

    def __init__(self, candidate: str, expected: str | None) -> None:
        self.candidate = candidate
        self.expected = expected
        super().__init__(
            f"{candidate or '<no identity>'} is not authorized to register proofs. "
            f"Expected authority: {expected or '<unknown>'}"
        )


class RegistrationRejected(ProofVaultError):
    """Raised when the ledger refuses a registration."""

    code = "RegistrationRejected"

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        super().__init__(f"Registration of {identifier} rejected: {reason}")


class AlreadyExists(RegistrationRejected):
    """Raised when the identifier is already registered.

    This is an informational outcome: the proof demonstrably exists.
    """

    code = "AlreadyExists"

    def __init__(self, identifier: str, token_id: int | None = None) -> None:
        self.token_id = token_id
        suffix = f" as token #{token_id}" if token_id is not None else ""
        super().__init__(identifier, f"already registered{suffix}")


class LedgerUnreachable(ProofVaultError):
    """Raised when the ledger cannot be contacted."""

    code = "LedgerUnreachable"


class ConfirmationTimeout(ProofVaultError):
    """Raised when finalization does not arrive within the deadline."""

    code = "ConfirmationTimeout"

    def __init__(self, identifier: str, timeout: float) -> None:
        self.identifier = identifier
        self.timeout = timeout
        super().__init__(
            f"Registration of {identifier} not finalized within {timeout:g}s"
        )


class InvalidStateError(ProofVaultError):
    """Raised when a lifecycle operation is not valid in the current state."""

    code = "InvalidState"

    def __init__(self, current: str, attempted: str) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} while lifecycle is {current}")


class LifecycleAbandoned(ProofVaultError):
    """Recorded when the caller abandons an in-flight attempt."""

    code = "Abandoned"


class JournalUnavailable(ProofVaultError):
    """Raised when the lifecycle journal cannot be written or read."""

    code = "JournalUnavailable"
