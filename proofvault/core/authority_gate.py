"""Authority gate — only the recorded authority may register proofs.

The predicate is pure and fail-closed: an absent or not-yet-loaded
authority never authorizes anyone.  Because the recorded authority comes
from a ledger read, ``AuthorityGate`` keeps "not yet known" distinct from
"unauthorized" via ``AuthorityStatus``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from proofvault.core.errors import LedgerUnreachable, NotAuthorized
from proofvault.models.session import SessionContext

if TYPE_CHECKING:
    from proofvault.bridge.ledger import ProofLedger

logger = logging.getLogger(__name__)


def is_authorized(candidate_address: str | None, recorded_authority: str | None) -> bool:
    """Case-insensitive address match; ``False`` whenever either side is missing."""
    if not candidate_address or not recorded_authority:
        return False
    return candidate_address.strip().lower() == recorded_authority.strip().lower()


class AuthorityStatus(str, Enum):
    UNKNOWN = "unknown"  # authority not fetched yet, or the fetch failed
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


class AuthorityDecision(BaseModel):
    """Outcome of checking one identity against the recorded authority."""

    model_config = ConfigDict(frozen=True)

    status: AuthorityStatus
    candidate: str
    expected: str | None = None
    reason: str = ""

    @property
    def granted(self) -> bool:
        return self.status == AuthorityStatus.AUTHORIZED

    def require(self) -> None:
        """Raise ``NotAuthorized`` unless the decision is a grant."""
        if not self.granted:
            raise NotAuthorized(self.candidate, self.expected)


class AuthorityGate:
    """Fetches the recorded authority on demand and checks identities against it.

    The fetched value is held until ``refresh()`` is called; there is no
    other invalidation.

    Parameters
    ----------
    ledger:
        Any ``ProofLedger`` — only ``read_authority()`` is used.
    """

    def __init__(self, ledger: ProofLedger) -> None:
        self._ledger = ledger
        self._recorded: str | None = None
        self._loaded = False

    @property
    def recorded_authority(self) -> str | None:
        """The cached authority, or ``None`` if not yet loaded."""
        return self._recorded if self._loaded else None

    def refresh(self) -> str | None:
        """Re-read the authority from the ledger.

        A failed read leaves the gate in the not-loaded state and propagates
        ``LedgerUnreachable``.
        """
        self._loaded = False
        self._recorded = None
        address = self._ledger.read_authority()
        self._recorded = address or None
        self._loaded = True
        logger.debug("Recorded authority: %s", self._recorded or "<none>")
        return self._recorded

    def check(self, session: SessionContext) -> AuthorityDecision:
        """Decide whether the session's acting identity may register."""
        candidate = session.acting_address
        if not self._loaded:
            try:
                self.refresh()
            except LedgerUnreachable as exc:
                logger.warning("Authority unknown: %s", exc)
                return AuthorityDecision(
                    status=AuthorityStatus.UNKNOWN,
                    candidate=candidate,
                    reason=f"authority could not be read: {exc}",
                )

        expected = self._recorded
        if expected is None:
            return AuthorityDecision(
                status=AuthorityStatus.UNAUTHORIZED,
                candidate=candidate,
                reason="ledger has no recorded authority",
            )
        if is_authorized(candidate, expected):
            return AuthorityDecision(
                status=AuthorityStatus.AUTHORIZED,
                candidate=candidate,
                expected=expected,
            )
        logger.warning("Identity %s denied; authority is %s", candidate or "<none>", expected)
        return AuthorityDecision(
            status=AuthorityStatus.UNAUTHORIZED,
            candidate=candidate,
            expected=expected,
            reason="acting identity does not match the recorded authority",
        )
