"""Proof lifecycle orchestrator — publish, authorize, register, confirm.

The ProofLifecycle wires the MetadataPublisher, AuthorityGate, ProofLedger
and LifecycleJournal into a single ``submit()`` call whose sub-states are
observable through listeners and the journal.

Order is fixed: publish precedes the authority check, which precedes the
ledger write, because the write embeds the pointer returned by publish.
Nothing is retried here; a caller retries with ``reset()`` then ``submit()``.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import datetime

from proofvault.bridge.ledger import ProofLedger
from proofvault.core.authority_gate import AuthorityGate, AuthorityStatus
from proofvault.core.errors import (
    AlreadyExists,
    ConfirmationTimeout,
    InvalidStateError,
    LedgerUnreachable,
    LifecycleAbandoned,
    NotAuthorized,
    ProofVaultError,
    PublishUnavailable,
    RegistrationRejected,
)
from proofvault.core.identifiers import identifier_from_digest
from proofvault.core.lifecycle_journal import LifecycleJournal
from proofvault.core.lifecycle_machine import LifecycleMachine, TransitionListener
from proofvault.core.metadata_publisher import MetadataPublisher
from proofvault.models.lifecycle import (
    IN_FLIGHT_STATES,
    TERMINAL_STATES,
    LifecycleState,
    MintOutcome,
)
from proofvault.models.metadata import SubjectAttributes
from proofvault.models.proofs import ProofRecord, RegistrationReceipt
from proofvault.models.session import SessionContext

logger = logging.getLogger(__name__)


class _Attempt:
    """Mutable working state for one submit() call."""

    def __init__(self, attempt_id: str, identifier: str) -> None:
        self.attempt_id = attempt_id
        self.identifier = identifier
        self.metadata_pointer: str | None = None
        self.token_id: int | None = None
        self.tx_id: str | None = None
        self.history: list[LifecycleState] = [
            LifecycleState.IDLE,
            LifecycleState.PUBLISHING_METADATA,
        ]


class ProofLifecycle:
    """Runs mint attempts for one session, one attempt at a time.

    Parameters
    ----------
    session:
        Explicit identity of the acting party.
    publisher:
        Publishes the metadata record and returns its pointer.
    ledger:
        Registry receiving the registration.
    gate:
        Authority gate; built from *ledger* if not provided.
    journal:
        Optional audit journal receiving every transition.
    confirmation_timeout:
        Seconds to wait for finality before failing with
        ``ConfirmationTimeout``.  ``None`` waits indefinitely.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        publisher: MetadataPublisher,
        ledger: ProofLedger,
        gate: AuthorityGate | None = None,
        journal: LifecycleJournal | None = None,
        confirmation_timeout: float | None = None,
    ) -> None:
        self.session = session
        self._publisher = publisher
        self._ledger = ledger
        self._gate = gate or AuthorityGate(ledger)
        self._confirmation_timeout = confirmation_timeout
        self._machine = LifecycleMachine(session, journal)
        self._lock = threading.RLock()
        self._abandoned: set[str] = set()
        self._current: _Attempt | None = None
        self._outcome: MintOutcome | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._machine.state

    @property
    def outcome(self) -> MintOutcome | None:
        """Outcome of the most recent attempt to reach a terminal state."""
        return self._outcome

    @property
    def gate(self) -> AuthorityGate:
        return self._gate

    def add_listener(self, listener: TransitionListener) -> None:
        """Receive a ``LifecycleTransition`` for every state change."""
        self._machine.add_listener(listener)

    # ------------------------------------------------------------------
    # Lifecycle control
    # ------------------------------------------------------------------

    def submit(
        self,
        digest: str,
        attributes: SubjectAttributes | None = None,
        *,
        issued_at: datetime | None = None,
    ) -> MintOutcome:
        """Run one mint attempt to a terminal state and return its outcome.

        Raises ``InvalidStateError`` unless the lifecycle is IDLE (including
        while another submit is in flight) and ``MalformedIdentifier`` if
        *digest* is not a computed ContentDigest.  Every other failure is
        reported in the returned outcome with state FAILED.
        """
        identifier = identifier_from_digest(digest)
        attributes = attributes or SubjectAttributes()

        with self._lock:
            if self._machine.state != LifecycleState.IDLE:
                raise InvalidStateError(self._machine.state.value, "submit")
            attempt = _Attempt(self._machine.begin_attempt(), identifier)
            self._current = attempt
            self._outcome = None
            self._machine.transition(
                attempt.attempt_id,
                LifecycleState.PUBLISHING_METADATA,
                identifier=identifier,
            )

        try:
            return self._run(attempt, digest.lower(), attributes, issued_at)
        except Exception as exc:
            # Keep the terminal-state guarantee, then surface the bug.
            if self._machine.state in IN_FLIGHT_STATES:
                if not isinstance(exc, ProofVaultError):
                    exc = ProofVaultError(f"{type(exc).__name__}: {exc}")
                self._fail(attempt, exc)
            raise

    def _run(
        self,
        attempt: _Attempt,
        digest: str,
        attributes: SubjectAttributes,
        issued_at: datetime | None,
    ) -> MintOutcome:
        identifier = attempt.identifier
        if not self._is_live(attempt):
            return self._discarded(attempt)

        # 1. Publish metadata
        try:
            attempt.metadata_pointer = self._publisher.publish(
                digest, attributes, issued_at=issued_at
            )
        except PublishUnavailable as exc:
            return self._fail(attempt, exc)
        if not self._advance(attempt, LifecycleState.AWAITING_AUTHORIZATION):
            return self._discarded(attempt)

        # 2. Authority gate
        decision = self._gate.check(self.session)
        if decision.status == AuthorityStatus.UNKNOWN:
            return self._fail(attempt, LedgerUnreachable(decision.reason))
        if not decision.granted:
            return self._fail(attempt, NotAuthorized(decision.candidate, decision.expected))
        if not self._advance(attempt, LifecycleState.PENDING):
            return self._discarded(attempt)

        # 3. Submit the ledger write
        try:
            receipt = self._ledger.register(
                self.session.acting_address, identifier, attempt.metadata_pointer
            )
        except AlreadyExists as exc:
            attempt.token_id = exc.token_id
            return self._fail(attempt, exc, informational=True)
        except (LedgerUnreachable, RegistrationRejected) as exc:
            return self._fail(attempt, exc)
        except ProofVaultError as exc:
            return self._fail(attempt, RegistrationRejected(identifier, str(exc)))
        attempt.tx_id = receipt.tx_id
        if not self._advance(attempt, LifecycleState.CONFIRMING, detail=receipt.tx_id):
            return self._discarded(attempt)

        # 4. Wait for finality
        try:
            record = self._await_finality(receipt)
        except ProofVaultError as exc:
            return self._fail(attempt, exc)
        attempt.token_id = record.token_id
        if not self._advance(
            attempt, LifecycleState.CONFIRMED, detail=f"token #{record.token_id}"
        ):
            return self._discarded(attempt)

        outcome = self._build_outcome(attempt, LifecycleState.CONFIRMED)
        self._outcome = outcome
        return outcome

    def reset(self) -> None:
        """Return a terminal lifecycle to IDLE.

        Raises ``InvalidStateError`` from IDLE or any in-flight state.
        """
        with self._lock:
            current = self._machine.state
            if current not in TERMINAL_STATES:
                raise InvalidStateError(current.value, "reset")
            attempt_id = self._machine.attempt_id or ""
            self._machine.transition(attempt_id, LifecycleState.IDLE)

    def abandon(self, reason: str = "abandoned by caller") -> bool:
        """Fail the in-flight attempt now; its late results will be discarded.

        Returns False if nothing was in flight.
        """
        with self._lock:
            current = self._machine.state
            attempt_id = self._machine.attempt_id
            current_attempt = self._current
            if current not in IN_FLIGHT_STATES or attempt_id is None or current_attempt is None:
                return False
            self._abandoned.add(attempt_id)
            exc = LifecycleAbandoned(reason)
            self._machine.transition(
                attempt_id,
                LifecycleState.FAILED,
                identifier=current_attempt.identifier,
                metadata_pointer=current_attempt.metadata_pointer or "",
                error_code=exc.code,
                detail=str(exc),
            )
            current_attempt.history.append(LifecycleState.FAILED)
            self._outcome = self._build_outcome(
                current_attempt,
                LifecycleState.FAILED,
                error_code=exc.code,
                error_message=str(exc),
            )
        logger.warning("Attempt %s abandoned in %s", attempt_id, current.value)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_live(self, attempt: _Attempt) -> bool:
        return (
            self._machine.is_current(attempt.attempt_id)
            and attempt.attempt_id not in self._abandoned
        )

    def _advance(
        self, attempt: _Attempt, target: LifecycleState, *, detail: str = ""
    ) -> bool:
        """Transition a live attempt; return False if it was abandoned.

        Listeners run inside the transition and may abandon the attempt,
        so liveness is checked again before the caller acts on it.
        """
        with self._lock:
            if not self._is_live(attempt):
                return False
            attempt.history.append(target)
            try:
                self._machine.transition(
                    attempt.attempt_id,
                    target,
                    identifier=attempt.identifier,
                    metadata_pointer=attempt.metadata_pointer or "",
                    detail=detail,
                )
            except Exception:
                attempt.history.pop()
                raise
            return self._is_live(attempt)

    def _fail(
        self, attempt: _Attempt, exc: ProofVaultError, *, informational: bool = False
    ) -> MintOutcome:
        with self._lock:
            if not self._is_live(attempt):
                return self._discarded(attempt)
            self._machine.transition(
                attempt.attempt_id,
                LifecycleState.FAILED,
                identifier=attempt.identifier,
                metadata_pointer=attempt.metadata_pointer or "",
                error_code=exc.code,
                detail=str(exc),
            )
            attempt.history.append(LifecycleState.FAILED)
            outcome = self._build_outcome(
                attempt,
                LifecycleState.FAILED,
                error_code=exc.code,
                error_message=str(exc),
                informational=informational,
            )
            self._outcome = outcome
        if informational:
            logger.info("Attempt %s: %s", attempt.attempt_id, exc)
        else:
            logger.warning("Attempt %s failed: %s", attempt.attempt_id, exc)
        return outcome

    def _discarded(self, attempt: _Attempt) -> MintOutcome:
        logger.warning(
            "Discarding late result for abandoned attempt %s", attempt.attempt_id
        )
        abandoned = LifecycleAbandoned("abandoned by caller")
        history = list(attempt.history)
        if history[-1] != LifecycleState.FAILED:
            history.append(LifecycleState.FAILED)
        return self._build_outcome(
            attempt,
            LifecycleState.FAILED,
            error_code=abandoned.code,
            error_message=str(abandoned),
            history=history,
        )

    def _await_finality(self, receipt: RegistrationReceipt) -> ProofRecord:
        timeout = self._confirmation_timeout
        if timeout is None:
            return self._ledger.wait_for_receipt(receipt, None)

        # The ledger call cannot be cancelled; on expiry its worker is left
        # to finish and its result is dropped.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="proofvault-confirm")
        try:
            future = executor.submit(self._ledger.wait_for_receipt, receipt, timeout)
            try:
                return future.result(timeout=timeout)
            except FuturesTimeout as exc:
                raise ConfirmationTimeout(receipt.identifier, timeout) from exc
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def _build_outcome(
        attempt: _Attempt,
        state: LifecycleState,
        *,
        error_code: str | None = None,
        error_message: str | None = None,
        informational: bool = False,
        history: list[LifecycleState] | None = None,
    ) -> MintOutcome:
        return MintOutcome(
            attempt_id=attempt.attempt_id,
            state=state,
            identifier=attempt.identifier,
            metadata_pointer=attempt.metadata_pointer,
            token_id=attempt.token_id,
            tx_id=attempt.tx_id,
            error_code=error_code,
            error_message=error_message,
            informational=informational,
            history=history if history is not None else list(attempt.history),
        )
