"""Deterministic lifecycle state machine for one mint attempt at a time.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Transitions scoped to the current attempt; stale attempts are ignored
- Every transition journaled (when a journal is attached) and broadcast
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable

from proofvault.core.errors import JournalUnavailable
from proofvault.core.lifecycle_journal import LifecycleJournal
from proofvault.models.journal import JournalEntry
from proofvault.models.lifecycle import (
    VALID_TRANSITIONS,
    LifecycleState,
    LifecycleTransition,
)
from proofvault.models.session import SessionContext

logger = logging.getLogger(__name__)

TransitionListener = Callable[[LifecycleTransition], None]

_UNJOURNALED_OK = frozenset({LifecycleState.FAILED, LifecycleState.IDLE})


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StaleAttemptError(RuntimeError):
    """Raised when a transition names an attempt that is no longer current."""


class LifecycleMachine:
    """Owns the LifecycleState of a single orchestrator instance.

    Parameters
    ----------
    session:
        The session this machine belongs to; recorded in every journal entry.
    journal:
        Optional journal that receives one sealed entry per transition.
    """

    def __init__(
        self, session: SessionContext, journal: LifecycleJournal | None = None
    ) -> None:
        self._session = session
        self._journal = journal
        self._lock = threading.RLock()
        self._state = LifecycleState.IDLE
        self._attempt_id: str | None = None
        self._history: list[LifecycleState] = [LifecycleState.IDLE]
        self._listeners: list[TransitionListener] = []

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def attempt_id(self) -> str | None:
        return self._attempt_id

    @property
    def history(self) -> list[LifecycleState]:
        """States visited by the current attempt, starting from IDLE."""
        with self._lock:
            return list(self._history)

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def is_current(self, attempt_id: str) -> bool:
        return attempt_id == self._attempt_id

    def begin_attempt(self) -> str:
        """Open a new attempt from IDLE, returning its id.

        Does not transition; the caller moves to PUBLISHING_METADATA.
        """
        with self._lock:
            if self._state != LifecycleState.IDLE:
                raise InvalidTransitionError(
                    f"Cannot begin an attempt while {self._state.value}"
                )
            self._attempt_id = f"att-{uuid.uuid4().hex[:12]}"
            self._history = [LifecycleState.IDLE]
            return self._attempt_id

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        attempt_id: str,
        target_state: LifecycleState,
        *,
        identifier: str = "",
        metadata_pointer: str = "",
        error_code: str | None = None,
        detail: str = "",
    ) -> LifecycleTransition:
        """Move the current attempt to *target_state*.

        Raises ``StaleAttemptError`` if *attempt_id* is not current and
        ``InvalidTransitionError`` if the table forbids the move.
        """
        with self._lock:
            if not self.is_current(attempt_id):
                raise StaleAttemptError(
                    f"Attempt {attempt_id} is no longer current "
                    f"(current: {self._attempt_id})"
                )
            current = self._state
            allowed = VALID_TRANSITIONS.get(current, set())
            if target_state not in allowed:
                raise InvalidTransitionError(
                    f"Cannot transition from {current.value} to {target_state.value}. "
                    f"Allowed: {sorted(s.value for s in allowed)}"
                )

            record = LifecycleTransition(
                attempt_id=attempt_id,
                from_state=current,
                to_state=target_state,
                error_code=error_code,
                detail=detail,
            )
            if self._journal is not None:
                entry = JournalEntry(
                    session_id=self._session.session_id,
                    attempt_id=attempt_id,
                    state_transition=f"{current.value}->{target_state.value}",
                    timestamp_utc=record.timestamp_utc,
                    identifier=identifier,
                    metadata_pointer=metadata_pointer,
                    acting_address=self._session.acting_address,
                    error_code=error_code or "",
                    detail=detail,
                )
                try:
                    self._journal.append(entry)
                except JournalUnavailable:
                    # Failing and resetting must always be possible.
                    if target_state not in _UNJOURNALED_OK:
                        raise
                    logger.error(
                        "Journal write failed; %s -> %s applied unjournaled",
                        current.value,
                        target_state.value,
                        exc_info=True,
                    )
            self._state = target_state
            self._history.append(target_state)

        logger.info(
            "Lifecycle %s: %s -> %s%s",
            attempt_id,
            current.value,
            target_state.value,
            f" ({error_code})" if error_code else "",
        )
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Lifecycle listener %r raised", listener)
        return record

    def get_available_transitions(self) -> set[LifecycleState]:
        return set(VALID_TRANSITIONS.get(self._state, set()))
