"""Proof lifecycle state models — deterministic transitions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LifecycleState(str, Enum):
    """Strict state model for one mint attempt."""

    IDLE = "idle"
    PUBLISHING_METADATA = "publishing_metadata"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    PENDING = "pending"  # ledger write submitted, not yet accepted
    CONFIRMING = "confirming"  # accepted, awaiting finality
    CONFIRMED = "confirmed"
    FAILED = "failed"


# Valid state transitions, enforced structurally by LifecycleMachine.
# Every in-flight state may fail; only reset() leaves a terminal state.
VALID_TRANSITIONS: dict[LifecycleState, set[LifecycleState]] = {
    LifecycleState.IDLE: {LifecycleState.PUBLISHING_METADATA},
    LifecycleState.PUBLISHING_METADATA: {
        LifecycleState.AWAITING_AUTHORIZATION,
        LifecycleState.FAILED,
    },
    LifecycleState.AWAITING_AUTHORIZATION: {
        LifecycleState.PENDING,
        LifecycleState.FAILED,
    },
    LifecycleState.PENDING: {LifecycleState.CONFIRMING, LifecycleState.FAILED},
    LifecycleState.CONFIRMING: {LifecycleState.CONFIRMED, LifecycleState.FAILED},
    LifecycleState.CONFIRMED: {LifecycleState.IDLE},  # reset
    LifecycleState.FAILED: {LifecycleState.IDLE},  # reset
}

TERMINAL_STATES: frozenset[LifecycleState] = frozenset(
    {LifecycleState.CONFIRMED, LifecycleState.FAILED}
)

IN_FLIGHT_STATES: frozenset[LifecycleState] = frozenset(
    {
        LifecycleState.PUBLISHING_METADATA,
        LifecycleState.AWAITING_AUTHORIZATION,
        LifecycleState.PENDING,
        LifecycleState.CONFIRMING,
    }
)


class LifecycleTransition(BaseModel):
    """Records a single state change, delivered to listeners and the journal."""

    model_config = ConfigDict(frozen=True)

    attempt_id: str
    from_state: LifecycleState
    to_state: LifecycleState
    error_code: str | None = None  # populated when entering FAILED
    detail: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class MintOutcome(BaseModel):
    """What a caller gets back from ``ProofLifecycle.submit()``."""

    model_config = ConfigDict(frozen=True)

    attempt_id: str
    state: LifecycleState
    identifier: str
    metadata_pointer: str | None = None
    token_id: int | None = None
    tx_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    informational: bool = False  # True when the failure means "already proven"
    history: list[LifecycleState] = []

    @property
    def succeeded(self) -> bool:
        return self.state == LifecycleState.CONFIRMED
