"""Lifecycle journal entry model (append-only, hash-chained).

One entry is written per lifecycle transition.  The journal is local audit
evidence of what this engine did; the ledger remains the source of truth
for whether a proof exists.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class JournalEntry(BaseModel):
    """A single entry in the lifecycle journal."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    attempt_id: str
    state_transition: str  # "from_state->to_state", e.g. "idle->publishing_metadata"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    identifier: str = ""
    metadata_pointer: str = ""
    acting_address: str = ""
    error_code: str = ""
    detail: str = ""
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed after construction, seals this entry
