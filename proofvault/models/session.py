"""Explicit session context passed to every write-path operation."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


class SessionContext(BaseModel):
    """Who is acting, and where.

    Replaces any notion of a globally connected wallet: the orchestrator and
    the authority gate only ever see the identity they are handed.
    """

    model_config = ConfigDict(frozen=True)

    acting_address: str = ""
    network: str = "local"
    session_id: str = Field(default_factory=lambda: f"pv-{uuid.uuid4().hex[:12]}")

    @property
    def is_connected(self) -> bool:
        return bool(self.acting_address)
