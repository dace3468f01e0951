"""ProofVault data models — all Pydantic v2, all frozen (immutable)."""

from proofvault.models.journal import JournalEntry
from proofvault.models.lifecycle import (
    IN_FLIGHT_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    LifecycleState,
    LifecycleTransition,
    MintOutcome,
)
from proofvault.models.metadata import (
    MetadataAttribute,
    MetadataRecord,
    SubjectAttributes,
    TraitTag,
)
from proofvault.models.proofs import (
    ZERO_ADDRESS,
    LedgerLookup,
    ProofMintedEvent,
    ProofRecord,
    RegistrationReceipt,
)
from proofvault.models.session import SessionContext

__all__ = [
    # lifecycle
    "LifecycleState",
    "LifecycleTransition",
    "MintOutcome",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "IN_FLIGHT_STATES",
    # metadata
    "TraitTag",
    "SubjectAttributes",
    "MetadataAttribute",
    "MetadataRecord",
    # proofs
    "ZERO_ADDRESS",
    "ProofRecord",
    "LedgerLookup",
    "RegistrationReceipt",
    "ProofMintedEvent",
    # session
    "SessionContext",
    # journal
    "JournalEntry",
]
