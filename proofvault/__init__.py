"""ProofVault: content-addressed document proofs on an append-only ledger.

A document is fingerprinted (SHA-256), described by an immutable metadata
record pinned to a content store, and registered under its identifier by
the single recorded authority.  Anyone can later re-derive the identifier
from the document (or scan it from a QR payload) and verify the proof.
"""

__version__ = "0.1.0"
__description__ = "Register and verify document proofs on an append-only ledger"

from proofvault.core.orchestrator import ProofLifecycle
from proofvault.core.verification import VerificationService
from proofvault.cli.app import app as cli

__all__ = ["ProofLifecycle", "VerificationService", "cli", "__version__"]
