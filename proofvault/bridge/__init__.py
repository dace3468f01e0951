"""Bridges to the external collaborators of the proof lifecycle.

Modules
-------
ledger
    ``ProofLedger`` Protocol for the proof registry, plus the SQLite-backed
    ``LocalProofLedger`` used by the CLI and the tests.
content_store
    ``ContentStore`` Protocol for metadata records, plus a local
    content-addressed backend and an HTTP pinning/gateway backend.
"""
