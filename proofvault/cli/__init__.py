"""ProofVault CLI — Typer-based command-line interface.

Provides the ``proofvault`` command with subcommands for hashing documents,
minting and verifying proofs, printing QR payloads, and auditing the
lifecycle journal.

All output uses Rich for formatted terminal display.
"""
