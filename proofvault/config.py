"""Runtime configuration — env-driven, one place for every tunable.

Settings are read from ``PROOFVAULT_*`` environment variables or a ``.env``
file.  Engine components never read this module directly: the CLI builds a
``VaultConfig`` per invocation and passes values in explicitly.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class VaultConfig(BaseSettings):
    """ProofVault configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PROOFVAULT_ENVIRONMENT=staging
        export PROOFVAULT_LOG_LEVEL=DEBUG
        export PROOFVAULT_AUTHORITY_ADDRESS=0xAbC...

    Or via .env file::

        PROOFVAULT_PIN_ENDPOINT=https://api.pinata.cloud/pinning/pinJSONToIPFS
        PROOFVAULT_PIN_TOKEN=...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROOFVAULT_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Local storage
    ledger_path: Path = Path(".proofvault/ledger.db")
    journal_path: Path = Path(".proofvault/journal.db")
    content_store_path: Path = Path(".proofvault/content")

    # Content store addressing
    pointer_scheme: str = "ipfs"
    gateway_url: str = "https://ipfs.io/ipfs/"
    pin_endpoint: str = ""  # remote pinning API; empty = local store
    pin_token: str = ""
    http_timeout_seconds: float = 15.0

    # Ledger
    authority_address: str = ""
    confirmation_timeout_seconds: float | None = None  # None = wait indefinitely

    # Identifier policy
    strict_identifiers: bool = False

    # Metadata
    external_url: str = "https://projectvault.io"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def uses_remote_store(self) -> bool:
        """Whether metadata is pinned to a remote service over HTTP."""
        return bool(self.pin_endpoint)

