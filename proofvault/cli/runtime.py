"""Wiring shared by the CLI commands.

Everything the engine needs is built here from one ``VaultConfig``; the
engine modules themselves never look at configuration.
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from proofvault.bridge.content_store import (
    ContentStore,
    GatewayContentStore,
    LocalContentStore,
)
from proofvault.bridge.ledger import LocalProofLedger
from proofvault.config import VaultConfig
from proofvault.core.lifecycle_journal import LifecycleJournal
from proofvault.core.metadata_publisher import MetadataPublisher, MetadataResolver
from proofvault.core.orchestrator import ProofLifecycle
from proofvault.core.verification import VerificationService
from proofvault.models.session import SessionContext


def configure_logging(level: str) -> None:
    """Route every module logger through a single Rich handler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def get_config(ctx: typer.Context) -> VaultConfig:
    """Return the config the app callback stored, or read a fresh one."""
    if isinstance(ctx.obj, VaultConfig):
        return ctx.obj
    return VaultConfig()


def build_content_store(config: VaultConfig) -> ContentStore:
    if config.uses_remote_store:
        return GatewayContentStore(
            config.pin_endpoint,
            config.gateway_url,
            token=config.pin_token,
            scheme=config.pointer_scheme,
            timeout=config.http_timeout_seconds,
        )
    return LocalContentStore(config.content_store_path, scheme=config.pointer_scheme)


def build_ledger(config: VaultConfig) -> LocalProofLedger:
    return LocalProofLedger(config.ledger_path, authority=config.authority_address)


def build_journal(config: VaultConfig) -> LifecycleJournal:
    return LifecycleJournal(config.journal_path)


def build_lifecycle(config: VaultConfig, session: SessionContext) -> ProofLifecycle:
    store = build_content_store(config)
    return ProofLifecycle(
        session,
        publisher=MetadataPublisher(store, external_url=config.external_url),
        ledger=build_ledger(config),
        journal=build_journal(config),
        confirmation_timeout=config.confirmation_timeout_seconds,
    )


def build_verifier(config: VaultConfig) -> VerificationService:
    store = build_content_store(config)
    return VerificationService(
        build_ledger(config),
        MetadataResolver(store, gateway_url=config.gateway_url),
        strict=config.strict_identifiers,
    )
