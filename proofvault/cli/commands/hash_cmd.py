"""``proofvault hash FILE`` — print a document's digest and identifier."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from proofvault.core.errors import DigestUnavailable
from proofvault.core.hasher import digest_file
from proofvault.core.identifiers import identifier_from_digest

console = Console()


def hash_cmd(
    file: Path = typer.Argument(..., help="Document to fingerprint."),
) -> None:
    """Compute the SHA-256 digest of FILE and its ledger identifier."""
    try:
        digest = digest_file(file)
    except DigestUnavailable as exc:
        console.print(f"[bold red]Cannot hash:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[bold]Digest:[/bold]     {digest}")
    console.print(f"[bold]Identifier:[/bold] {identifier_from_digest(digest)}")
