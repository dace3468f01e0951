"""``proofvault verify`` — look a proof up by identifier, payload, or file."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from proofvault.cli.runtime import build_verifier, get_config
from proofvault.core.errors import LedgerUnreachable, MalformedIdentifier
from proofvault.core.verification import VerificationResult
from proofvault.models.metadata import TRAIT_ORDER

console = Console()


def _render(result: VerificationResult) -> None:
    table = Table(title="Proof Verified", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Identifier", result.identifier)
    table.add_row("Token ID", str(result.lookup.token_id))
    table.add_row("Owner", result.short_owner)
    table.add_row("Metadata", result.lookup.metadata_pointer or "N/A")
    if result.gateway_url:
        table.add_row("Gateway", result.gateway_url)
    table.add_row("Subject", result.display_name)
    if result.metadata is not None:
        traits = result.metadata.traits()
        for tag in TRAIT_ORDER:
            if traits.get(tag):
                table.add_row(tag.value, traits[tag])
    console.print(table)
    if result.metadata_error:
        console.print(
            f"[yellow]Metadata unavailable:[/yellow] {result.metadata_error}"
        )


def verify_cmd(
    ctx: typer.Context,
    text: str = typer.Argument(
        None, help="Identifier, hex digest, or QR payload to verify."
    ),
    file: Path = typer.Option(
        None, "--file", "-f", help="Re-derive the identifier from this document."
    ),
) -> None:
    """Check whether a proof is registered and show its metadata."""
    if (text is None) == (file is None):
        console.print("[bold red]Give either TEXT or --file.[/bold red]")
        raise typer.Exit(code=2)

    try:
        verifier = build_verifier(get_config(ctx))
        if file is not None:
            try:
                data = file.read_bytes()
            except OSError as exc:
                console.print(f"[bold red]Cannot read {file}:[/bold red] {exc}")
                raise typer.Exit(code=1)
            result = verifier.verify_bytes(data)
        else:
            result = verifier.verify(text)
    except MalformedIdentifier as exc:
        console.print(f"[bold red]Invalid identifier:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except LedgerUnreachable as exc:
        console.print(f"[bold red]Ledger unreachable:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not result.exists:
        console.print(f"[bold red]Not found:[/bold red] {result.identifier}")
        raise typer.Exit(code=1)

    _render(result)
