"""``proofvault qr IDENTIFIER`` — print the transport payload of a proof."""

from __future__ import annotations

import typer
from rich.console import Console

from proofvault.cli.runtime import build_ledger, get_config
from proofvault.core.codec import encode_payload, qr_filename
from proofvault.core.errors import LedgerUnreachable, MalformedIdentifier
from proofvault.core.identifiers import normalize_identifier

console = Console()


def qr_cmd(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of a registered proof."),
) -> None:
    """Print the JSON payload a QR code for this proof would carry."""
    config = get_config(ctx)
    try:
        canonical = normalize_identifier(identifier, strict=config.strict_identifiers)
        lookup = build_ledger(config).lookup(canonical)
    except (MalformedIdentifier, LedgerUnreachable) as exc:
        console.print(f"[bold red]{exc.code}:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not lookup.exists:
        console.print(f"[bold red]Not found:[/bold red] {canonical}")
        raise typer.Exit(code=1)

    console.print(f"[dim]{qr_filename(canonical)}[/dim]")
    # Plain print so the payload can be piped.
    typer.echo(encode_payload(canonical, lookup.token_id, lookup.metadata_pointer))
