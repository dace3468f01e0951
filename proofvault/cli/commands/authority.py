"""``proofvault authority`` — show who may register proofs."""

from __future__ import annotations

import typer
from rich.console import Console

from proofvault.cli.runtime import build_ledger, get_config
from proofvault.core.errors import LedgerUnreachable

console = Console()


def authority_cmd(ctx: typer.Context) -> None:
    """Show the recorded authority and the number of registered proofs."""
    config = get_config(ctx)
    try:
        ledger = build_ledger(config)
        authority = ledger.read_authority()
        supply = ledger.total_supply()
    except LedgerUnreachable as exc:
        console.print(f"[bold red]Ledger unreachable:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if authority:
        console.print(f"[bold]Authority:[/bold]    {authority}")
    else:
        console.print("[bold yellow]No authority recorded.[/bold yellow]")
    console.print(f"[bold]Total supply:[/bold] {supply}")
