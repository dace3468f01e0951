"""``proofvault journal`` — show or verify the lifecycle journal."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from proofvault.cli.runtime import build_journal, get_config
from proofvault.core.errors import JournalUnavailable
from proofvault.core.lifecycle_journal import JournalIntegrityError

console = Console()


def journal_cmd(
    ctx: typer.Context,
    session_id: str = typer.Option(
        None, "--session", "-s", help="Only show this session's entries."
    ),
    verify: bool = typer.Option(
        False, "--verify", help="Check hash chain integrity instead of listing."
    ),
) -> None:
    """List lifecycle transitions, or verify their hash chains."""
    try:
        journal = build_journal(get_config(ctx))
    except JournalUnavailable as exc:
        console.print(f"[bold red]Journal unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if verify:
        try:
            if session_id:
                journal.verify_chain(session_id)
            else:
                journal.verify_all()
        except JournalIntegrityError as exc:
            console.print(f"[bold red]Journal chain BROKEN:[/bold red] {exc}")
            raise typer.Exit(code=1)
        console.print("[bold green]Journal chain valid.[/bold green]")
        return

    session_ids = [session_id] if session_id else journal.get_all_session_ids()
    if not session_ids:
        console.print("[dim]Journal is empty.[/dim]")
        return

    table = Table(title="Lifecycle Journal")
    table.add_column("Session", style="cyan")
    table.add_column("Attempt")
    table.add_column("Transition")
    table.add_column("Error", style="red")
    table.add_column("Time", style="dim")
    for sid in session_ids:
        for entry in journal.get_session_entries(sid):
            table.add_row(
                entry.session_id,
                entry.attempt_id,
                entry.state_transition,
                entry.error_code or "",
                entry.timestamp_utc.strftime("%Y-%m-%d %H:%M:%S"),
            )
    console.print(table)
