"""``proofvault mint FILE`` — publish metadata and register a proof.

Runs one full lifecycle (publish, authorize, register, confirm) against the
configured ledger and content store and prints each sub-state as it is
entered.  An already-registered document is reported, not treated as an
error.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from proofvault.cli.runtime import build_lifecycle, get_config
from proofvault.core.errors import (
    DigestUnavailable,
    JournalUnavailable,
    LedgerUnreachable,
)
from proofvault.core.hasher import digest_file
from proofvault.models.lifecycle import LifecycleState, LifecycleTransition
from proofvault.models.metadata import SubjectAttributes
from proofvault.models.session import SessionContext

console = Console()

_STATE_STYLE = {
    LifecycleState.CONFIRMED: "bold green",
    LifecycleState.FAILED: "bold red",
}


def _print_transition(transition: LifecycleTransition) -> None:
    style = _STATE_STYLE.get(transition.to_state, "cyan")
    detail = f" [dim]{transition.detail}[/dim]" if transition.detail else ""
    console.print(f"  [{style}]{transition.to_state.value}[/{style}]{detail}")


def mint_cmd(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Document to register."),
    name: str = typer.Option("", "--name", "-n", help="Subject name."),
    student_id: str = typer.Option("", "--student-id", help="Subject identifier."),
    program: str = typer.Option("", "--program", help="Program or course."),
    year: str = typer.Option("", "--year", help="Year of issue."),
    acting_address: str = typer.Option(
        "",
        "--as",
        help="Acting identity. Defaults to the configured authority address.",
    ),
) -> None:
    """Register a proof for FILE on the ledger."""
    config = get_config(ctx)
    try:
        digest = digest_file(file)
    except DigestUnavailable as exc:
        console.print(f"[bold red]Cannot hash:[/bold red] {exc}")
        raise typer.Exit(code=1)

    session = SessionContext(acting_address=acting_address or config.authority_address)
    attributes = SubjectAttributes(
        name=name,
        subject_id=student_id,
        program=program,
        year=year,
        file_name=file.name,
    )

    try:
        lifecycle = build_lifecycle(config, session)
    except LedgerUnreachable as exc:
        console.print(f"[bold red]Ledger unreachable:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except JournalUnavailable as exc:
        console.print(f"[bold red]Journal unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)
    lifecycle.add_listener(_print_transition)

    console.print(f"[bold cyan]Minting proof for {file.name}...[/bold cyan]")
    try:
        outcome = lifecycle.submit(digest, attributes)
    except JournalUnavailable as exc:
        console.print(f"[bold red]Journal unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print()

    if outcome.succeeded:
        console.print(
            Panel(
                "\n".join([
                    "[bold green]Proof registered![/bold green]",
                    "",
                    f"[bold]Identifier:[/bold] {outcome.identifier}",
                    f"[bold]Token ID:[/bold]   {outcome.token_id}",
                    f"[bold]Metadata:[/bold]   {outcome.metadata_pointer}",
                    f"[bold]Tx:[/bold]         {outcome.tx_id}",
                ]),
                title="[bold]ProofVault[/bold]",
                border_style="green",
                padding=(1, 2),
            )
        )
        return

    if outcome.informational:
        console.print(
            f"[bold yellow]Already registered[/bold yellow] as token "
            f"#{outcome.token_id}: {outcome.identifier}"
        )
        return

    console.print(f"[bold red]{outcome.error_code}:[/bold red] {outcome.error_message}")
    raise typer.Exit(code=1)
