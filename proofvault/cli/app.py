"""Main Typer application — imports and registers all CLI commands.

Entry point: ``proofvault`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer
from rich.console import Console

from proofvault.cli.commands.authority import authority_cmd
from proofvault.cli.commands.hash_cmd import hash_cmd
from proofvault.cli.commands.journal import journal_cmd
from proofvault.cli.commands.mint import mint_cmd
from proofvault.cli.commands.qr import qr_cmd
from proofvault.cli.commands.verify import verify_cmd
from proofvault.cli.runtime import configure_logging
from proofvault.config import VaultConfig
from proofvault.core.production_guard import (
    ProductionConfigError,
    enforce_production_constraints,
)

app = typer.Typer(
    name="proofvault",
    help="ProofVault: register and verify document proofs on an append-only ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(ctx: typer.Context) -> None:
    """Load configuration, set up logging, and run the production guard."""
    config = VaultConfig()
    configure_logging(config.log_level)
    try:
        enforce_production_constraints(config)
    except ProductionConfigError as exc:
        Console(stderr=True).print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)
    ctx.obj = config


# Register subcommands
app.command(name="hash", help="Print a document's digest and identifier.")(hash_cmd)
app.command(name="mint", help="Publish metadata and register a proof.")(mint_cmd)
app.command(name="verify", help="Verify a proof by identifier, payload, or file.")(verify_cmd)
app.command(name="qr", help="Print the QR transport payload for a proof.")(qr_cmd)
app.command(name="authority", help="Show the recorded authority.")(authority_cmd)
app.command(name="journal", help="List or verify the lifecycle journal.")(journal_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
