"""Rich terminal reporter — per-record table and run summary."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from keysync.sync.models import OutcomeStatus, SyncResult, SyncState

_STATUS_STYLE = {
    OutcomeStatus.APPLIED: "bold white on green",
    OutcomeStatus.FAILED: "bold white on red",
    OutcomeStatus.PLANNED: "bold black on bright_cyan",
    OutcomeStatus.MISSING: "bold black on yellow",
    OutcomeStatus.NOOP: "dim",
    OutcomeStatus.SKIPPED_HOST: "dim",
}


def _status_pill(status: OutcomeStatus) -> Text:
    return Text(f" {status.value.upper()} ", style=_STATUS_STYLE.get(status, ""))


def render(
    result: SyncResult,
    *,
    show_summary: bool = True,
    show_skipped: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Print a sync result to the terminal using Rich."""
    console = console or Console(stderr=True)

    shown = [
        o for o in result.outcomes
        if show_skipped or o.status != OutcomeStatus.SKIPPED_HOST
    ]

    console.print()
    if shown:
        table = Table(
            title=f"keysync {result.mode.value} sync",
            show_lines=False,
            title_style="bold",
            border_style="dim",
        )
        table.add_column("Status", justify="center", width=14)
        table.add_column("Action", style="cyan")
        table.add_column("User", style="magenta")
        table.add_column("Group", style="green")
        table.add_column("Kind")
        table.add_column("Detail", style="dim")

        for outcome in shown:
            table.add_row(
                _status_pill(outcome.status),
                outcome.action or "-",
                outcome.username or outcome.record.hash,
                outcome.record.project or "-",
                outcome.record.kind.value,
                outcome.detail,
            )
        console.print(table)
    else:
        console.print("[dim]No changes addressed to this host.[/dim]")

    if show_summary:
        _print_summary(console, result)

    console.print()
    if result.state == SyncState.FAILED:
        console.print(f"[bold red]❌ Sync failed — checkpoint unchanged: {result.error}[/bold red]")
    elif result.failed:
        console.print(
            f"[bold yellow]⚠️  {len(result.failed)} record(s) could not be applied "
            "and will not be retried.[/bold yellow]"
        )
    elif result.dry_run:
        console.print("[bold cyan]Dry run — nothing applied, checkpoint unchanged.[/bold cyan]")
    else:
        console.print("[bold green]✅ Host is in sync.[/bold green]")


def _print_summary(console: Console, result: SyncResult) -> None:
    console.print()
    console.print(f"[dim]Mode:[/dim]        {result.mode.value}")
    console.print(f"[dim]Range:[/dim]       {result.base or '-'} → {result.head or '-'}")
    console.print(f"[dim]Records:[/dim]     {result.total_records}")
    console.print(f"[dim]Applied:[/dim]     {len(result.applied)}")
    console.print(f"[dim]Failed:[/dim]      {len(result.failed)}")
    console.print(
        f"[dim]Skipped:[/dim]     {len(result.with_status(OutcomeStatus.SKIPPED_HOST))}"
    )
    console.print(f"[dim]Checkpoint:[/dim]  {'saved' if result.checkpoint_saved else 'unchanged'}")
    console.print(f"[dim]Duration:[/dim]    {result.duration_ms:.0f}ms")
