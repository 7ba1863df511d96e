"""keysync CLI — Typer application with sync, status, reset, init, grant and revoke."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from keysync import __version__

app = typer.Typer(
    name="keysync",
    help="Reconcile git-declared access grants with local users and groups.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)


def _load(config: Optional[str], *, require_remote: bool = True):
    """Load (and optionally validate) config, exit 2 on failure."""
    from keysync.config.loader import ConfigError, load_config, validate

    try:
        cfg = load_config(Path.cwd(), config)
        if require_remote:
            validate(cfg)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    return cfg


# ── sync ──────────────────────────────────────────────────────────────────────


@app.command()
def sync(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .keysync.toml"),
    host: Optional[str] = typer.Option(None, "--host", help="Provider name this host answers to"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change without applying it"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug logging"),
) -> None:
    """Run one reconciliation: full resync without a checkpoint, else incremental."""
    from keysync.git.adapter import RemoteStore
    from keysync.identity.accounts import HostAccounts
    from keysync.logs import run_logger, setup_logging
    from keysync.output import json_report, terminal
    from keysync.state.checkpoint import CheckpointStore
    from keysync.state.lock import LockError, RunLock
    from keysync.sync.engine import Reconciler
    from keysync.sync.models import SyncState

    cfg = _load(config)

    # --- CLI overrides ---
    if host:
        cfg.host.identity = host
    if format:
        if format not in ("terminal", "json"):
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format  # type: ignore[assignment]

    setup_logging(cfg.logging, verbose=debug)
    log = run_logger(cfg.logging.target)

    if verbose or debug:
        console.print(f"[dim]Host identity: {cfg.host.identity}[/dim]")
        console.print(f"[dim]Branch: {cfg.remote.branch}[/dim]")
        console.print(f"[dim]Checkpoint: {cfg.state.checkpoint}[/dim]")

    try:
        with RunLock(cfg.state.lock_file), RemoteStore(
            cfg.remote.base_url,
            cfg.remote.token,
            user_agent=cfg.remote.user_agent,
            timeout=cfg.remote.timeout,
        ) as store:
            reconciler = Reconciler(
                store,
                CheckpointStore(cfg.state.checkpoint),
                HostAccounts(cfg.identity, logger=log),
                cfg.host.identity,
                branch=cfg.remote.branch,
                logger=log,
            )
            result = reconciler.run(dry_run=dry_run)
    except LockError as exc:
        console.print(f"[bold red]Lock error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    # --- Output ---
    if cfg.output.format == "json":
        print(json_report.render(result))
    else:
        terminal.render(
            result,
            show_summary=cfg.output.show_summary,
            show_skipped=verbose or debug,
            console=console,
        )

    if result.state == SyncState.FAILED:
        raise typer.Exit(code=1)


# ── status ────────────────────────────────────────────────────────────────────


@app.command()
def status(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .keysync.toml"),
) -> None:
    """Show the stored checkpoint and the settings a run would use."""
    from keysync.state.checkpoint import CheckpointError, CheckpointStore

    cfg = _load(config, require_remote=False)
    store = CheckpointStore(cfg.state.checkpoint)
    try:
        commit = store.load()
    except CheckpointError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    console.print(f"[dim]Remote:[/dim]      {cfg.remote.base_url or '(unset)'}")
    console.print(f"[dim]Branch:[/dim]      {cfg.remote.branch}")
    console.print(f"[dim]Host:[/dim]        {cfg.host.identity}")
    if commit:
        console.print(f"[dim]Checkpoint:[/dim]  {commit}")
    else:
        console.print("[dim]Checkpoint:[/dim]  [yellow]none — next sync is a full resync[/yellow]")


# ── reset ─────────────────────────────────────────────────────────────────────


@app.command()
def reset(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .keysync.toml"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Forget the checkpoint so the next sync performs a full resync."""
    from keysync.state.checkpoint import CheckpointError, CheckpointStore

    cfg = _load(config, require_remote=False)
    if not yes:
        typer.confirm("Clear the checkpoint and force a full resync?", abort=True)

    try:
        existed = CheckpointStore(cfg.state.checkpoint).clear()
    except CheckpointError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if existed:
        console.print(f"[green]✓[/green] Cleared checkpoint {cfg.state.checkpoint}")
    else:
        console.print("[dim]No checkpoint stored — nothing to clear.[/dim]")


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .keysync.toml in the current directory."""
    from keysync.config.defaults import DEFAULT_TOML
    from keysync.config.loader import CONFIG_FILENAME

    config_path = Path.cwd() / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── grant / revoke ────────────────────────────────────────────────────────────


def _accounts(config: Optional[str]):
    from keysync.identity.accounts import HostAccounts
    from keysync.logs import run_logger, setup_logging

    cfg = _load(config, require_remote=False)
    setup_logging(cfg.logging)
    return HostAccounts(cfg.identity, logger=run_logger(cfg.logging.target))


@app.command()
def grant(
    user: str = typer.Argument(..., help="Username"),
    group: str = typer.Argument(..., help="Group to add the user to"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .keysync.toml"),
) -> None:
    """Add a user to a group on this host, creating the user if needed."""
    from keysync.identity.accounts import IdentityError

    accounts = _accounts(config)
    try:
        changed = accounts.add_user_to_group(user, group)
    except IdentityError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1) from exc
    if changed:
        console.print(f"[green]✓[/green] Added {user} to {group}")
    else:
        console.print(f"[dim]{user} is already in {group}[/dim]")


@app.command()
def revoke(
    user: str = typer.Argument(..., help="Username"),
    group: str = typer.Argument(..., help="Group to remove the user from"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .keysync.toml"),
) -> None:
    """Remove a user from a group on this host."""
    from keysync.identity.accounts import IdentityError

    accounts = _accounts(config)
    try:
        changed = accounts.remove_user_from_group(user, group)
    except IdentityError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1) from exc
    if changed:
        console.print(f"[green]✓[/green] Removed {user} from {group}")
    else:
        console.print(f"[dim]{user} is not in {group}[/dim]")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"keysync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """keysync — reconcile git-declared access grants with local users and groups."""
