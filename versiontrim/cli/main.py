"""Main CLI entry point using Typer."""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from ..store.base import StoreError, VersionStore
from ..store.client import create_boto_client, session_timeout
from ..store.s3 import S3VersionStore
from ..trim.audit import AuditStorage
from ..trim.errors import RunBlocked, TrimError
from ..trim.resolver import load_name_filter, parse_name_filter
from ..trim.safety import POLICY_COOLDOWN, StaticConfirmation
from ..trim.sinks import SizeLog, VersionActionLog
from ..trim.state import RunStateStore
from ..trim.trimmer import TrimSettings, VersionTrimmer
from ..utils.logging import setup_logging
from .config import Config
from .prompts import BatchPrompt, PromptConfirmation
from .reporter import RunReporter

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="vtrim",
    help="Version Trimmer - reclaim storage by deleting old historical object versions",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


def show_quickstart():
    """Display quickstart guide for new users."""
    quickstart_content = """
# Version Trimmer - Quick Start

### 1. Preview what would be trimmed
The first run is always a dry run, whatever flags you pass.

```bash
vtrim run --older-than-days 45
```

### 2. Review the logs
```bash
vtrim run --action-log trim-actions.csv --size-log trim-sizes.csv
vtrim history
```

### 3. Delete for real
```bash
vtrim run --delete --collections "finance-docs,hr-docs"
```
You will be asked to type the confirmation phrase before anything is deleted.
"""
    console.print(Panel(Markdown(quickstart_content), border_style="cyan", padding=(1, 2)))


def _get_config() -> Config:
    global config
    if config is None:
        config = Config.load()
    return config


def build_store(cfg: Config) -> VersionStore:
    """Create the store session used for the whole run."""
    client = create_boto_client(
        service_name="s3",
        region_name=cfg.region,
        profile_name=cfg.aws_profile,
        endpoint_url=cfg.endpoint_url,
        timeout_seconds=session_timeout(cfg.max_batch_minutes),
    )
    return S3VersionStore(
        client,
        system_prefixes=tuple(cfg.system_prefixes),
        policy_bucket=cfg.policy_bucket,
        policy_key=cfg.policy_key,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Config file (default: ~/.versiontrim/config.yaml or $VERSIONTRIM_CONFIG)"
    ),
    storage_path: Optional[str] = typer.Option(
        None, "--storage-path", help="Directory for state and audit logs (default: ~/.versiontrim)"
    ),
    event_log: Optional[str] = typer.Option(None, "--event-log", help="Append plain-text event log to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Version Trimmer - reclaim storage by deleting old historical object versions."""
    global config

    try:
        config = Config.load(config_file)
    except ValueError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)

    config.update({"aws_profile": profile, "storage_path": storage_path, "event_log": event_log})

    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose, log_file=config.event_log)

    if no_color:
        console.no_color = True

    if ctx.invoked_subcommand is None:
        show_quickstart()


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"version-trimmer version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command("run")
def run_trim(
    older_than_days: Optional[int] = typer.Option(
        None, "--older-than-days", "-d", min=0, help="Trim historical versions older than this many days (default: 45)"
    ),
    collection: Optional[str] = typer.Option(None, "--collection", "-c", help="Trim a single collection"),
    collections: Optional[str] = typer.Option(
        None, "--collections", help="Comma-separated collection names to restrict discovery to"
    ),
    collections_file: Optional[str] = typer.Option(
        None, "--collections-file", help="Text file with one collection name per line"
    ),
    delete: bool = typer.Option(False, "--delete", help="Delete versions (ignored on the first run)"),
    confirm_token: Optional[str] = typer.Option(
        None, "--confirm-token", help="Pre-approved confirmation phrase for non-interactive runs"
    ),
    batch_percent: Optional[int] = typer.Option(None, "--batch-percent", help="Share of files per batch (default: 25)"),
    max_batch_minutes: Optional[int] = typer.Option(
        None, "--max-batch-minutes", min=1, help="Time budget per batch (default: 5)"
    ),
    auto_continue: Optional[bool] = typer.Option(
        None, "--auto-continue/--prompt-between-batches", help="Continue between batches without asking"
    ),
    bypass_batching: Optional[bool] = typer.Option(
        None, "--bypass-batching/--batching", help="Process all files in one unbounded batch"
    ),
    version_batch_size: Optional[int] = typer.Option(
        None, "--version-batch-size", min=1, max=1000, help="Versions per delete request (default: 50)"
    ),
    chunk_pause_ms: Optional[int] = typer.Option(
        None, "--chunk-pause-ms", min=0, help="Pause between delete requests in ms (default: 250)"
    ),
    max_retry_attempts: Optional[int] = typer.Option(
        None, "--max-retries", min=1, help="Attempts per delete request (default: 5)"
    ),
    action_log: Optional[str] = typer.Option(None, "--action-log", help="Append version actions to this CSV file"),
    size_log: Optional[str] = typer.Option(None, "--size-log", help="Append size snapshots to this CSV file"),
):
    """Trim historical versions older than the cutoff."""
    cfg = _get_config()
    cfg.update(
        {
            "older_than_days": older_than_days,
            "batch_percent": batch_percent,
            "max_batch_minutes": max_batch_minutes,
            "auto_continue": auto_continue,
            "bypass_batching": bypass_batching,
            "version_batch_size": version_batch_size,
            "chunk_pause_ms": chunk_pause_ms,
            "max_retry_attempts": max_retry_attempts,
            "action_log": action_log,
            "size_log": size_log,
        }
    )

    try:
        name_filter = parse_name_filter(collections)
        if collections_file:
            name_filter += [n for n in load_name_filter(collections_file) if n not in name_filter]

        settings = TrimSettings(
            older_than_days=cfg.older_than_days,
            collection=collection,
            name_filter=name_filter,
            delete=delete,
            batch_percent=cfg.batch_percent,
            max_batch_minutes=cfg.max_batch_minutes,
            auto_continue=cfg.auto_continue,
            bypass_batching=cfg.bypass_batching,
            version_batch_size=cfg.version_batch_size,
            chunk_pause_ms=cfg.chunk_pause_ms,
            max_retry_attempts=cfg.max_retry_attempts,
        )

        trimmer = VersionTrimmer(
            store=build_store(cfg),
            state_store=RunStateStore(cfg.state_file),
            action_log=VersionActionLog(cfg.action_log),
            size_log=SizeLog(cfg.size_log),
            audit_storage=AuditStorage(cfg.audit_dir),
        )

        confirmation = StaticConfirmation(confirm_token) if confirm_token is not None else PromptConfirmation(console)
        operation = trimmer.run(settings, confirmation=confirmation, checkpoint=BatchPrompt(console))

        RunReporter(console).display(operation)

    except RunBlocked as e:
        console.print(f"[yellow]⏸ Run blocked: {e}[/yellow]")
        raise typer.Exit(code=1)
    except TrimError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except StoreError as e:
        console.print(f"[red]✗ Object store error: {e}[/red]")
        raise typer.Exit(code=3)
    except OSError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]✗ Unexpected error: {e}[/red]")
        logger.exception("Error in run command")
        raise typer.Exit(code=2)


@app.command()
def status():
    """Show run state and whether the policy cooldown is active."""
    cfg = _get_config()
    state = RunStateStore(cfg.state_file).load()

    if state is None:
        console.print("[yellow]No completed run recorded - the next run will be a dry run[/yellow]")
    else:
        console.print(f"Last completed run: {state.last_run_utc.strftime('%Y-%m-%d %H:%M:%S UTC')}")

    if not cfg.policy_bucket:
        return

    try:
        policy = build_store(cfg).get_retention_policy()
    except StoreError as e:
        console.print(f"[red]✗ Object store error: {e}[/red]")
        raise typer.Exit(code=3)

    if policy is not None and policy.last_modified_utc is not None:
        elapsed = datetime.now(timezone.utc) - policy.last_modified_utc
        if elapsed < POLICY_COOLDOWN:
            remaining = int((POLICY_COOLDOWN - elapsed).total_seconds() // 60) + 1
            console.print(f"[yellow]Policy cooldown active: runs are blocked for ~{remaining} more minute(s)[/yellow]")
        else:
            console.print("[green]✓ Policy cooldown clear[/green]")


@app.command()
def history(
    since: Optional[str] = typer.Option(None, "--since", help="Only runs started on/after this date (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", help="Only runs started on/before this date (YYYY-MM-DD)"),
):
    """List recorded trim runs."""
    cfg = _get_config()

    try:
        since_dt = datetime.strptime(since, "%Y-%m-%d").replace(tzinfo=timezone.utc) if since else None
        until_dt = (
            datetime.strptime(until, "%Y-%m-%d").replace(hour=23, minute=59, second=59, tzinfo=timezone.utc)
            if until
            else None
        )
    except ValueError:
        console.print("[red]✗ Dates must use YYYY-MM-DD[/red]")
        raise typer.Exit(code=1)

    runs = AuditStorage(cfg.audit_dir).query_runs(since=since_dt, until=until_dt)
    RunReporter(console).display_history(runs)


# Policy commands group
policy_app = typer.Typer(help="Tenant retention policy commands")
app.add_typer(policy_app, name="policy")


@policy_app.command("show")
def policy_show():
    """Show the tenant retention policy."""
    cfg = _get_config()

    try:
        policy = build_store(cfg).get_retention_policy()
    except StoreError as e:
        console.print(f"[red]✗ Object store error: {e}[/red]")
        raise typer.Exit(code=3)

    RunReporter(console).display_policy(policy)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
