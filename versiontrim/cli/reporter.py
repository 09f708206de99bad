"""Run summary formatting and display."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.models.trim_operation import TrimOperation


def format_bytes(value: Optional[int]) -> str:
    """Format a byte count as MB, keeping the sign."""
    if value is None:
        return "n/a"
    return f"{value / (1024 * 1024):,.2f} MB"


class RunReporter:
    """Format and display trim run summaries."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize run reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display_policy(self, policy: Optional[RetentionPolicy]) -> None:
        if policy is None:
            self.console.print("[yellow]No tenant retention policy configured[/yellow]")
            return

        table = Table(title="Retention Policy", show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("Auto expiration", "enabled" if policy.auto_expiration_enabled else "disabled")
        table.add_row("Max major versions", str(policy.max_major_versions) if policy.max_major_versions is not None else "-")
        table.add_row("Expire after days", str(policy.expire_after_days) if policy.expire_after_days is not None else "-")
        changed = policy.last_modified_utc.strftime("%Y-%m-%d %H:%M:%S UTC") if policy.last_modified_utc else "unknown"
        table.add_row("Last changed", changed)
        self.console.print(table)

    def display(self, operation: TrimOperation) -> None:
        """Display the end-of-run summary."""
        mode_style = "yellow" if operation.is_dry_run else "red"
        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Version Trim Summary[/bold]\n"
                f"Run: {operation.run_id}\n"
                f"Mode: [{mode_style}]{operation.mode.value}[/{mode_style}]   Status: {operation.status.value}\n"
                f"Cutoff: {operation.cutoff.strftime('%Y-%m-%d %H:%M:%S UTC')} ({operation.older_than_days} days)",
                style="cyan",
            )
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="yellow")

        table.add_row("Files discovered", str(operation.total_items))
        table.add_row("Files scanned", str(operation.files_scanned))
        table.add_row("Files with eligible versions", str(operation.files_with_eligible))
        if operation.is_dry_run:
            table.add_row("Versions planned", str(operation.versions_planned))
        else:
            table.add_row("Versions deleted", str(operation.versions_deleted))
        table.add_row("Failed deletions", str(operation.versions_failed))
        table.add_row("Policy-blocked versions", str(operation.versions_policy_blocked))
        table.add_row("Items skipped (error)", str(operation.items_skipped_error))
        table.add_row("Batches", str(operation.batches_run))
        table.add_row("Size before", format_bytes(operation.size_before))
        table.add_row("Size after", format_bytes(operation.size_after))
        table.add_row("Reclaimed", format_bytes(operation.reclaimed_bytes))
        self.console.print(table)

        if operation.is_dry_run:
            self.console.print("[yellow]Dry run: no versions were deleted.[/yellow]")
        if operation.versions_failed:
            self.console.print(f"[red]✗ {operation.versions_failed} version(s) failed to delete; see logs[/red]")

    def display_history(self, runs: list[dict]) -> None:
        if not runs:
            self.console.print("[yellow]No recorded runs[/yellow]")
            return

        table = Table(title="Trim Runs", show_header=True, header_style="bold magenta")
        table.add_column("Started", style="cyan")
        table.add_column("Run ID")
        table.add_column("Mode")
        table.add_column("Status")
        table.add_column("Files", justify="right")
        table.add_column("Deleted/Planned", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Reclaimed", justify="right")

        for data in runs:
            run = data["run"]
            handled = run["versions_planned"] if run["mode"] == "DryRun" else run["versions_deleted"]
            table.add_row(
                run["started_at"][:19].replace("T", " "),
                run["run_id"],
                run["mode"],
                run["status"],
                str(run["files_scanned"]),
                str(handled),
                str(run["versions_failed"]),
                format_bytes(run.get("reclaimed_bytes")),
            )
        self.console.print(table)
