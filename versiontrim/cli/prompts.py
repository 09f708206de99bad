"""Interactive operator prompts."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from versiontrim.cli.reporter import RunReporter
from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.models.trim_operation import TrimOperation
from versiontrim.trim.scheduler import BatchWindow


class PromptConfirmation:
    """Asks the operator to type the confirmation phrase."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def request_token(self, prompt: str, policy: Optional[RetentionPolicy] = None) -> Optional[str]:
        RunReporter(self.console).display_policy(policy)
        self.console.print(f"[bold red]⚠️  {prompt}[/bold red]")
        return typer.prompt("Confirmation", default="", show_default=False)


class BatchPrompt:
    """Checkpoint between batches: continue or quit."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def __call__(self, window: BatchWindow, operation: TrimOperation) -> bool:
        self.console.print(
            f"[cyan]Batch {window.number} done[/cyan]: {window.end} of {operation.total_items} item(s) processed, "
            f"{operation.versions_deleted + operation.versions_planned} version(s) handled so far"
        )
        answer = typer.prompt("Continue with next batch? [C]ontinue/[Q]uit", default="C")
        return not answer.strip().lower().startswith("q")
