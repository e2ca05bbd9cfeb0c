"""
Rendering functions for tagsync output.

This module handles all pretty-printing and table formatting.
Services return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional

from .domain.component import FrameworkComponent
from .domain.operation import SyncSummary, StageStatus

console = Console()

STATUS_STYLES = {
    StageStatus.SUCCESS: "green",
    StageStatus.SKIPPED: "dim",
    StageStatus.FAILED: "red",
    StageStatus.DRY_RUN: "yellow",
}


def render_components_table(components: List[FrameworkComponent], title: Optional[str] = None) -> None:
    """
    Render discovered components as a pretty table.

    Args:
        components: Components found by the locator
        title: Optional table title
    """
    if not components:
        console.print("[yellow]No components found.[/yellow]")
        return

    table = Table(
        title=title or "Components",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    table.add_column("Component", style="cyan")
    table.add_column("Namespace", style="green")
    table.add_column("Monorepo subtree", style="dim")
    table.add_column("Mirror", style="dim")

    for component in components:
        table.add_row(
            component.name,
            component.namespace,
            component.source_path,
            component.target_path,
        )

    console.print(table)


def render_summary_table(summary: SyncSummary) -> None:
    """
    Render the per-component outcome of a sync run.

    Args:
        summary: Result returned by SyncService
    """
    if not summary.details:
        console.print("[yellow]Nothing to report.[/yellow]")
        return

    title = f"{summary.operation.capitalize()} {summary.tag or ''}".strip()
    if summary.dry_run:
        title += " (dry run)"

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Action")
    table.add_column("Commits", justify="right")
    table.add_column("Tag message", style="dim")

    for detail in summary.details:
        style = STATUS_STYLES.get(detail.status, "white")
        table.add_row(
            detail.component.name,
            f"[{style}]{detail.status.value}[/{style}]",
            detail.action,
            str(detail.commits_replayed),
            detail.message or detail.error or "",
        )

    console.print(table)
    console.print(
        f"[bold]{summary.total}[/bold] components: "
        f"[green]{summary.successful} ok[/green], "
        f"[dim]{summary.skipped} skipped[/dim], "
        f"[red]{summary.failed} failed[/red]"
    )
