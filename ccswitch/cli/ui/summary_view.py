"""Rich rendering of provider summaries."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ccswitch.core.summary import ProviderSummary


def render_summary(console: Console, summary: ProviderSummary) -> None:
    """Print the detail view of one provider."""
    title = f"{summary.app_type.display_name} provider"
    if summary.active:
        title += " [green](active)[/green]"
    console.print(f"\n[bold green]{title}[/bold green]")

    meta = Table.grid(padding=(0, 1))
    meta.add_column(style="bold yellow")
    meta.add_column()
    meta.add_row("ID", escape(summary.id))
    meta.add_row("Name", escape(summary.name))
    if summary.website_url:
        meta.add_row("Website", escape(summary.website_url))
    console.print(meta)

    core = Table.grid(padding=(0, 1))
    core.add_column(style="bold cyan")
    core.add_column()
    core.add_row("API key", escape(summary.masked_secret or "Not set"))
    if summary.base_url:
        core.add_row("Base URL", escape(summary.base_url))
    if summary.model:
        core.add_row("Model", escape(summary.model))
    if summary.config_lines is not None:
        core.add_row("config.toml", f"{summary.config_lines} line(s)")
    console.print("\n[cyan]Core settings[/cyan]")
    console.print(core)

    if summary.notes or summary.sort_index is not None:
        optional = Table.grid(padding=(0, 1))
        optional.add_column(style="bold cyan")
        optional.add_column()
        if summary.notes:
            optional.add_row("Notes", escape(summary.notes))
        if summary.sort_index is not None:
            optional.add_row("Sort index", str(summary.sort_index))
        console.print("\n[cyan]Optional fields[/cyan]")
        console.print(optional)


def render_provider_list(console: Console, summaries: Sequence[ProviderSummary]) -> None:
    """Print one table row per provider; ``*`` marks the active one."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("", width=1)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("API key")
    table.add_column("Base URL")
    for summary in summaries:
        table.add_row(
            "[green]*[/green]" if summary.active else "",
            escape(summary.id),
            escape(summary.name),
            escape(summary.masked_secret or "-"),
            escape(summary.base_url or "-"),
        )
    console.print(table)


__all__ = ["render_provider_list", "render_summary"]
