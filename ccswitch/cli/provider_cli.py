"""`ccswitch provider` commands."""

from __future__ import annotations

from typing import List

import click
from rich.console import Console
from rich.markup import escape

from ccswitch.core.config import AppType, Provider
from ccswitch.core.errors import ProfileInvariantError, ValidationError
from ccswitch.core.provider_flow import (
    FlowOutcome,
    InputSource,
    add_provider,
    delete_provider,
    edit_provider,
    switch_provider,
)
from ccswitch.core.store import ProfileStore
from ccswitch.core.summary import ProviderSummary, build_summary, display_order_key
from ccswitch.cli.ui.prompts import PromptToolkitInput
from ccswitch.cli.ui.summary_view import render_provider_list, render_summary

console = Console()

_APP_CHOICE = click.Choice([app_type.value for app_type in AppType], case_sensitive=False)


def app_option(default: str = AppType.CLAUDE.value):
    return click.option(
        "--app",
        "app_name",
        type=_APP_CHOICE,
        default=default,
        show_default=True,
        help="Tool family the provider belongs to.",
    )


def make_input() -> InputSource:
    """Input source used by interactive commands."""
    return PromptToolkitInput()


def _store(ctx: click.Context) -> ProfileStore:
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        obj["store"] = ProfileStore.open(obj["backend"])
    return obj["store"]


def _summaries(store: ProfileStore, app_type: AppType) -> List[ProviderSummary]:
    active_id = store.active_id(app_type)
    providers = sorted(store.list(app_type), key=display_order_key)
    return [build_summary(p, active=p.id == active_id) for p in providers]


def _value(outcome: FlowOutcome[Provider]) -> Provider:
    if outcome.value is None:
        raise ProfileInvariantError(f"Flow finished {outcome.status.value} without a provider.")
    return outcome.value


def _finish(outcome: FlowOutcome[Provider], store: ProfileStore, success: str) -> None:
    """Report a flow outcome; failures exit with status 1."""
    if outcome.is_cancelled:
        console.print("[yellow]Cancelled. Nothing was changed.[/yellow]")
        return
    if outcome.is_failed:
        error = outcome.error
        if isinstance(error, ValidationError) and error.fallback:
            console.print("[yellow]Previous config.toml kept:[/yellow]")
            console.print(escape(error.fallback), style="dim")
        raise click.ClickException(str(error))

    provider = _value(outcome)
    console.print(f"[green]✓ {success}[/green]")
    active_id = store.active_id(provider.app_type)
    render_summary(console, build_summary(provider, active=provider.id == active_id))


@click.group(name="provider")
def provider_group() -> None:
    """Create, edit, delete and switch provider profiles."""


@provider_group.command(name="list")
@click.option(
    "--app",
    "app_name",
    type=_APP_CHOICE,
    default=None,
    help="Only list providers of this tool family.",
)
@click.pass_context
def list_cmd(ctx: click.Context, app_name: str | None) -> None:
    """List configured providers (``*`` marks the active one)."""
    store = _store(ctx)
    app_types = [AppType(app_name)] if app_name else list(AppType)
    for app_type in app_types:
        console.print(f"\n[bold]{app_type.display_name}[/bold] ({app_type.value})")
        summaries = _summaries(store, app_type)
        if not summaries:
            console.print("  • No providers configured")
            continue
        render_provider_list(console, summaries)


@provider_group.command(name="show")
@click.argument("provider_id")
@app_option()
@click.pass_context
def show_cmd(ctx: click.Context, provider_id: str, app_name: str) -> None:
    """Show one provider."""
    store = _store(ctx)
    app_type = AppType(app_name)
    summary = next((s for s in _summaries(store, app_type) if s.id == provider_id), None)
    if summary is None:
        raise click.ClickException(
            f"Provider '{provider_id}' does not exist for {app_type.value}."
        )
    render_summary(console, summary)


@provider_group.command(name="current")
@app_option()
@click.pass_context
def current_cmd(ctx: click.Context, app_name: str) -> None:
    """Show the active provider."""
    store = _store(ctx)
    app_type = AppType(app_name)
    provider = store.get_active(app_type)
    if provider is None:
        console.print(f"[yellow]No active provider for {app_type.display_name}.[/yellow]")
        return
    render_summary(console, build_summary(provider, active=True))


@provider_group.command(name="add")
@app_option()
@click.pass_context
def add_cmd(ctx: click.Context, app_name: str) -> None:
    """Interactively add a provider."""
    store = _store(ctx)
    outcome = add_provider(store, make_input(), AppType(app_name))
    _finish(outcome, store, "Provider added")


@provider_group.command(name="edit")
@click.argument("provider_id")
@app_option()
@click.pass_context
def edit_cmd(ctx: click.Context, provider_id: str, app_name: str) -> None:
    """Interactively edit a provider. Blank input clears optional fields."""
    store = _store(ctx)
    outcome = edit_provider(store, make_input(), AppType(app_name), provider_id)
    _finish(outcome, store, "Provider updated")


@provider_group.command(name="delete")
@click.argument("provider_id")
@app_option()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete_cmd(ctx: click.Context, provider_id: str, app_name: str, yes: bool) -> None:
    """Delete a provider."""
    store = _store(ctx)
    outcome = delete_provider(store, None if yes else make_input(), AppType(app_name), provider_id)
    if outcome.is_ok:
        removed = _value(outcome)
        console.print(
            f"[green]✓ Deleted provider '{escape(removed.name)}' "
            f"({escape(removed.id)})[/green]"
        )
        return
    if outcome.is_cancelled:
        console.print("[yellow]Cancelled. Nothing was changed.[/yellow]")
        return
    raise click.ClickException(str(outcome.error))


@provider_group.command(name="switch")
@click.argument("provider_id")
@app_option()
@click.pass_context
def switch_cmd(ctx: click.Context, provider_id: str, app_name: str) -> None:
    """Make a provider the active one."""
    store = _store(ctx)
    outcome = switch_provider(store, AppType(app_name), provider_id)
    if outcome.is_failed:
        raise click.ClickException(str(outcome.error))
    console.print(
        f"[green]✓ Switched {AppType(app_name).display_name} to "
        f"'{escape(_value(outcome).name)}'[/green]"
    )
