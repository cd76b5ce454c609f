"""Main CLI entry point for ccswitch."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ccswitch import __version__
from ccswitch.cli.provider_cli import provider_group
from ccswitch.core.config import CONFIG_FILE_NAME, JsonFileBackend, get_config_dir
from ccswitch.utils.log import enable_file_logging, get_logger

console = Console()
logger = get_logger()


@click.group()
@click.version_option(version=__version__, prog_name="ccswitch")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    envvar="CCSWITCH_CONFIG_DIR",
    help="Directory holding config.json (default: ~/.cc-switch).",
)
@click.option("--verbose", is_flag=True, help="Write debug logs under <config-dir>/logs.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Optional[str], verbose: bool) -> None:
    """Manage provider profiles for Claude Code, Codex and Gemini CLI."""
    ctx.ensure_object(dict)
    directory = Path(config_dir).expanduser() if config_dir else get_config_dir()
    ctx.obj["config_dir"] = directory
    ctx.obj["backend"] = JsonFileBackend(directory / CONFIG_FILE_NAME)
    if verbose:
        log_file = enable_file_logging(directory)
        logger.info("[cli] Verbose logging enabled", extra={"log_file": str(log_file)})


cli.add_command(provider_group)


@cli.command(name="version")
def version_cmd() -> None:
    """Show version information."""
    console.print(f"ccswitch version {__version__}")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except (RuntimeError, ValueError, TypeError, OSError) as e:
        console.print(f"[red]Fatal error: {escape(str(e))}[/red]")
        logger.warning(
            "[cli] Fatal error in main CLI entrypoint: %s: %s",
            type(e).__name__,
            e,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
