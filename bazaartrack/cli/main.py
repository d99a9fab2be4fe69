"""Main CLI entry point for BazaarTrack.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    # Collection
    "init": "bazaartrack.cli.collect",
    "collect": "bazaartrack.cli.collect",
    "run": "bazaartrack.cli.collect",
    # Analytics
    "history": "bazaartrack.cli.query",
    "latest": "bazaartrack.cli.query",
    "stats": "bazaartrack.cli.query",
    "trends": "bazaartrack.cli.query",
    "volatility": "bazaartrack.cli.query",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(level: str = "INFO") -> None:
    """Send log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def load_settings(ctx: click.Context):
    """Load configuration for a command and set up logging to match."""
    from pathlib import Path
    from rich.panel import Panel
    from bazaartrack.config import load_config

    obj = ctx.find_root().obj or {}
    config_path = obj.get("config_path")
    try:
        settings = load_config(Path(config_path) if config_path else None)
    except ValueError as e:
        console.print(Panel(
            f"[red]{e}[/red]",
            title="[bold red]Configuration Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    setup_logging("DEBUG" if obj.get("verbose") else settings.app.log_level)
    return settings


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="bazaartrack")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml (default: ~/.config/bazaartrack/config.toml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """BazaarTrack - Hypixel SkyBlock Bazaar price tracker.

    Records bazaar snapshots on a schedule and analyzes their history.

    \b
    Quick Start:
      bazaartrack collect              # Record one snapshot now
      bazaartrack run                  # Record every 5 minutes
      bazaartrack trends ENCHANTED_IRON
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
