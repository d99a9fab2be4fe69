"""Collection commands for BazaarTrack CLI.

Handles writing the config file, recording a single snapshot and running
the collector on its schedule.
"""

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bazaartrack.cli.main import load_settings

console = Console()


def _build_collector(settings):
    """Wire a collector from settings."""
    from bazaartrack.collector import Collector
    from bazaartrack.db.store import SnapshotStore
    from bazaartrack.feeds import HypixelFeed

    feed = HypixelFeed(
        api_key=settings.feed.api_key or None,
        base_url=settings.feed.base_url,
        timeout=settings.feed.timeout,
    )
    store = SnapshotStore(settings.storage.db_path)
    stale_after = settings.collector.interval_seconds * settings.collector.stale_after_intervals
    return Collector(feed, store, stale_after=stale_after)


def _print_run(run) -> None:
    """Render a collection run summary."""
    colors = {"success": "green", "empty": "yellow", "skipped": "yellow", "failed": "red"}
    color = colors.get(run.outcome, "white")

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Outcome", f"[{color}]{run.outcome}[/{color}]")
    table.add_row("Started", run.started_at.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("Fetched", str(run.items_fetched))
    table.add_row("Accepted", str(run.items_accepted))
    table.add_row("Rejected", str(run.items_rejected))
    if run.error:
        table.add_row("Error", f"[red]{run.error}[/red]")

    console.print(Panel(table, title="[bold]Collection Run[/bold]", border_style=color))


@click.command()
@click.option("--api-key", default=None, help="Hypixel API key (optional for the bazaar).")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between collections (default: 300).",
)
@click.option("--db-path", type=click.Path(dir_okay=False), default=None, help="Database file.")
@click.pass_context
def init(ctx: click.Context, api_key, interval, db_path) -> None:
    """Write a config file with the given settings.

    \b
    Examples:
      bazaartrack init
      bazaartrack init --interval 60 --db-path ./bazaar.db
    """
    from pathlib import Path
    from bazaartrack.config import save_config
    from bazaartrack.db.store import SnapshotStore
    from bazaartrack.errors import StoreUnavailable

    settings = load_settings(ctx)
    if api_key is not None:
        settings.feed.api_key = api_key
    if interval is not None:
        if interval <= 0:
            raise click.BadParameter("must be positive", param_hint="--interval")
        settings.collector.interval_seconds = interval
    if db_path is not None:
        settings.storage.db_path = Path(db_path).expanduser()

    config_path = ctx.find_root().obj.get("config_path")
    written = save_config(settings, Path(config_path) if config_path else None)
    console.print(f"[green]✓ Wrote configuration to {written}[/green]")

    try:
        store = SnapshotStore(settings.storage.db_path)
        tables = store.get_tables()
        missing = [t for t in SnapshotStore.REQUIRED_TABLES if t not in tables]
        if missing:
            raise StoreUnavailable(f"missing tables: {', '.join(missing)}")
        items, rows = len(store.item_ids()), store.count()
    except StoreUnavailable as e:
        console.print(Panel(
            f"[red]{e}[/red]",
            title="[bold red]Database Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    console.print(f"[green]✓ Database ready at {store.db_path}[/green]")
    console.print(f"[dim]{items} items, {rows} rows[/dim]")


@click.command()
@click.pass_context
def collect(ctx: click.Context) -> None:
    """Record one bazaar snapshot now.

    Exits with status 1 if the run failed.
    """
    settings = load_settings(ctx)
    collector = _build_collector(settings)
    run = collector.tick()
    _print_run(run)
    if run.outcome == "failed":
        raise SystemExit(1)


@click.command()
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Override the configured seconds between collections.",
)
@click.pass_context
def run(ctx: click.Context, interval) -> None:
    """Record bazaar snapshots on a fixed schedule until interrupted.

    \b
    Examples:
      bazaartrack run
      bazaartrack run --interval 60
    """
    from bazaartrack.collector import CollectionScheduler

    settings = load_settings(ctx)
    if interval is not None:
        if interval <= 0:
            raise click.BadParameter("must be positive", param_hint="--interval")
        settings.collector.interval_seconds = interval

    collector = _build_collector(settings)
    scheduler = CollectionScheduler(
        collector, interval_seconds=settings.collector.interval_seconds
    )
    console.print(
        f"[dim]Recording to {settings.storage.db_path} every "
        f"{settings.collector.interval_seconds:g}s. Press Ctrl-C to stop.[/dim]"
    )
    scheduler.run_forever()
