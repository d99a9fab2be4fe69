"""Analytics commands for BazaarTrack CLI.

Thin renderers over the query tools: each command fetches a payload and
prints it as a rich table, or as raw JSON with ``--json``.
"""

import json

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bazaartrack.cli.main import load_settings

console = Console()

json_option = click.option("--json", "as_json", is_flag=True, help="Print the raw JSON payload.")


def _fmt(value, digits: int = 2) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.{digits}f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def _pct(value) -> str:
    if value is None:
        return "[dim]-[/dim]"
    color = "green" if value > 0 else "red" if value < 0 else "white"
    return f"[{color}]{value:+.2f}%[/{color}]"


def _emit(payload: dict, as_json: bool) -> bool:
    """Print errors or raw JSON. Returns True if the caller should render."""
    if as_json:
        console.print_json(json.dumps(payload))
        if not payload["success"]:
            raise SystemExit(1)
        return False

    if not payload["success"]:
        body = f"[red]{payload['message']}[/red]"
        if payload.get("error"):
            body += f"\n\n[dim]{payload['error']}[/dim]"
        console.print(Panel(
            body,
            title=f"[bold red]Error ({payload['kind']})[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)
    return True


@click.command()
@click.argument("item_id")
@click.option("-s", "--start", required=True, help="Start date/time, ISO-8601 (inclusive).")
@click.option("-e", "--end", required=True, help="End date/time, ISO-8601 (exclusive).")
@click.option(
    "-i", "--interval",
    default="hourly",
    type=click.Choice(["raw", "hourly", "daily"]),
    help="Bucket size (default: hourly).",
)
@json_option
@click.pass_context
def history(ctx: click.Context, item_id: str, start: str, end: str, interval: str, as_json: bool) -> None:
    """Show price history for an item.

    \b
    Examples:
      bazaartrack history ENCHANTED_IRON -s 2025-03-01 -e 2025-03-08
      bazaartrack history BOOSTER_COOKIE -s 2025-03-01 -e 2025-04-01 -i daily
    """
    from bazaartrack.tools import get_history

    settings = load_settings(ctx)
    payload = get_history(
        item_id, start, end, interval,
        db_path=settings.storage.db_path, dev_mode=settings.app.dev_mode,
    )
    if not _emit(payload, as_json):
        return

    points = payload["data"]
    if not points:
        console.print(f"[yellow]No data for {item_id.upper()} in that range[/yellow]")
        return

    table = Table(title=f"{item_id.upper()} ({interval})")
    table.add_column("Time", style="cyan")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_column("Buy Vol", justify="right")
    table.add_column("Sell Vol", justify="right")
    for p in points:
        table.add_row(
            p["timestamp"],
            _fmt(p["buy_price"]),
            _fmt(p["sell_price"]),
            _fmt(p["buy_volume"]),
            _fmt(p["sell_volume"]),
        )
    console.print(table)


@click.command()
@click.option("-n", "--limit", type=int, default=None, help="Show at most N items.")
@json_option
@click.pass_context
def latest(ctx: click.Context, limit, as_json: bool) -> None:
    """Show the latest recorded prices for every item."""
    from bazaartrack.tools import get_latest

    settings = load_settings(ctx)
    payload = get_latest(db_path=settings.storage.db_path, dev_mode=settings.app.dev_mode)
    if limit is not None and payload["success"]:
        payload["data"] = payload["data"][:limit]
    if not _emit(payload, as_json):
        return

    rows = payload["data"]
    if not rows:
        console.print("[yellow]Nothing recorded yet. Run 'bazaartrack collect' first.[/yellow]")
        return

    table = Table(title="Latest Bazaar Prices")
    table.add_column("Item", style="cyan")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_column("Buy Vol", justify="right")
    table.add_column("Sell Vol", justify="right")
    table.add_column("Recorded", style="dim")
    for r in rows:
        table.add_row(
            r["item_id"],
            _fmt(r["buy_price"]),
            _fmt(r["sell_price"]),
            _fmt(r["buy_volume"]),
            _fmt(r["sell_volume"]),
            r["timestamp"],
        )
    console.print(table)


@click.command()
@click.argument("item_id")
@click.option(
    "-p", "--period",
    default="week",
    type=click.Choice(["day", "week", "month", "year"]),
    help="Lookback period (default: week).",
)
@json_option
@click.pass_context
def stats(ctx: click.Context, item_id: str, period: str, as_json: bool) -> None:
    """Show price and volume statistics for an item."""
    from bazaartrack.tools import get_stats

    settings = load_settings(ctx)
    payload = get_stats(
        item_id, period, db_path=settings.storage.db_path, dev_mode=settings.app.dev_mode
    )
    if not _emit(payload, as_json):
        return

    s = payload["data"]
    if s["avg_buy_price"] is None:
        console.print(f"[yellow]No data for {item_id.upper()} in the last {period}[/yellow]")
        return

    table = Table(title=f"{item_id.upper()} - last {period}")
    table.add_column("", style="dim")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_row("Min", _fmt(s["min_buy_price"]), _fmt(s["min_sell_price"]))
    table.add_row("Max", _fmt(s["max_buy_price"]), _fmt(s["max_sell_price"]))
    table.add_row("Avg", _fmt(s["avg_buy_price"]), _fmt(s["avg_sell_price"]))
    table.add_row("Volume", _fmt(s["total_buy_volume"]), _fmt(s["total_sell_volume"]))
    console.print(table)


@click.command()
@click.argument("item_id")
@click.option(
    "-p", "--period",
    default="week",
    type=click.Choice(["day", "week", "month", "year"]),
    help="Lookback period (default: week).",
)
@click.option("--rows", type=int, default=12, help="Number of recent buckets to show.")
@json_option
@click.pass_context
def trends(ctx: click.Context, item_id: str, period: str, rows: int, as_json: bool) -> None:
    """Show moving averages and price changes for an item."""
    from bazaartrack.tools import get_trends

    settings = load_settings(ctx)
    payload = get_trends(
        item_id, period, db_path=settings.storage.db_path, dev_mode=settings.app.dev_mode
    )
    if not _emit(payload, as_json):
        return

    summary = payload["data"]["trends"]
    if summary is None:
        console.print(f"[yellow]No data for {item_id.upper()} in the last {period}[/yellow]")
        return

    table = Table(title=f"{item_id.upper()} - hourly trend")
    table.add_column("Hour", style="cyan")
    table.add_column("Buy", justify="right")
    table.add_column("MA6", justify="right")
    table.add_column("MA24", justify="right")
    table.add_column("6h", justify="right")
    table.add_column("24h", justify="right")
    for p in payload["data"]["history"][-rows:]:
        table.add_row(
            p["timestamp"],
            _fmt(p["buy_price"]),
            _fmt(p["buy_price_ma6"]),
            _fmt(p["buy_price_ma24"]),
            _pct(p["buy_price_pct_change_6h"]),
            _pct(p["buy_price_pct_change_24h"]),
        )
    console.print(table)

    arrow = "[green]▲ up[/green]" if summary["short_term"] == "up" else "[red]▼ down[/red]"
    console.print(Panel(
        f"Short term: {arrow}\n"
        f"24h change: {_pct(summary['latest_change_24h'])}\n"
        f"Volatility: {summary['price_volatility']:.2f}%",
        title="[bold]Trend[/bold]",
        border_style="blue",
    ))


@click.command()
@click.option(
    "-p", "--period",
    default="week",
    type=click.Choice(["day", "week", "month"]),
    help="Lookback period (default: week).",
)
@click.option("-n", "--limit", type=int, default=10, help="Number of items (default: 10).")
@json_option
@click.pass_context
def volatility(ctx: click.Context, period: str, limit: int, as_json: bool) -> None:
    """Rank items by day-to-day price volatility."""
    from bazaartrack.tools import get_volatility

    settings = load_settings(ctx)
    payload = get_volatility(
        period, limit, db_path=settings.storage.db_path, dev_mode=settings.app.dev_mode
    )
    if not _emit(payload, as_json):
        return

    entries = payload["data"]
    if not entries:
        console.print("[yellow]Not enough daily data to rank items yet[/yellow]")
        return

    table = Table(title=f"Most Volatile Items - last {period}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Item", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Range", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Days", justify="right")
    for rank, e in enumerate(entries, start=1):
        table.add_row(
            str(rank),
            e["item_id"],
            f"{e['volatility_score']:.2f}%",
            "-" if e["price_range_pct"] is None else f"{e['price_range_pct']:.2f}%",
            _fmt(e["average_price"]),
            str(e["data_points"]),
        )
    console.print(table)
