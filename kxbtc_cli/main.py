"""KXBTC CLI - Interactive REPL interface."""

import asyncio
import json
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.table import Table
import typer

from .panel import get_config, run_panel, run_signal_once
from .panel.main import CycleAbandoned, format_book_side
from .panel.utils import format_pct, format_prob_pct, format_cents, fmt_time_left, format_number

app = typer.Typer(
    name="kxbtc",
    help="Hourly Bitcoin edge signals for Kalshi KXBTC markets",
    add_completion=False,
)

console = Console()


def setup_logging(level: int = logging.INFO) -> None:
    """Send log records through rich for one-shot commands."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def build_config(product: Optional[str] = None, ticker: Optional[str] = None,
                 market: Optional[str] = None, poll_ms: Optional[int] = None) -> dict:
    """Apply command-line overrides on top of env-based config."""
    config = get_config()
    if product:
        config["product_id"] = product
    if ticker:
        config["kalshi"]["series_ticker"] = ticker
    if market:
        config["kalshi"]["market_ticker"] = market
    if poll_ms is not None:
        config["poll_interval_ms"] = poll_ms
    return config


def print_signal(outcome: dict) -> None:
    """Print one cycle's decision as a table."""
    result = outcome["result"]
    kalshi = outcome["kalshi"]
    rec = result.decision
    edge = result.edge

    table = Table(title=f"KXBTC signal: {kalshi.get('ticker') or '-'}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("BTC price", f"${format_number(result.snapshot.price, 2)}")
    stats = outcome.get("stats")
    if stats and stats.get("open") and stats.get("last") is not None:
        change = (stats["last"] - stats["open"]) / stats["open"]
        table.add_row("24h", f"{format_pct(change)} (H {format_number(stats['high'], 0)} / L {format_number(stats['low'], 0)})")
    table.add_row("Strike", f"${format_number(kalshi.get('strikePrice'), 2)}" if kalshi.get("strikePrice") else "-")
    table.add_row("Time left", fmt_time_left(result.remaining_minutes))
    table.add_row("Regime", result.regime["regime"])
    table.add_row("Model UP / DOWN", f"{format_prob_pct(result.adjusted['adjustedUp'], 1)} / {format_prob_pct(result.adjusted['adjustedDown'], 1)}")
    table.add_row("Market YES / NO", f"{format_cents(edge['marketUp'])} / {format_cents(edge['marketDown'])}")
    book = kalshi.get("orderbook")
    if book:
        table.add_row("YES book", format_book_side(book.get("up")))
        table.add_row("NO book", format_book_side(book.get("down")))
    table.add_row("Edge UP / DOWN", f"{format_pct(edge['edgeUp'])} / {format_pct(edge['edgeDown'])}")
    table.add_row("Phase", rec["phase"])

    if rec["action"] == "ENTER":
        color = "green" if rec["side"] == "UP" else "red"
        table.add_row("Signal", f"[bold {color}]{result.signal}[/bold {color}] ({rec['strength']})")
    else:
        table.add_row("Signal", "[dim]NO_TRADE[/dim]")
    table.add_row("Reason", rec["reason"])

    console.print(table)


@app.command()
def panel(
    product: str = typer.Option(None, "--product", "-p", help="Coinbase product id"),
    ticker: str = typer.Option(None, "--ticker", "-t", help="Kalshi series ticker"),
    market: str = typer.Option(None, "--market", "-m", help="Pin a single Kalshi market ticker"),
    poll_ms: int = typer.Option(None, "--poll-ms", help="Milliseconds between cycles"),
) -> None:
    """Run the live signal panel."""
    config = build_config(product, ticker, market, poll_ms)
    console.print(f"[cyan]Starting panel: {config['product_id']} / {config['kalshi']['series_ticker']}[/cyan]")
    console.print("[dim]Press Ctrl+C to exit panel[/dim]\n")
    run_panel(config)
    console.print("\n[yellow]Panel stopped.[/yellow]")


@app.command()
def signal(
    product: str = typer.Option(None, "--product", "-p", help="Coinbase product id"),
    ticker: str = typer.Option(None, "--ticker", "-t", help="Kalshi series ticker"),
    market: str = typer.Option(None, "--market", "-m", help="Pin a single Kalshi market ticker"),
    as_json: bool = typer.Option(False, "--json", help="Print the signal record as JSON"),
) -> None:
    """Evaluate one cycle and print the decision."""
    setup_logging(logging.WARNING if as_json else logging.INFO)
    config = build_config(product, ticker, market)

    try:
        outcome = asyncio.run(run_signal_once(config))
    except CycleAbandoned as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        kalshi = outcome["kalshi"]
        payload = outcome["result"].to_signal(kalshi.get("ticker"), orderbook=kalshi.get("orderbook"))
        typer.echo(json.dumps(payload, indent=2, default=str))
    else:
        print_signal(outcome)


def handle_signal_command(args: str = "") -> None:
    """Handle the /signal command."""
    parts = args.split()
    config = build_config(market=parts[0] if parts else None)
    try:
        print_signal(asyncio.run(run_signal_once(config)))
    except CycleAbandoned as e:
        console.print(f"[red]Error:[/red] {e}")
    except Exception as e:
        console.print(f"[red]Error evaluating signal: {e}[/red]")


def handle_panel_command(args: str = "") -> None:
    """Handle the /panel command."""
    parts = args.split()
    config = build_config(market=parts[0] if parts else None)

    try:
        console.print(f"[cyan]Starting panel: {config['product_id']} / {config['kalshi']['series_ticker']}[/cyan]")
        console.print("[dim]Press Ctrl+C to exit panel[/dim]\n")
        run_panel(config)
        console.print("\n[yellow]Panel stopped.[/yellow]")
    except Exception as e:
        console.print(f"[red]Error starting panel: {e}[/red]")


def handle_command(command: str) -> bool:
    """Handle a user command.

    Returns True if should continue, False if should exit.
    """
    command = command.strip()

    if not command:
        return True

    name, _, args = command.partition(" ")

    if name in ("/exit", "/quit"):
        return False
    elif name == "/help":
        show_help()
    elif name == "/panel":
        handle_panel_command(args)
    elif name == "/signal":
        handle_signal_command(args)
    else:
        console.print(f"[red]Unknown command: {command}[/red]")
        console.print("Type [bold]/help[/bold] for available commands")

    return True


def show_help() -> None:
    """Show available commands."""
    help_text = """
[bold cyan]Available Commands:[/bold cyan]

  [bold]/panel[/bold] \\[market]  - Start the live signal panel
  [bold]/signal[/bold] \\[market] - Evaluate one cycle and print the decision
  [bold]/help[/bold]            - Show this help message
  [bold]/exit[/bold]            - Exit the CLI
  [bold]/quit[/bold]            - Exit the CLI

[bold cyan]Examples:[/bold cyan]
  [dim]/panel[/dim]                           - Nearest-strike market closing next
  [dim]/signal KXBTCD-26FEB0201-T75000[/dim]  - One cycle against a pinned market

[bold cyan]CLI Commands:[/bold cyan]
  [dim]kxbtc start[/dim]                 - Start interactive CLI
  [dim]kxbtc panel --poll-ms 5000[/dim]  - Live panel
  [dim]kxbtc signal --json[/dim]         - One cycle as JSON
"""
    console.print(help_text)


def repl() -> None:
    """Run the interactive REPL loop."""
    setup_logging()
    console.print("[bold cyan]Welcome to KXBTC CLI![/bold cyan]")
    console.print("Type [bold]/help[/bold] for available commands, [bold]/exit[/bold] to quit\n")

    while True:
        try:
            user_input = Prompt.ask(
                "[bold blue]>[/bold blue]",
                console=console,
            )

            should_continue = handle_command(user_input)
            if not should_continue:
                console.print("[yellow]Goodbye![/yellow]")
                break

        except KeyboardInterrupt:
            console.print("\n[yellow]Goodbye![/yellow]")
            break
        except EOFError:
            console.print("\n[yellow]Goodbye![/yellow]")
            break


@app.command()
def start() -> None:
    """Start the interactive CLI."""
    repl()


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Main entry point for the CLI."""
    # If no subcommand is provided, start the REPL
    if ctx.invoked_subcommand is None:
        repl()


if __name__ == "__main__":
    app()
