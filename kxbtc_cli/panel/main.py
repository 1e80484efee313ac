"""Main panel logic - real-time hourly signal loop."""

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

import aiohttp
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .data import fetch_klines, fetch_last_price, fetch_24h_stats, fetch_kalshi_snapshot, CoinbaseTickerStream
from .indicators import macd_label
from .models import MarketQuote, CycleResult
from .pipeline import run_cycle
from .utils import (
    format_number, format_pct, format_prob_pct, format_cents, format_signed_delta,
    fmt_time_left, fmt_et_time, get_candle_window_timing, async_sleep_ms,
    narrative_from_sign, narrative_from_color, append_csv_row, write_json_signal
)

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "timestamp",
    "entry_minute",
    "time_left_min",
    "regime",
    "signal",
    "model_up",
    "model_down",
    "mkt_up",
    "mkt_down",
    "edge_up",
    "edge_down",
    "recommendation"
]

NARRATIVE_COLORS = {"LONG": "green", "SHORT": "red", "NEUTRAL": "dim"}


class LogBuffer:
    """Log buffer for panel display."""

    def __init__(self, max_lines: int = 50):
        self.logs = deque(maxlen=max_lines)

    def log(self, message: str, level: str = "info"):
        """Add a log message with timestamp."""
        self.logs.append({
            "timestamp": datetime.now().strftime("%H:%M:%S"),
            "message": message,
            "level": level
        })

    def get_logs(self) -> List[dict]:
        """Get all logs."""
        return list(self.logs)


class LogBufferHandler(logging.Handler):
    """Route log records into a LogBuffer while the live panel owns the screen."""

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO):
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord):
        try:
            self.buffer.log(self.format(record), record.levelname.lower())
        except Exception:
            self.handleError(record)


class CycleAbandoned(Exception):
    """Inputs for a cycle could not be fetched; retry next interval."""


def _colored(text: str, narrative: str) -> str:
    color = NARRATIVE_COLORS.get(narrative, "white")
    return f"[{color}]{text}[/{color}]"


def format_book_side(side: Optional[Dict[str, Any]]) -> str:
    """One order-book side as bid/ask, spread and bid/ask liquidity."""
    if not side:
        return "-"
    spread = side.get("spread")
    return (
        f"{format_cents(side.get('bestBid'))} / {format_cents(side.get('bestAsk'))}"
        f" [dim](spr {format_cents(spread)})[/dim]"
        f"  liq {format_number(side.get('bidLiquidity'), 0)} / {format_number(side.get('askLiquidity'), 0)}"
    )


class PanelDisplay:
    """Panel display manager."""

    def render_log_panel(self, log_buffer: LogBuffer) -> Panel:
        """Render the log panel, newest first."""
        logs = log_buffer.get_logs()

        if not logs:
            content = "[dim]Waiting for logs...[/dim]"
        else:
            lines = []
            for entry in reversed(logs):
                level = entry["level"]
                color = {"error": "red", "warning": "yellow", "debug": "dim"}.get(level, "white")
                # Messages may contain brackets; escape them for rich markup
                msg = entry["message"].replace("[", "\\[")
                lines.append(f"[dim]{entry['timestamp']}[/dim] [{color}]{msg}[/{color}]")
            content = "\n".join(lines[:25])

        return Panel(content, border_style="bright_blue", padding=(0, 1), title="[bold cyan]Logs[/bold cyan]", expand=True)

    def render(self, result: CycleResult, kalshi: Dict[str, Any]) -> Panel:
        """Render one cycle."""
        snap = result.snapshot
        rec = result.decision
        edge = result.edge

        title = f"KXBTC: {kalshi.get('ticker')}" if kalshi.get("ok") else "KXBTC: -"
        strike = kalshi.get("strikePrice") if kalshi.get("ok") else None

        remaining = result.remaining_minutes
        third = result.window_minutes / 3
        time_color = "green" if remaining > 2 * third else "yellow" if remaining > third else "red"

        # Indicators
        ind = Table(show_header=False, box=None, padding=(0, 1))
        ind.add_column(style="bold", width=14)
        ind.add_column()

        up = result.adjusted["adjustedUp"]
        down = result.adjusted["adjustedDown"]
        ind.add_row("TA Predict", f"[green]LONG {format_prob_pct(up)}[/green] / [red]SHORT {format_prob_pct(down)}[/red]")

        ha_text = f"{snap.heiken_color or '-'} x{snap.heiken_count}"
        if snap.coarse_heiken_color:
            ha_text += f"  [dim](5m {snap.coarse_heiken_color} x{snap.coarse_heiken_count})[/dim]"
        ind.add_row("Heiken Ashi", _colored(ha_text, narrative_from_color(snap.heiken_color)))

        rsi_arrow = "↑" if snap.rsi_slope and snap.rsi_slope > 0 else "↓" if snap.rsi_slope and snap.rsi_slope < 0 else "-"
        ind.add_row("RSI", _colored(f"{format_number(snap.rsi_now, 1)} {rsi_arrow}", narrative_from_sign(snap.rsi_slope)))

        hist = snap.macd["hist"] if snap.macd else None
        ind.add_row("MACD", _colored(macd_label(snap.macd), narrative_from_sign(hist)))

        base = snap.last_close
        ind.add_row(
            "Delta 1/3",
            f"{_colored(format_signed_delta(snap.delta_1m, base), narrative_from_sign(snap.delta_1m))} | "
            f"{_colored(format_signed_delta(snap.delta_3m, base), narrative_from_sign(snap.delta_3m))}"
        )

        slope_label = "-" if snap.vwap_slope is None else "UP" if snap.vwap_slope > 0 else "DOWN" if snap.vwap_slope < 0 else "FLAT"
        ind.add_row(
            "VWAP",
            _colored(f"{format_number(snap.vwap_now, 0)} ({format_pct(snap.vwap_dist)}) | slope: {slope_label}", narrative_from_sign(snap.vwap_dist))
        )
        ind.add_row("Regime", f"{result.regime['regime']} [dim]({result.regime['reason']})[/dim]")

        # Market and decision
        mkt = Table(show_header=False, box=None, padding=(0, 1))
        mkt.add_column(style="bold", width=14)
        mkt.add_column()

        mkt.add_row("KALSHI", f"[green]↑ YES[/green] {format_cents(edge['marketUp'])}  |  [red]↓ NO[/red] {format_cents(edge['marketDown'])}")
        if edge["marketImbalance"] is not None:
            mkt.add_row("Imbalance", f"{edge['marketImbalance'] * 100:+.1f}¢")

        book = kalshi.get("orderbook") if kalshi.get("ok") else None
        if book:
            mkt.add_row("YES book", format_book_side(book.get("up")))
            mkt.add_row("NO book", format_book_side(book.get("down")))
        mkt.add_row("Edge UP", format_pct(edge["edgeUp"]))
        mkt.add_row("Edge DOWN", format_pct(edge["edgeDown"]))

        if rec["action"] == "ENTER":
            color = "green" if rec["side"] == "UP" else "red"
            signal_text = f"[bold {color}]{result.signal}[/bold {color}] {rec['strength']} [dim]({rec['phase']})[/dim]"
        else:
            signal_text = f"[dim]NO TRADE ({rec['phase']}: {rec['reason']})[/dim]"
        mkt.add_row("Signal", signal_text)

        top = (
            f"[bold cyan]{title}[/bold cyan]\n"
            f"[bold]STRIKE:[/bold] {('$' + format_number(strike, 2)) if strike else '-'}    "
            f"[bold]PRICE:[/bold] ${format_number(snap.price, 2)}\n"
            f"[bold yellow]TIME LEFT:[/bold yellow] [{time_color}]{fmt_time_left(remaining)}[/{time_color}]    "
            f"[dim]ET {fmt_et_time()}[/dim]"
        )

        return Panel(
            Group(top, "", ind, "", mkt),
            title="[bold]KXBTC Hourly Edge[/bold]",
            border_style="bright_blue",
            padding=(0, 1)
        )

    def render_with_logs(self, main_panel: Panel, log_buffer: LogBuffer) -> Table:
        """Render main panel and log panel side by side (60/40 ratio)."""
        table = Table(show_header=False, show_edge=False, expand=True, pad_edge=False)
        table.add_column("panel", ratio=6)
        table.add_column("logs", ratio=4)
        table.add_row(main_panel, self.render_log_panel(log_buffer))
        return table


def resolve_remaining_minutes(kalshi: Dict[str, Any], window_minutes: int, now_ms: Optional[int] = None) -> float:
    """Minutes to settlement from the market close time, else the wall-clock window."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    close_ms = kalshi.get("closeTimeMs") if kalshi.get("ok") else None
    if close_ms is not None:
        return max(0.0, (close_ms - now_ms) / 60_000)

    return get_candle_window_timing(window_minutes, now_ms)["remainingMinutes"]


async def fetch_cycle_inputs(
    session: aiohttp.ClientSession,
    config: Dict[str, Any],
    stream: Optional[CoinbaseTickerStream] = None
) -> Dict[str, Any]:
    """Fetch candles, last price and the Kalshi snapshot for one cycle.

    The live price comes from the ticker stream while it is connected and
    fresh, otherwise from the REST ticker.
    """
    product_id = config["product_id"]
    base_url = config["coinbase"]["base_url"]

    tick = stream.get_last() if stream is not None else None
    last_price = tick["price"] if tick else None
    if last_price is None:
        last_price = await fetch_last_price(session, product_id, base_url)

    candles, coarse, kalshi = await asyncio.gather(
        fetch_klines(session, product_id, config["fine_interval"], config["fine_limit"], base_url),
        fetch_klines(session, product_id, config["coarse_interval"], config["coarse_limit"], base_url),
        fetch_kalshi_snapshot(session, config["kalshi"], last_price)
    )

    if not candles:
        raise CycleAbandoned("no candles from Coinbase")

    if not kalshi.get("ok"):
        logger.warning("Kalshi snapshot unavailable: %s", kalshi.get("reason", "unknown"))

    return {"candles": candles, "coarse": coarse, "price": last_price, "kalshi": kalshi}


def evaluate_inputs(inputs: Dict[str, Any], config: Dict[str, Any], now_ms: Optional[int] = None) -> CycleResult:
    """Run the pipeline over fetched inputs."""
    kalshi = inputs["kalshi"]
    window = config["candle_window_minutes"]

    prices = kalshi.get("prices", {}) if kalshi.get("ok") else {}
    quote = MarketQuote(implied_up=prices.get("up"), implied_down=prices.get("down"))

    return run_cycle(
        inputs["candles"],
        quote,
        resolve_remaining_minutes(kalshi, window, now_ms),
        window,
        config,
        price=inputs["price"],
        coarse_candles=inputs["coarse"]
    )


def persist_cycle(result: CycleResult, kalshi: Dict[str, Any], config: Dict[str, Any]) -> None:
    """Append the CSV row and rewrite the current JSON signal."""
    now = datetime.now(timezone.utc)
    rec = result.decision
    window = result.window_minutes

    append_csv_row(config["logs"]["csv_path"], CSV_HEADER, [
        now.isoformat(),
        f"{window - result.remaining_minutes:.3f}",
        f"{result.remaining_minutes:.3f}",
        result.regime["regime"],
        result.signal,
        result.adjusted["adjustedUp"],
        result.adjusted["adjustedDown"],
        result.edge["marketUp"],
        result.edge["marketDown"],
        result.edge["edgeUp"],
        result.edge["edgeDown"],
        f"{rec['side']}:{rec['phase']}:{rec['strength']}" if rec["action"] == "ENTER" else "NO_TRADE"
    ])

    signal = result.to_signal(kalshi.get("ticker"), now, kalshi.get("orderbook"))
    write_json_signal(config["logs"]["json_path"], signal)


async def run_signal_once(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch inputs once and evaluate a single cycle."""
    async with aiohttp.ClientSession(trust_env=True) as session:
        inputs = await fetch_cycle_inputs(session, config)
        stats = await fetch_24h_stats(session, config["product_id"], config["coinbase"]["base_url"])
    return {"result": evaluate_inputs(inputs, config), "kalshi": inputs["kalshi"], "stats": stats}


async def run_panel_async(config: Optional[Dict[str, Any]] = None):
    """Run the live loop: one full cycle at a time, then sleep."""
    config = config or get_config()
    console = Console()
    display = PanelDisplay()
    log_buffer = LogBuffer(max_lines=50)

    handler = LogBufferHandler(log_buffer)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    # The live display owns the terminal; park console handlers until it exits
    saved_handlers = root.handlers[:]
    root.handlers = [handler]
    if root.level > logging.INFO or root.level == logging.NOTSET:
        root.setLevel(logging.INFO)

    logger.info("Panel starting: %s / %s", config["product_id"], config["kalshi"]["series_ticker"])

    stream = CoinbaseTickerStream(
        config["product_id"],
        config["coinbase"]["ws_url"],
        config["coinbase"].get("ws_max_age_ms", 10_000)
    )
    await stream.start()

    session = aiohttp.ClientSession(trust_env=True)
    live = Live(console=console, refresh_per_second=4)
    live.start()
    try:
        while True:
            try:
                inputs = await fetch_cycle_inputs(session, config, stream)
                result = evaluate_inputs(inputs, config)

                if result.decision["action"] == "ENTER":
                    logger.info("%s %s edge=%.3f", result.signal, result.decision["strength"], result.decision["edge"])

                live.update(display.render_with_logs(display.render(result, inputs["kalshi"]), log_buffer))

                try:
                    persist_cycle(result, inputs["kalshi"], config)
                except OSError as e:
                    logger.warning("Failed to write signal logs: %s", e)

            except CycleAbandoned as e:
                logger.warning("Cycle skipped: %s", e)
            except Exception as e:
                logger.error("Cycle failed: %s", e)

            await async_sleep_ms(config["poll_interval_ms"])

    finally:
        live.stop()
        await session.close()
        await stream.close()
        root.handlers = saved_handlers


def run_panel(config: Optional[Dict[str, Any]] = None):
    """Run panel (sync wrapper)."""
    try:
        asyncio.run(run_panel_async(config))
    except KeyboardInterrupt:
        pass
