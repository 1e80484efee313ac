"""Utility functions."""

import csv
import json
import math
import os
import re
import tempfile
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo


def clamp(x: Optional[float], min_val: float, max_val: float) -> Optional[float]:
    """Clamp value between min and max."""
    if x is None:
        return None
    return max(min_val, min(max_val, x))


def to_number(x: Any) -> Optional[float]:
    """Convert to a finite float or return None."""
    if isinstance(x, bool):
        return None
    try:
        n = float(x)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


ISO_FRACTION_RE = re.compile(r"\.(\d+)")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_iso_ms(x: Any) -> Optional[int]:
    """Parse an ISO-8601 timestamp (with Z or an offset) to epoch milliseconds.

    Fractional seconds of any length are padded or cut to microseconds, since
    `datetime.fromisoformat` before 3.11 only takes 3 or 6 digits.
    """
    if not isinstance(x, str) or not x:
        return None
    text = ISO_FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], x.strip(), count=1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(milliseconds=1)


async def async_sleep_ms(ms: int):
    """Sleep for milliseconds (async)."""
    import asyncio
    await asyncio.sleep(ms / 1000)


def get_candle_window_timing(window_minutes: int, now_ms: Optional[int] = None) -> dict:
    """Get timing info for the wall-clock aligned window containing now."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    window_ms = window_minutes * 60_000
    start_ms = (now_ms // window_ms) * window_ms
    end_ms = start_ms + window_ms
    elapsed_ms = now_ms - start_ms
    remaining_ms = end_ms - now_ms

    return {
        "startMs": start_ms,
        "endMs": end_ms,
        "elapsedMs": elapsed_ms,
        "remainingMs": remaining_ms,
        "elapsedMinutes": elapsed_ms / 60_000,
        "remainingMinutes": remaining_ms / 60_000
    }


def format_number(x: Optional[float], digits: int = 0) -> str:
    """Format number with fixed digits."""
    if x is None or x != x:  # NaN check
        return "-"
    return f"{x:,.{digits}f}"


def format_pct(x: Optional[float], digits: int = 2) -> str:
    """Format as percentage."""
    if x is None or x != x:
        return "-"
    return f"{x * 100:.{digits}f}%"


def format_prob_pct(p: Optional[float], digits: int = 0) -> str:
    """Format probability as percentage."""
    if p is None or not math.isfinite(p):
        return "-"
    return f"{p * 100:.{digits}f}%"


def format_cents(p: Optional[float]) -> str:
    """Format a 0-1 contract price as cents."""
    if p is None or not math.isfinite(p):
        return "-"
    return f"{p * 100:.1f}¢"


def format_signed_delta(delta: Optional[float], base: Optional[float]) -> str:
    """Format signed delta with USD and percentage."""
    if delta is None or base is None or base == 0:
        return "-"
    sign = "+" if delta > 0 else "-" if delta < 0 else ""
    pct = (abs(delta) / abs(base)) * 100
    return f"{sign}${abs(delta):.2f}, {sign}{pct:.2f}%"


def fmt_time_left(mins: Optional[float]) -> str:
    """Format time left as MM:SS."""
    if mins is None:
        return "--:--"
    total_seconds = max(0, int(mins * 60))
    m = total_seconds // 60
    s = total_seconds % 60
    return f"{m:02d}:{s:02d}"


def fmt_et_time(now: Optional[datetime] = None) -> str:
    """Format current New York time."""
    tz = ZoneInfo("America/New_York")
    now = now.astimezone(tz) if now is not None else datetime.now(tz)
    return now.strftime("%H:%M:%S")


def narrative_from_sign(x: Optional[float]) -> str:
    """Get narrative from sign."""
    if x is None or not math.isfinite(x) or x == 0:
        return "NEUTRAL"
    return "LONG" if x > 0 else "SHORT"


def narrative_from_color(color: Optional[str]) -> str:
    """Get narrative from Heiken Ashi color."""
    if color == "green":
        return "LONG"
    if color == "red":
        return "SHORT"
    return "NEUTRAL"


def append_csv_row(path: str, header: List[str], row: List[Any]) -> None:
    """Append a row to a CSV file, writing the header when the file is new."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    is_new = not os.path.exists(path) or os.path.getsize(path) == 0
    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if is_new:
            writer.writerow(header)
        writer.writerow(["" if v is None else v for v in row])


def write_json_signal(path: str, payload: Dict[str, Any]) -> None:
    """Write a JSON document, replacing the previous one atomically."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".signal-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
