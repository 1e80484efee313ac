import csv
import json
import math
from datetime import datetime, timezone

from kxbtc_cli.panel.utils import (
    to_number,
    clamp,
    parse_iso_ms,
    get_candle_window_timing,
    format_cents,
    format_signed_delta,
    fmt_time_left,
    fmt_et_time,
    narrative_from_sign,
    append_csv_row,
    write_json_signal,
)


class TestNumbers:
    def test_to_number(self):
        assert to_number("1.5") == 1.5
        assert to_number(3) == 3.0
        assert to_number(None) is None
        assert to_number(True) is None
        assert to_number("abc") is None
        assert to_number(math.inf) is None
        assert to_number(float("nan")) is None

    def test_clamp(self):
        assert clamp(None, 0, 1) is None
        assert clamp(2, 0, 1) == 1
        assert clamp(-2, 0, 1) == 0


class TestParseIsoMs:
    def test_zulu_and_offset(self):
        assert parse_iso_ms("2026-01-01T00:00:00Z") == 1_767_225_600_000
        assert parse_iso_ms("2026-01-01T01:00:00+01:00") == 1_767_225_600_000

    def test_fraction_lengths(self):
        assert parse_iso_ms("2026-01-01T00:00:00.5Z") == 1_767_225_600_500
        assert parse_iso_ms("2026-01-01T00:00:00.12Z") == 1_767_225_600_120
        assert parse_iso_ms("2026-01-01T00:00:00.987654321Z") == 1_767_225_600_987

    def test_invalid(self):
        assert parse_iso_ms("yesterday") is None
        assert parse_iso_ms("") is None
        assert parse_iso_ms(12345) is None


class TestFormatting:
    def test_window_timing(self):
        # 2026-01-01T00:15:00Z
        timing = get_candle_window_timing(60, 1_767_226_500_000)
        assert timing["elapsedMinutes"] == 15
        assert timing["remainingMinutes"] == 45
        assert timing["startMs"] == 1_767_225_600_000

    def test_time_left(self):
        assert fmt_time_left(1.5) == "01:30"
        assert fmt_time_left(-1) == "00:00"
        assert fmt_time_left(None) == "--:--"

    def test_cents_and_delta(self):
        assert format_cents(None) == "-"
        assert format_signed_delta(None, 100.0) == "-"
        assert format_signed_delta(-2.0, 100.0) == "-$2.00, -2.00%"

    def test_et_time(self):
        # 17:00 UTC in January is 12:00 in New York
        assert fmt_et_time(datetime(2026, 1, 15, 17, 0, 0, tzinfo=timezone.utc)) == "12:00:00"

    def test_narrative(self):
        assert narrative_from_sign(0.1) == "LONG"
        assert narrative_from_sign(-0.1) == "SHORT"
        assert narrative_from_sign(0) == "NEUTRAL"
        assert narrative_from_sign(None) == "NEUTRAL"


class TestPersistence:
    def test_csv_header_written_once(self, tmp_path):
        path = tmp_path / "logs" / "signals.csv"
        append_csv_row(str(path), ["a", "b"], [1, None])
        append_csv_row(str(path), ["a", "b"], [2, "x"])

        with open(path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows == [["a", "b"], ["1", ""], ["2", "x"]]

    def test_json_replaced(self, tmp_path):
        path = tmp_path / "current.json"
        write_json_signal(str(path), {"signal": "BUY_YES"})
        write_json_signal(str(path), {"signal": "NO_TRADE"})

        assert json.loads(path.read_text()) == {"signal": "NO_TRADE"}
        assert [p.name for p in tmp_path.iterdir()] == ["current.json"]
