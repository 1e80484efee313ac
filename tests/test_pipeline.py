import json

import pytest

from kxbtc_cli.panel.models import MarketQuote
from kxbtc_cli.panel.pipeline import run_cycle
from kxbtc_cli.panel.snapshot import (
    normalize_candles,
    build_indicator_snapshot,
    count_vwap_crosses,
    detect_failed_vwap_reclaim,
)


class TestNormalizeCandles:
    def test_sorts_dedupes_and_drops(self, candle_factory):
        a, b, c = candle_factory([100.0, 101.0, 102.0])
        replacement = {**b, "close": 555.0}
        broken = {**c, "openTime": c["openTime"] + 600_000, "closeTime": c["openTime"]}

        result = normalize_candles([c, b, a, replacement, broken])

        assert [x["openTime"] for x in result] == [a["openTime"], b["openTime"], c["openTime"]]
        assert result[1]["close"] == 555.0

    def test_coerces_numbers(self, candle_factory):
        (candle,) = candle_factory([100.0])
        candle = {**candle, "close": "101.5", "volume": "nan", "high": True}
        (result,) = normalize_candles([candle])
        assert result["close"] == 101.5
        assert result["volume"] is None
        assert result["high"] is None

    def test_none_input(self):
        assert normalize_candles(None) == []

    def test_negative_fields_become_none(self, candle_factory):
        a, b = candle_factory([100.0, 101.0])
        (first, second) = normalize_candles([{**a, "close": -5.0}, {**b, "volume": -389.0}])
        assert first["close"] is None
        assert first["open"] == 100.0
        assert second["volume"] is None
        assert second["close"] == 101.0


class TestSnapshotHelpers:
    def test_counts_crosses_in_lookback(self):
        closes = [101.0, 99.0, 101.0, 99.0, 101.0]
        vwap = [100.0] * 5
        assert count_vwap_crosses(closes, vwap, 5) == 4
        assert count_vwap_crosses(closes, vwap, 3) == 2
        assert count_vwap_crosses(closes, vwap, 6) is None

    def test_failed_reclaim(self):
        assert detect_failed_vwap_reclaim([99.0, 101.0, 99.0], [100.0, 100.0, 100.0]) is True
        assert detect_failed_vwap_reclaim([99.0, 99.0, 99.0], [100.0, 100.0, 100.0]) is False
        assert detect_failed_vwap_reclaim([101.0], [100.0]) is False


class TestBuildSnapshot:
    def test_short_history_yields_nulls(self, candle_factory, config):
        snap = build_indicator_snapshot(candle_factory([100.0, 101.0, 102.0, 101.0, 103.0]), config)
        assert snap.price == 103.0
        assert snap.vwap_now is not None
        assert snap.vwap_slope is None
        assert snap.vwap_cross_count is None
        assert snap.rsi_now is None
        assert snap.rsi_slope is None
        assert snap.macd is None
        assert snap.volume_avg is None
        assert snap.delta_1m == pytest.approx(2.0)
        assert snap.delta_3m == pytest.approx(2.0)

    def test_full_history(self, rising_candles, config):
        snap = build_indicator_snapshot(rising_candles, config)
        assert snap.vwap_slope > 0
        assert snap.vwap_dist > 0
        assert snap.rsi_now == 100.0
        assert snap.macd["macdLine"] > 0
        assert snap.heiken_color == "green"
        assert snap.volume_recent == pytest.approx(200.0)
        assert snap.volume_avg == pytest.approx(200.0)
        assert snap.vwap_cross_count == 0

    def test_live_price_overrides_last_close(self, rising_candles, config):
        snap = build_indicator_snapshot(rising_candles, config, price=123.0)
        assert snap.price == 123.0
        assert snap.last_close == rising_candles[-1]["close"]

    def test_coarse_heiken(self, rising_candles, falling_candles, config):
        snap = build_indicator_snapshot(rising_candles, config, coarse_candles=falling_candles[:10])
        assert snap.coarse_heiken_color == "red"
        assert snap.coarse_heiken_count > 0


class TestRunCycle:
    def test_short_series_never_raises(self, candle_factory, config):
        result = run_cycle(candle_factory([100.0, 100.5]), None, 45.0, 60, config)
        assert 0.01 <= result.raw["rawUp"] <= 0.99
        assert result.regime["regime"] == "RANGE"
        assert result.decision["action"] == "NO_TRADE"
        assert result.decision["reason"] == "missing_market_data"
        assert result.signal == "NO_TRADE"

    def test_negative_volume_does_not_skew_vwap(self, candle_factory, config):
        candles = candle_factory([100.0 + i for i in range(40)])
        candles[-1] = {**candles[-1], "volume": -389.0}

        result = run_cycle(candles, None, 30.0, 60, config)

        # The bad bar drops out of the volume sums; the rest all carry volume 10
        expected = sum(100.0 + i for i in range(39)) / 39
        assert result.snapshot.vwap_now == pytest.approx(expected)
        assert result.snapshot.vwap_dist > 0

    def test_empty_series(self, config):
        result = run_cycle([], MarketQuote(0.5, 0.5), 30.0, 60, config)
        assert result.snapshot.price is None
        assert result.raw["rawUp"] == 0.5
        assert result.edge["edgeUp"] == 0.0

    def test_rising_market_with_cheap_yes(self, rising_candles, config):
        result = run_cycle(rising_candles, MarketQuote(0.30, 0.72), 45.0, 60, config)
        assert result.regime["regime"] == "TREND_UP"
        assert result.adjusted["adjustedUp"] > 0.5
        assert result.adjusted["adjustedUp"] + result.adjusted["adjustedDown"] == 1
        assert result.edge["edgeUp"] == result.adjusted["adjustedUp"] - 0.30
        assert result.decision["action"] == "ENTER"
        assert result.decision["side"] == "UP"
        assert result.signal == "BUY_YES"

    def test_missing_remaining_uses_full_window(self, rising_candles, config):
        result = run_cycle(rising_candles, MarketQuote(0.5, 0.5), None, 60, config)
        assert result.remaining_minutes == 60
        assert result.decision["phase"] == "EARLY"

    def test_signal_record_is_json_ready(self, falling_candles, config):
        result = run_cycle(falling_candles, MarketQuote(0.70, 0.31), 12.0, 60, config)
        record = result.to_signal("KXBTCD-26JAN0101-T99000")
        assert record["ticker"] == "KXBTCD-26JAN0101-T99000"
        assert record["phase"] == "LATE"
        assert record["regime"] == "TREND_DOWN"
        assert record["macd_signal"] == "bearish"
        assert record["heiken_ashi"]["color"] == "red"
        json.loads(json.dumps(record))
