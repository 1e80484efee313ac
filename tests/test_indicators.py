import pytest

from kxbtc_cli.panel.indicators import (
    compute_session_vwap,
    compute_vwap_series,
    vwap_slope,
    compute_rsi,
    compute_rsi_series,
    sma,
    slope_last,
    compute_macd,
    macd_label,
    compute_heiken_ashi,
    count_consecutive,
)


def ohlc(o, h, l, c):
    return {"open": o, "high": h, "low": l, "close": c, "volume": 1.0}


class TestVwap:
    def test_session_vwap_weights_close_by_volume(self):
        candles = [{"close": 10.0, "volume": 1.0}, {"close": 20.0, "volume": 3.0}]
        assert compute_session_vwap(candles) == pytest.approx(17.5)

    def test_session_vwap_empty_or_zero_volume(self):
        assert compute_session_vwap([]) is None
        assert compute_session_vwap([{"close": 10.0, "volume": 0.0}]) is None
        assert compute_session_vwap([{"close": 10.0, "volume": 1.0}, {"close": 20.0, "volume": -3.0}]) is None

    def test_series_is_cumulative(self):
        candles = [
            {"close": 10.0, "volume": 1.0},
            {"close": 20.0, "volume": 1.0},
            {"close": 30.0, "volume": 2.0},
        ]
        series = compute_vwap_series(candles)
        assert series == pytest.approx([10.0, 15.0, 22.5])
        assert series[-1] == pytest.approx(compute_session_vwap(candles))

    def test_series_skips_missing_values(self):
        candles = [{"close": None, "volume": 1.0}, {"close": 20.0, "volume": 2.0}]
        assert compute_vwap_series(candles) == [None, 20.0]

    def test_slope_per_candle(self):
        series = [100.0, 101.0, 102.0, 103.0, 104.0]
        assert vwap_slope(series, 2) == pytest.approx(1.0)
        assert vwap_slope(series, 4) == pytest.approx(1.0)

    def test_slope_needs_more_points_than_lookback(self):
        assert vwap_slope([1.0, 2.0], 2) is None
        assert vwap_slope([None, 1.0, 2.0], 2) is None


class TestRsi:
    def test_too_short_is_none(self):
        assert compute_rsi([1.0] * 14, 14) is None
        assert compute_rsi_series([1.0, 2.0], 14) == [None, None]

    def test_flat_series_is_neutral(self):
        assert compute_rsi([100.0] * 30, 14) == 50.0

    def test_only_gains_is_100(self):
        assert compute_rsi([float(i) for i in range(30)], 14) == 100.0

    def test_only_losses_is_0(self):
        assert compute_rsi([float(30 - i) for i in range(30)], 14) == pytest.approx(0.0)

    def test_series_alignment_and_prefix_consistency(self):
        closes = [100.0, 101.0, 100.5, 102.0, 101.0, 103.0, 104.0, 103.5, 105.0, 104.0]
        series = compute_rsi_series(closes, 3)
        assert len(series) == len(closes)
        assert series[:3] == [None, None, None]
        for i in range(3, len(closes)):
            assert series[i] == pytest.approx(compute_rsi(closes[:i + 1], 3))
            assert 0 <= series[i] <= 100

    def test_sma(self):
        assert sma([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx(3.5)
        assert sma([1.0], 2) is None

    def test_slope_last(self):
        assert slope_last([1.0, 2.0, 4.0], 2) == pytest.approx(1.5)
        assert slope_last([1.0, 2.0], 2) is None


class TestMacd:
    def test_too_short_is_none(self):
        assert compute_macd([float(i) for i in range(33)], 12, 26, 9) is None

    def test_minimum_length_produces_values(self):
        macd = compute_macd([float(i) for i in range(34)], 12, 26, 9)
        assert macd is not None
        assert set(macd) == {"macdLine", "signalLine", "hist", "histDelta"}
        assert macd["histDelta"] is None

    def test_rising_series_is_positive(self):
        macd = compute_macd([100.0 + i for i in range(80)], 12, 26, 9)
        assert macd["macdLine"] > 0
        assert macd["histDelta"] is not None

    def test_labels(self):
        assert macd_label(None) == "-"
        assert macd_label({"hist": -1.0, "histDelta": -0.5}) == "bearish (expanding)"
        assert macd_label({"hist": -1.0, "histDelta": 0.5}) == "bearish"
        assert macd_label({"hist": 1.0, "histDelta": 0.5}) == "bullish (expanding)"
        assert macd_label({"hist": 1.0, "histDelta": None}) == "bullish"


class TestHeikenAshi:
    def test_run_counted_from_newest(self):
        candles = [
            ohlc(100, 110, 100, 110),
            ohlc(110, 120, 110, 120),
            ohlc(120, 130, 120, 130),
            ohlc(130, 130, 100, 100),
            ohlc(100, 100, 80, 80),
        ]
        ha = compute_heiken_ashi(candles)
        assert [c["isGreen"] for c in ha] == [True, True, True, False, False]
        assert count_consecutive(ha) == {"color": "red", "count": 2}

    def test_ha_values(self):
        ha = compute_heiken_ashi([ohlc(100, 110, 100, 110), ohlc(110, 120, 110, 120)])
        assert ha[0]["close"] == pytest.approx(105.0)
        assert ha[0]["open"] == pytest.approx(105.0)
        assert ha[1]["open"] == pytest.approx(105.0)
        assert ha[1]["close"] == pytest.approx(115.0)
        assert ha[1]["high"] == pytest.approx(120.0)

    def test_seed_skips_incomplete_candles(self):
        ha = compute_heiken_ashi([
            {"open": None, "high": 10, "low": 5, "close": 8},
            ohlc(100, 110, 100, 110),
        ])
        assert len(ha) == 1
        assert ha[0]["open"] == pytest.approx(105.0)

    def test_empty(self):
        assert compute_heiken_ashi([]) == []
        assert count_consecutive([]) == {"color": None, "count": 0}
