from kxbtc_cli.panel.data.coinbase import parse_candles
from kxbtc_cli.panel.data.coinbase_ws import parse_ticker_message


class TestParseCandles:
    def test_rows_are_reordered_and_mapped(self):
        rows = [
            [1_767_225_660, 99.0, 102.0, 100.0, 101.0, 3.5],
            [1_767_225_600, 98.0, 101.0, 99.0, 100.0, 2.0],
        ]
        candles = parse_candles(rows, 60)

        assert [c["openTime"] for c in candles] == [1_767_225_600_000, 1_767_225_660_000]
        first = candles[0]
        assert first["open"] == 99.0
        assert first["high"] == 101.0
        assert first["low"] == 98.0
        assert first["close"] == 100.0
        assert first["volume"] == 2.0
        assert first["closeTime"] == 1_767_225_660_000

    def test_bad_rows_skipped(self):
        rows = [[1_767_225_600, 1, 2, 3], ["x", 1, 2, 3, 4, 5], "junk"]
        assert parse_candles(rows, 60) == []
        assert parse_candles({"message": "error"}, 60) == []


class TestParseTickerMessage:
    def test_ticker(self):
        msg = {
            "type": "ticker",
            "product_id": "BTC-USD",
            "price": "75123.45",
            "best_bid": "75123.44",
            "best_ask": "75123.46",
            "volume_24h": "1234.5",
            "time": "2026-01-01T00:00:01.000000Z",
        }
        tick = parse_ticker_message(msg, "BTC-USD")
        assert tick["price"] == 75123.45
        assert tick["bestBid"] == 75123.44
        assert tick["time"] == 1_767_225_601_000

    def test_other_messages_ignored(self):
        assert parse_ticker_message({"type": "subscriptions"}, "BTC-USD") is None
        assert parse_ticker_message({"type": "ticker", "product_id": "ETH-USD", "price": "1"}, "BTC-USD") is None
        assert parse_ticker_message({"type": "ticker", "product_id": "BTC-USD", "price": "?"}, "BTC-USD") is None


class TestTickerStreamFreshness:
    NOW_MS = 1_767_225_600_000

    def make_stream(self, tick_age_ms, connected=True):
        from kxbtc_cli.panel.data.coinbase_ws import CoinbaseTickerStream

        stream = CoinbaseTickerStream("BTC-USD", max_age_ms=10_000)
        stream.last_tick = {"price": 50_000.0, "time": self.NOW_MS - tick_age_ms}
        stream.connected = connected
        return stream

    def test_fresh_tick_is_returned(self):
        stream = self.make_stream(2_000)
        assert stream.get_last(self.NOW_MS)["price"] == 50_000.0

    def test_disconnected_stream_has_no_tick(self):
        stream = self.make_stream(2_000, connected=False)
        assert stream.get_last(self.NOW_MS) is None

    def test_stale_tick_is_dropped(self):
        stream = self.make_stream(60 * 60_000)
        assert stream.get_last(self.NOW_MS) is None

    def test_no_tick_yet(self):
        from kxbtc_cli.panel.data.coinbase_ws import CoinbaseTickerStream

        stream = CoinbaseTickerStream()
        stream.connected = True
        assert stream.get_last() is None

    def test_fractional_seconds_of_any_length(self):
        msg = {
            "type": "ticker",
            "product_id": "BTC-USD",
            "price": "1",
            "time": "2026-01-01T00:00:01.5Z",
        }
        assert parse_ticker_message(msg, "BTC-USD")["time"] == 1_767_225_601_500
