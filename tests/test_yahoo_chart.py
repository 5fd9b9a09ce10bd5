from datetime import date

import pandas as pd

from app.twstock_radar.models.schemas import Board
from app.twstock_radar.providers.yahoo_chart import YahooChartClient, parse_history_frame


def frame(closes, stamps, tz="Asia/Taipei"):
    index = pd.DatetimeIndex(pd.to_datetime(stamps))
    index = index.tz_localize(tz) if tz else index
    return pd.DataFrame({"Open": closes, "Close": closes}, index=index)


class FakeTicker:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def history(self, period, interval, auto_adjust):
        self.calls.append((period, interval, auto_adjust))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def client_for(*results, sleep=None):
    tickers = [FakeTicker(r) for r in results]
    requested = []

    def factory(symbol):
        requested.append(symbol)
        return tickers[min(len(requested), len(tickers)) - 1]

    client = YahooChartClient(ticker_factory=factory, max_attempts=3, retry_delay_sec=0.5, sleep=sleep or (lambda _: None))
    return client, tickers, requested


def test_symbol_suffix_per_board():
    assert YahooChartClient.to_symbol("2330", Board.PRIMARY) == "2330.TW"
    assert YahooChartClient.to_symbol("6488", Board.SECONDARY) == "6488.TWO"
    assert YahooChartClient.to_symbol("2330", None) == "2330.TW"


def test_history_sorted_ascending():
    data = frame([102.0, 100.0, 101.0], ["2024-03-13", "2024-03-11", "2024-03-12"])
    history = parse_history_frame(data)
    assert [p.trade_date for p in history] == [date(2024, 3, 11), date(2024, 3, 12), date(2024, 3, 13)]
    assert [p.close for p in history] == [100.0, 101.0, 102.0]


def test_same_market_day_keeps_last_row():
    data = frame([100.0, 105.0], ["2024-03-13 09:00", "2024-03-13 13:30"])
    assert [(p.trade_date, p.close) for p in parse_history_frame(data)] == [(date(2024, 3, 13), 105.0)]


def test_utc_stamps_are_bucketed_by_taipei_date():
    # 17:00 UTC on the 12th is 01:00 on the 13th in Taipei.
    data = frame([50.0, 51.0], ["2024-03-12 01:30", "2024-03-12 17:00"], tz="UTC")
    assert [p.trade_date for p in parse_history_frame(data)] == [date(2024, 3, 12), date(2024, 3, 13)]


def test_missing_closes_dropped():
    data = frame([100.0, float("nan"), 102.0, None], ["2024-03-11", "2024-03-12", "2024-03-13", "2024-03-14"])
    assert [p.close for p in parse_history_frame(data)] == [100.0, 102.0]


def test_unusable_frames_give_empty_history():
    assert parse_history_frame(None) == []
    assert parse_history_frame(pd.DataFrame()) == []
    assert parse_history_frame(pd.DataFrame({"Open": [1.0]}, index=pd.to_datetime(["2024-03-13"]))) == []
    assert parse_history_frame({"chart": ["x"]}) == []
    assert parse_history_frame(["x"]) == []
    assert parse_history_frame("chart") == []


def test_fetch_history_requests_six_months_of_raw_daily_closes():
    client, tickers, requested = client_for(frame([100.0, 101.0], ["2024-03-12", "2024-03-13"]))
    history = client.fetch_history("2330.TW")

    assert requested == ["2330.TW"]
    assert tickers[0].calls == [("6mo", "1d", False)]
    assert [p.close for p in history] == [100.0, 101.0]


def test_fetch_history_without_rows_is_none():
    client, _, _ = client_for(pd.DataFrame())
    assert client.fetch_history("0000.TW") is None


def test_fetch_retries_then_gives_up():
    slept = []
    client, _, requested = client_for(ConnectionError("reset"), sleep=slept.append)
    assert client.fetch_history("2330.TW") is None
    assert len(requested) == 3
    assert slept == [0.5, 0.5]


def test_fetch_recovers_after_a_failure():
    client, _, _ = client_for(ConnectionError("reset"), frame([10.0, 11.0], ["2024-03-12", "2024-03-13"]))
    assert len(client.fetch_history("6488.TWO")) == 2


def test_sparkline_keeps_last_five_closes():
    closes = [float(v) for v in range(1, 9)]
    stamps = [f"2024-03-{d:02d}" for d in (4, 5, 6, 7, 8, 11, 12, 13)]
    client, tickers, _ = client_for(frame(closes, stamps))

    assert client.fetch_sparkline("2330.TW") == [4.0, 5.0, 6.0, 7.0, 8.0]
    assert tickers[0].calls[0][0] == "10d"


def test_sparkline_needs_two_closes():
    client, _, _ = client_for(frame([100.0, float("nan")], ["2024-03-12", "2024-03-13"]))
    assert client.fetch_sparkline("2330.TW") is None
