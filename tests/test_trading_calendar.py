from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.twstock_radar.core.calendar import TradingDate, last_n_trading_dates

TAIPEI = ZoneInfo("Asia/Taipei")


def test_after_settlement_includes_today(wednesday_evening):
    dates = last_n_trading_dates(3, now=wednesday_evening)
    assert [d.day for d in dates] == [date(2024, 3, 13), date(2024, 3, 12), date(2024, 3, 11)]


def test_before_settlement_starts_from_yesterday():
    morning = datetime(2024, 3, 13, 9, 30, tzinfo=TAIPEI)
    dates = last_n_trading_dates(2, now=morning)
    assert [d.day for d in dates] == [date(2024, 3, 12), date(2024, 3, 11)]


def test_weekends_are_skipped():
    monday_morning = datetime(2024, 3, 18, 10, 0, tzinfo=TAIPEI)
    dates = last_n_trading_dates(3, now=monday_morning)
    # Monday before 15:00 rolls back to Sunday, then Sat/Sun are skipped.
    assert [d.day for d in dates] == [date(2024, 3, 15), date(2024, 3, 14), date(2024, 3, 13)]


def test_saturday_evening():
    saturday = datetime(2024, 3, 16, 20, 0, tzinfo=TAIPEI)
    dates = last_n_trading_dates(1, now=saturday)
    assert dates[0].day == date(2024, 3, 15)


def test_non_positive_count_is_empty(wednesday_evening):
    assert last_n_trading_dates(0, now=wednesday_evening) == []
    assert last_n_trading_dates(-2, now=wednesday_evening) == []


def test_dates_are_strictly_descending_weekdays(wednesday_evening):
    dates = last_n_trading_dates(12, now=wednesday_evening)
    assert len(dates) == 12
    days = [d.day for d in dates]
    assert days == sorted(days, reverse=True)
    assert len(set(days)) == 12
    assert all(d.weekday() < 5 for d in days)


def test_formats():
    day = TradingDate(date(2024, 3, 5))
    assert day.gregorian == "20240305"
    assert day.roc == "113/03/05"


def test_aware_utc_time_is_read_as_market_time():
    # 08:00 UTC is 16:00 in Taipei, after settlement.
    utc_afternoon = datetime(2026, 10, 14, 8, 0, tzinfo=timezone.utc)
    assert last_n_trading_dates(1, now=utc_afternoon)[0].gregorian == "20261014"


def test_utc_evening_rolls_into_next_market_day():
    # 23:30 UTC Tuesday is 07:30 Wednesday in Taipei, before settlement.
    utc_night = datetime(2026, 10, 13, 23, 30, tzinfo=timezone.utc)
    assert last_n_trading_dates(1, now=utc_night)[0].gregorian == "20261013"


def test_naive_time_is_taken_as_market_time():
    naive = datetime(2026, 10, 14, 16, 0)
    assert last_n_trading_dates(1, now=naive)[0].gregorian == "20261014"
