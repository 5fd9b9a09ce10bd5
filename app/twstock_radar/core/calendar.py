from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from .settings import MARKET_TIMEZONE

# Exchange filings for the day are not complete before this hour.
SETTLEMENT_HOUR = 15
ROC_YEAR_OFFSET = 1911


@dataclass(frozen=True)
class TradingDate:
    day: date

    @property
    def gregorian(self) -> str:
        return self.day.strftime("%Y%m%d")

    @property
    def roc(self) -> str:
        return f"{self.day.year - ROC_YEAR_OFFSET}/{self.day.month:02d}/{self.day.day:02d}"


def market_now() -> datetime:
    return datetime.now(ZoneInfo(MARKET_TIMEZONE))


def last_n_trading_dates(n: int, now: datetime | None = None) -> list[TradingDate]:
    """Most recent ``n`` weekdays, newest first.

    Aware datetimes are converted to market time; naive ones are taken as-is.

    Holidays are not known here; a holiday simply yields an empty filing
    upstream and is counted as a failed day by the caller.
    """
    if n <= 0:
        return []

    now = now or market_now()
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(MARKET_TIMEZONE))
    current = now.date()
    if now.hour < SETTLEMENT_HOUR:
        current -= timedelta(days=1)

    dates: list[TradingDate] = []
    while len(dates) < n:
        if current.weekday() < 5:
            dates.append(TradingDate(current))
        current -= timedelta(days=1)
    return dates
