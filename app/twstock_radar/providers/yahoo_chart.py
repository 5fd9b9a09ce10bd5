from __future__ import annotations

import logging
import math
import time
from datetime import date, datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

import yfinance as yf

from app.twstock_radar.core.settings import MARKET_TIMEZONE
from app.twstock_radar.models.schemas import Board, PricePoint

logger = logging.getLogger(__name__)

SYMBOL_SUFFIX = {
    Board.PRIMARY: ".TW",
    Board.SECONDARY: ".TWO",
}

SPARKLINE_POINTS = 5
SPARKLINE_MIN_POINTS = 2


class YahooChartClient:
    """Daily closes through yfinance, with a bounded retry per symbol."""

    HISTORY_PERIOD = "6mo"
    SPARKLINE_PERIOD = "10d"
    INTERVAL = "1d"

    def __init__(
        self,
        ticker_factory: Callable[[str], Any] = yf.Ticker,
        max_attempts: int = 3,
        retry_delay_sec: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ticker_factory = ticker_factory
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_sec = retry_delay_sec
        self.sleep = sleep

    @staticmethod
    def to_symbol(code: str, board: Board | None) -> str:
        return f"{code}{SYMBOL_SUFFIX.get(board, SYMBOL_SUFFIX[Board.PRIMARY])}"

    def _download(self, symbol: str, period: str) -> Any | None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                # Raw closes; adjusted prices would shift the moving averages after dividends.
                return self.ticker_factory(symbol).history(period=period, interval=self.INTERVAL, auto_adjust=False)
            except Exception as exc:
                logger.warning(
                    "yfinance %s %s failed: %s (attempt %d/%d)", symbol, period, exc, attempt, self.max_attempts
                )
            if attempt < self.max_attempts:
                self.sleep(self.retry_delay_sec)
        return None

    def fetch_history(self, symbol: str) -> list[PricePoint] | None:
        history = parse_history_frame(self._download(symbol, self.HISTORY_PERIOD))
        if not history:
            logger.info("No price history for %s", symbol)
            return None
        return history

    def fetch_sparkline(self, symbol: str) -> list[float] | None:
        history = parse_history_frame(self._download(symbol, self.SPARKLINE_PERIOD))
        closes = [p.close for p in history][-SPARKLINE_POINTS:]
        return closes if len(closes) >= SPARKLINE_MIN_POINTS else None


def _finite(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _market_date(stamp: Any, tz: ZoneInfo) -> date | None:
    if not isinstance(stamp, datetime):
        return None
    if stamp.tzinfo is None:
        return stamp.date()
    return stamp.astimezone(tz).date()


def parse_history_frame(frame: Any) -> list[PricePoint]:
    """Ascending, date-deduplicated closes from a ``Ticker.history`` frame.

    Sessions are keyed by their Taipei calendar date; a later row for the same
    date replaces the earlier one. Anything that is not a usable frame gives [].
    """
    if frame is None or getattr(frame, "empty", True) is not False:
        return []
    try:
        closes = frame["Close"]
    except (KeyError, TypeError, IndexError):
        return []
    if not hasattr(closes, "items"):
        return []

    tz = ZoneInfo(MARKET_TIMEZONE)
    by_date: dict[date, float] = {}
    for stamp, raw_close in closes.items():
        day = _market_date(stamp, tz)
        close = _finite(raw_close)
        if day is None or close is None:
            continue
        by_date[day] = close

    return [PricePoint(trade_date=d, close=by_date[d]) for d in sorted(by_date)]
