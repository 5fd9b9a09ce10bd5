from __future__ import annotations

import logging
from typing import Protocol

from app.twstock_radar.core.pacing import NO_PACING, Pacer
from app.twstock_radar.models.schemas import (
    Board,
    Fundamentals,
    PricePoint,
    Sparkline,
    TechnicalIndicators,
    WatchlistEntry,
)
from app.twstock_radar.services.indicators import calculate_indicators, empty_technical
from app.twstock_radar.utils.numbers import pct_change

logger = logging.getLogger(__name__)


class ChartSource(Protocol):
    def to_symbol(self, code: str, board: Board | None) -> str: ...

    def fetch_history(self, symbol: str) -> list[PricePoint] | None: ...

    def fetch_sparkline(self, symbol: str) -> list[float] | None: ...


class TechnicalService:
    """Per-symbol price lookups, one at a time with fixed spacing."""

    def __init__(
        self,
        chart: ChartSource,
        technical_pacer: Pacer = NO_PACING,
        sparkline_pacer: Pacer = NO_PACING,
    ) -> None:
        self.chart = chart
        self.technical_pacer = technical_pacer
        self.sparkline_pacer = sparkline_pacer

    def get_technical(
        self,
        entries: list[WatchlistEntry],
        fundamentals: dict[str, Fundamentals],
    ) -> dict[str, TechnicalIndicators]:
        result: dict[str, TechnicalIndicators] = {}
        success = 0

        for entry in self.technical_pacer.paced(entries):
            info = fundamentals.get(entry.id)
            if info is None or info.board is None:
                logger.info("[%s] board unknown, skipping price history", entry.id)
                result[entry.id] = empty_technical()
                continue

            symbol = self.chart.to_symbol(entry.id, info.board)
            try:
                history = self.chart.fetch_history(symbol)
            except Exception as exc:
                logger.warning("[%s] price history failed: %s", entry.id, exc)
                history = None

            if history:
                result[entry.id] = calculate_indicators(history)
                success += 1
            else:
                result[entry.id] = empty_technical()

        logger.info("Technical indicators ready for %d/%d symbols", success, len(entries))
        return result

    def get_sparklines(
        self,
        entries: list[WatchlistEntry],
        fundamentals: dict[str, Fundamentals],
    ) -> dict[str, Sparkline]:
        result: dict[str, Sparkline] = {}
        success = 0

        for entry in self.sparkline_pacer.paced(entries):
            info = fundamentals.get(entry.id)
            if info is None or info.board is None:
                result[entry.id] = Sparkline()
                continue

            try:
                closes = self.chart.fetch_sparkline(self.chart.to_symbol(entry.id, info.board))
            except Exception as exc:
                logger.warning("[%s] sparkline failed: %s", entry.id, exc)
                closes = None

            if not closes:
                result[entry.id] = Sparkline()
                continue

            change = pct_change(closes[-1], closes[0]) if len(closes) >= 2 else None
            result[entry.id] = Sparkline(prices=closes, change=change)
            if change is not None:
                success += 1

        logger.info("Sparklines ready for %d/%d symbols", success, len(entries))
        return result
