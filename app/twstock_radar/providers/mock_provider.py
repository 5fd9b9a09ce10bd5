from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from typing import Any

import yaml

from app.twstock_radar.core.calendar import TradingDate
from app.twstock_radar.core.settings import SAMPLE_MARKET_PATH
from app.twstock_radar.models.schemas import Board, Fundamentals, InstitutionalDayRecord, PricePoint, RevenueRecord
from app.twstock_radar.providers.base import BoardProvider


def load_sample(path: Path | None = None) -> dict[str, Any]:
    with (path or SAMPLE_MARKET_PATH).open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class MockBoardProvider(BoardProvider):
    """Serves one board's data from the sample YAML file, for offline runs."""

    def __init__(self, board: Board, sample: dict[str, Any]) -> None:
        self.board = board
        self.data = sample.get(board.value) or {}
        # Filings are handed out in request order: first requested day gets entry 0.
        self._day_slots: dict[date, int] = {}

    def get_fundamentals(self) -> dict[str, Fundamentals]:
        return {
            str(code): Fundamentals(board=self.board, **(row or {}))
            for code, row in (self.data.get("fundamentals") or {}).items()
        }

    def get_prices(self) -> dict[str, float]:
        return {str(code): float(price) for code, price in (self.data.get("prices") or {}).items()}

    def get_revenue(self) -> dict[str, RevenueRecord]:
        return {str(code): RevenueRecord(**(row or {})) for code, row in (self.data.get("revenue") or {}).items()}

    def get_institutional_rows(self, day: TradingDate) -> dict[str, InstitutionalDayRecord] | None:
        filings = self.data.get("institutional") or []
        slot = self._day_slots.setdefault(day.day, len(self._day_slots))
        if slot >= len(filings) or not filings[slot]:
            return None
        return {
            str(code): InstitutionalDayRecord(trade_date=day.day, **row)
            for code, row in filings[slot].items()
        }


class MockChartClient:
    """Geometric price paths described by ``history`` entries in the sample file."""

    def __init__(self, sample: dict[str, Any], end: date | None = None) -> None:
        self.paths = {str(k): v for k, v in (sample.get("history") or {}).items()}
        self.end = end or date.today()

    @staticmethod
    def to_symbol(code: str, board: Board | None) -> str:
        return code

    def fetch_history(self, symbol: str) -> list[PricePoint] | None:
        path_def = self.paths.get(symbol)
        if not path_def:
            return None
        days = int(path_def.get("days", 130))
        price = float(path_def["start"])
        drift = float(path_def.get("drift_pct", 0.0)) / 100.0

        points: list[PricePoint] = []
        current = self.end - timedelta(days=days * 2)
        while len(points) < days:
            if current.weekday() < 5:
                points.append(PricePoint(trade_date=current, close=round(price, 2)))
                price *= 1.0 + drift
            current += timedelta(days=1)
        return points

    def fetch_sparkline(self, symbol: str) -> list[float] | None:
        history = self.fetch_history(symbol)
        if not history:
            return None
        return [p.close for p in history[-5:]]
