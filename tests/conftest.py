from __future__ import annotations

import json
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
import requests

from app.twstock_radar.core.calendar import TradingDate
from app.twstock_radar.models.schemas import (
    Board,
    Fundamentals,
    InstitutionalDayRecord,
    PricePoint,
    RevenueRecord,
)
from app.twstock_radar.providers.base import BoardProvider

TAIPEI = ZoneInfo("Asia/Taipei")


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class FakeSession:
    """Replays queued responses (or exceptions) in order; records requested URLs."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.headers: dict[str, str] = {}
        self.calls: list[str] = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        item = self.responses.pop(0) if self.responses else FakeResponse(503, "")
        if isinstance(item, Exception):
            raise item
        return item


def json_response(payload, status_code: int = 200) -> FakeResponse:
    return FakeResponse(status_code, json.dumps(payload, ensure_ascii=False))


class StubClient:
    """FetchClient stand-in keyed by URL substring."""

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[str] = []

    def fetch_json(self, url, max_attempts=None, retry_delay_sec=None):
        self.calls.append(url)
        for fragment, payload in self.routes.items():
            if fragment in url:
                return payload
        return None


class FakeBoardProvider(BoardProvider):
    def __init__(
        self,
        board: Board,
        fundamentals=None,
        prices=None,
        revenue=None,
        flows: dict[date, dict[str, int]] | list[dict[str, int] | None] | None = None,
        fail: bool = False,
    ) -> None:
        self.board = board
        self.fundamentals = fundamentals or {}
        self.prices = prices or {}
        self.revenue = revenue or {}
        self.flows = flows or {}
        self.fail = fail
        self.requested_days: list[date] = []

    def _check(self):
        if self.fail:
            raise requests.ConnectionError("upstream down")

    def get_fundamentals(self) -> dict[str, Fundamentals]:
        self._check()
        return dict(self.fundamentals)

    def get_prices(self) -> dict[str, float]:
        self._check()
        return dict(self.prices)

    def get_revenue(self) -> dict[str, RevenueRecord]:
        self._check()
        return dict(self.revenue)

    def get_institutional_rows(self, day: TradingDate):
        self.requested_days.append(day.day)
        self._check()
        if isinstance(self.flows, list):
            # Positional filings: the n-th requested day gets flows[n].
            idx = len(self.requested_days) - 1
            day_flows = self.flows[idx] if idx < len(self.flows) else None
        else:
            day_flows = self.flows.get(day.day)
        if day_flows is None:
            return None
        return {
            code: InstitutionalDayRecord(trade_date=day.day, foreign=total, trust=0, dealer=0, total=total)
            for code, total in day_flows.items()
        }


class FakeChart:
    def __init__(self, histories: dict[str, list[float]] | None = None, sparklines=None) -> None:
        self.histories = histories or {}
        self.sparklines = sparklines or {}
        self.requested: list[str] = []

    @staticmethod
    def to_symbol(code, board):
        return f"{code}.{board.value}"

    def fetch_history(self, symbol):
        self.requested.append(symbol)
        closes = self.histories.get(symbol.split(".")[0])
        if not closes:
            return None
        start = date(2024, 1, 1).toordinal()
        return [PricePoint(trade_date=date.fromordinal(start + i), close=c) for i, c in enumerate(closes)]

    def fetch_sparkline(self, symbol):
        return self.sparklines.get(symbol.split(".")[0])


@pytest.fixture
def no_sleep():
    slept: list[float] = []
    return slept.append, slept


@pytest.fixture
def wednesday_evening() -> datetime:
    return datetime(2024, 3, 13, 18, 0, tzinfo=TAIPEI)
