from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from app.twstock_radar.core.calendar import TradingDate
from app.twstock_radar.core.http import FetchClient
from app.twstock_radar.models.schemas import Board, Fundamentals, InstitutionalDayRecord, RevenueRecord
from app.twstock_radar.utils.numbers import shares_to_lots

logger = logging.getLogger(__name__)

Transformer = Callable[[Any], "tuple[str, Any] | None"]


def fetch_to_map(client: FetchClient, url: str, description: str, transformer: Transformer) -> dict[str, Any]:
    """Fetch an array payload and key it through ``transformer``.

    Elements the transformer rejects (returns None) are dropped.
    """
    payload = client.fetch_json(url)
    if not isinstance(payload, list):
        logger.warning("%s: no usable data from %s", description, url)
        return {}

    out: dict[str, Any] = {}
    for item in payload:
        if not isinstance(item, dict):
            continue
        result = transformer(item)
        if result is None:
            continue
        key, value = result
        if key:
            out[key] = value

    logger.info("%s: %d rows, %d kept", description, len(payload), len(out))
    return out


@dataclass(frozen=True)
class InstitutionalLayout:
    """Column positions of a board's institutional-flow table."""

    code: int
    foreign: int
    trust: int
    dealer: int
    total: int
    min_length: int


def parse_institutional_rows(
    rows: list[Any],
    day: TradingDate,
    layout: InstitutionalLayout,
) -> dict[str, InstitutionalDayRecord]:
    out: dict[str, InstitutionalDayRecord] = {}
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < layout.min_length:
            continue
        code = str(row[layout.code]).strip()
        if not code:
            continue
        out[code] = InstitutionalDayRecord(
            trade_date=day.day,
            foreign=shares_to_lots(row[layout.foreign]),
            trust=shares_to_lots(row[layout.trust]),
            dealer=shares_to_lots(row[layout.dealer]),
            total=shares_to_lots(row[layout.total]),
        )
    return out


def pick_field(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


class BoardProvider(ABC):
    board: Board

    @abstractmethod
    def get_fundamentals(self) -> dict[str, Fundamentals]:
        raise NotImplementedError

    @abstractmethod
    def get_prices(self) -> dict[str, float]:
        raise NotImplementedError

    @abstractmethod
    def get_revenue(self) -> dict[str, RevenueRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_institutional_rows(self, day: TradingDate) -> dict[str, InstitutionalDayRecord] | None:
        """Per-symbol flows for one day, or None when the board has no filing."""
        raise NotImplementedError
