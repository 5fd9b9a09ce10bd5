from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Sequence

from app.twstock_radar.models.schemas import Board, Fundamentals, RevenueRecord
from app.twstock_radar.providers.base import BoardProvider

logger = logging.getLogger(__name__)

DATA_KINDS = ("fundamentals", "prices", "revenue")


@dataclass(frozen=True)
class MarketData:
    fundamentals: dict[str, Fundamentals] = field(default_factory=dict)
    prices: dict[str, float] = field(default_factory=dict)
    revenue: dict[str, RevenueRecord] = field(default_factory=dict)


def _run_query(provider: BoardProvider, kind: str) -> dict[str, Any]:
    try:
        return getattr(provider, f"get_{kind}")()
    except Exception as exc:
        logger.warning("%s %s fetch failed: %s", provider.board.value, kind, exc)
        return {}


def order_providers(providers: Sequence[BoardProvider], merge_order: Sequence[Board]) -> list[BoardProvider]:
    """Providers sorted by merge order; boards not listed keep their place at the front."""
    rank = {board: idx for idx, board in enumerate(merge_order)}
    return sorted(providers, key=lambda p: rank.get(p.board, -1))


def load_market_data(
    providers: Sequence[BoardProvider],
    merge_order: Sequence[Board] = (Board.PRIMARY, Board.SECONDARY),
) -> MarketData:
    """Fetch every board/kind pair concurrently, then union per kind.

    Later boards in ``merge_order`` overwrite earlier ones on key conflicts.
    """
    ordered = order_providers(providers, merge_order)
    jobs = [(p, kind) for p in ordered for kind in DATA_KINDS]

    with ThreadPoolExecutor(max_workers=max(1, len(jobs))) as executor:
        futures = [executor.submit(_run_query, p, kind) for p, kind in jobs]
        results = [f.result() for f in futures]

    merged: dict[str, dict[str, Any]] = {kind: {} for kind in DATA_KINDS}
    for (_, kind), result in zip(jobs, results):
        merged[kind].update(result)

    logger.info(
        "Market data loaded: fundamentals=%d prices=%d revenue=%d",
        len(merged["fundamentals"]),
        len(merged["prices"]),
        len(merged["revenue"]),
    )
    return MarketData(**merged)
