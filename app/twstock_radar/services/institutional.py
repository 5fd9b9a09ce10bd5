from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from app.twstock_radar.core.calendar import TradingDate, last_n_trading_dates
from app.twstock_radar.core.pacing import NO_PACING, Pacer
from app.twstock_radar.models.schemas import InstitutionalDayRecord, InstitutionalStats
from app.twstock_radar.providers.base import BoardProvider

logger = logging.getLogger(__name__)

SHORT_WINDOW = 5
LONG_WINDOW = 10


@dataclass(frozen=True)
class InstitutionalReport:
    stats: dict[str, InstitutionalStats] = field(default_factory=dict)
    success_days: int = 0
    requested_days: int = 0


def _streak(ordered: Sequence[InstitutionalDayRecord]) -> int:
    """Signed run length of same-direction days, newest first. Zero breaks a run."""
    if not ordered or ordered[0].total == 0:
        return 0
    buying = ordered[0].total > 0
    count = 0
    for day in ordered:
        if (buying and day.total > 0) or (not buying and day.total < 0):
            count += 1
        else:
            break
    return count if buying else -count


def calculate_stats(history: Sequence[InstitutionalDayRecord]) -> InstitutionalStats:
    if not history:
        return InstitutionalStats()

    ordered = sorted(history, key=lambda d: d.trade_date, reverse=True)
    last5 = ordered[:SHORT_WINDOW]
    last10 = ordered[:LONG_WINDOW]

    return InstitutionalStats(
        today=ordered[0].total,
        sum5=sum(d.total for d in last5),
        sum10=sum(d.total for d in last10),
        consecutive_days=_streak(ordered),
        foreign5=sum(d.foreign for d in last5),
        trust5=sum(d.trust for d in last5),
        dealer5=sum(d.dealer for d in last5),
    )


class InstitutionalAggregator:
    def __init__(self, providers: Sequence[BoardProvider], pacer: Pacer = NO_PACING) -> None:
        self.providers = list(providers)
        self.pacer = pacer

    def _fetch_board(self, provider: BoardProvider, day: TradingDate) -> dict[str, InstitutionalDayRecord] | None:
        try:
            return provider.get_institutional_rows(day)
        except Exception as exc:
            logger.warning("%s institutional %s failed: %s", provider.board.value, day.gregorian, exc)
            return None

    def collect(self, days: int, now: datetime | None = None) -> InstitutionalReport:
        dates = last_n_trading_dates(days, now=now)
        history: dict[str, list[InstitutionalDayRecord]] = defaultdict(list)
        success_days = 0

        logger.info("Collecting institutional flows for %d trading days", len(dates))

        with ThreadPoolExecutor(max_workers=max(1, len(self.providers))) as executor:
            for idx, day in enumerate(self.pacer.paced(dates), start=1):
                logger.info("  %s (%d/%d)", day.gregorian, idx, len(dates))
                futures = [executor.submit(self._fetch_board, p, day) for p in self.providers]

                day_ok = False
                for provider, future in zip(self.providers, futures):
                    rows = future.result()
                    if rows is None:
                        logger.info("    %s has no filing for %s", provider.board.value, day.gregorian)
                        continue
                    day_ok = True
                    for code, record in rows.items():
                        history[code].append(record)

                if day_ok:
                    success_days += 1

        stats = {code: calculate_stats(records) for code, records in history.items()}
        logger.info(
            "Institutional flows done: %d/%d days, %d symbols",
            success_days,
            len(dates),
            len(stats),
        )
        return InstitutionalReport(stats=stats, success_days=success_days, requested_days=len(dates))
