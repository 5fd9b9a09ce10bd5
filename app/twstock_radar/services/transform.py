"""Join upstream maps against the watch-list and build the dashboard payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.twstock_radar.models.schemas import (
    BOARD_LABELS,
    DashboardPayload,
    Fundamentals,
    InstitutionalBlock,
    InstitutionalStats,
    PortfolioSummary,
    RankedFlow,
    RevenueRecord,
    SectorBenchmark,
    SectorGroup,
    SectorMember,
    Signal,
    Sparkline,
    StockRecord,
    TechnicalIndicators,
    WatchlistEntry,
)
from app.twstock_radar.services.indicators import empty_technical
from app.twstock_radar.services.market_data import MarketData
from app.twstock_radar.services.scoring import ScoreEngine, insufficient_data_result

logger = logging.getLogger(__name__)

UNCLASSIFIED_SECTOR = "Unclassified"
UNKNOWN_MARKET = "Unknown"

INST_LIST_THRESHOLD = 100
SIGNAL_STREAK_DAYS = 3
SIGNAL_MA60_BAND_PCT = 3.0
SIGNAL_REVENUE_YOY = 20.0


@dataclass(frozen=True)
class RawData:
    market: MarketData = field(default_factory=MarketData)
    institutional: dict[str, InstitutionalStats] = field(default_factory=dict)
    technical: dict[str, TechnicalIndicators] | None = None
    sparklines: dict[str, Sparkline] = field(default_factory=dict)


def normalize_fundamentals(value: Fundamentals | None) -> Fundamentals:
    return value if value is not None else Fundamentals()


def normalize_revenue(value: RevenueRecord | None) -> RevenueRecord:
    return value if value is not None else RevenueRecord()


def normalize_institutional(value: InstitutionalStats | None) -> InstitutionalStats:
    return value if value is not None else InstitutionalStats()


def normalize_technical(value: TechnicalIndicators | None, include_technical: bool) -> TechnicalIndicators | None:
    if not include_technical:
        return None
    return value if value is not None else empty_technical()


def normalize_sparkline(value: Sparkline | None) -> Sparkline:
    return value if value is not None else Sparkline()


def combined_ratio(pe: float, pb: float) -> float | None:
    if pe > 0 and pb > 0:
        return pe * pb
    return None


def format_streak(days: int) -> str:
    if days == 0:
        return "-"
    return f"buy {days}d" if days > 0 else f"sell {abs(days)}d"


def _positive_or_none(value: float) -> float | None:
    return value if value else None


def build_stock_record(
    entry: WatchlistEntry,
    raw: RawData,
    engine: ScoreEngine,
    benchmark: SectorBenchmark | None,
    include_technical: bool = True,
) -> StockRecord:
    market = raw.market
    ratio = normalize_fundamentals(market.fundamentals.get(entry.id))
    revenue = normalize_revenue(market.revenue.get(entry.id))
    inst = normalize_institutional(raw.institutional.get(entry.id))
    tech = normalize_technical((raw.technical or {}).get(entry.id), include_technical)
    sparkline = normalize_sparkline(raw.sparklines.get(entry.id))

    analysis = engine.analyze(ratio, revenue.yoy, inst, tech, benchmark)

    return StockRecord(
        id=entry.id,
        name=ratio.name,
        note=entry.note,
        sector=entry.sector,
        sector_name=benchmark.name if benchmark else UNCLASSIFIED_SECTOR,
        market=BOARD_LABELS.get(ratio.board, UNKNOWN_MARKET),
        price=market.prices.get(entry.id),
        combined_ratio=combined_ratio(ratio.pe, ratio.pb),
        graham_threshold=benchmark.graham_threshold if benchmark else None,
        pe=_positive_or_none(ratio.pe),
        pb=_positive_or_none(ratio.pb),
        yield_rate=_positive_or_none(ratio.yield_rate),
        revenue=revenue,
        sparkline=sparkline,
        institutional=InstitutionalBlock(
            **inst.model_dump(),
            consecutive_display=format_streak(inst.consecutive_days),
        ),
        technical=tech,
        analysis=analysis,
    )


def build_default_record(entry: WatchlistEntry, include_technical: bool = True) -> StockRecord:
    """Record with every block at its default; uses neither engine nor benchmark."""
    return StockRecord(
        id=entry.id,
        name="",
        note=entry.note,
        sector=entry.sector,
        sector_name=UNCLASSIFIED_SECTOR,
        market=UNKNOWN_MARKET,
        price=None,
        combined_ratio=None,
        graham_threshold=None,
        pe=None,
        pb=None,
        yield_rate=None,
        revenue=RevenueRecord(),
        sparkline=Sparkline(),
        institutional=InstitutionalBlock(),
        technical=normalize_technical(None, include_technical),
        analysis=insufficient_data_result(),
    )


def build_stock_records(
    entries: list[WatchlistEntry],
    raw: RawData,
    engine: ScoreEngine,
    benchmarks: dict[str, SectorBenchmark],
    include_technical: bool = True,
) -> list[StockRecord]:
    """Exactly one record per watch-list entry, in watch-list order."""
    records: list[StockRecord] = []
    for entry in entries:
        benchmark = benchmarks.get(entry.sector) if entry.sector else None
        try:
            records.append(build_stock_record(entry, raw, engine, benchmark, include_technical))
        except Exception:
            logger.exception("[%s] record build failed, falling back to defaults", entry.id)
            records.append(build_default_record(entry, include_technical))
    return records


def _ranked(records: list[StockRecord], buying: bool) -> list[RankedFlow]:
    if buying:
        picked = [r for r in records if r.institutional.today > INST_LIST_THRESHOLD]
    else:
        picked = [r for r in records if r.institutional.today < -INST_LIST_THRESHOLD]
    picked.sort(key=lambda r: r.institutional.today, reverse=buying)
    return [RankedFlow(id=r.id, name=r.name, value=r.institutional.today) for r in picked]


def _signals_for(record: StockRecord) -> list[Signal]:
    label = f"{record.id} {record.name}".strip()
    out: list[Signal] = []

    streak = record.institutional.consecutive_days
    if streak >= SIGNAL_STREAK_DAYS:
        out.append(Signal(type="bullish", text=f"{label}: institutions net bought {streak} days in a row"))
    elif streak <= -SIGNAL_STREAK_DAYS:
        out.append(Signal(type="bearish", text=f"{label}: institutions net sold {abs(streak)} days in a row"))

    tech = record.technical
    if tech is not None and tech.distance_from_ma60 is not None:
        if abs(tech.distance_from_ma60) <= SIGNAL_MA60_BAND_PCT:
            out.append(Signal(type="info", text=f"{label}: price near MA60 ({tech.distance_from_ma60:+.1f}%)"))

    yoy = record.revenue.yoy
    if yoy is not None and yoy > SIGNAL_REVENUE_YOY:
        out.append(Signal(type="bullish", text=f"{label}: revenue up {yoy:.1f}% year over year"))

    return out


def build_summary(records: list[StockRecord]) -> PortfolioSummary:
    summary = PortfolioSummary(total=len(records))

    for record in records:
        bucket = record.analysis.bucket
        setattr(summary, bucket, getattr(summary, bucket) + 1)

        group = summary.by_sector.setdefault(record.sector_name, SectorGroup())
        group.count += 1
        group.stocks.append(SectorMember(id=record.id, name=record.name, rating=record.analysis.rating))

        summary.signals.extend(_signals_for(record))

    summary.inst_buy_list = _ranked(records, buying=True)
    summary.inst_sell_list = _ranked(records, buying=False)
    return summary


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_response(
    records: list[StockRecord],
    benchmarks: dict[str, SectorBenchmark],
    updated_at: str | None = None,
) -> DashboardPayload:
    return DashboardPayload(
        stocks=records,
        summary=build_summary(records),
        sector_benchmarks=benchmarks,
        updated_at=updated_at or utc_now_iso(),
    )


def build_empty_response(updated_at: str | None = None) -> DashboardPayload:
    return DashboardPayload(updated_at=updated_at or utc_now_iso())
