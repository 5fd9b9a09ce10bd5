from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class Board(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


BOARD_LABELS = {
    Board.PRIMARY: "TWSE",
    Board.SECONDARY: "TPEX",
}


class TrendState(str, Enum):
    BULLISH_ALIGNED = "bullish-aligned"
    BEARISH_ALIGNED = "bearish-aligned"
    MILD_BULLISH = "mild-bullish"
    MILD_BEARISH = "mild-bearish"
    CONSOLIDATING = "consolidating"
    NO_DATA = "no-data"


class WatchlistEntry(BaseModel):
    id: str
    sector: str | None = None
    note: str = ""


class SectorBenchmark(BaseModel):
    graham_threshold: float
    pe_range: tuple[float, float]
    pb_range: tuple[float, float]
    yield_min: float
    name: str


class Fundamentals(BaseModel):
    name: str = ""
    pe: float = 0.0
    pb: float = 0.0
    yield_rate: float = 0.0
    board: Board | None = None


class RevenueRecord(BaseModel):
    yoy: float | None = None
    cum_yoy: float | None = None


class InstitutionalDayRecord(BaseModel):
    trade_date: date
    foreign: int = 0
    trust: int = 0
    dealer: int = 0
    total: int = 0


class InstitutionalStats(BaseModel):
    today: int = 0
    sum5: int = 0
    sum10: int = 0
    consecutive_days: int = 0
    foreign5: int = 0
    trust5: int = 0
    dealer5: int = 0


class PricePoint(BaseModel):
    trade_date: date
    close: float


class TechnicalIndicators(BaseModel):
    ma20: float | None = None
    ma60: float | None = None
    ma120: float | None = None
    distance_from_ma60: float | None = None
    change1m: float | None = None
    change3m: float | None = None
    trend: TrendState = TrendState.NO_DATA
    data_points: int = 0


class Sparkline(BaseModel):
    prices: list[float] = []
    change: float | None = None


class AnalysisTag(BaseModel):
    icon: str
    text: str


class AnalysisResult(BaseModel):
    score: int = 0
    rating: str
    rating_class: str
    bucket: Literal["bullish", "neutral", "bearish"]
    tags: list[AnalysisTag] = []


class InstitutionalBlock(InstitutionalStats):
    consecutive_display: str = "-"


class StockRecord(BaseModel):
    id: str
    name: str
    note: str
    sector: str | None
    sector_name: str
    market: str
    price: float | None
    combined_ratio: float | None
    graham_threshold: float | None
    pe: float | None
    pb: float | None
    yield_rate: float | None
    revenue: RevenueRecord
    sparkline: Sparkline
    institutional: InstitutionalBlock
    technical: TechnicalIndicators | None
    analysis: AnalysisResult


class RankedFlow(BaseModel):
    id: str
    name: str
    value: int


class SectorMember(BaseModel):
    id: str
    name: str
    rating: str


class SectorGroup(BaseModel):
    count: int = 0
    stocks: list[SectorMember] = []


class Signal(BaseModel):
    type: Literal["bullish", "bearish", "info"]
    text: str


class PortfolioSummary(BaseModel):
    total: int = 0
    bullish: int = 0
    neutral: int = 0
    bearish: int = 0
    inst_buy_list: list[RankedFlow] = []
    inst_sell_list: list[RankedFlow] = []
    signals: list[Signal] = []
    by_sector: dict[str, SectorGroup] = Field(default_factory=dict)


class DashboardPayload(BaseModel):
    stocks: list[StockRecord] = []
    summary: PortfolioSummary = Field(default_factory=PortfolioSummary)
    sector_benchmarks: dict[str, SectorBenchmark] = Field(default_factory=dict)
    updated_at: str
