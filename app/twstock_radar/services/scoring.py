from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from app.twstock_radar.models.schemas import (
    AnalysisResult,
    AnalysisTag,
    Fundamentals,
    InstitutionalStats,
    SectorBenchmark,
    TechnicalIndicators,
    TrendState,
)

Bucket = Literal["bullish", "neutral", "bearish"]


@dataclass(frozen=True)
class ScoredTag:
    icon: str
    text: str
    weight: int

    def to_tag(self) -> AnalysisTag:
        return AnalysisTag(icon=self.icon, text=self.text)


@dataclass(frozen=True)
class RatingLevel:
    min_score: int | None  # None marks the catch-all bottom level
    label: str
    rating_class: str
    bucket: Bucket


SIX_LEVEL: tuple[RatingLevel, ...] = (
    RatingLevel(5, "Strong Buy", "strong-buy", "bullish"),
    RatingLevel(3, "Buy", "buy", "bullish"),
    RatingLevel(1, "Lean Bullish", "bullish", "bullish"),
    RatingLevel(-1, "Neutral", "neutral", "neutral"),
    RatingLevel(-3, "Lean Bearish", "bearish", "bearish"),
    RatingLevel(None, "Avoid", "avoid", "bearish"),
)

FIVE_LEVEL: tuple[RatingLevel, ...] = (
    RatingLevel(4, "Strong Buy", "strong-buy", "bullish"),
    RatingLevel(2, "Buy", "buy", "bullish"),
    RatingLevel(0, "Neutral", "neutral", "neutral"),
    RatingLevel(-2, "Watch", "watch", "bearish"),
    RatingLevel(None, "Avoid", "avoid", "bearish"),
)

RATING_POLICIES: dict[str, tuple[RatingLevel, ...]] = {
    "six_level": SIX_LEVEL,
    "five_level": FIVE_LEVEL,
}

# Absolute valuation thresholds, used when a stock has no sector benchmark.
COMBINED_CHEAP = 15.0
COMBINED_FAIR = 22.5
COMBINED_EXPENSIVE = 50.0
PE_LOW = 10.0
PE_HIGH = 30.0
PB_BELOW_BOOK = 1.0
YIELD_HIGH = 5.0
YIELD_VERY_HIGH = 7.0

# Sector-relative multipliers.
PEER_CHEAP_FACTOR = 0.7
PEER_EXPENSIVE_FACTOR = 1.5
PEER_HIGH_PE_FACTOR = 1.2
PEER_VERY_HIGH_YIELD_FACTOR = 1.5

STREAK_TAG_DAYS = 5

VALUATION_NEUTRAL = ScoredTag("➖", "valuation-neutral", 0)
INSUFFICIENT_DATA = ScoredTag("➖", "insufficient-data", 0)


def rate(score: int, policy: tuple[RatingLevel, ...] = SIX_LEVEL) -> RatingLevel:
    for level in policy:
        if level.min_score is None or score >= level.min_score:
            return level
    return policy[-1]


def evaluate_valuation(
    pe: float,
    pb: float,
    yield_rate: float,
    benchmark: SectorBenchmark | None = None,
) -> list[ScoredTag]:
    # Zero PE/PB means the exchange did not report one (loss-making or new listing).
    if pe <= 0 or pb <= 0:
        return []

    combined = pe * pb
    tags: list[ScoredTag] = []

    if benchmark is not None:
        threshold = benchmark.graham_threshold
        if combined < threshold * PEER_CHEAP_FACTOR:
            tags.append(ScoredTag("🔥", "peer-undervalued", 2))
        elif combined < threshold:
            tags.append(ScoredTag("✅", "valuation-reasonable", 1))
        elif combined > threshold * PEER_EXPENSIVE_FACTOR:
            tags.append(ScoredTag("⚠️", "peer-overvalued", -1))

        pe_min, pe_max = benchmark.pe_range
        if pe < pe_min:
            tags.append(ScoredTag("📉", "low-pe", 1))
        elif pe > pe_max * PEER_HIGH_PE_FACTOR:
            tags.append(ScoredTag("📈", "high-pe", -1))

        if pb < benchmark.pb_range[0]:
            tags.append(ScoredTag("🛡️", "low-pb", 1))

        if yield_rate > benchmark.yield_min * PEER_VERY_HIGH_YIELD_FACTOR:
            tags.append(ScoredTag("💰", "very-high-yield", 2))
        elif yield_rate > benchmark.yield_min:
            tags.append(ScoredTag("💵", "high-yield", 1))
        return tags

    if combined < COMBINED_CHEAP:
        tags.append(ScoredTag("🔥", "strongly-undervalued", 2))
    elif combined < COMBINED_FAIR:
        tags.append(ScoredTag("✅", "fair-value", 1))
    elif combined > COMBINED_EXPENSIVE:
        tags.append(ScoredTag("⚠️", "estimated-overvalued", -1))

    if pb < PB_BELOW_BOOK:
        tags.append(ScoredTag("🛡️", "below-book-value", 1))

    if pe < PE_LOW:
        tags.append(ScoredTag("📉", "low-pe", 1))
    elif pe > PE_HIGH:
        tags.append(ScoredTag("📈", "high-pe", -1))

    if yield_rate > YIELD_VERY_HIGH:
        tags.append(ScoredTag("💰", "very-high-yield", 2))
    elif yield_rate > YIELD_HIGH:
        tags.append(ScoredTag("💵", "high-yield", 1))

    return tags


def evaluate_growth(revenue_yoy: float | None) -> list[ScoredTag]:
    if revenue_yoy is None or revenue_yoy == 0:
        return []
    if revenue_yoy > 20:
        return [ScoredTag("🚀", "strong-revenue-growth", 2)]
    if revenue_yoy > 10:
        return [ScoredTag("📈", "revenue-growth", 1)]
    if revenue_yoy < -10:
        return [ScoredTag("⚠️", "revenue-decline", -2)]
    if revenue_yoy < 0:
        return [ScoredTag("📉", "revenue-slight-decline", -1)]
    return []


def evaluate_institutional(stats: InstitutionalStats) -> list[ScoredTag]:
    tags: list[ScoredTag] = []

    # The 5-day window is the stronger signal; a single day is the fallback.
    if stats.sum5 != 0:
        if stats.sum5 > 1000:
            tags.append(ScoredTag("🟢", "institutions-heavy-buying-5d", 2))
        elif stats.sum5 > 300:
            tags.append(ScoredTag("🟢", "institutions-net-buying-5d", 1))
        elif stats.sum5 < -1000:
            tags.append(ScoredTag("🔴", "institutions-heavy-selling-5d", -2))
        elif stats.sum5 < -300:
            tags.append(ScoredTag("🔴", "institutions-net-selling-5d", -1))
    elif stats.today != 0:
        if stats.today > 500:
            tags.append(ScoredTag("🟢", "institutions-heavy-buying", 2))
        elif stats.today > 100:
            tags.append(ScoredTag("🟢", "institutions-net-buying", 1))
        elif stats.today < -500:
            tags.append(ScoredTag("🔴", "institutions-heavy-selling", -2))
        elif stats.today < -100:
            tags.append(ScoredTag("🔴", "institutions-net-selling", -1))

    streak = stats.consecutive_days
    if streak >= STREAK_TAG_DAYS:
        tags.append(ScoredTag("📊", f"buy-streak-{streak}d", 1))
    elif streak <= -STREAK_TAG_DAYS:
        tags.append(ScoredTag("📊", f"sell-streak-{abs(streak)}d", -1))

    return tags


_TREND_TAGS = {
    TrendState.BULLISH_ALIGNED: ScoredTag("📈", "bullish-aligned", 2),
    TrendState.MILD_BULLISH: ScoredTag("📈", "mild-bullish", 1),
    TrendState.BEARISH_ALIGNED: ScoredTag("📉", "bearish-aligned", -2),
    TrendState.MILD_BEARISH: ScoredTag("📉", "mild-bearish", -1),
}


def evaluate_technical(tech: TechnicalIndicators | None) -> list[ScoredTag]:
    if tech is None or tech.trend == TrendState.NO_DATA:
        return []

    tags: list[ScoredTag] = []
    trend_tag = _TREND_TAGS.get(tech.trend)
    if trend_tag is not None:
        tags.append(trend_tag)

    if tech.distance_from_ma60 is not None:
        if tech.distance_from_ma60 > 20:
            tags.append(ScoredTag("⚠️", "overextended", -1))
        elif tech.distance_from_ma60 < -15:
            tags.append(ScoredTag("💡", "oversold-rebound-opportunity", 1))

    # Momentum is informational only.
    if tech.change3m is not None:
        if tech.change3m > 30:
            tags.append(ScoredTag("🔥", "recent-strength", 0))
        elif tech.change3m < -20:
            tags.append(ScoredTag("📉", "recent-weakness", 0))

    return tags


class ScoreEngine:
    def __init__(self, policy: tuple[RatingLevel, ...] | str = SIX_LEVEL) -> None:
        self.policy = RATING_POLICIES[policy] if isinstance(policy, str) else policy

    def analyze(
        self,
        fundamentals: Fundamentals,
        revenue_yoy: float | None,
        institutional: InstitutionalStats,
        technical: TechnicalIndicators | None,
        benchmark: SectorBenchmark | None = None,
    ) -> AnalysisResult:
        scored = [
            *evaluate_valuation(fundamentals.pe, fundamentals.pb, fundamentals.yield_rate, benchmark),
            *evaluate_growth(revenue_yoy),
            *evaluate_institutional(institutional),
            *evaluate_technical(technical),
        ]

        if not scored:
            if fundamentals.pe > 0 and fundamentals.pb > 0:
                scored.append(VALUATION_NEUTRAL)
            else:
                scored.append(INSUFFICIENT_DATA)

        score = sum(t.weight for t in scored)
        level = rate(score, self.policy)
        return AnalysisResult(
            score=score,
            rating=level.label,
            rating_class=level.rating_class,
            bucket=level.bucket,
            tags=[t.to_tag() for t in scored],
        )


def insufficient_data_result() -> AnalysisResult:
    """Score-zero analysis used when a record could not be evaluated at all."""
    level = rate(0)
    return AnalysisResult(
        score=0,
        rating=level.label,
        rating_class=level.rating_class,
        bucket=level.bucket,
        tags=[INSUFFICIENT_DATA.to_tag()],
    )
