from __future__ import annotations

from typing import Sequence

from app.twstock_radar.models.schemas import PricePoint, TechnicalIndicators, TrendState
from app.twstock_radar.utils.numbers import pct_change

MA_SHORT = 20
MA_MEDIUM = 60
MA_LONG = 120

CHANGE_1M_DAYS = 20
CHANGE_3M_DAYS = 60


def moving_average(closes: Sequence[float], window: int) -> float | None:
    if window <= 0 or len(closes) < window:
        return None
    return sum(closes[-window:]) / window


def price_change(closes: Sequence[float], days: int) -> float | None:
    if len(closes) < days + 1:
        return None
    return pct_change(closes[-1], closes[-1 - days])


def deviation(price: float, ma: float | None) -> float | None:
    if ma is None or ma <= 0:
        return None
    return (price - ma) / ma * 100.0


def classify_trend(
    price: float,
    ma_short: float | None,
    ma_medium: float | None,
    ma_long: float | None,
) -> TrendState:
    """Label the moving-average configuration; missing averages drop their signal."""
    above_medium = below_medium = None
    short_bull = short_bear = None
    mid_bull = mid_bear = None

    if ma_medium is not None:
        above_medium = price > ma_medium
        below_medium = not above_medium
        if ma_short is not None:
            short_bull = ma_short > ma_medium
            short_bear = not short_bull
        if ma_long is not None:
            mid_bull = ma_medium > ma_long
            mid_bear = not mid_bull

    if above_medium and short_bull and mid_bull:
        return TrendState.BULLISH_ALIGNED
    if below_medium and short_bear and mid_bear:
        return TrendState.BEARISH_ALIGNED
    if above_medium:
        return TrendState.MILD_BULLISH
    if below_medium:
        return TrendState.MILD_BEARISH
    return TrendState.CONSOLIDATING


def empty_technical() -> TechnicalIndicators:
    return TechnicalIndicators()


def calculate_indicators(history: Sequence[PricePoint]) -> TechnicalIndicators:
    if not history:
        return empty_technical()

    closes = [p.close for p in history]
    current = closes[-1]

    ma20 = moving_average(closes, MA_SHORT)
    ma60 = moving_average(closes, MA_MEDIUM)
    ma120 = moving_average(closes, MA_LONG)

    return TechnicalIndicators(
        ma20=ma20,
        ma60=ma60,
        ma120=ma120,
        distance_from_ma60=deviation(current, ma60),
        change1m=price_change(closes, CHANGE_1M_DAYS),
        change3m=price_change(closes, CHANGE_3M_DAYS),
        trend=classify_trend(current, ma20, ma60, ma120),
        data_points=len(closes),
    )
