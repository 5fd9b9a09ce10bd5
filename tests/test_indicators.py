from datetime import date

import pytest

from app.twstock_radar.models.schemas import PricePoint, TrendState
from app.twstock_radar.services.indicators import (
    calculate_indicators,
    classify_trend,
    moving_average,
    price_change,
)


def series(closes):
    start = date(2024, 1, 1).toordinal()
    return [PricePoint(trade_date=date.fromordinal(start + i), close=c) for i, c in enumerate(closes)]


def test_moving_average_needs_full_window():
    assert moving_average([1, 2, 3], 4) is None
    assert moving_average([1, 2, 3, 4], 2) == 3.5


def test_price_change_looks_back_n_sessions():
    closes = [100.0] + [0.0] * 19 + [110.0]
    assert price_change(closes, 20) == pytest.approx(10.0)
    assert price_change(closes, 21) is None


def test_short_history_leaves_long_averages_empty():
    result = calculate_indicators(series([100.0 + i for i in range(40)]))

    assert result.data_points == 40
    assert result.ma20 is not None
    assert result.ma60 is None
    assert result.ma120 is None
    assert result.distance_from_ma60 is None
    assert result.change3m is None
    assert result.change1m is not None
    # Without MA60 there is nothing to compare against.
    assert result.trend == TrendState.CONSOLIDATING


def test_rising_series_is_bullish_aligned():
    result = calculate_indicators(series([100.0 + i for i in range(130)]))

    assert result.trend == TrendState.BULLISH_ALIGNED
    assert result.distance_from_ma60 > 0
    assert result.ma20 > result.ma60 > result.ma120


def test_falling_series_is_bearish_aligned():
    result = calculate_indicators(series([300.0 - i for i in range(130)]))
    assert result.trend == TrendState.BEARISH_ALIGNED
    assert result.change3m < 0


def test_mixed_configurations():
    assert classify_trend(110, 100, 105, 120) == TrendState.MILD_BULLISH
    assert classify_trend(90, 100, 95, 80) == TrendState.MILD_BEARISH
    assert classify_trend(110, None, 100, None) == TrendState.MILD_BULLISH
    assert classify_trend(110, 105, None, 90) == TrendState.CONSOLIDATING


def test_distance_from_ma60():
    closes = [100.0] * 59 + [160.0]
    result = calculate_indicators(series(closes))
    assert result.ma60 == pytest.approx(101.0)
    assert result.distance_from_ma60 == pytest.approx((160 - 101) / 101 * 100)


def test_empty_history():
    result = calculate_indicators([])
    assert result.trend == TrendState.NO_DATA
    assert result.data_points == 0
