import pytest

from app.twstock_radar.core.config import validate_config
from app.twstock_radar.models.schemas import Board, Fundamentals, RevenueRecord
from app.twstock_radar.services import scan_status
from app.twstock_radar.services.pipeline import PipelineService
from conftest import FakeBoardProvider, FakeChart

CONFIG = {
    "portfolio": [
        {"id": "2330", "sector": "semiconductor"},
        {"id": "6488", "sector": "semiconductor"},
        {"id": "9999"},
    ],
    "sector_benchmarks": {
        "semiconductor": {
            "name": "Semiconductors",
            "graham_threshold": 60,
            "pe_range": [12, 25],
            "pb_range": [2, 6],
            "yield_min": 2.5,
        }
    },
    "settings": {"institutional_days": 3},
}


def providers():
    primary = FakeBoardProvider(
        Board.PRIMARY,
        fundamentals={"2330": Fundamentals(name="TSMC", pe=22, pb=6, yield_rate=1.6, board=Board.PRIMARY)},
        prices={"2330": 1035.0},
        revenue={"2330": RevenueRecord(yoy=33.8)},
        flows=[{"2330": 500}, {"2330": 300}, None],
    )
    secondary = FakeBoardProvider(
        Board.SECONDARY,
        fundamentals={"6488": Fundamentals(name="GlobalWafers", pe=14, pb=1.9, yield_rate=3.0, board=Board.SECONDARY)},
        prices={"6488": 402.5},
        flows=[{"6488": -120}, None, None],
    )
    return [primary, secondary]


def service(chart=None, provider_list=None, config=CONFIG):
    return PipelineService(
        config=validate_config(config),
        providers=provider_list if provider_list is not None else providers(),
        chart=chart or FakeChart(
            histories={"2330": [100.0 + i for i in range(130)]},
            sparklines={"2330": [1000.0, 1010.0, 1035.0]},
        ),
        sleep=lambda _: None,
    )


def test_complete_run_end_to_end():
    payload = service().get_stocks_complete()

    assert [s.id for s in payload.stocks] == ["2330", "6488", "9999"]
    tsmc, wafers, unknown = payload.stocks

    assert tsmc.market == "TWSE"
    assert tsmc.price == 1035.0
    assert tsmc.institutional.sum5 == 800
    assert tsmc.institutional.consecutive_display == "buy 2d"
    assert tsmc.technical.trend.value == "bullish-aligned"
    assert tsmc.sparkline.prices == [1000.0, 1010.0, 1035.0]
    assert tsmc.sparkline.change == pytest.approx(3.5)

    assert wafers.market == "TPEX"
    assert wafers.institutional.today == -120
    assert wafers.technical.trend.value == "no-data"
    assert wafers.sparkline.prices == []

    assert unknown.market == "Unknown"
    assert unknown.technical.data_points == 0

    summary = payload.summary
    assert summary.total == 3
    assert summary.bullish + summary.neutral + summary.bearish == 3
    assert [f.id for f in summary.inst_buy_list] == ["2330"]
    assert [f.id for f in summary.inst_sell_list] == ["6488"]
    assert "semiconductor" in payload.sector_benchmarks

    status = scan_status.get_run_status()
    assert status["running"] is False
    assert status["pct"] == 100


def test_quick_run_skips_price_history():
    chart = FakeChart()
    payload = service(chart=chart).get_stocks_quick()

    assert all(s.technical is None for s in payload.stocks)
    assert chart.requested == []


def test_every_source_failing_still_yields_one_record_per_entry():
    broken = [FakeBoardProvider(Board.PRIMARY, fail=True), FakeBoardProvider(Board.SECONDARY, fail=True)]
    payload = service(chart=FakeChart(), provider_list=broken).get_stocks_complete()

    assert len(payload.stocks) == 3
    for stock in payload.stocks:
        assert stock.price is None
        assert stock.institutional.today == 0
        assert stock.analysis.tags[0].text == "insufficient-data"
    assert payload.summary.neutral == 3


def test_empty_watchlist_short_circuits():
    provider_list = providers()
    payload = service(provider_list=provider_list, config={"portfolio": []}).get_stocks_complete()

    assert payload.stocks == []
    assert payload.summary.total == 0
    assert provider_list[0].requested_days == []


def test_single_stock_lookup():
    svc = service()
    assert svc.get_stock("0000") is None

    record = svc.get_stock("6488")
    assert record.id == "6488"
    assert record.technical is None


def test_portfolio_summary_is_plain_json():
    result = service().get_portfolio_summary()
    assert result["summary"]["total"] == 3
    assert result["sector_benchmarks"]["semiconductor"]["pe_range"] == [12.0, 25.0]
    assert isinstance(result["updated_at"], str)
