from __future__ import annotations

from app.twstock_radar.core.calendar import TradingDate
from app.twstock_radar.core.http import FetchClient
from app.twstock_radar.models.schemas import Board, Fundamentals, InstitutionalDayRecord, RevenueRecord
from app.twstock_radar.providers.base import (
    BoardProvider,
    InstitutionalLayout,
    fetch_to_map,
    parse_institutional_rows,
    pick_field,
)
from app.twstock_radar.utils.numbers import optional_float, safe_float

REVENUE_CODE = "公司代號"
REVENUE_YOY = ("營業收入-去年同月增減(%)", "去年同月增減(%)")
REVENUE_CUM_YOY = ("累計營業收入-前期比較增減(%)",)


class TWSEProvider(BoardProvider):
    """Primary board (listed securities)."""

    board = Board.PRIMARY

    PE_RATIO_URL = "https://openapi.twse.com.tw/v1/exchangeReport/BWIBBU_d"
    PRICES_URL = "https://openapi.twse.com.tw/v1/exchangeReport/STOCK_DAY_ALL"
    REVENUE_URL = "https://openapi.twse.com.tw/v1/opendata/t187ap05_L"
    INSTITUTIONAL_URL = "https://www.twse.com.tw/rwd/zh/fund/T86?date={date}&selectType=ALLBUT0999&response=json"

    INSTITUTIONAL_LAYOUT = InstitutionalLayout(code=0, foreign=4, trust=10, dealer=11, total=18, min_length=19)

    def __init__(self, client: FetchClient) -> None:
        self.client = client

    def get_fundamentals(self) -> dict[str, Fundamentals]:
        def transform(item):
            code = str(item.get("Code") or "").strip()
            if not code:
                return None
            return code, Fundamentals(
                name=str(item.get("Name") or ""),
                pe=safe_float(item.get("PEratio")),
                pb=safe_float(item.get("PBratio")),
                yield_rate=safe_float(item.get("DividendYield")),
                board=self.board,
            )

        return fetch_to_map(self.client, self.PE_RATIO_URL, "TWSE fundamentals", transform)

    def get_prices(self) -> dict[str, float]:
        def transform(item):
            code = str(item.get("Code") or "").strip()
            price = safe_float(item.get("ClosingPrice"))
            if not code or price <= 0:
                return None
            return code, price

        return fetch_to_map(self.client, self.PRICES_URL, "TWSE closing prices", transform)

    def get_revenue(self) -> dict[str, RevenueRecord]:
        def transform(item):
            code = str(pick_field(item, REVENUE_CODE, "code") or "").strip()
            if not code:
                return None
            return code, RevenueRecord(
                yoy=optional_float(pick_field(item, *REVENUE_YOY, "yoy")),
                cum_yoy=optional_float(pick_field(item, *REVENUE_CUM_YOY)),
            )

        return fetch_to_map(self.client, self.REVENUE_URL, "TWSE monthly revenue", transform)

    def get_institutional_rows(self, day: TradingDate) -> dict[str, InstitutionalDayRecord] | None:
        payload = self.client.fetch_json(self.INSTITUTIONAL_URL.format(date=day.gregorian))
        if not isinstance(payload, dict) or payload.get("stat") != "OK" or not payload.get("data"):
            return None
        return parse_institutional_rows(payload["data"], day, self.INSTITUTIONAL_LAYOUT)
