from __future__ import annotations

from typing import Any

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
from app.twstock_radar.providers.twse_provider import REVENUE_CODE, REVENUE_CUM_YOY, REVENUE_YOY
from app.twstock_radar.utils.numbers import optional_float, safe_float


class TPEXProvider(BoardProvider):
    """Secondary board (OTC securities). Dates go out in the ROC calendar."""

    board = Board.SECONDARY

    PE_RATIO_URL = "https://www.tpex.org.tw/openapi/v1/tpex_mainboard_peratio_analysis"
    PRICES_URL = "https://www.tpex.org.tw/openapi/v1/tpex_mainboard_quotes"
    REVENUE_URL = "https://www.tpex.org.tw/openapi/v1/mopsfin_t187ap05_O"
    INSTITUTIONAL_URL = (
        "https://www.tpex.org.tw/web/stock/3insti/daily_trade/3itrade_hedge_result.php"
        "?l=zh-tw&d={date}&se=EW&t=D"
    )

    INSTITUTIONAL_LAYOUT = InstitutionalLayout(code=0, foreign=10, trust=13, dealer=22, total=23, min_length=24)

    def __init__(self, client: FetchClient) -> None:
        self.client = client

    def get_fundamentals(self) -> dict[str, Fundamentals]:
        def transform(item):
            code = str(item.get("SecuritiesCompanyCode") or "").strip()
            if not code:
                return None
            return code, Fundamentals(
                name=str(item.get("CompanyName") or ""),
                pe=safe_float(item.get("PriceEarningRatio")),
                pb=safe_float(item.get("PriceBookRatio")),
                yield_rate=safe_float(item.get("YieldRatio")),
                board=self.board,
            )

        return fetch_to_map(self.client, self.PE_RATIO_URL, "TPEX fundamentals", transform)

    def get_prices(self) -> dict[str, float]:
        def transform(item):
            code = str(item.get("SecuritiesCompanyCode") or "").strip()
            price = safe_float(item.get("Close"))
            if not code or price <= 0:
                return None
            return code, price

        return fetch_to_map(self.client, self.PRICES_URL, "TPEX closing prices", transform)

    def get_revenue(self) -> dict[str, RevenueRecord]:
        def transform(item):
            code = str(pick_field(item, REVENUE_CODE, "SecuritiesCompanyCode", "code") or "").strip()
            if not code:
                return None
            return code, RevenueRecord(
                yoy=optional_float(pick_field(item, *REVENUE_YOY, "yoy")),
                cum_yoy=optional_float(pick_field(item, *REVENUE_CUM_YOY)),
            )

        return fetch_to_map(self.client, self.REVENUE_URL, "TPEX monthly revenue", transform)

    def get_institutional_rows(self, day: TradingDate) -> dict[str, InstitutionalDayRecord] | None:
        payload = self.client.fetch_json(self.INSTITUTIONAL_URL.format(date=day.roc))
        rows = self._extract_rows(payload)
        if not rows:
            return None
        return parse_institutional_rows(rows, day, self.INSTITUTIONAL_LAYOUT)

    @staticmethod
    def _extract_rows(payload: Any) -> list[Any]:
        # The endpoint has answered in two shapes over time.
        if not isinstance(payload, dict):
            return []
        tables = payload.get("tables")
        if isinstance(tables, list) and tables and isinstance(tables[0], dict):
            data = tables[0].get("data")
            if isinstance(data, list) and data:
                return data
        aa_data = payload.get("aaData")
        if isinstance(aa_data, list):
            return aa_data
        return []
