from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

from app.twstock_radar.core.config import AppConfig, load_config
from app.twstock_radar.core.pacing import Pacer
from app.twstock_radar.models.schemas import DashboardPayload, StockRecord, WatchlistEntry
from app.twstock_radar.providers.base import BoardProvider
from app.twstock_radar.services import scan_status
from app.twstock_radar.services.factories import build_sources
from app.twstock_radar.services.institutional import InstitutionalAggregator
from app.twstock_radar.services.market_data import load_market_data
from app.twstock_radar.services.scoring import ScoreEngine
from app.twstock_radar.services.technical import ChartSource, TechnicalService
from app.twstock_radar.services.transform import (
    RawData,
    build_empty_response,
    build_response,
    build_stock_records,
)

logger = logging.getLogger(__name__)

COMPLETE_STAGES = ("market_data", "institutional", "sparkline", "technical", "scoring")
QUICK_STAGES = ("market_data", "institutional", "sparkline", "scoring")


class PipelineService:
    """One aggregation run per call; config is re-read every run unless pinned."""

    def __init__(
        self,
        config: AppConfig | None = None,
        providers: Sequence[BoardProvider] | None = None,
        chart: ChartSource | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.providers = list(providers) if providers is not None else None
        self.chart = chart
        self.sleep = sleep

    def _config(self) -> AppConfig:
        return self.config or load_config()

    def _sources(self, config: AppConfig) -> tuple[list[BoardProvider], ChartSource]:
        if self.providers is not None and self.chart is not None:
            return self.providers, self.chart
        providers, chart = build_sources(config, sleep=self.sleep)
        return self.providers if self.providers is not None else providers, self.chart or chart

    def load_raw_data(
        self,
        config: AppConfig,
        entries: list[WatchlistEntry],
        include_technical: bool,
    ) -> RawData:
        providers, chart = self._sources(config)
        pacing = config.settings.pacing

        scan_status.enter_stage("market_data", "Loading exchange fundamentals, prices and revenue...")
        market = load_market_data(providers, config.settings.board_merge_order)

        scan_status.enter_stage("institutional", "Collecting institutional flows...")
        aggregator = InstitutionalAggregator(providers, Pacer(pacing.institutional_delay_sec, self.sleep))
        report = aggregator.collect(config.settings.institutional_days)

        technical_service = TechnicalService(
            chart,
            technical_pacer=Pacer(pacing.technical_delay_sec, self.sleep),
            sparkline_pacer=Pacer(pacing.sparkline_delay_sec, self.sleep),
        )

        scan_status.enter_stage("sparkline", "Fetching recent closes...")
        sparklines = technical_service.get_sparklines(entries, market.fundamentals)

        technical = None
        if include_technical:
            scan_status.enter_stage("technical", "Fetching price history...")
            technical = technical_service.get_technical(entries, market.fundamentals)

        return RawData(
            market=market,
            institutional=report.stats,
            technical=technical,
            sparklines=sparklines,
        )

    def _run(self, entries: list[WatchlistEntry] | None, include_technical: bool) -> DashboardPayload:
        config = self._config()
        entries = config.portfolio if entries is None else entries
        if not entries:
            return build_empty_response()

        label = "complete" if include_technical else "quick"
        logger.info("Refreshing %d stocks (%s)", len(entries), label)
        stages = COMPLETE_STAGES if include_technical else QUICK_STAGES
        scan_status.start_run(label, list(stages), stock_count=len(entries))

        try:
            raw = self.load_raw_data(config, entries, include_technical)

            scan_status.enter_stage("scoring", "Scoring and building summary...")
            engine = ScoreEngine(config.settings.rating_policy)
            records = build_stock_records(
                entries,
                raw,
                engine,
                config.sector_benchmarks,
                include_technical=include_technical,
            )
            payload = build_response(records, config.sector_benchmarks)
        except Exception as exc:
            scan_status.fail_run(exc)
            raise

        scan_status.finish_run(f"Done: {len(records)} stocks")
        logger.info("Refresh done (%s): %d stocks", label, len(records))
        return payload

    def get_stocks_complete(self) -> DashboardPayload:
        return self._run(None, include_technical=True)

    def get_stocks_quick(self) -> DashboardPayload:
        return self._run(None, include_technical=False)

    def get_stock(self, stock_id: str, include_technical: bool = False) -> StockRecord | None:
        config = self._config()
        entry = next((e for e in config.portfolio if e.id == stock_id), None)
        if entry is None:
            return None
        payload = self._run([entry], include_technical=include_technical)
        return payload.stocks[0] if payload.stocks else None

    def get_portfolio_summary(self) -> dict[str, Any]:
        payload = self.get_stocks_quick()
        return {
            "summary": payload.summary.model_dump(mode="json"),
            "sector_benchmarks": {k: v.model_dump(mode="json") for k, v in payload.sector_benchmarks.items()},
            "updated_at": payload.updated_at,
        }
