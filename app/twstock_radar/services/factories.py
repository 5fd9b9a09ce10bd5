from __future__ import annotations

from pathlib import Path
from typing import Callable

from app.twstock_radar.core.config import AppConfig
from app.twstock_radar.core.http import FetchClient
from app.twstock_radar.core.settings import BASE_DIR
from app.twstock_radar.models.schemas import Board
from app.twstock_radar.providers.base import BoardProvider
from app.twstock_radar.providers.mock_provider import MockBoardProvider, MockChartClient, load_sample
from app.twstock_radar.providers.tpex_provider import TPEXProvider
from app.twstock_radar.providers.twse_provider import TWSEProvider
from app.twstock_radar.providers.yahoo_chart import YahooChartClient
from app.twstock_radar.services.technical import ChartSource


def build_fetch_client(config: AppConfig, sleep: Callable[[float], None] | None = None) -> FetchClient:
    http = config.settings.http
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return FetchClient(
        timeout_sec=http.timeout_sec,
        max_attempts=http.max_attempts,
        retry_delay_sec=http.retry_delay_sec,
        **kwargs,
    )


def build_chart_client(config: AppConfig, sleep: Callable[[float], None] | None = None) -> YahooChartClient:
    http = config.settings.http
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return YahooChartClient(max_attempts=http.max_attempts, retry_delay_sec=http.retry_delay_sec, **kwargs)


def _sample_path(config: AppConfig) -> Path | None:
    raw = config.data_provider.sample_file
    if not raw:
        return None
    path = Path(raw)
    return path if path.is_absolute() else (BASE_DIR / path).resolve()


def build_sources(
    config: AppConfig,
    sleep: Callable[[float], None] | None = None,
) -> tuple[list[BoardProvider], ChartSource]:
    if config.data_provider.type == "mock":
        sample = load_sample(_sample_path(config))
        providers: list[BoardProvider] = [MockBoardProvider(board, sample) for board in Board]
        return providers, MockChartClient(sample)

    client = build_fetch_client(config, sleep=sleep)
    return [TWSEProvider(client), TPEXProvider(client)], build_chart_client(config, sleep=sleep)
