from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from app.twstock_radar.models.schemas import Board, SectorBenchmark, WatchlistEntry

from .settings import CONFIG_PATH


class ConfigValidationError(ValueError):
    pass


class HttpSettings(BaseModel):
    timeout_sec: float = 15.0
    max_attempts: int = Field(default=3, ge=1)
    retry_delay_sec: float = Field(default=1.0, ge=0)


class PacingSettings(BaseModel):
    institutional_delay_sec: float = Field(default=0.5, ge=0)
    technical_delay_sec: float = Field(default=0.5, ge=0)
    sparkline_delay_sec: float = Field(default=0.3, ge=0)


class RunSettings(BaseModel):
    institutional_days: int = Field(default=5, ge=1, le=20)
    board_merge_order: list[Board] = [Board.PRIMARY, Board.SECONDARY]
    rating_policy: Literal["six_level", "five_level"] = "six_level"
    http: HttpSettings = Field(default_factory=HttpSettings)
    pacing: PacingSettings = Field(default_factory=PacingSettings)


class DataProviderSettings(BaseModel):
    type: Literal["live", "mock"] = "live"
    sample_file: str | None = None


class AppConfig(BaseModel):
    data_provider: DataProviderSettings = Field(default_factory=DataProviderSettings)
    portfolio: list[WatchlistEntry] = []
    sector_benchmarks: dict[str, SectorBenchmark] = {}
    settings: RunSettings = Field(default_factory=RunSettings)


def _upgrade_portfolio(raw: Any) -> Any:
    # Older watch-lists were a flat list of ids.
    if isinstance(raw, list):
        return [{"id": str(item), "sector": None, "note": ""} if isinstance(item, (str, int)) else item for item in raw]
    return raw


def validate_config(data: dict[str, Any]) -> AppConfig:
    if not isinstance(data, dict):
        raise ConfigValidationError("Config YAML must parse into a dictionary")

    payload = dict(data)
    payload["portfolio"] = _upgrade_portfolio(payload.get("portfolio") or [])
    payload["sector_benchmarks"] = payload.get("sector_benchmarks") or {}
    payload["settings"] = payload.get("settings") or {}

    try:
        config = AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc

    seen: set[str] = set()
    for entry in config.portfolio:
        if entry.id in seen:
            raise ConfigValidationError(f"Duplicate portfolio id: {entry.id}")
        seen.add(entry.id)

    for code, bench in config.sector_benchmarks.items():
        if bench.pe_range[0] > bench.pe_range[1]:
            raise ConfigValidationError(f"sector_benchmarks.{code}.pe_range must be [min, max]")
        if bench.pb_range[0] > bench.pb_range[1]:
            raise ConfigValidationError(f"sector_benchmarks.{code}.pb_range must be [min, max]")

    return config


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_PATH
    if not path.exists():
        raise ConfigValidationError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return validate_config(data)


def load_config_raw(path: Path | None = None) -> str:
    return (path or CONFIG_PATH).read_text(encoding="utf-8")


def save_config_raw(yaml_text: str, path: Path | None = None) -> AppConfig:
    try:
        parsed = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML: {exc}") from exc

    config = validate_config(parsed)
    (path or CONFIG_PATH).write_text(yaml_text, encoding="utf-8")
    return config
