"""tradesim.core.config

Three config surfaces only:
1) `config/default.yaml` + `config/presets/*.yaml`
2) Environment variables (`TRADESIM_` prefix, `__` for nesting)
3) Keyword overrides passed by the caller

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from tradesim.core.exceptions import ConfigError

FillPreset = Literal["CONSERVATIVE", "STANDARD", "AGGRESSIVE"]


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class BacktestConfig(BaseModel):
    """Per-run knobs. Every field is optional.

    ``fill_model`` picks a preset; ``commission_rate``, ``slippage_bps`` and
    ``latency_ms`` override the preset only when set explicitly.
    """

    initial_capital: float = Field(10_000.0, gt=0.0)
    fill_model: FillPreset = "STANDARD"
    commission_rate: float = Field(0.0005, ge=0.0)
    slippage_bps: float = Field(5.0, ge=0.0)
    latency_ms: float = Field(10.0, ge=0.0)
    random_seed: int | None = None
    clock_mode: Literal["SIMULATION", "REALTIME"] = "SIMULATION"
    start_time: int | None = None  # epoch ms
    entry_order_type: Literal["MARKET", "LIMIT"] = "MARKET"
    book_depth: int = Field(20, ge=1)
    book_spread_bps: float = Field(1.0, gt=0.0)

    model_config = {"frozen": True}

    @field_validator("fill_model", "clock_mode", "entry_order_type", mode="before")
    @classmethod
    def upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def explicit(self, name: str) -> bool:
        return name in self.model_fields_set


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class AnalysisConfig(BaseModel):
    min_sharpe: float = 1.5
    min_win_rate: float = 55.0
    max_drawdown: float = 20.0
    min_profit_factor: float = 1.3
    min_total_trades: int = 10


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    config_dir: Path = Path("config")
    preset: Literal["conservative", "standard", "aggressive", "custom"] = "standard"

    backtest: BacktestConfig = Field(default_factory=BacktestConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    max_workers: int = Field(2, ge=1)

    model_config = {"env_prefix": "TRADESIM_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        preset_name = raw.get("preset", "standard")
        preset_path = path.parent / "presets" / f"{preset_name}.yaml"
        if preset_path.exists():
            preset_data = yaml.safe_load(preset_path.read_text()) or {}
            raw = _deep_merge(preset_data, raw)

        raw.setdefault("config_dir", path.parent)
        try:
            return cls(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")


def backtest_config(**overrides: Any) -> BacktestConfig:
    """Build a ``BacktestConfig`` and surface validation failures as ``ConfigError``."""

    try:
        return BacktestConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
