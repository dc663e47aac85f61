"""snowball.core.config

Two config surfaces only:
1) `config/default.yaml` + `config/presets/*.yaml`
2) Environment variables (`SNOWBALL_` prefix, `__` for nesting)

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from snowball.backtest.models import EngineConfig
from snowball.core.exceptions import ConfigError


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class BacktestSettings(BaseModel):
    """Engine cost/capital defaults. Taiwan equity costs out of the box."""

    initial_capital: float = Field(default=1_000_000.0, gt=0)
    commission_rate: float = Field(default=0.001425, ge=0)
    slippage: float = Field(default=0.1, ge=0)
    allow_short: bool = False
    max_position_size: float = Field(default=1.0, gt=0, le=1.0)

    def engine_config(self, **overrides: Any) -> EngineConfig:
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return EngineConfig(**values)


class GoldenCrossSettings(BaseModel):
    short_period: int = 10
    long_period: int = 30

    @field_validator("long_period", mode="after")
    @classmethod
    def long_must_exceed_short(cls, v: int, info) -> int:
        short = int(info.data.get("short_period", 0))
        if v <= short:
            raise ValueError(f"long_period must exceed short_period, got {short}/{v}")
        return v


class RSISettings(BaseModel):
    period: int = Field(default=14, ge=1)
    oversold: float = 30.0
    overbought: float = 70.0

    @field_validator("overbought", mode="after")
    @classmethod
    def overbought_above_oversold(cls, v: float, info) -> float:
        if v <= float(info.data.get("oversold", 0.0)):
            raise ValueError("overbought must be above oversold")
        return v


class StrategySettings(BaseModel):
    golden_cross: GoldenCrossSettings = Field(default_factory=GoldenCrossSettings)
    rsi: RSISettings = Field(default_factory=RSISettings)

    def params_for(self, name: str) -> dict[str, Any]:
        section = getattr(self, name, None)
        return section.model_dump() if isinstance(section, BaseModel) else {}


class PeriodicInvestmentSettings(BaseModel):
    monthly_amount: float = Field(default=10_000.0, gt=0)
    monthly_day: int = Field(default=1, ge=1, le=31)
    tax_rate: float = Field(default=0.003, ge=0)
    reinvest_dividends: bool = True
    dip_buy: Literal["none", "rsi"] = "none"
    dip_buy_multiplier: float = Field(default=2.0, gt=0)
    rsi_threshold: float = Field(default=30.0, gt=0, lt=100)


class ProjectionSettings(BaseModel):
    annual_return: float = Field(default=0.07, gt=-1.0)
    years: int = Field(default=10, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5060
    auth_token: str = ""
    cors_origins: list[str] = []


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    config_dir: Path = Path("config")

    preset: Literal["taiwan", "frictionless", "long_short", "custom"] = "taiwan"

    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    strategies: StrategySettings = Field(default_factory=StrategySettings)
    periodic: PeriodicInvestmentSettings = Field(default_factory=PeriodicInvestmentSettings)
    projection: ProjectionSettings = Field(default_factory=ProjectionSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"env_prefix": "SNOWBALL_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        preset_name = raw.get("preset", "taiwan")
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

    @classmethod
    def load(cls, repo_root: Path | None = None) -> Config:
        """`config/user.yaml` if present, else repo defaults, else built-in defaults."""

        root = repo_root or Path.cwd()
        user_path = root / "config" / "user.yaml"
        if user_path.exists():
            return cls.from_yaml(user_path)
        default_path = root / "config" / "default.yaml"
        if default_path.exists():
            return cls.from_yaml(default_path)
        return cls()
