"""TradeCast application configuration.

Loads .env variables into a typed config object.
Validates every value on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from tradecast.models.analysis_config import (
    ForecastConfig,
    IndicatorConfig,
    RiskConfig,
    validate_forecast_config,
)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    log_level: str
    api_port: int
    default_symbol: str
    cache_max_entries: int
    cache_ttl_seconds: float
    account_size: float
    risk_percentage: float
    atr_stop_loss_multiplier: float
    forecast_model: str
    forecast_period: int
    confidence_level: float
    data_dir: str

    def indicator_config(self) -> IndicatorConfig:
        """Default indicator settings with the configured account risk."""
        return IndicatorConfig(
            risk=RiskConfig(
                account_size=self.account_size,
                risk_percentage=self.risk_percentage,
                atr_stop_loss_multiplier=self.atr_stop_loss_multiplier,
            )
        )

    def forecast_config(self) -> ForecastConfig:
        return ForecastConfig(
            enabled=True,
            model=self.forecast_model,
            forecast_period=self.forecast_period,
            confidence_level=self.confidence_level,
        )


def _read(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable has a default.  Raises ``ValueError`` with a message
    naming the variable when a value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    config = Config(
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        api_port=_read("API_PORT", "8080", int),
        default_symbol=os.environ.get("DEFAULT_SYMBOL", "BTC-USD").upper(),
        cache_max_entries=_read("CACHE_MAX_ENTRIES", "4", int),
        cache_ttl_seconds=_read("CACHE_TTL_SECONDS", "300", float),
        account_size=_read("ACCOUNT_SIZE", "5000", float),
        risk_percentage=_read("RISK_PERCENTAGE", "2", float),
        atr_stop_loss_multiplier=_read("ATR_STOP_LOSS_MULTIPLIER", "2", float),
        forecast_model=os.environ.get("FORECAST_MODEL", "simple").lower(),
        forecast_period=_read("FORECAST_PERIOD", "7", int),
        confidence_level=_read("CONFIDENCE_LEVEL", "0.95", float),
        data_dir=os.environ.get("DATA_DIR", "data"),
    )

    if config.log_level not in _LOG_LEVELS:
        raise ValueError(
            f"Invalid value for LOG_LEVEL: {config.log_level!r} "
            f"(expected one of {', '.join(_LOG_LEVELS)})"
        )
    if not 1 <= config.api_port <= 65535:
        raise ValueError(f"API_PORT must be 1-65535, got {config.api_port}")
    if config.cache_max_entries < 1:
        raise ValueError(
            f"CACHE_MAX_ENTRIES must be >= 1, got {config.cache_max_entries}"
        )
    if config.cache_ttl_seconds <= 0:
        raise ValueError(
            f"CACHE_TTL_SECONDS must be positive, got {config.cache_ttl_seconds}"
        )
    if config.account_size < 0:
        raise ValueError(f"ACCOUNT_SIZE must be non-negative, got {config.account_size}")
    if not 0 <= config.risk_percentage <= 100:
        raise ValueError(
            f"RISK_PERCENTAGE must be 0-100, got {config.risk_percentage}"
        )
    if not 0.1 <= config.atr_stop_loss_multiplier <= 10:
        raise ValueError(
            "ATR_STOP_LOSS_MULTIPLIER must be 0.1-10, "
            f"got {config.atr_stop_loss_multiplier}"
        )

    env_names = {
        "forecast.model": "FORECAST_MODEL",
        "forecast.forecast_period": "FORECAST_PERIOD",
        "forecast.confidence_level": "CONFIDENCE_LEVEL",
    }
    errors = validate_forecast_config(config.forecast_config())
    if errors:
        message = "; ".join(errors)
        for field_name, env_name in env_names.items():
            message = message.replace(field_name, env_name)
        raise ValueError(message)

    return config
