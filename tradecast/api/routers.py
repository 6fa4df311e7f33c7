"""Internal API routers: /indicators, /forecast, /analysis and /cache endpoints.

No business logic. Validates request bodies, resolves bars and delegates to
the shared ``AnalysisPipeline``.
"""

import logging
import math
from dataclasses import asdict, is_dataclass
from typing import Optional

from fastapi import APIRouter

from tradecast.config import Config
from tradecast.data.bars import ComputationError, bars_from_records
from tradecast.data.provider import MarketDataProvider
from tradecast.forecast.models import ForecastModel
from tradecast.models.analysis_config import (
    forecast_config_from_dict,
    indicator_config_from_dict,
)
from tradecast.pipeline import AnalysisPipeline
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_pipeline = AnalysisPipeline()
_provider: Optional[MarketDataProvider] = None  # Set via configure_routers()
_config: Optional[Config] = None  # Set via configure_routers()


def configure_routers(
    pipeline: Optional[AnalysisPipeline] = None,
    provider: Optional[MarketDataProvider] = None,
    config: Optional[Config] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        pipeline: The shared ``AnalysisPipeline`` (owns the forecast cache).
        provider: Market data source used when a body carries no bars.
        config: Application ``Config`` supplying request defaults.
    """
    global _pipeline, _provider, _config  # noqa: PLW0603
    if pipeline is not None:
        _pipeline = pipeline
    _provider = provider
    _config = config


def get_pipeline() -> AnalysisPipeline:
    return _pipeline


# ── Helpers ──────────────────────────────────────────────────────────────


def to_jsonable(value):
    """Convert dataclasses/containers to JSON-safe data; NaN and ±inf become ``None``."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, ForecastModel):
        return value.value
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _error(errors: list[str]) -> dict:
    logger.warning("Request rejected: %s", "; ".join(errors))
    return {"status": "error", "errors": errors}


def _symbol(body: dict) -> str:
    symbol = body.get("symbol")
    if symbol:
        return str(symbol)
    return _config.default_symbol if _config is not None else "BTC-USD"


def _resolve_bars(body: dict, symbol: str) -> tuple[list[OHLCVBar], list[str]]:
    """Bars from the body, else from the configured provider."""
    if "bars" in body:
        try:
            bars = bars_from_records(body["bars"])
        except ComputationError as exc:
            return [], [str(exc)]
    elif _provider is not None:
        result = _provider.fetch_market_data(symbol)
        if result.error:
            return [], [result.error]
        bars = result.bars
    else:
        return [], ["bars are required (no market data provider configured)"]

    if not bars:
        return [], [f"No valid bars for {symbol}"]
    return bars, []


def _indicator_config(body: dict):
    if "config" in body:
        section = body["config"] or {}
        if not isinstance(section, dict):
            raise ValueError("config must be an object")
        return indicator_config_from_dict(section)
    if _config is not None:
        return _config.indicator_config()
    return indicator_config_from_dict({})


def _forecast_config(body: dict, enabled_default: bool):
    section = body.get("forecast")
    if section is None:
        if _config is not None:
            base = asdict(_config.forecast_config())
            base["enabled"] = enabled_default
            return forecast_config_from_dict(base)
        return forecast_config_from_dict({"enabled": enabled_default})
    if not isinstance(section, dict):
        raise ValueError("forecast must be an object")
    return forecast_config_from_dict({"enabled": enabled_default, **section})


# ── Analysis ─────────────────────────────────────────────────────────────


@router.post("/indicators")
def post_indicators(body: dict):
    """Indicators, signals, support/resistance and risk metrics for one symbol."""
    symbol = _symbol(body)
    try:
        config = _indicator_config(body)
    except ValueError as exc:
        return _error([str(exc)])

    bars, errors = _resolve_bars(body, symbol)
    if errors:
        return _error(errors)

    bundle = _pipeline.compute(bars, config)
    return {"status": "ok", "symbol": symbol, **to_jsonable(bundle)}


@router.post("/forecast")
def post_forecast(body: dict):
    """One model's forecast (cached)."""
    symbol = _symbol(body)
    try:
        config = _forecast_config(body, enabled_default=True)
    except ValueError as exc:
        return _error([str(exc)])

    bars, errors = _resolve_bars(body, symbol)
    if errors:
        return _error(errors)

    _pipeline.activate_symbol(symbol)
    result = _pipeline.forecast(ForecastModel(config.model), symbol, bars, config)
    if result is None:
        return _error([f"Not enough data for a {config.model} forecast"])
    return {"status": "ok", "symbol": symbol, "forecast": to_jsonable(result)}


@router.post("/analysis")
async def post_analysis(body: dict):
    """Full analysis: indicator bundle plus all four forecasts when enabled."""
    symbol = _symbol(body)
    try:
        indicator_config = _indicator_config(body)
        forecast_config = _forecast_config(body, enabled_default=True)
    except ValueError as exc:
        return _error([str(exc)])

    bars, errors = _resolve_bars(body, symbol)
    if errors:
        return _error(errors)

    snapshot = await _pipeline.analyze(symbol, bars, indicator_config, forecast_config)
    return {"status": "ok", **to_jsonable(snapshot)}


# ── Cache ────────────────────────────────────────────────────────────────


@router.get("/cache")
async def get_cache():
    """Live forecast cache entries."""
    cache = _pipeline.cache
    return {
        "max_entries": cache.max_entries,
        "ttl_seconds": cache.ttl_seconds,
        "entries": cache.entries(),
    }


@router.delete("/cache")
async def clear_cache():
    _pipeline.cache.clear()
    return {"status": "ok"}


@router.delete("/cache/{symbol}")
async def evict_cache_symbol(symbol: str):
    removed = _pipeline.cache.evict_symbol(symbol)
    return {"status": "ok", "symbol": symbol, "evicted": removed}
