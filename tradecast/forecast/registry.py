"""Forecaster registry: maps model keys to forecaster classes.

The short-term entry point only serves Simple-MA/ARIMA and the long-term
one only Prophet/LSTM; a request for the wrong group is logged and
answered with ``None``.
"""

import logging
from typing import Optional, Union

from tradecast.forecast.arima import ARIMAForecaster
from tradecast.forecast.base import BASELINE_MIN_BARS, Forecaster
from tradecast.forecast.lstm import LSTMForecaster
from tradecast.forecast.models import (
    LONG_TERM_MODELS,
    SHORT_TERM_MODELS,
    ForecastModel,
    ForecastResult,
)
from tradecast.forecast.prophet import ProphetForecaster
from tradecast.forecast.simple_ma import SimpleMAForecaster
from tradecast.models.analysis_config import ForecastConfig
from tradecast.strategy.indicators import is_valid_price
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.forecast")

FORECASTER_REGISTRY: dict[ForecastModel, type] = {
    ForecastModel.SIMPLE: SimpleMAForecaster,
    ForecastModel.ARIMA: ARIMAForecaster,
    ForecastModel.PROPHET: ProphetForecaster,
    ForecastModel.LSTM: LSTMForecaster,
}

# Horizons outside these suit the other model group better
SHORT_TERM_MAX_DAYS = 30
LONG_TERM_MIN_DAYS = 7


def get_forecaster(model: Union[str, ForecastModel]) -> Forecaster:
    """Look up and instantiate a forecaster by registry key.

    Raises ``KeyError`` if the model is not registered.
    """
    try:
        key = ForecastModel(model)
    except ValueError:
        raise KeyError(
            f"Unknown forecast model '{model}'. "
            f"Available: {', '.join(m.value for m in FORECASTER_REGISTRY)}"
        ) from None
    return FORECASTER_REGISTRY[key]()


def _enough_bars(bars: list[OHLCVBar]) -> bool:
    return sum(1 for b in bars if is_valid_price(b.close)) >= BASELINE_MIN_BARS


def _dispatch(
    bars: list[OHLCVBar],
    model: Union[str, ForecastModel],
    forecast_days: int,
    confidence_level: float,
    allowed: tuple[ForecastModel, ...],
    group: str,
) -> Optional[ForecastResult]:
    try:
        key = ForecastModel(model)
    except ValueError:
        logger.warning("Unknown forecast model '%s'", model)
        return None
    if key not in allowed:
        logger.warning(
            "%s is not a %s model (expected one of %s)",
            key.value, group, ", ".join(m.value for m in allowed),
        )
        return None
    if not _enough_bars(bars):
        logger.info(
            "Not enough bars for a %s forecast (%d, need %d)",
            group, len(bars), BASELINE_MIN_BARS,
        )
        return None
    return get_forecaster(key).run(bars, forecast_days, confidence_level)


def generate_short_term_forecast(
    bars: list[OHLCVBar],
    model: Union[str, ForecastModel] = ForecastModel.SIMPLE,
    forecast_days: int = 7,
    confidence_level: float = 0.95,
) -> Optional[ForecastResult]:
    """Simple-MA or ARIMA forecast; ``None`` for a long-term model or < 10 bars."""
    if forecast_days > SHORT_TERM_MAX_DAYS:
        logger.warning(
            "Short-term forecast requested for %d days; "
            "long-term models are better suited beyond %d days",
            forecast_days, SHORT_TERM_MAX_DAYS,
        )
    return _dispatch(
        bars, model, forecast_days, confidence_level, SHORT_TERM_MODELS, "short-term"
    )


def generate_long_term_forecast(
    bars: list[OHLCVBar],
    model: Union[str, ForecastModel] = ForecastModel.PROPHET,
    forecast_days: int = 30,
    confidence_level: float = 0.95,
) -> Optional[ForecastResult]:
    """Prophet or LSTM forecast; ``None`` for a short-term model or < 10 bars."""
    if forecast_days < LONG_TERM_MIN_DAYS:
        logger.warning(
            "Long-term forecast requested for %d days; "
            "short-term models are better suited under %d days",
            forecast_days, LONG_TERM_MIN_DAYS,
        )
    return _dispatch(
        bars, model, forecast_days, confidence_level, LONG_TERM_MODELS, "long-term"
    )


def generate_forecast(
    bars: list[OHLCVBar], config: ForecastConfig
) -> Optional[ForecastResult]:
    """Route *config* to the short- or long-term entry point for its model.

    Returns ``None`` when forecasting is disabled.
    """
    if not config.enabled:
        return None
    key = ForecastModel(config.model)
    entry = (
        generate_short_term_forecast
        if key in SHORT_TERM_MODELS
        else generate_long_term_forecast
    )
    return entry(bars, key, config.forecast_period, config.confidence_level)
