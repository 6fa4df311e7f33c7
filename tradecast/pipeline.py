"""AnalysisPipeline: ties indicators, signals and forecasts together per data update.

The cheap Simple-MA/ARIMA pair and the slower Prophet/LSTM group run on
separate worker threads, so they overlap and the event loop stays free.
Every forecast goes through the ``ForecastCache``; the cache check for a
model always happens before its computation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from tradecast.data.bars import ComputationError, ensure_bar_series
from tradecast.forecast.cache import ForecastCache, cache_key
from tradecast.forecast.models import (
    LONG_TERM_MODELS,
    SHORT_TERM_MODELS,
    ForecastModel,
    ForecastResult,
)
from tradecast.forecast.registry import (
    generate_long_term_forecast,
    generate_short_term_forecast,
)
from tradecast.models.analysis_config import ForecastConfig, IndicatorConfig
from tradecast.risk.metrics import calculate_risk_metrics
from tradecast.strategy.indicators import compute_indicators
from tradecast.strategy.models import (
    IndicatorSet,
    OHLCVBar,
    RiskMetrics,
    SupportResistance,
    TradingSignal,
)
from tradecast.strategy.signals import generate_signals
from tradecast.strategy.sr_levels import detect_support_resistance

logger = logging.getLogger("tradecast.pipeline")

__all__ = [
    "AnalysisPipeline",
    "AnalysisSnapshot",
    "ComputationError",
    "IndicatorBundle",
]


@dataclass(frozen=True)
class IndicatorBundle:
    """Everything derived synchronously from one bar series."""

    indicators: IndicatorSet
    signals: list[TradingSignal]
    levels: list[SupportResistance]
    risk: Optional[RiskMetrics]


@dataclass(frozen=True)
class AnalysisSnapshot:
    symbol: str
    bar_count: int
    bundle: IndicatorBundle
    forecasts: dict[str, Optional[ForecastResult]] = field(default_factory=dict)


class AnalysisPipeline:
    """Runs the analysis core for the active symbol.

    Args:
        cache: Shared ``ForecastCache``; a private one is created if omitted.
    """

    def __init__(self, cache: Optional[ForecastCache] = None) -> None:
        self.cache = cache if cache is not None else ForecastCache()
        self._active_symbol: Optional[str] = None

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def active_symbol(self) -> Optional[str]:
        return self._active_symbol

    def activate_symbol(self, symbol: str) -> None:
        """Switch the active symbol, evicting the previous symbol's forecasts."""
        previous = self._active_symbol
        if previous is not None and previous != symbol:
            self.cache.evict_symbol(previous)
            logger.info("Active symbol changed %s → %s", previous, symbol)
        self._active_symbol = symbol

    def compute(self, bars: list[OHLCVBar], config: IndicatorConfig) -> IndicatorBundle:
        """Indicators, signals, support/resistance and risk for *bars*.

        Raises ``ComputationError`` when *bars* is not a bar series.
        """
        bars = ensure_bar_series(bars)
        indicators = compute_indicators(bars, config)
        signals = generate_signals(bars, indicators, config)
        levels = detect_support_resistance(bars)
        risk = calculate_risk_metrics(
            bars,
            indicators,
            config,
            target_price=signals[0].target if signals else None,
        )
        return IndicatorBundle(
            indicators=indicators, signals=signals, levels=levels, risk=risk
        )

    def forecast(
        self,
        model: ForecastModel,
        symbol: str,
        bars: list[OHLCVBar],
        forecast_config: ForecastConfig,
    ) -> Optional[ForecastResult]:
        """One model's forecast, served from the cache when fresh."""
        model = ForecastModel(model)
        entry = (
            generate_short_term_forecast
            if model in SHORT_TERM_MODELS
            else generate_long_term_forecast
        )
        key = cache_key(
            model.value,
            symbol,
            forecast_config.forecast_period,
            forecast_config.confidence_level,
            bars,
        )
        return self.cache.get_or_compute(
            key,
            lambda: entry(
                bars,
                model,
                forecast_config.forecast_period,
                forecast_config.confidence_level,
            ),
            symbol=symbol,
            model=model.value,
        )

    def schedule_long_term(
        self,
        symbol: str,
        bars: list[OHLCVBar],
        forecast_config: ForecastConfig,
    ) -> asyncio.Task:
        """Start the Prophet/LSTM group in the background and return its task."""
        bars = ensure_bar_series(bars)

        def _run_group() -> dict[str, Optional[ForecastResult]]:
            return {
                m.value: self.forecast(m, symbol, bars, forecast_config)
                for m in LONG_TERM_MODELS
            }

        return asyncio.create_task(asyncio.to_thread(_run_group))

    async def run_forecasts(
        self,
        symbol: str,
        bars: list[OHLCVBar],
        forecast_config: ForecastConfig,
    ) -> dict[str, Optional[ForecastResult]]:
        """All four forecasts keyed by model name.

        The long-term group is scheduled first and overlaps the short-term
        pair.  If the short-term pair raises, the long-term task is cancelled
        before the error propagates.
        """
        bars = ensure_bar_series(bars)
        long_term = self.schedule_long_term(symbol, bars, forecast_config)
        # One loop pass hands the long-term group to its worker thread
        await asyncio.sleep(0)

        def _run_short_term() -> dict[str, Optional[ForecastResult]]:
            return {
                m.value: self.forecast(m, symbol, bars, forecast_config)
                for m in SHORT_TERM_MODELS
            }

        try:
            results = await asyncio.to_thread(_run_short_term)
            results.update(await long_term)
        finally:
            if not long_term.done():
                long_term.cancel()
        return results

    async def analyze(
        self,
        symbol: str,
        bars: list[OHLCVBar],
        indicator_config: IndicatorConfig,
        forecast_config: ForecastConfig,
    ) -> AnalysisSnapshot:
        """Full analysis of *symbol*; forecasts only when enabled."""
        bars = ensure_bar_series(bars)
        self.activate_symbol(symbol)
        bundle = self.compute(bars, indicator_config)

        forecasts: dict[str, Optional[ForecastResult]] = {}
        if forecast_config.enabled:
            forecasts = await self.run_forecasts(symbol, bars, forecast_config)

        logger.info(
            "Analysed %s: %d bars, %d signal(s), %d forecast(s)",
            symbol,
            len(bars),
            len(bundle.signals),
            sum(1 for f in forecasts.values() if f is not None),
        )
        return AnalysisSnapshot(
            symbol=symbol, bar_count=len(bars), bundle=bundle, forecasts=forecasts
        )
