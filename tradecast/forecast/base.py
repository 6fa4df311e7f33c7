"""Forecaster protocol and the shared forecasting template.

Every model only supplies ``project()``: given closes, their dates and the
target dates, return a price path and a fitted trend.  ``BaseForecaster``
does the rest: it screens the input, degrades when history is short, and
calibrates intervals from the model's own one-step residuals.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Protocol, runtime_checkable

from tradecast.forecast.dates import generate_forecast_dates, parse_bar_date
from tradecast.forecast.evaluation import evaluate_model
from tradecast.forecast.intervals import (
    confidence_multiplier,
    prediction_bounds,
    standard_error,
)
from tradecast.forecast.models import ForecastMetrics, ForecastResult
from tradecast.strategy.indicators import is_valid_price
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.forecast")

# Fewest bars any forecast (the Simple-MA baseline) can run on
BASELINE_MIN_BARS = 10

# One-step residuals are collected over this many most-recent bars
RESIDUAL_WINDOW = 30


@dataclass(frozen=True)
class Projection:
    """A model's raw output before interval calibration."""

    path: list[float]
    trend: float  # price change per step; its sign sets the direction


@runtime_checkable
class Forecaster(Protocol):
    """Interface that all forecasters must satisfy."""

    label: str

    def run(
        self,
        bars: list[OHLCVBar],
        forecast_days: int,
        confidence_level: float = 0.95,
    ) -> ForecastResult:
        """Forecast *forecast_days* calendar days past the last bar."""
        ...


def _direction(trend: float) -> str:
    if trend > 0:
        return "UP"
    if trend < 0:
        return "DOWN"
    return "NEUTRAL"


def _bias(trend: float, last_price: float) -> float:
    """Trend as a percentage of price, clamped to [-1, 1]."""
    return max(-1.0, min(1.0, trend / last_price * 100))


class BaseForecaster:
    """Template for the four forecasters.

    Subclasses set ``label`` and ``min_bars`` and implement ``project()``.
    ``min_history`` is the shortest history ``project()`` accepts when the
    template replays it one step at a time to collect residuals.
    ``interval_scale`` widens (> 1) the calibrated intervals.
    """

    label = ""
    min_bars = BASELINE_MIN_BARS
    min_history = 2
    interval_scale = 1.0

    def project(
        self, closes: list[float], days: list[date], targets: list[date]
    ) -> Projection:
        raise NotImplementedError

    # ── Template ─────────────────────────────────────────────────────────

    def run(
        self,
        bars: list[OHLCVBar],
        forecast_days: int,
        confidence_level: float = 0.95,
    ) -> ForecastResult:
        """Forecast *forecast_days* calendar days past the last bar.

        Never raises for data sufficiency: too few bars degrade to the
        Simple-MA baseline, or to an empty result when even that is
        infeasible.
        """
        usable = [
            b for b in bars
            if is_valid_price(b.close) and parse_bar_date(b.date) is not None
        ]
        if forecast_days < 1 or not usable:
            return ForecastResult.empty(self.label, confidence_level)

        if len(usable) < self.min_bars:
            return self._degrade(usable, forecast_days, confidence_level)

        horizon = generate_forecast_dates(usable[-1].date, forecast_days)
        if not horizon:
            return ForecastResult.empty(self.label, confidence_level)

        closes = [b.close for b in usable]
        days = [parse_bar_date(b.date) for b in usable]
        targets = [date.fromisoformat(d) for d in horizon]

        projection = self.project(closes, days, targets)
        predicted = [max(0.0, float(p)) for p in projection.path]

        actual, one_step = self._one_step_predictions(closes, days)
        residuals = [a - p for a, p in zip(actual, one_step)]

        std_error = standard_error(closes, residuals) * self.interval_scale
        multiplier = confidence_multiplier(confidence_level, len(closes))
        lower, upper = prediction_bounds(predicted, std_error, multiplier)

        return ForecastResult(
            dates=horizon,
            predicted=predicted,
            lower_bound=lower,
            upper_bound=upper,
            confidence=confidence_level,
            direction=_direction(projection.trend),
            bias=_bias(projection.trend, closes[-1]),
            model=self.label,
            metrics=self._metrics(closes, actual, one_step),
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    def _degrade(
        self,
        usable: list[OHLCVBar],
        forecast_days: int,
        confidence_level: float,
    ) -> ForecastResult:
        if self.min_bars > BASELINE_MIN_BARS and len(usable) >= BASELINE_MIN_BARS:
            from tradecast.forecast.simple_ma import SimpleMAForecaster

            logger.info(
                "%s needs %d bars, got %d; falling back to Simple MA.",
                self.label, self.min_bars, len(usable),
            )
            return SimpleMAForecaster().run(usable, forecast_days, confidence_level)

        logger.info(
            "%s needs %d bars, got %d; no forecast.",
            self.label, self.min_bars, len(usable),
        )
        return ForecastResult.empty(self.label, confidence_level)

    def _one_step_predictions(
        self, closes: list[float], days: list[date]
    ) -> tuple[list[float], list[float]]:
        """Replay the model over the trailing window, one step ahead each time.

        Returns ``(actual, predicted)`` aligned lists.
        """
        start = max(self.min_history, len(closes) - RESIDUAL_WINDOW)
        actual: list[float] = []
        predicted: list[float] = []
        for i in range(start, len(closes)):
            step = self.project(closes[:i], days[:i], [days[i]]).path
            if not step or not math.isfinite(step[0]):
                continue
            actual.append(closes[i])
            predicted.append(step[0])
        return actual, predicted

    @staticmethod
    def _metrics(
        closes: list[float], actual: list[float], predicted: list[float]
    ) -> ForecastMetrics | None:
        if not actual:
            return None
        offset = len(closes) - len(actual)
        previous = closes[offset - 1 : offset - 1 + len(actual)]
        actual_dirs = [
            _direction(a - p) for a, p in zip(actual, previous)
        ]
        predicted_dirs = [
            _direction(f - p) for f, p in zip(predicted, previous)
        ]
        scores = evaluate_model(actual, predicted, actual_dirs, predicted_dirs)
        return ForecastMetrics(
            rmse=scores.rmse,
            mae=scores.mae,
            directional_accuracy=scores.directional_accuracy,
        )
