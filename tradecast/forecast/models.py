"""Forecast data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ForecastModel(str, Enum):
    """Registry keys for the four forecasters."""

    SIMPLE = "simple"
    ARIMA = "arima"
    PROPHET = "prophet"
    LSTM = "lstm"


SHORT_TERM_MODELS = (ForecastModel.SIMPLE, ForecastModel.ARIMA)
LONG_TERM_MODELS = (ForecastModel.PROPHET, ForecastModel.LSTM)


@dataclass(frozen=True)
class ForecastMetrics:
    """In-sample accuracy of a model's own one-step-ahead predictions."""

    rmse: Optional[float] = None
    mae: Optional[float] = None
    directional_accuracy: Optional[float] = None


@dataclass(frozen=True)
class ForecastResult:
    """A price path with prediction intervals.

    ``dates``, ``predicted``, ``lower_bound`` and ``upper_bound`` always have
    the same length, and ``0 <= lower_bound[i] <= predicted[i] <= upper_bound[i]``.
    """

    dates: list[str] = field(default_factory=list)
    predicted: list[float] = field(default_factory=list)
    lower_bound: list[float] = field(default_factory=list)
    upper_bound: list[float] = field(default_factory=list)
    confidence: float = 0.0
    direction: str = "NEUTRAL"  # "UP", "DOWN" or "NEUTRAL"
    bias: float = 0.0  # -1 (bearish) .. 1 (bullish)
    model: str = ""
    metrics: Optional[ForecastMetrics] = None

    @classmethod
    def empty(cls, model: str, confidence: float = 0.0) -> "ForecastResult":
        """A result with zero-length arrays, used when no forecast is feasible."""
        return cls(confidence=confidence, model=model)

    @property
    def is_empty(self) -> bool:
        return not self.dates


@dataclass(frozen=True)
class ModelEvaluation:
    """Offline comparison scores for one model."""

    rmse: float
    mae: float
    directional_accuracy: float
    cumulative_return: float
