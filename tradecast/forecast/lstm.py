"""LSTM-like forecaster.

Not a neural network: fixed scalar forget/input/output gates run a gated
memory over a min-max normalised price window.  The forecast continues the
window's trend with decay while reverting towards the hidden state.  Any
trained model satisfying the ``Forecaster`` protocol can replace it.
"""

import math
from datetime import date

from tradecast.forecast.base import BaseForecaster, Projection
from tradecast.forecast.preprocessing import denormalize, normalize

SEQUENCE_LENGTH = 30
FORGET_GATE = 0.8
INPUT_GATE = 0.2
OUTPUT_GATE = 0.7
MEAN_REVERSION = 0.05
TREND_DECAY = 0.05


def gated_memory(sequence: list[float]) -> float:
    """Run the fixed gates over *sequence* and return the final hidden state."""
    cell = sequence[0]
    hidden = sequence[0]
    for x in sequence:
        cell = FORGET_GATE * cell + INPUT_GATE * x
        hidden = OUTPUT_GATE * cell + (1 - OUTPUT_GATE) * x
    return hidden


class LSTMForecaster(BaseForecaster):
    label = "LSTM"
    min_bars = 20
    min_history = 10
    interval_scale = 1.2

    def project(
        self, closes: list[float], days: list[date], targets: list[date]
    ) -> Projection:
        sequence = closes[-SEQUENCE_LENGTH:]
        normalized, lo, hi = normalize(sequence)
        hidden = gated_memory(normalized)
        trend_norm = (normalized[-1] - normalized[0]) / len(normalized)

        x = normalized[-1]
        steps: list[float] = []
        for i in range(1, len(targets) + 1):
            x += trend_norm * math.exp(-TREND_DECAY * i) + MEAN_REVERSION * (hidden - x)
            steps.append(x)

        trend = (sequence[-1] - sequence[0]) / len(sequence)
        return Projection(path=denormalize(steps, lo, hi), trend=trend)
