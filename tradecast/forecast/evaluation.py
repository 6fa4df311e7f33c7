"""Forecast evaluation: pure functions for offline model comparison."""

import math

from tradecast.forecast.models import ModelEvaluation


def directions_from_prices(prices: list[float]) -> list[str]:
    """Label each step ``UP``/``DOWN``/``NEUTRAL`` (length ``n - 1``)."""
    labels: list[str] = []
    for i in range(1, len(prices)):
        change = prices[i] - prices[i - 1]
        labels.append("UP" if change > 0 else "DOWN" if change < 0 else "NEUTRAL")
    return labels


def evaluate_model(
    actual: list[float],
    predicted: list[float],
    actual_directions: list[str],
    predicted_directions: list[str],
) -> ModelEvaluation:
    """Score a predicted price series against the realised one.

    Returns:
        ``ModelEvaluation`` with RMSE, MAE, directional accuracy (fraction
        of matching direction labels) and a simulated cumulative return.
        Mismatched or empty price series score ``inf`` error, zero
        accuracy and zero return.

    The cumulative return adds the actual return of every step where both
    series rise and subtracts its magnitude where both fall.  It is only
    meaningful for ranking models offline.
    """
    if len(actual) != len(predicted) or not actual:
        return ModelEvaluation(
            rmse=math.inf, mae=math.inf, directional_accuracy=0.0, cumulative_return=0.0
        )

    n = len(actual)
    errors = [a - p for a, p in zip(actual, predicted)]
    rmse = math.sqrt(sum(e * e for e in errors) / n)
    mae = sum(abs(e) for e in errors) / n

    compared = min(len(actual_directions), len(predicted_directions))
    if compared:
        matches = sum(
            1 for a, p in zip(actual_directions, predicted_directions) if a == p
        )
        directional_accuracy = matches / compared
    else:
        directional_accuracy = 0.0

    cumulative = 0.0
    for i in range(1, n):
        if actual[i - 1] == 0 or predicted[i - 1] == 0:
            continue
        actual_return = (actual[i] - actual[i - 1]) / actual[i - 1]
        predicted_return = (predicted[i] - predicted[i - 1]) / predicted[i - 1]
        if predicted_return > 0 and actual_return > 0:
            cumulative += actual_return
        elif predicted_return < 0 and actual_return < 0:
            cumulative -= abs(actual_return)

    return ModelEvaluation(
        rmse=rmse,
        mae=mae,
        directional_accuracy=directional_accuracy,
        cumulative_return=cumulative,
    )
