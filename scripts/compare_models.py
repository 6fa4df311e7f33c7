"""Walk-forward comparison of the four forecasters on historical bars.

Usage:
    python -m scripts.compare_models data/BTC-USD.csv
    python -m scripts.compare_models data/AAPL.csv --horizon 5 --step 10
    python -m scripts.compare_models data/AAPL.csv --json results.json

For every fold the forecasters see the bars up to the fold boundary and
predict the next ``--horizon`` bars, which are then scored with
``evaluate_model``.  Scores are averaged across folds per model.
"""

from __future__ import annotations

import argparse
import json
import logging
import math
from pathlib import Path

import numpy as np

from tradecast.data.bars import load_bars_csv
from tradecast.forecast.evaluation import directions_from_prices, evaluate_model
from tradecast.forecast.models import ForecastModel
from tradecast.forecast.registry import get_forecaster
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.compare_models")

MIN_TRAIN_BARS = 60


def walk_forward(
    bars: list[OHLCVBar],
    model: ForecastModel,
    horizon: int = 7,
    step: int = 5,
    min_train: int = MIN_TRAIN_BARS,
    confidence_level: float = 0.95,
) -> dict:
    """Average evaluation scores of *model* over walk-forward folds.

    Returns a dict with ``folds`` and the mean ``rmse``, ``mae``,
    ``directional_accuracy`` and ``cumulative_return``.  Folds whose
    forecast comes back empty are skipped.
    """
    forecaster = get_forecaster(model)
    scores: list[dict] = []

    for end in range(min_train, len(bars) - horizon + 1, step):
        history = bars[:end]
        result = forecaster.run(history, horizon, confidence_level)
        if result.is_empty:
            continue

        anchor = history[-1].close
        actual = [b.close for b in bars[end : end + horizon]]
        predicted = result.predicted[: len(actual)]
        evaluation = evaluate_model(
            actual,
            predicted,
            directions_from_prices([anchor] + actual),
            directions_from_prices([anchor] + predicted),
        )
        scores.append(
            {
                "rmse": evaluation.rmse,
                "mae": evaluation.mae,
                "directional_accuracy": evaluation.directional_accuracy,
                "cumulative_return": evaluation.cumulative_return,
            }
        )

    summary: dict = {"model": model.value, "folds": len(scores)}
    for metric in ("rmse", "mae", "directional_accuracy", "cumulative_return"):
        values = [s[metric] for s in scores if math.isfinite(s[metric])]
        summary[metric] = float(np.mean(values)) if values else None
    return summary


def compare_models(
    bars: list[OHLCVBar], horizon: int = 7, step: int = 5
) -> list[dict]:
    """Walk-forward summaries for every registered model, best RMSE first."""
    summaries = [walk_forward(bars, m, horizon=horizon, step=step) for m in ForecastModel]
    return sorted(
        summaries,
        key=lambda s: s["rmse"] if s["rmse"] is not None else math.inf,
    )


def _format_row(summary: dict) -> str:
    def fmt(value, spec):
        return format(value, spec) if value is not None else "n/a"

    return (
        f"{summary['model']:<8} folds={summary['folds']:<4} "
        f"rmse={fmt(summary['rmse'], '.4f'):<10} "
        f"mae={fmt(summary['mae'], '.4f'):<10} "
        f"dir={fmt(summary['directional_accuracy'], '.1%'):<7} "
        f"ret={fmt(summary['cumulative_return'], '+.2%')}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Walk-forward forecaster comparison")
    parser.add_argument("csv", type=Path, help="CSV of daily bars")
    parser.add_argument("--horizon", type=int, default=7, help="Bars to predict per fold")
    parser.add_argument("--step", type=int, default=5, help="Bars between folds")
    parser.add_argument("--json", type=Path, help="Also write results to this file")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    bars = load_bars_csv(args.csv)
    if len(bars) < MIN_TRAIN_BARS + args.horizon:
        raise SystemExit(
            f"Need at least {MIN_TRAIN_BARS + args.horizon} bars, got {len(bars)}"
        )

    summaries = compare_models(bars, horizon=args.horizon, step=args.step)
    print(f"{len(bars)} bars from {args.csv}, horizon {args.horizon}, step {args.step}")
    for summary in summaries:
        print(_format_row(summary))

    if args.json:
        args.json.write_text(json.dumps(summaries, indent=2))


if __name__ == "__main__":
    main()
