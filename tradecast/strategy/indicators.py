"""Technical indicators: EMA, ATR and volatility bands. Pure functions, no I/O.

Every series is index-aligned with the input bars.  Warm-up cells are
``float('nan')``.  Nothing here raises: empty input or a period below 1
yields an empty list, and a bar with an unusable price nulls only its own
cell.
"""

import math

from tradecast.models.analysis_config import IndicatorConfig
from tradecast.risk.position_sizer import calculate_position_size
from tradecast.strategy.models import IndicatorSet, OHLCVBar


def is_valid_price(value: float) -> bool:
    """True for a finite, strictly positive price."""
    return value is not None and math.isfinite(value) and value > 0


def is_finite(value: float) -> bool:
    return value is not None and math.isfinite(value)


def calculate_ema(bars: list[OHLCVBar], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The value at index ``period - 1`` is seeded with the SMA of the first
    *period* closes.  Entries before the seed are ``float('nan')``; a series
    shorter than *period* is all ``nan``.
    """
    if not bars or period < 1:
        return []

    n = len(bars)
    ema: list[float] = [float("nan")] * n
    if n < period:
        return ema

    closes = [b.close for b in bars]
    seed_window = closes[:period]
    if not all(is_valid_price(c) for c in seed_window):
        return ema

    k = 2.0 / (period + 1)
    ema[period - 1] = sum(seed_window) / period
    prev = ema[period - 1]

    for i in range(period, n):
        if not is_valid_price(closes[i]):
            # Leave the cell empty, keep smoothing from the last good value
            continue
        prev = closes[i] * k + prev * (1 - k)
        ema[i] = prev

    return ema


def _true_range(bar: OHLCVBar, prev_close: float) -> float:
    """TR = max(high - low, |high - prev_close|, |low - prev_close|)."""
    if not (is_valid_price(bar.high) and is_valid_price(bar.low) and is_valid_price(prev_close)):
        return float("nan")
    return max(
        bar.high - bar.low,
        abs(bar.high - prev_close),
        abs(bar.low - prev_close),
    )


def calculate_atr(bars: list[OHLCVBar], period: int) -> list[float]:
    """Calculate the Average True Range series.

    True ranges start at bar 1 (a previous close is needed).  The ATR at
    index *period* is the simple average of the first *period* true ranges;
    afterwards it is smoothed with ``k = 2 / (period + 1)``.

    Returns a list the same length as *bars* (``nan`` before the seed).
    """
    if not bars or period < 1:
        return []

    n = len(bars)
    atr: list[float] = [float("nan")] * n

    true_ranges = [_true_range(bars[i], bars[i - 1].close) for i in range(1, n)]
    if len(true_ranges) < period:
        return atr

    seed = true_ranges[:period]
    if not all(is_finite(tr) for tr in seed):
        return atr

    k = 2.0 / (period + 1)
    atr[period] = sum(seed) / period
    prev = atr[period]

    for i in range(period + 1, n):
        tr = true_ranges[i - 1]
        if not is_finite(tr):
            continue
        prev = (tr - prev) * k + prev
        atr[i] = prev

    return atr


def calculate_volatility_bands(
    bars: list[OHLCVBar],
    period: int,
    multiplier: float,
) -> tuple[list[float], list[float]]:
    """Calculate standard-deviation volatility bands.

    Middle = rolling mean of closes over *period*
    Upper  = middle + *multiplier* × σ
    Lower  = middle − *multiplier* × σ

    σ is the population standard deviation of the window.

    Returns ``(upper, lower)``.  A non-positive *multiplier* produces
    ``nan``-filled bands.
    """
    if not bars or period < 1:
        return [], []

    closes = [b.close for b in bars]
    n = len(closes)

    upper: list[float] = [float("nan")] * n
    lower: list[float] = [float("nan")] * n

    if multiplier <= 0:
        return upper, lower

    for i in range(period - 1, n):
        window = closes[i - period + 1 : i + 1]
        if not all(is_valid_price(c) for c in window):
            continue
        mean = sum(window) / period
        variance = sum((x - mean) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        upper[i] = mean + multiplier * sigma
        lower[i] = mean - multiplier * sigma

    return upper, lower


def compute_indicators(bars: list[OHLCVBar], config: IndicatorConfig) -> IndicatorSet:
    """Compute every enabled indicator for *bars*.

    In addition to the series, derives an ATR-based stop-loss for the
    latest bar only (``last_close - atr × stop_multiplier``) and the
    position size ``floor(risk_amount / stop_distance)``.

    Returns ``IndicatorSet.empty()`` for empty input.
    """
    if not bars:
        return IndicatorSet.empty()

    ema: list[float] = []
    atr: list[float] = []
    upper: list[float] = []
    lower: list[float] = []
    stop_loss: list[float] = []
    position_size = 0

    if config.ema.enabled:
        ema = calculate_ema(bars, config.ema.period)

    if config.atr.enabled:
        atr = calculate_atr(bars, config.atr.period)

    if config.volatility_bands.enabled:
        upper, lower = calculate_volatility_bands(
            bars,
            config.volatility_bands.period,
            config.volatility_bands.multiplier,
        )

    latest_atr = atr[-1] if atr else float("nan")
    latest_close = bars[-1].close
    if is_finite(latest_atr) and is_valid_price(latest_close):
        risk = config.risk
        stop_distance = latest_atr * risk.atr_stop_loss_multiplier

        stop_loss = [float("nan")] * len(bars)
        stop_loss[-1] = latest_close - stop_distance

        if stop_distance > 0 and risk.account_size >= 0 and risk.risk_percentage >= 0:
            position_size = calculate_position_size(
                account_size=risk.account_size,
                risk_pct=risk.risk_percentage,
                stop_distance=stop_distance,
            )

    return IndicatorSet(
        ema=ema,
        atr=atr,
        upper_band=upper,
        lower_band=lower,
        stop_loss=stop_loss,
        position_size=position_size,
    )
