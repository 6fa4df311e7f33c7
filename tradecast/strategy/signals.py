"""Entry signal evaluation. Pure functions, no I/O.

Fuses indicator state on the most recent bar into at most one BUY or SELL
signal with risk-managed stop-loss and target levels.

BUY needs the close to cross above (or hold above) the EMA while staying
above the lower volatility band.  Proximity to a detected support level
strengthens the reason but is not required.

SELL fires on any of:
    * an EMA cross below while ATR is rising,
    * an ATR trailing-stop reversal of an implied long,
    * a death cross (strict close-through-EMA from above),
    * the close sitting below both the EMA and the lower band.

When both sides fire, SELL wins.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tradecast.models.analysis_config import IndicatorConfig
from tradecast.risk.sl_tp import calculate_signal_levels
from tradecast.strategy.indicators import is_finite, is_valid_price
from tradecast.strategy.models import (
    IndicatorSet,
    OHLCVBar,
    SupportResistance,
    TradingSignal,
)
from tradecast.strategy.sr_levels import detect_support_resistance

logger = logging.getLogger("tradecast.signals")

# Close within this fraction of a support level counts as "at support"
SUPPORT_PROXIMITY = 0.02


@dataclass(frozen=True)
class _BarState:
    """Indicator readings for the current and previous bar (``nan`` = n/a)."""

    close: float
    prev_close: float
    high: float
    prev_high: float
    ema: float
    prev_ema: float
    atr: float
    prev_atr: float
    lower_band: float


def _at(series: list[float], index: int) -> float:
    if 0 <= index < len(series):
        return series[index]
    return float("nan")


def _read_state(
    bars: list[OHLCVBar], indicators: IndicatorSet, config: IndicatorConfig
) -> _BarState:
    i = len(bars) - 1
    prev = bars[i - 1] if i >= 1 else None
    nan = float("nan")

    ema = indicators.ema if config.ema.enabled else []
    atr = indicators.atr if config.atr.enabled else []
    lower = indicators.lower_band if config.volatility_bands.enabled else []

    return _BarState(
        close=bars[i].close,
        prev_close=prev.close if prev else nan,
        high=bars[i].high,
        prev_high=prev.high if prev else nan,
        ema=_at(ema, i),
        prev_ema=_at(ema, i - 1),
        atr=_at(atr, i),
        prev_atr=_at(atr, i - 1),
        lower_band=_at(lower, i),
    )


def _crossed_above(prev_price: float, prev_level: float, price: float, level: float) -> bool:
    if not all(is_finite(v) for v in (prev_price, prev_level, price, level)):
        return False
    return prev_price <= prev_level and price > level


def _crossed_below(prev_price: float, prev_level: float, price: float, level: float) -> bool:
    if not all(is_finite(v) for v in (prev_price, prev_level, price, level)):
        return False
    return prev_price >= prev_level and price < level


def _near_support(close: float, levels: list[SupportResistance]) -> Optional[SupportResistance]:
    """Return the closest support within ``SUPPORT_PROXIMITY`` of *close*."""
    near = [
        lv for lv in levels
        if lv.level_type == "support"
        and abs(close - lv.level) / lv.level <= SUPPORT_PROXIMITY
    ]
    if not near:
        return None
    return min(near, key=lambda lv: abs(close - lv.level))


def _evaluate_buy(state: _BarState, bands_enabled: bool) -> tuple[bool, list[str]]:
    reasons: list[str] = []
    if not is_finite(state.ema):
        return False, reasons

    if _crossed_above(state.prev_close, state.prev_ema, state.close, state.ema):
        reasons.append("Price crossed above EMA")
    elif state.close > state.ema:
        reasons.append("Price holding above EMA")
    else:
        return False, reasons

    if bands_enabled:
        if not (is_finite(state.lower_band) and state.close > state.lower_band):
            return False, reasons
        reasons.append("above lower band")

    return True, reasons


def _evaluate_sell(state: _BarState, atr_multiplier: float) -> tuple[bool, list[str]]:
    reasons: list[str] = []

    atr_rising = (
        is_finite(state.atr) and is_finite(state.prev_atr) and state.atr > state.prev_atr
    )
    if _crossed_below(state.prev_close, state.prev_ema, state.close, state.ema) and atr_rising:
        reasons.append("EMA cross below with rising ATR")

    # Trailing stop of the long implied by the previous bar sitting above EMA
    implied_long = (
        is_finite(state.prev_ema) and is_finite(state.prev_close)
        and state.prev_close > state.prev_ema
    )
    if implied_long and is_finite(state.atr) and is_finite(state.prev_atr):
        prev_trail = state.prev_high - state.prev_atr * atr_multiplier
        trail = state.high - state.atr * atr_multiplier
        if _crossed_below(state.prev_close, prev_trail, state.close, trail):
            reasons.append("ATR trailing stop reversal")

    if (
        is_finite(state.prev_ema) and is_finite(state.ema)
        and state.prev_close > state.prev_ema and state.close < state.ema
    ):
        reasons.append("Death cross (price crossed below EMA)")

    if (
        is_finite(state.ema) and is_finite(state.lower_band)
        and state.close < state.ema and state.close < state.lower_band
    ):
        reasons.append("Price below EMA and lower band")

    return bool(reasons), reasons


def _trend(state: _BarState) -> str:
    if not is_finite(state.ema):
        return "NEUTRAL"
    if state.close > state.ema:
        return "BULLISH"
    if state.close < state.ema:
        return "BEARISH"
    return "NEUTRAL"


def generate_signals(
    bars: list[OHLCVBar],
    indicators: IndicatorSet,
    config: IndicatorConfig,
) -> list[TradingSignal]:
    """Evaluate the most recent bar and return zero or one signal.

    Args:
        bars: Daily bars, oldest first.
        indicators: ``IndicatorSet`` computed from *bars* with *config*.
        config: Indicator configuration (enabled flags and the ATR stop
            multiplier are read from it).

    Returns:
        ``[TradingSignal]`` when a setup passes the reward:risk floor,
        otherwise ``[]``.  A setup whose reward:risk stays below 1:3 is
        dropped silently.
    """
    if not bars or indicators is None:
        return []

    state = _read_state(bars, indicators, config)
    if not is_valid_price(state.close):
        return []

    atr_multiplier = config.risk.atr_stop_loss_multiplier
    buy, buy_reasons = _evaluate_buy(state, config.volatility_bands.enabled)
    sell, sell_reasons = _evaluate_sell(state, atr_multiplier)

    if not (buy or sell):
        return []

    sr_levels = detect_support_resistance(bars)

    if sell:
        direction = "SELL"
        reason = " + ".join(sell_reasons)
        if buy:
            reason += " (overrides buy setup)"
    else:
        direction = "BUY"
        reason = " + ".join(buy_reasons)
        support = _near_support(state.close, sr_levels)
        if support is not None:
            reason += f" + near support {support.level:.2f}"

    levels = calculate_signal_levels(
        entry_price=state.close,
        direction=direction,
        atr=state.atr if config.atr.enabled else None,
        atr_multiplier=atr_multiplier,
        sr_levels=sr_levels,
    )
    if levels is None:
        logger.debug(
            "%s setup on %s dropped: reward:risk below floor", direction, bars[-1].date
        )
        return []

    latest = bars[-1]
    return [
        TradingSignal(
            index=len(bars) - 1,
            date=latest.date,
            signal_type=direction,
            price=state.close,
            stop_loss=levels.stop_loss,
            target=levels.target,
            risk_reward_ratio=levels.risk_reward_ratio,
            trend=_trend(state),
            reason=reason,
        )
    ]
