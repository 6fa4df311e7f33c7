"""Risk metrics for the risk panel. Pure math, no I/O."""

import math
from typing import Optional

from tradecast.models.analysis_config import IndicatorConfig
from tradecast.risk.position_sizer import calculate_position_size
from tradecast.strategy.models import IndicatorSet, OHLCVBar, RiskMetrics


def calculate_risk_metrics(
    bars: list[OHLCVBar],
    indicators: IndicatorSet,
    config: IndicatorConfig,
    entry_price: Optional[float] = None,
    target_price: Optional[float] = None,
) -> Optional[RiskMetrics]:
    """Summarise account risk for a long position at *entry_price*.

    The stop is placed ``ATR × atr_stop_loss_multiplier`` below entry using
    the latest ATR.  Without a usable ATR the stop distance is zero and the
    position size is zero.  The recommended target is the 1:3 reward:risk
    price; *target_price* (e.g. from the latest signal) overrides it when
    computing the realised ratio.

    Returns ``None`` for an empty bar series.
    """
    if not bars:
        return None

    risk = config.risk
    current_price = entry_price if entry_price is not None else bars[-1].close
    risk_amount = risk.account_size * risk.risk_percentage / 100.0

    stop_distance = 0.0
    if config.atr.enabled and indicators.atr:
        latest_atr = indicators.atr[-1]
        if math.isfinite(latest_atr):
            stop_distance = latest_atr * risk.atr_stop_loss_multiplier
    stop_price = current_price - stop_distance

    position_size = 0
    if stop_distance > 0 and risk.account_size >= 0 and risk.risk_percentage >= 0:
        position_size = calculate_position_size(
            account_size=risk.account_size,
            risk_pct=risk.risk_percentage,
            stop_distance=stop_distance,
        )

    recommended_target = current_price + stop_distance * 3
    actual_target = target_price if target_price is not None else recommended_target

    reward = abs(actual_target - current_price)
    risk_reward = reward / stop_distance if stop_distance > 0 else 0.0

    return RiskMetrics(
        account_size=risk.account_size,
        risk_percentage=risk.risk_percentage,
        risk_amount=risk_amount,
        position_size=position_size,
        stop_loss_distance=stop_distance,
        stop_loss_price=stop_price,
        entry_price=current_price,
        target_price=actual_target,
        risk_reward_ratio=risk_reward,
        recommended_target=recommended_target,
    )
