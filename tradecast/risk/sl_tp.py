"""Stop-loss and target calculation for entry signals. Pure math, no I/O.

Approach:
    1. Stop distance is ATR × multiplier when an ATR is available,
       otherwise a flat 2 % of entry.
    2. Target distance is 3 × the stop distance (1:3 reward:risk).
    3. The stop distance is clamped to 1–2 % of entry; when the clamp moves
       it, the target is recomputed from the clamped stop.
    4. The target is pulled in to the nearest opposing S/R level (resistance
       for a BUY, support for a SELL) lying between entry and the 3R target.
    5. A setup whose final reward:risk is below the floor is rejected.
"""

import math
from dataclasses import dataclass
from typing import Optional

from tradecast.strategy.indicators import is_valid_price
from tradecast.strategy.models import SupportResistance


MIN_RISK_REWARD = 3.0
MIN_RISK_PCT = 0.01
MAX_RISK_PCT = 0.02
FALLBACK_STOP_PCT = 0.02

# Absorbs floating-point noise in the reward:risk floor comparison
RR_TOLERANCE = 1e-9


@dataclass
class RiskLevels:
    """Computed stop-loss and target for a signal."""

    stop_loss: float
    target: float
    risk_reward_ratio: float
    stop_source: str  # "atr" or "fallback"
    target_source: str  # "rr" or "level"


def _nearest_level_in_profit_direction(
    entry_price: float,
    direction: str,
    target_distance: float,
    sr_levels: list[SupportResistance],
) -> Optional[float]:
    """Return the opposing level closest to entry that sits strictly between
    entry and the unconstrained target, or ``None``.

    Only resistance can cap a BUY and only support can cap a SELL.
    """
    if direction == "BUY":
        inside = [
            lv.level for lv in sr_levels
            if lv.level_type == "resistance"
            and entry_price < lv.level < entry_price + target_distance
        ]
        return min(inside) if inside else None
    inside = [
        lv.level for lv in sr_levels
        if lv.level_type == "support"
        and entry_price - target_distance < lv.level < entry_price
    ]
    return max(inside) if inside else None


def calculate_signal_levels(
    entry_price: float,
    direction: str,
    atr: Optional[float] = None,
    atr_multiplier: float = 2.0,
    sr_levels: Optional[list[SupportResistance]] = None,
    min_rr: float = MIN_RISK_REWARD,
) -> Optional[RiskLevels]:
    """Calculate the stop-loss and target for a BUY or SELL at *entry_price*.

    Args:
        entry_price: Signal entry price (latest close).
        direction: ``"BUY"`` or ``"SELL"``.
        atr: Latest ATR value, or ``None`` / ``nan`` when unavailable.
        atr_multiplier: Stop distance as a multiple of ATR.
        sr_levels: Detected S/R levels that may cap the target.
        min_rr: Minimum acceptable reward:risk ratio (hard filter).

    Returns:
        ``RiskLevels``, or ``None`` when the entry price is unusable or the
        final reward:risk is below *min_rr*.

    Raises:
        ValueError: If *direction* is not ``"BUY"`` or ``"SELL"``.
    """
    if direction not in ("BUY", "SELL"):
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'")
    if not is_valid_price(entry_price):
        return None

    if atr is not None and math.isfinite(atr) and atr > 0 and atr_multiplier > 0:
        stop_distance = atr * atr_multiplier
        stop_source = "atr"
    else:
        stop_distance = entry_price * FALLBACK_STOP_PCT
        stop_source = "fallback"
    target_distance = stop_distance * min_rr

    clamped = min(max(stop_distance, entry_price * MIN_RISK_PCT), entry_price * MAX_RISK_PCT)
    if clamped != stop_distance:
        stop_distance = clamped
        target_distance = stop_distance * min_rr

    target_source = "rr"
    if sr_levels:
        level = _nearest_level_in_profit_direction(
            entry_price, direction, target_distance, sr_levels
        )
        if level is not None:
            target_distance = abs(level - entry_price)
            target_source = "level"

    risk_reward = target_distance / stop_distance
    if risk_reward + RR_TOLERANCE < min_rr:
        return None

    if direction == "BUY":
        stop_loss = entry_price - stop_distance
        target = entry_price + target_distance
    else:
        stop_loss = entry_price + stop_distance
        target = entry_price - target_distance

    return RiskLevels(
        stop_loss=stop_loss,
        target=target,
        risk_reward_ratio=risk_reward,
        stop_source=stop_source,
        target_source=target_source,
    )
