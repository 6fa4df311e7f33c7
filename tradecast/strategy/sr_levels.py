"""Support/Resistance level detection from daily bars. Pure functions."""

from tradecast.strategy.indicators import is_valid_price
from tradecast.strategy.models import OHLCVBar, SupportResistance


def _find_swing_points(
    bars: list[OHLCVBar], lookback: int
) -> list[tuple[float, str]]:
    """Identify local highs and lows as ``(price, level_type)`` pairs.

    A bar is a local high when no high inside the ±*lookback* window around
    it exceeds its own high (and symmetrically for lows).  Bars too close to
    either end of the series are never candidates.
    """
    points: list[tuple[float, str]] = []
    for i in range(lookback, len(bars) - lookback):
        bar = bars[i]
        window = bars[i - lookback : i + lookback + 1]

        if is_valid_price(bar.high) and all(
            b.high <= bar.high for b in window if is_valid_price(b.high)
        ):
            points.append((bar.high, "resistance"))

        if is_valid_price(bar.low) and all(
            b.low >= bar.low for b in window if is_valid_price(b.low)
        ):
            points.append((bar.low, "support"))
    return points


def _group_levels(
    points: list[tuple[float, str]], tolerance: float
) -> list[tuple[str, list[float]]]:
    """Group same-type points lying within *tolerance* (fraction) of a group's
    first price.  Points are assigned to the first matching group."""
    groups: list[tuple[str, list[float]]] = []
    for price, level_type in points:
        for group_type, prices in groups:
            anchor = prices[0]
            if group_type == level_type and abs(price - anchor) / anchor < tolerance:
                prices.append(price)
                break
        else:
            groups.append((level_type, [price]))
    return groups


def detect_support_resistance(
    bars: list[OHLCVBar],
    lookback: int = 20,
    tolerance: float = 0.02,
) -> list[SupportResistance]:
    """Detect horizontal support and resistance levels.

    Args:
        bars: Daily bars, oldest first.
        lookback: Half-window size for local extrema.
        tolerance: Grouping tolerance as a fraction of price (0.02 = 2 %).

    Returns:
        ``SupportResistance`` levels ranked by touch count (most touched
        first, then by price, highest first).  Empty when fewer than
        ``2 × lookback + 1`` bars are supplied.
    """
    if lookback < 1 or len(bars) < 2 * lookback + 1:
        return []

    points = _find_swing_points(bars, lookback)
    levels: list[SupportResistance] = []
    for level_type, prices in _group_levels(points, tolerance):
        touches = len(prices)
        levels.append(
            SupportResistance(
                level=sum(prices) / touches,
                level_type=level_type,
                strength=min(5, touches // 2 + 1),
                touches=touches,
            )
        )

    levels.sort(key=lambda lv: (-lv.touches, -lv.level))
    return levels
