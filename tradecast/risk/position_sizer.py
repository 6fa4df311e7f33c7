"""Position sizing. Pure math, no I/O.

Calculates the number of whole units to buy based on account size,
risk percentage and the stop-loss distance in price.
"""

import math


def calculate_position_size(
    account_size: float,
    risk_pct: float,
    stop_distance: float,
) -> int:
    """Calculate position size in whole units.

    Formula::

        risk_amount = account_size × (risk_pct / 100)
        units       = floor(risk_amount / stop_distance)

    Args:
        account_size: Account value (e.g. 5_000.0).  Zero is allowed.
        risk_pct: Percentage of the account to risk per trade (e.g. 2.0).
        stop_distance: Distance from entry to stop-loss in price units.

    Returns:
        Number of units (never negative).

    Raises:
        ValueError: If *stop_distance* is not positive or either account
            input is negative.
    """
    if account_size < 0:
        raise ValueError(f"account_size must be non-negative, got {account_size}")
    if risk_pct < 0:
        raise ValueError(f"risk_pct must be non-negative, got {risk_pct}")
    if not stop_distance > 0:
        raise ValueError(f"stop_distance must be positive, got {stop_distance}")

    risk_amount = account_size * (risk_pct / 100.0)
    return int(math.floor(risk_amount / stop_distance))
