"""Unified forecast date generation shared by every forecaster."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

logger = logging.getLogger("tradecast.forecast")

# Bars dated up to one day ahead are accepted (exchange timezone skew)
FUTURE_TOLERANCE = timedelta(days=1)


def parse_bar_date(value: str) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` or an ISO timestamp (``...T00:00:00Z``) to a date."""
    if not value:
        return None
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def generate_forecast_dates(
    last_date: str,
    forecast_days: int,
    today: Optional[date] = None,
) -> list[str]:
    """Return *forecast_days* calendar days starting the day after *last_date*.

    Dates are formatted ``YYYY-MM-DD``.  A *last_date* beyond today plus the
    one-day tolerance is clamped to today with a warning.  An unparsable
    *last_date* logs an error and returns ``[]``.
    """
    if forecast_days < 1:
        return []

    base = parse_bar_date(last_date)
    if base is None:
        logger.error("Invalid last date for forecast: %r", last_date)
        return []

    today = today or date.today()
    if base > today + FUTURE_TOLERANCE:
        logger.warning(
            "Last historical date %s is in the future; anchoring forecast at %s",
            base.isoformat(),
            today.isoformat(),
        )
        base = today

    return [(base + timedelta(days=i)).isoformat() for i in range(1, forecast_days + 1)]
