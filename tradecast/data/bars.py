"""Daily bar loading and cleaning.

The analysis core assumes an ascending, de-duplicated, future-filtered bar
series.  These helpers produce one from a CSV file, a DataFrame or JSON
records, and reject inputs that are not a bar series at all.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd

from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.data")

BAR_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
PRICE_COLUMNS = ["open", "high", "low", "close"]

# Bars dated up to one day ahead are accepted (exchange timezone skew)
FUTURE_TOLERANCE_DAYS = 1


class ComputationError(ValueError):
    """Input that is not a bar series at all (a collaborator contract violation)."""


def ensure_bar_series(bars) -> list[OHLCVBar]:
    """Return *bars* as a list, raising ``ComputationError`` unless every item is a bar."""
    if isinstance(bars, (str, bytes, dict)) or not isinstance(bars, Iterable):
        raise ComputationError(
            f"bars must be a sequence of OHLCVBar, got {type(bars).__name__}"
        )
    series = list(bars)
    for i, bar in enumerate(series):
        if not isinstance(bar, OHLCVBar):
            raise ComputationError(
                f"bars[{i}] must be an OHLCVBar, got {type(bar).__name__}"
            )
    return series


def clean_bars(df: pd.DataFrame, today: Optional[date] = None) -> pd.DataFrame:
    """Clean a raw bar frame.

    1. Accept ``time`` as an alias of the ``date`` column.
    2. Drop rows whose close is missing, non-finite or non-positive.
    3. Drop rows with unparsable dates or dates beyond today + 1 day.
    4. De-duplicate by date, keeping the last row.
    5. Sort ascending and normalise dates to ``YYYY-MM-DD`` strings.

    Missing open/high/low fall back to the close; missing volume to 0.
    """
    if df.empty:
        return pd.DataFrame(columns=BAR_COLUMNS)

    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "date" not in df.columns and "time" in df.columns:
        df = df.rename(columns={"time": "date"})
    if "date" not in df.columns or "close" not in df.columns:
        raise ComputationError("bar data needs 'date' and 'close' columns")

    raw_rows = len(df)

    # 2 ── Prices
    for col in PRICE_COLUMNS + ["volume"]:
        if col not in df.columns:
            df[col] = df["close"] if col != "volume" else 0.0
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df = df[np.isfinite(df["close"]) & (df["close"] > 0)].copy()
    for col in ["open", "high", "low"]:
        df[col] = df[col].fillna(df["close"])
    df["volume"] = df["volume"].fillna(0.0)

    # 3 ── Dates
    parsed = pd.to_datetime(df["date"], errors="coerce", utc=True, format="ISO8601")
    df = df.assign(date=parsed.dt.date)
    df = df[df["date"].notna()]
    limit = (today or date.today()) + timedelta(days=FUTURE_TOLERANCE_DAYS)
    df = df[df["date"] <= limit].copy()

    # 4, 5 ── Order
    df = df.drop_duplicates(subset="date", keep="last").sort_values("date")
    df["date"] = df["date"].map(lambda d: d.isoformat())
    df = df[BAR_COLUMNS].reset_index(drop=True)

    dropped = raw_rows - len(df)
    if dropped:
        logger.info("Dropped %d invalid, duplicate or future-dated bar(s)", dropped)
    return df


def bars_from_frame(df: pd.DataFrame) -> list[OHLCVBar]:
    """Convert a cleaned frame into ``OHLCVBar`` objects."""
    return [
        OHLCVBar(
            date=str(row.date),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


def bars_from_records(records, today: Optional[date] = None) -> list[OHLCVBar]:
    """Clean and convert JSON-style records (a list of dicts) into bars.

    Raises ``ComputationError`` when *records* is not a list of objects.
    """
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ComputationError("bars must be a list of objects")
    if not records:
        return []
    return bars_from_frame(clean_bars(pd.DataFrame(records), today=today))


def load_bars_csv(path: Union[str, Path], today: Optional[date] = None) -> list[OHLCVBar]:
    """Read, clean and convert a CSV of daily bars."""
    df = pd.read_csv(path)
    return bars_from_frame(clean_bars(df, today=today))
