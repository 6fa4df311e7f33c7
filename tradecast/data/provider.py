"""Market data collaborators.

The analysis core never fetches data itself; it consumes any object with a
``fetch_market_data(symbol, provider)`` method.  ``CsvMarketDataProvider``
serves bars from ``<data_dir>/<SYMBOL>.csv`` files.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Union

from tradecast.data.bars import ComputationError, load_bars_csv
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.data")


@dataclass(frozen=True)
class MarketDataResult:
    """Bars for one symbol, or an explanation of why there are none."""

    bars: list[OHLCVBar] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.bars)


class MarketDataProvider(Protocol):
    def fetch_market_data(self, symbol: str, provider: str = "csv") -> MarketDataResult:
        ...


class CsvMarketDataProvider:
    """Read daily bars from ``<data_dir>/<SYMBOL>.csv``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def path_for(self, symbol: str) -> Path:
        return self.data_dir / f"{symbol.upper()}.csv"

    def fetch_market_data(self, symbol: str, provider: str = "csv") -> MarketDataResult:
        path = self.path_for(symbol)
        if not path.exists():
            return MarketDataResult(error=f"No data file for {symbol.upper()}: {path}")
        try:
            bars = load_bars_csv(path)
        except (OSError, ComputationError) as exc:
            logger.warning("Failed to load %s: %s", path, exc)
            return MarketDataResult(error=f"Failed to load {symbol.upper()}: {exc}")
        if not bars:
            return MarketDataResult(error=f"No valid bars for {symbol.upper()}")
        logger.info("Loaded %d bars for %s from %s", len(bars), symbol.upper(), path)
        return MarketDataResult(bars=bars)
