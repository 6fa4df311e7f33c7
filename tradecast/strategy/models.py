"""Typed representations for indicator and signal outputs."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OHLCVBar:
    """A single daily bar as handed over by the market-data collaborator."""

    date: str  # calendar day, "YYYY-MM-DD"
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class IndicatorSet:
    """Indicator series index-aligned with the input bars.

    Cells before an indicator's warm-up period are ``float('nan')``.
    A disabled indicator is an empty list.
    """

    ema: list[float] = field(default_factory=list)
    atr: list[float] = field(default_factory=list)
    upper_band: list[float] = field(default_factory=list)
    lower_band: list[float] = field(default_factory=list)
    stop_loss: list[float] = field(default_factory=list)
    position_size: int = 0

    @classmethod
    def empty(cls) -> "IndicatorSet":
        return cls()


@dataclass(frozen=True)
class SupportResistance:
    """A support or resistance price level."""

    level: float
    level_type: str  # "support" or "resistance"
    strength: int  # 1..5
    touches: int


@dataclass(frozen=True)
class TradingSignal:
    """A risk-managed entry signal for the most recent bar."""

    index: int
    date: str
    signal_type: str  # "BUY" or "SELL"
    price: float
    stop_loss: float
    target: float
    risk_reward_ratio: float
    trend: str  # "BULLISH", "BEARISH" or "NEUTRAL"
    reason: str


@dataclass(frozen=True)
class RiskMetrics:
    """Position sizing summary for the risk panel."""

    account_size: float
    risk_percentage: float
    risk_amount: float
    position_size: int
    stop_loss_distance: float
    stop_loss_price: float
    entry_price: float
    target_price: float
    risk_reward_ratio: float
    recommended_target: float  # 1:3 R:R from the ATR stop
