"""Deterministic tests for support/resistance detection and signal generation.

All tests use fixed bar fixtures. Same input = same output, always.
"""

import math
from datetime import date, timedelta

import pytest

from tradecast.models.analysis_config import (
    ATRConfig,
    EMAConfig,
    IndicatorConfig,
    RiskConfig,
)
from tradecast.strategy.indicators import compute_indicators
from tradecast.strategy.models import IndicatorSet, OHLCVBar
from tradecast.strategy.signals import generate_signals
from tradecast.strategy.sr_levels import detect_support_resistance

NAN = float("nan")


# ── Bar fixtures ─────────────────────────────────────────────────────────


def _day(i: int) -> str:
    return (date(2024, 1, 1) + timedelta(days=i)).isoformat()


def _make_bar(i: int, close: float, high: float, low: float) -> OHLCVBar:
    return OHLCVBar(date=_day(i), open=close, high=high, low=low, close=close, volume=1000)


def _zigzag_bars(n: int = 19, peak_bump: float = 0.0) -> list[OHLCVBar]:
    """Triangle wave with period 6: highs peak at 106 (i = 3, 9, 15 ...) and
    lows bottom at 98 (i = 6, 12 ...)."""
    bars = []
    for i in range(n):
        phase = i % 6
        high = 100 + 2 * min(phase, 6 - phase)
        if i == 9:
            high += peak_bump
        bars.append(_make_bar(i, high - 1, high, high - 2))
    return bars


def _crossover_bars(resistance_high: float) -> list[OHLCVBar]:
    """60 flat bars around 100 with a single resistance spike at bar 20.

    The last two bars dip to 99 and close back at 100, crossing the EMA.
    """
    bars = [_make_bar(i, 100.0, 100.5, 99.5) for i in range(60)]
    bars[20] = _make_bar(20, 100.0, resistance_high, 99.5)
    bars[58] = _make_bar(58, 99.0, 99.5, 98.5)
    bars[59] = _make_bar(59, 100.0, 100.5, 99.5)
    return bars


def _crossover_indicators(n: int = 60) -> IndicatorSet:
    ema = [NAN] * (n - 2) + [99.5, 99.8]
    atr = [NAN] * (n - 2) + [1.0, 1.0]
    lower = [NAN] * (n - 1) + [95.0]
    upper = [NAN] * (n - 1) + [105.0]
    return IndicatorSet(ema=ema, atr=atr, upper_band=upper, lower_band=lower)


def _unit_atr_config() -> IndicatorConfig:
    return IndicatorConfig(risk=RiskConfig(atr_stop_loss_multiplier=1.0))


# ── Support / resistance ─────────────────────────────────────────────────


class TestSupportResistance:
    def test_detects_and_ranks_levels(self):
        levels = detect_support_resistance(_zigzag_bars(), lookback=2)
        assert [(lv.level_type, lv.level, lv.touches) for lv in levels] == [
            ("resistance", 106.0, 3),
            ("support", 98.0, 2),
        ]
        assert levels[0].strength == 2
        assert levels[1].strength == 2

    def test_groups_within_tolerance(self):
        levels = detect_support_resistance(_zigzag_bars(peak_bump=1.0), lookback=2)
        resistance = [lv for lv in levels if lv.level_type == "resistance"]
        assert len(resistance) == 1
        assert resistance[0].touches == 3
        assert resistance[0].level == pytest.approx((106 + 107 + 106) / 3)

    def test_too_few_bars(self):
        assert detect_support_resistance(_zigzag_bars(40)) == []
        assert detect_support_resistance(_zigzag_bars(4), lookback=2) == []

    def test_strength_capped_at_five(self):
        levels = detect_support_resistance(_zigzag_bars(100), lookback=2)
        assert all(1 <= lv.strength <= 5 for lv in levels)
        assert max(lv.touches for lv in levels) >= 10
        assert levels[0].strength == 5


# ── Signal generation ────────────────────────────────────────────────────


class TestSignalSuppression:
    def test_nearby_resistance_caps_reward_and_drops_signal(self):
        # Stop = 1 ATR = 1 % of entry; 3R target 103 is capped at the
        # resistance at 102, so reward:risk is only 2.
        bars = _crossover_bars(resistance_high=102.0)
        signals = generate_signals(bars, _crossover_indicators(), _unit_atr_config())
        assert signals == []

    def test_distant_resistance_keeps_signal(self):
        bars = _crossover_bars(resistance_high=104.0)
        signals = generate_signals(bars, _crossover_indicators(), _unit_atr_config())
        assert len(signals) == 1
        signal = signals[0]
        assert signal.signal_type == "BUY"
        assert signal.index == 59
        assert signal.date == bars[-1].date
        assert signal.stop_loss == pytest.approx(99.0)
        assert signal.target == pytest.approx(103.0)
        assert signal.risk_reward_ratio == pytest.approx(3.0)
        assert "Price crossed above EMA" in signal.reason
        assert "near support" in signal.reason
        assert signal.trend == "BULLISH"


class TestSignalRules:
    def _bars(self, prev: tuple, last: tuple, n: int = 10) -> list[OHLCVBar]:
        """Flat history then custom (close, high, low) for the last two bars."""
        bars = [_make_bar(i, 100.0, 101.0, 99.0) for i in range(n - 2)]
        bars.append(_make_bar(n - 2, *prev))
        bars.append(_make_bar(n - 1, *last))
        return bars

    def _indicators(self, ema, atr, lower, n: int = 10) -> IndicatorSet:
        return IndicatorSet(
            ema=[NAN] * (n - 2) + list(ema),
            atr=[NAN] * (n - 2) + list(atr),
            upper_band=[NAN] * n,
            lower_band=[NAN] * (n - 2) + list(lower),
        )

    def test_sell_wins_over_buy(self):
        # Close holds above EMA (buy) but breaks the ATR trailing stop (sell)
        bars = self._bars(prev=(101.0, 102.0, 100.0), last=(100.5, 103.0, 100.0))
        indicators = self._indicators(ema=(100.0, 100.0), atr=(1.0, 1.0), lower=(95.0, 95.0))
        signals = generate_signals(bars, indicators, IndicatorConfig())
        assert len(signals) == 1
        signal = signals[0]
        assert signal.signal_type == "SELL"
        assert "ATR trailing stop reversal" in signal.reason
        assert "overrides buy setup" in signal.reason
        # 2 × ATR stop above entry, 3R target below
        assert signal.stop_loss == pytest.approx(102.5)
        assert signal.target == pytest.approx(94.5)

    def test_sell_below_ema_and_lower_band(self):
        bars = self._bars(prev=(96.0, 97.0, 95.0), last=(94.0, 95.0, 93.0))
        indicators = self._indicators(ema=(99.0, 98.5), atr=(1.0, 1.0), lower=(95.0, 95.0))
        signals = generate_signals(bars, indicators, IndicatorConfig())
        assert [s.signal_type for s in signals] == ["SELL"]
        assert "Price below EMA and lower band" in signals[0].reason
        assert signals[0].trend == "BEARISH"

    def test_death_cross(self):
        bars = self._bars(prev=(101.0, 101.5, 100.5), last=(99.0, 101.0, 98.5))
        indicators = self._indicators(ema=(100.0, 100.0), atr=(1.0, 0.9), lower=(90.0, 90.0))
        signals = generate_signals(bars, indicators, IndicatorConfig())
        assert [s.signal_type for s in signals] == ["SELL"]
        assert "Death cross" in signals[0].reason

    def test_buy_blocked_below_lower_band(self):
        bars = self._bars(prev=(100.0, 101.0, 99.0), last=(101.0, 101.5, 100.5))
        indicators = self._indicators(ema=(100.5, 100.6), atr=(1.0, 1.0), lower=(102.0, 102.0))
        assert generate_signals(bars, indicators, IndicatorConfig()) == []

    def test_no_buy_without_ema(self):
        bars = self._bars(prev=(100.0, 101.0, 99.0), last=(101.0, 101.5, 100.5))
        indicators = self._indicators(ema=(100.5, 100.6), atr=(1.0, 1.0), lower=(95.0, 95.0))
        config = IndicatorConfig(ema=EMAConfig(enabled=False))
        assert generate_signals(bars, indicators, config) == []

    def test_fallback_stop_without_atr(self):
        bars = self._bars(prev=(100.0, 101.0, 99.0), last=(101.0, 101.5, 100.5))
        indicators = self._indicators(ema=(100.5, 100.6), atr=(1.0, 1.0), lower=(95.0, 95.0))
        config = IndicatorConfig(atr=ATRConfig(enabled=False))
        signals = generate_signals(bars, indicators, config)
        assert len(signals) == 1
        assert signals[0].stop_loss == pytest.approx(101.0 * 0.98)

    def test_empty_bars(self):
        assert generate_signals([], IndicatorSet.empty(), IndicatorConfig()) == []


class TestSignalInvariants:
    """Every emitted signal honours the reward:risk floor and risk clamp."""

    @pytest.mark.parametrize("amplitude", [2.0, 8.0, 20.0])
    def test_every_signal_respects_floor_and_clamp(self, amplitude):
        closes = [100 + 0.1 * i + amplitude * math.sin(i / 5) for i in range(160)]
        bars = [_make_bar(i, c, c * 1.01, c * 0.99) for i, c in enumerate(closes)]
        config = IndicatorConfig()

        emitted = []
        for end in range(30, len(bars) + 1):
            window = bars[:end]
            indicators = compute_indicators(window, config)
            emitted.extend(generate_signals(window, indicators, config))

        assert emitted
        for signal in emitted:
            assert signal.risk_reward_ratio >= 3 - 1e-9
            risk_pct = abs(signal.price - signal.stop_loss) / signal.price
            assert 0.01 - 1e-9 <= risk_pct <= 0.02 + 1e-9
