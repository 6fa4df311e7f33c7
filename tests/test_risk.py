"""Tests for position sizing, stop/target levels and risk metrics."""

import math

import pytest

from tradecast.models.analysis_config import ATRConfig, IndicatorConfig, RiskConfig
from tradecast.risk.metrics import calculate_risk_metrics
from tradecast.risk.position_sizer import calculate_position_size
from tradecast.risk.sl_tp import calculate_signal_levels
from tradecast.strategy.models import IndicatorSet, OHLCVBar, SupportResistance


def _make_bars(closes: list[float]) -> list[OHLCVBar]:
    return [
        OHLCVBar(f"2024-03-{i + 1:02d}", c, c + 1, c - 1, c, 100)
        for i, c in enumerate(closes)
    ]


def _level(price: float, level_type: str) -> SupportResistance:
    return SupportResistance(level=price, level_type=level_type, strength=2, touches=2)


# ── Position sizing ──────────────────────────────────────────────────────


class TestPositionSizer:
    def test_floor_of_risk_over_stop(self):
        # 5000 × 2 % = 100 risk; 100 / 3 = 33.3 → 33
        assert calculate_position_size(5000, 2.0, 3.0) == 33

    def test_zero_account(self):
        assert calculate_position_size(0, 2.0, 1.0) == 0

    def test_rejects_non_positive_stop(self):
        with pytest.raises(ValueError, match="stop_distance"):
            calculate_position_size(5000, 2.0, 0.0)

    def test_rejects_negative_inputs(self):
        with pytest.raises(ValueError, match="account_size"):
            calculate_position_size(-1, 2.0, 1.0)
        with pytest.raises(ValueError, match="risk_pct"):
            calculate_position_size(5000, -2.0, 1.0)


# ── Stop-loss / target ───────────────────────────────────────────────────


class TestSignalLevels:
    def test_atr_stop_and_three_r_target(self):
        levels = calculate_signal_levels(100.0, "BUY", atr=0.75, atr_multiplier=2.0)
        assert levels.stop_loss == pytest.approx(98.5)
        assert levels.target == pytest.approx(104.5)
        assert levels.risk_reward_ratio == pytest.approx(3.0)
        assert levels.stop_source == "atr"
        assert levels.target_source == "rr"

    def test_fallback_stop(self):
        levels = calculate_signal_levels(50.0, "SELL")
        assert levels.stop_loss == pytest.approx(51.0)
        assert levels.target == pytest.approx(47.0)
        assert levels.stop_source == "fallback"

    def test_small_atr_is_widened_to_one_percent(self):
        levels = calculate_signal_levels(200.0, "BUY", atr=0.1, atr_multiplier=2.0)
        assert levels.stop_loss == pytest.approx(198.0)
        assert levels.target == pytest.approx(206.0)

    def test_large_atr_is_tightened_to_two_percent(self):
        levels = calculate_signal_levels(200.0, "SELL", atr=10.0, atr_multiplier=2.0)
        assert levels.stop_loss == pytest.approx(204.0)
        assert levels.target == pytest.approx(188.0)
        assert levels.risk_reward_ratio == pytest.approx(3.0)

    def test_level_inside_target_rejects_setup(self):
        levels = calculate_signal_levels(
            100.0, "SELL", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(98.0, "support")],
        )
        assert levels is None

    def test_levels_beyond_target_are_ignored(self):
        levels = calculate_signal_levels(
            100.0, "BUY", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(110.0, "resistance"), _level(95.0, "support")],
        )
        assert levels is not None
        assert levels.target == pytest.approx(103.0)

    def test_level_at_target_does_not_cap(self):
        levels = calculate_signal_levels(
            100.0, "BUY", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(103.0, "resistance")],
        )
        assert levels.target == pytest.approx(103.0)
        assert levels.target_source == "rr"
        assert levels.risk_reward_ratio == pytest.approx(3.0)

    def test_support_does_not_cap_buy_target(self):
        levels = calculate_signal_levels(
            100.0, "BUY", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(102.0, "support")],
        )
        assert levels.target == pytest.approx(103.0)
        assert levels.target_source == "rr"

    def test_resistance_does_not_cap_sell_target(self):
        levels = calculate_signal_levels(
            100.0, "SELL", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(98.0, "resistance")],
        )
        assert levels.target == pytest.approx(97.0)
        assert levels.target_source == "rr"

    def test_resistance_inside_buy_target_rejects_setup(self):
        levels = calculate_signal_levels(
            100.0, "BUY", atr=1.0, atr_multiplier=1.0,
            sr_levels=[_level(101.0, "support"), _level(102.0, "resistance")],
        )
        assert levels is None

    def test_invalid_direction(self):
        with pytest.raises(ValueError, match="direction"):
            calculate_signal_levels(100.0, "HOLD")

    def test_invalid_entry(self):
        assert calculate_signal_levels(float("nan"), "BUY") is None
        assert calculate_signal_levels(0.0, "BUY") is None


# ── Risk metrics ─────────────────────────────────────────────────────────


class TestRiskMetrics:
    def _indicators(self, latest_atr: float) -> IndicatorSet:
        return IndicatorSet(atr=[math.nan, 1.0, latest_atr])

    def test_empty_bars(self):
        assert calculate_risk_metrics([], IndicatorSet.empty(), IndicatorConfig()) is None

    def test_atr_stop_below_entry(self):
        bars = _make_bars([98.0, 99.0, 100.0])
        metrics = calculate_risk_metrics(bars, self._indicators(2.5), IndicatorConfig())
        assert metrics.entry_price == 100.0
        assert metrics.risk_amount == pytest.approx(100.0)
        assert metrics.stop_loss_distance == pytest.approx(5.0)
        assert metrics.stop_loss_price == pytest.approx(95.0)
        assert metrics.position_size == 20
        assert metrics.recommended_target == pytest.approx(115.0)
        assert metrics.target_price == pytest.approx(115.0)
        assert metrics.risk_reward_ratio == pytest.approx(3.0)

    def test_atr_config_multiplier_does_not_move_stop(self):
        bars = _make_bars([98.0, 99.0, 100.0])
        config = IndicatorConfig(atr=ATRConfig(multiplier=9.0))
        metrics = calculate_risk_metrics(bars, self._indicators(2.5), config)
        # 2.5 ATR × risk.atr_stop_loss_multiplier of 2
        assert metrics.stop_loss_distance == pytest.approx(5.0)

    def test_explicit_entry_and_target(self):
        bars = _make_bars([98.0, 99.0, 100.0])
        config = IndicatorConfig(risk=RiskConfig(account_size=10_000, risk_percentage=1.0))
        metrics = calculate_risk_metrics(
            bars, self._indicators(1.0), config, entry_price=101.0, target_price=105.0
        )
        assert metrics.entry_price == 101.0
        assert metrics.stop_loss_price == pytest.approx(99.0)
        assert metrics.risk_reward_ratio == pytest.approx(2.0)
        assert metrics.position_size == 50

    def test_without_atr(self):
        bars = _make_bars([100.0])
        config = IndicatorConfig(atr=ATRConfig(enabled=False))
        metrics = calculate_risk_metrics(bars, IndicatorSet.empty(), config)
        assert metrics.stop_loss_distance == 0.0
        assert metrics.position_size == 0
        assert metrics.risk_reward_ratio == 0.0
