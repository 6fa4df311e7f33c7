"""Tests for AnalysisPipeline: bundle computation, forecast scheduling and caching."""

import asyncio
import math
import threading
from datetime import date, timedelta

import pytest

from tradecast.forecast.cache import ForecastCache
from tradecast.models.analysis_config import ForecastConfig, IndicatorConfig
from tradecast.pipeline import AnalysisPipeline, ComputationError
from tradecast.strategy.models import OHLCVBar


def _make_bars(n: int = 90) -> list[OHLCVBar]:
    start = date(2024, 1, 1)
    bars = []
    for i in range(n):
        c = 100 + 0.3 * i + 5 * math.sin(i / 3)
        bars.append(
            OHLCVBar(
                date=(start + timedelta(days=i)).isoformat(),
                open=c, high=c + 1, low=c - 1, close=c, volume=1000,
            )
        )
    return bars


def _forecast_config(**overrides) -> ForecastConfig:
    defaults = dict(enabled=True, model="simple", forecast_period=7, confidence_level=0.95)
    defaults.update(overrides)
    return ForecastConfig(**defaults)


class TestCompute:
    def test_bundle_aligned_with_bars(self):
        bars = _make_bars()
        bundle = AnalysisPipeline().compute(bars, IndicatorConfig())
        assert len(bundle.indicators.ema) == len(bars)
        assert len(bundle.indicators.atr) == len(bars)
        assert bundle.risk is not None
        assert bundle.risk.entry_price == bars[-1].close
        for level in bundle.levels:
            assert 1 <= level.strength <= 5

    def test_empty_series(self):
        bundle = AnalysisPipeline().compute([], IndicatorConfig())
        assert bundle.signals == []
        assert bundle.levels == []
        assert bundle.risk is None

    @pytest.mark.parametrize("bad", ["AAPL", {"close": 1}, None, [1, 2, 3]])
    def test_non_bar_input_raises(self, bad):
        with pytest.raises(ComputationError):
            AnalysisPipeline().compute(bad, IndicatorConfig())


class TestSymbolSwitch:
    def test_switch_evicts_previous_symbol(self):
        cache = ForecastCache()
        pipeline = AnalysisPipeline(cache)
        bars = _make_bars()
        pipeline.activate_symbol("AAPL")
        pipeline.forecast("simple", "AAPL", bars, _forecast_config())
        assert len(cache) == 1

        pipeline.activate_symbol("BTC-USD")
        assert pipeline.active_symbol == "BTC-USD"
        assert len(cache) == 0

    def test_same_symbol_keeps_cache(self):
        cache = ForecastCache()
        pipeline = AnalysisPipeline(cache)
        pipeline.activate_symbol("AAPL")
        pipeline.forecast("arima", "AAPL", _make_bars(), _forecast_config())
        pipeline.activate_symbol("AAPL")
        assert len(cache) == 1


class TestForecasts:
    def test_forecast_is_cached(self):
        cache = ForecastCache()
        pipeline = AnalysisPipeline(cache)
        bars = _make_bars()
        first = pipeline.forecast("simple", "AAPL", bars, _forecast_config())
        second = pipeline.forecast("simple", "AAPL", bars, _forecast_config())
        assert first is second
        assert first.model == "Simple MA"

    def test_unknown_model_raises(self):
        with pytest.raises(ValueError):
            AnalysisPipeline().forecast("garch", "AAPL", _make_bars(), _forecast_config())

    @pytest.mark.asyncio
    async def test_run_forecasts_returns_all_four(self):
        pipeline = AnalysisPipeline(ForecastCache(max_entries=8))
        results = await pipeline.run_forecasts("AAPL", _make_bars(), _forecast_config())
        assert set(results) == {"simple", "arima", "prophet", "lstm"}
        assert results["prophet"].model == "Prophet"
        assert results["lstm"].model == "LSTM"
        for result in results.values():
            assert len(result.predicted) == 7

    @pytest.mark.asyncio
    async def test_second_run_is_served_from_cache(self):
        cache = ForecastCache(max_entries=8)
        pipeline = AnalysisPipeline(cache)
        bars = _make_bars()
        first = await pipeline.run_forecasts("AAPL", bars, _forecast_config())
        second = await pipeline.run_forecasts("AAPL", bars, _forecast_config())
        assert all(first[k] is second[k] for k in first)
        assert len(cache) == 4

    @pytest.mark.asyncio
    async def test_long_term_group_degrades_on_short_history(self):
        pipeline = AnalysisPipeline()
        results = await pipeline.run_forecasts("AAPL", _make_bars(15), _forecast_config())
        assert results["prophet"].model == "Simple MA"
        assert results["lstm"].model == "Simple MA"

    @pytest.mark.asyncio
    async def test_short_term_pair_overlaps_long_term_group(self, monkeypatch):
        long_started = threading.Event()
        overlapped = []

        def long_term(bars, model, *args):
            long_started.set()
            return None

        def short_term(bars, model, *args):
            overlapped.append(long_started.wait(timeout=2))
            return None

        monkeypatch.setattr("tradecast.pipeline.generate_long_term_forecast", long_term)
        monkeypatch.setattr("tradecast.pipeline.generate_short_term_forecast", short_term)
        results = await AnalysisPipeline().run_forecasts(
            "AAPL", _make_bars(), _forecast_config()
        )
        assert overlapped == [True, True]
        assert results == {"simple": None, "arima": None, "prophet": None, "lstm": None}

    @pytest.mark.asyncio
    async def test_short_term_failure_cancels_long_term_group(self, monkeypatch):
        release = threading.Event()
        pipeline = AnalysisPipeline()
        schedule = pipeline.schedule_long_term
        tasks = []

        def capture(*args):
            task = schedule(*args)
            tasks.append(task)
            return task

        def long_term(bars, model, *args):
            release.wait(timeout=5)
            return None

        def short_term(bars, model, *args):
            raise RuntimeError("simple failed")

        monkeypatch.setattr(pipeline, "schedule_long_term", capture)
        monkeypatch.setattr("tradecast.pipeline.generate_long_term_forecast", long_term)
        monkeypatch.setattr("tradecast.pipeline.generate_short_term_forecast", short_term)
        try:
            with pytest.raises(RuntimeError, match="simple failed"):
                await pipeline.run_forecasts("AAPL", _make_bars(), _forecast_config())
            await asyncio.wait(tasks, timeout=1)
            assert tasks[0].cancelled()
        finally:
            release.set()


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_full_snapshot(self):
        pipeline = AnalysisPipeline(ForecastCache(max_entries=8))
        snapshot = await pipeline.analyze(
            "aapl-test", _make_bars(), IndicatorConfig(), _forecast_config()
        )
        assert snapshot.symbol == "aapl-test"
        assert snapshot.bar_count == 90
        assert len(snapshot.forecasts) == 4
        assert pipeline.active_symbol == "aapl-test"

    @pytest.mark.asyncio
    async def test_forecasting_disabled(self):
        snapshot = await AnalysisPipeline().analyze(
            "AAPL", _make_bars(), IndicatorConfig(), ForecastConfig(enabled=False)
        )
        assert snapshot.forecasts == {}
        assert snapshot.bundle.risk is not None

    @pytest.mark.asyncio
    async def test_bad_bars_raise(self):
        with pytest.raises(ComputationError):
            await AnalysisPipeline().analyze(
                "AAPL", "not bars", IndicatorConfig(), _forecast_config()
            )
