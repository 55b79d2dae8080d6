"""
Tests for the dynamic threshold calculation.

Covers:
- Moving-average arithmetic (including the documented [10, 20, 30] case)
- Window bounds are inclusive on both ends
- Empty window is degenerate (threshold 0.0)
- Recomputation from scratch and determinism
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from adapters.storage import InMemoryTimeSeriesStore
from core.domain.errors import SeriesNotFound
from core.domain.models import MetricSample
from core.services.threshold import ThresholdCalculator, ThresholdConfig

NOW = datetime(2024, 1, 1, 18, 0, tzinfo=UTC)
WINDOW = timedelta(hours=6)


async def _store_with(values: list[float], spacing: timedelta = timedelta(minutes=1)):
    store = InMemoryTimeSeriesStore()
    for i, value in enumerate(values):
        await store.append("cpu", MetricSample(timestamp=NOW - spacing * (i + 1), value=value))
    return store


async def test_threshold_is_average_times_multiplier() -> None:
    store = await _store_with([10.0, 20.0, 30.0])
    calculator = ThresholdCalculator(store, multiplier=1.2)

    threshold = await calculator.compute("cpu", NOW, WINDOW)

    assert threshold.sample_count == 3
    assert threshold.average == pytest.approx(20.0)
    assert threshold.value == pytest.approx(24.0)
    assert not threshold.is_degenerate
    assert threshold.window == WINDOW


async def test_samples_outside_window_are_ignored() -> None:
    store = InMemoryTimeSeriesStore()
    too_old = NOW - WINDOW - timedelta(seconds=1)
    await store.append("cpu", MetricSample(timestamp=too_old, value=1000))
    await store.append("cpu", MetricSample(timestamp=NOW - WINDOW, value=10.0))  # inclusive start
    await store.append("cpu", MetricSample(timestamp=NOW, value=30.0))  # inclusive end
    await store.append("cpu", MetricSample(timestamp=NOW + timedelta(seconds=1), value=1000))

    threshold = await ThresholdCalculator(store).compute("cpu", NOW, WINDOW)

    assert threshold.sample_count == 2
    assert threshold.average == pytest.approx(20.0)


async def test_empty_window_yields_degenerate_zero_threshold() -> None:
    store = await _store_with([50.0], spacing=timedelta(hours=12))

    threshold = await ThresholdCalculator(store).compute("cpu", NOW, WINDOW)

    assert threshold.value == 0.0
    assert threshold.average == 0.0
    assert threshold.sample_count == 0
    assert threshold.is_degenerate


async def test_unknown_series_propagates() -> None:
    with pytest.raises(SeriesNotFound):
        await ThresholdCalculator(InMemoryTimeSeriesStore()).compute("missing", NOW, WINDOW)


async def test_recomputed_from_scratch_each_call() -> None:
    store = await _store_with([10.0, 20.0, 30.0])
    calculator = ThresholdCalculator(store, multiplier=1.2)

    first = await calculator.compute("cpu", NOW, WINDOW)
    again = await calculator.compute("cpu", NOW, WINDOW)
    assert first == again

    await store.append("cpu", MetricSample(timestamp=NOW, value=60.0))
    updated = await calculator.compute("cpu", NOW, WINDOW)
    assert updated.average == pytest.approx(30.0)
    assert updated.value > first.value


def test_multiplier_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ThresholdCalculator(InMemoryTimeSeriesStore(), multiplier=0)

    with pytest.raises(ValueError):
        ThresholdConfig(multiplier=-1.0)


def test_threshold_config_defaults() -> None:
    config = ThresholdConfig()
    assert config.window == timedelta(hours=6)
    assert config.multiplier == 1.2
    assert config.static_floor == 90.0


@given(
    values=st.lists(
        st.floats(min_value=0.0, max_value=100.0, allow_nan=False), min_size=1, max_size=30
    ),
    multiplier=st.floats(min_value=0.1, max_value=5.0),
)
def test_threshold_matches_mean_for_any_window(values: list[float], multiplier: float) -> None:
    """Property-based test: threshold == mean(values) * multiplier."""

    async def compute():
        store = await _store_with(values)
        return await ThresholdCalculator(store, multiplier=multiplier).compute("cpu", NOW, WINDOW)

    threshold = asyncio.run(compute())

    expected_average = sum(values) / len(values)
    assert threshold.sample_count == len(values)
    assert threshold.average == pytest.approx(expected_average)
    assert threshold.value == pytest.approx(expected_average * multiplier)
