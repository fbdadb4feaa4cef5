"""
Tests for click and delay randomization.
"""

import random

import pytest

from macroreplay.engine.randomization import randomize_click, randomize_delay, sample_delay_offset
from macroreplay.models import (
    ClickRandomization,
    DelayRandomization,
    KeyDownEvent,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    RandomDistribution,
    RandomizationConfig,
    RandomizationFrequency,
)


def delay_config(**kwargs) -> RandomizationConfig:
    kwargs.setdefault("enabled", True)
    return RandomizationConfig(enabled=True, delay_randomization=DelayRandomization(**kwargs))


class TestClickRandomization:
    """Tests for randomize_click."""

    def test_zero_probability_leaves_click_unchanged(self, rng):
        """Test that probability 0 never moves a click."""
        config = ClickRandomization(enabled=True, probability=0.0, max_offset_x=50, max_offset_y=50)
        event = MouseDownEvent(timestamp=0, x=300, y=400)

        for _ in range(200):
            assert randomize_click(event, config, rng) == event

    def test_zero_offset_leaves_click_unchanged(self, rng):
        """Test that a zero range never moves a click."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=0, max_offset_y=0)
        event = MouseUpEvent(timestamp=0, x=300, y=400)

        for _ in range(200):
            result = randomize_click(event, config, rng)
            assert (result.x, result.y) == (300, 400)

    def test_offsets_within_bounds(self, rng):
        """Test that offsets never exceed the configured maximum."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=5, max_offset_y=3)
        event = MouseDownEvent(timestamp=0, x=100, y=100)

        seen_moved = False
        for _ in range(500):
            result = randomize_click(event, config, rng)
            assert abs(result.x - 100) <= 5
            assert abs(result.y - 100) <= 3
            seen_moved = seen_moved or (result.x, result.y) != (100, 100)
        assert seen_moved

    def test_coordinates_clamped_at_zero(self, rng):
        """Test that coordinates near the origin never go negative."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=20, max_offset_y=20)
        event = MouseDownEvent(timestamp=0, x=0, y=1)

        for _ in range(200):
            result = randomize_click(event, config, rng)
            assert result.x >= 0
            assert result.y >= 0

    def test_original_event_not_modified(self, rng):
        """Test that a copy is returned and the input is untouched."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=10, max_offset_y=10)
        event = MouseDownEvent(timestamp=5, x=50, y=50)

        result = randomize_click(event, config, rng)

        assert (event.x, event.y) == (50, 50)
        assert result.timestamp == event.timestamp
        assert result.button == event.button

    def test_non_click_events_unchanged(self, rng):
        """Test that moves and keys are passed through."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=10, max_offset_y=10)
        move = MouseMoveEvent(timestamp=0, x=50, y=50)
        key = KeyDownEvent(timestamp=0, key_code=65, key_name="a")

        assert randomize_click(move, config, rng) is move
        assert randomize_click(key, config, rng) is key

    def test_seeded_rng_is_reproducible(self):
        """Test that equal seeds give equal results."""
        config = ClickRandomization(enabled=True, probability=1.0, max_offset_x=10, max_offset_y=10)
        event = MouseDownEvent(timestamp=0, x=50, y=50)

        first = [randomize_click(event, config, random.Random(7)) for _ in range(3)]
        second = [randomize_click(event, config, random.Random(7)) for _ in range(3)]
        assert [(e.x, e.y) for e in first] == [(e.x, e.y) for e in second]


class TestDelayRandomization:
    """Tests for randomize_delay and sample_delay_offset."""

    def test_uniform_delays_stay_in_range(self, rng):
        """Test that uniform delays stay within base + [min, max]."""
        config = delay_config(min_delay_ms=-50, max_delay_ms=100)

        samples = [randomize_delay(200, config, rng) for _ in range(1000)]

        assert all(150 <= s <= 300 for s in samples)
        assert len(set(samples)) > 1

    def test_delay_never_negative(self, rng):
        """Test that large negative offsets clamp at zero."""
        config = delay_config(min_delay_ms=-500, max_delay_ms=-400)

        for _ in range(100):
            assert randomize_delay(10, config, rng) == 0.0

    def test_disabled_returns_base(self, rng):
        """Test that either switch being off disables randomization."""
        inner_off = delay_config(enabled=False)
        outer_off = RandomizationConfig(enabled=False, delay_randomization=DelayRandomization(enabled=True))

        assert randomize_delay(200, inner_off, rng) == 200
        assert randomize_delay(200, outer_off, rng) == 200

    def test_zero_frequency_probability_returns_base(self, rng):
        """Test that probability 0 never perturbs a delay."""
        config = delay_config(frequency=RandomizationFrequency(probability=0.0))

        for _ in range(100):
            assert randomize_delay(200, config, rng) == 200

    def test_every_nth_event(self, rng):
        """Test that only every Nth delay is eligible."""
        config = delay_config(min_delay_ms=10, max_delay_ms=20, frequency=RandomizationFrequency(every_nth_event=3))

        results = [randomize_delay(100, config, rng, delay_index=i) for i in range(1, 10)]

        for index, value in enumerate(results, start=1):
            if index % 3 == 0:
                assert 110 <= value <= 120
            else:
                assert value == 100

    def test_gaussian_clamped_to_range(self, rng):
        """Test that gaussian offsets stay inside [min, max]."""
        config = DelayRandomization(min_delay_ms=-30, max_delay_ms=30, distribution=RandomDistribution.GAUSSIAN)

        samples = [sample_delay_offset(config, rng) for _ in range(1000)]

        assert all(-30 <= s <= 30 for s in samples)
        assert abs(sum(samples) / len(samples)) < 5

    def test_exponential_starts_at_min(self, rng):
        """Test that exponential offsets are never below min."""
        config = DelayRandomization(min_delay_ms=10, max_delay_ms=60, distribution=RandomDistribution.EXPONENTIAL)

        samples = [sample_delay_offset(config, rng) for _ in range(1000)]

        assert all(s >= 10 for s in samples)
        assert 40 < sum(samples) / len(samples) < 80

    def test_exponential_degenerate_range(self, rng):
        """Test that an empty range returns min."""
        config = DelayRandomization(min_delay_ms=25, max_delay_ms=25, distribution=RandomDistribution.EXPONENTIAL)
        assert sample_delay_offset(config, rng) == 25

    @pytest.mark.parametrize("distribution", list(RandomDistribution))
    def test_seeded_samples_reproducible(self, distribution):
        """Test that every distribution is deterministic for a given seed."""
        config = DelayRandomization(min_delay_ms=-20, max_delay_ms=80, distribution=distribution)

        first = [sample_delay_offset(config, random.Random(99)) for _ in range(5)]
        second = [sample_delay_offset(config, random.Random(99)) for _ in range(5)]
        assert first == second
