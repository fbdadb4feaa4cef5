"""
Random perturbation of click positions and inter-event delays.

All functions take an optional ``rng`` (anything with ``random``/``randint``)
so callers can pass a seeded ``random.Random`` for reproducible playback.
"""

from __future__ import annotations
import math
import random
from typing import Optional

from macroreplay.models.events import CLICK_EVENTS, Event
from macroreplay.models.randomization import (
    ClickRandomization,
    DelayRandomization,
    RandomDistribution,
    RandomizationConfig,
)


def randomize_click(event: Event, config: ClickRandomization, rng: Optional[random.Random] = None) -> Event:
    """
    Offset the position of a mouse press or release.

    With probability ``config.probability`` independent integer offsets are
    drawn uniformly from [-max_offset, max_offset] on each axis; coordinates
    never go below zero. Other event kinds are returned unchanged.
    """
    rng = rng or random
    if not isinstance(event, CLICK_EVENTS):
        return event
    if rng.random() >= config.probability:
        return event

    offset_x = rng.randint(-config.max_offset_x, config.max_offset_x)
    offset_y = rng.randint(-config.max_offset_y, config.max_offset_y)
    return event.model_copy(update={
        "x": max(0, event.x + offset_x),
        "y": max(0, event.y + offset_y),
    })


def sample_delay_offset(config: DelayRandomization, rng: Optional[random.Random] = None) -> float:
    """Draw one delay offset in ms from the configured distribution."""
    rng = rng or random
    low, high = config.min_delay_ms, config.max_delay_ms

    if config.distribution == RandomDistribution.UNIFORM:
        return rng.uniform(low, high)

    if config.distribution == RandomDistribution.GAUSSIAN:
        mean = (low + high) / 2.0
        std_dev = (high - low) / 6.0
        # Box-Muller; 1 - random() keeps u1 in (0, 1]
        u1 = 1.0 - rng.random()
        u2 = rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return min(max(z0 * std_dev + mean, low), high)

    if config.distribution == RandomDistribution.EXPONENTIAL:
        if high <= low:
            return low
        rate = 1.0 / (high - low)
        u = 1.0 - rng.random()
        return -math.log(u) / rate + low

    raise ValueError(f"Unknown distribution: {config.distribution}")


def randomize_delay(
    base_delay_ms: float,
    config: RandomizationConfig,
    rng: Optional[random.Random] = None,
    delay_index: Optional[int] = None,
) -> float:
    """
    Apply delay randomization to a base inter-event delay.

    Args:
        base_delay_ms: Delay derived from event timestamps and playback speed
        config: The macro's randomization settings
        rng: Random source
        delay_index: 1-based position of this delay within the run, used by
            the every-Nth-event filter

    Returns:
        The perturbed delay, never negative
    """
    rng = rng or random
    delay_config = config.delay_randomization
    if not config.enabled or not delay_config.enabled:
        return base_delay_ms

    every_nth = delay_config.frequency.every_nth_event
    if every_nth > 0 and delay_index is not None and delay_index % every_nth != 0:
        return base_delay_ms

    if rng.random() >= delay_config.frequency.probability:
        return base_delay_ms

    return max(0.0, base_delay_ms + sample_delay_offset(delay_config, rng))
