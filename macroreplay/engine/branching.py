"""
Branch rule evaluation for playback iterations.
"""

from __future__ import annotations
import random
from typing import Optional

from macroreplay.models.branching import (
    AfterNEvents,
    AtTimeOffset,
    BranchingConfig,
    BranchRule,
    BranchTrigger,
    EveryNIterations,
    OnEventType,
    RandomProbability,
)


def should_trigger(trigger: BranchTrigger, iteration: int, rng: Optional[random.Random] = None) -> bool:
    """Whether ``trigger`` fires on the given 1-based iteration."""
    rng = rng or random
    if isinstance(trigger, EveryNIterations):
        return iteration % trigger.n == 0
    if isinstance(trigger, RandomProbability):
        return rng.random() < trigger.probability
    if isinstance(trigger, (AfterNEvents, AtTimeOffset, OnEventType)):
        # Declared but not evaluated: never fire
        return False
    raise TypeError(f"Unknown branch trigger: {trigger!r}")


def evaluate_branches(
    config: BranchingConfig,
    iteration: int,
    rng: Optional[random.Random] = None,
) -> Optional[BranchRule]:
    """Return the first enabled rule, in list order, whose trigger fires."""
    if not config.enabled:
        return None

    for rule in config.branches:
        if not rule.enabled:
            continue
        if should_trigger(rule.trigger, iteration, rng):
            return rule
    return None
