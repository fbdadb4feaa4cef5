"""
Tests for branch rule evaluation.
"""

import random

from macroreplay.engine.branching import evaluate_branches, should_trigger
from macroreplay.models import (
    AfterNEvents,
    AtTimeOffset,
    BranchingConfig,
    BranchRule,
    EveryNIterations,
    OnEventType,
    PauseExecution,
    RandomProbability,
    StopExecution,
)


def rule(name, trigger, action=None, enabled=True) -> BranchRule:
    return BranchRule(name=name, trigger=trigger, action=action or StopExecution(), enabled=enabled)


class TestShouldTrigger:
    """Tests for individual triggers."""

    def test_every_n_iterations(self, rng):
        """Test that every-3 fires on iterations 3, 6 and 9 of 10."""
        trigger = EveryNIterations(n=3)
        fired = [i for i in range(1, 11) if should_trigger(trigger, i, rng)]
        assert fired == [3, 6, 9]

    def test_random_probability_extremes(self, rng):
        """Test that probability 0 never fires and 1 always fires."""
        never = RandomProbability(probability=0.0)
        always = RandomProbability(probability=1.0)

        assert not any(should_trigger(never, i, rng) for i in range(1, 101))
        assert all(should_trigger(always, i, rng) for i in range(1, 101))

    def test_random_probability_rate(self):
        """Test that the firing rate follows the probability."""
        trigger = RandomProbability(probability=0.25)
        rng = random.Random(42)

        fired = sum(should_trigger(trigger, i, rng) for i in range(1, 4001))
        assert 850 < fired < 1150

    def test_inert_triggers_never_fire(self, rng):
        """Test that declared-only triggers always evaluate false."""
        triggers = [AfterNEvents(n=1), AtTimeOffset(offset_ms=0), OnEventType(event_type="mouse_down")]
        for trigger in triggers:
            assert not any(should_trigger(trigger, i, rng) for i in range(1, 20))


class TestEvaluateBranches:
    """Tests for rule selection."""

    def test_disabled_config(self, rng):
        """Test that nothing fires while branching is off."""
        config = BranchingConfig(enabled=False, branches=[rule("always", EveryNIterations(n=1))])
        assert evaluate_branches(config, 1, rng) is None

    def test_first_matching_rule_wins(self, rng):
        """Test that rules are evaluated in list order."""
        first = rule("pause", EveryNIterations(n=2), PauseExecution(duration_ms=10))
        second = rule("stop", EveryNIterations(n=1))
        config = BranchingConfig(enabled=True, branches=[first, second])

        assert evaluate_branches(config, 1, rng).name == "stop"
        assert evaluate_branches(config, 2, rng).name == "pause"

    def test_disabled_rule_skipped(self, rng):
        """Test that disabled rules are ignored."""
        skipped = rule("off", EveryNIterations(n=1), enabled=False)
        active = rule("on", EveryNIterations(n=1))
        config = BranchingConfig(enabled=True, branches=[skipped, active])

        assert evaluate_branches(config, 1, rng).name == "on"

    def test_no_rule_fires(self, rng):
        """Test that None is returned when nothing triggers."""
        config = BranchingConfig(enabled=True, branches=[rule("every-5", EveryNIterations(n=5))])
        assert [evaluate_branches(config, i, rng) for i in range(1, 5)] == [None] * 4
