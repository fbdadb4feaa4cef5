"""
Tests for the playback controller.
"""

import time

import pytest

from macroreplay.config import PlaybackSettings
from macroreplay.engine.playback import PlaybackController
from macroreplay.models import (
    BranchingConfig,
    BranchRule,
    ClickRandomization,
    EveryNIterations,
    ExecuteMacro,
    MouseUpEvent,
    PauseExecution,
    PlaybackConfig,
    PlaybackState,
    RandomizationConfig,
    StopExecution,
)

from conftest import RecordingInjector, click_macro, move_macro

TIMEOUT = 5.0


def wait_until(predicate, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


@pytest.fixture
def controller(injector, rng):
    return PlaybackController(injector, rng=rng)


class TestPlaybackExecution:
    """Tests for running a macro to completion."""

    def test_plays_every_event_each_iteration(self, controller, injector):
        """Test that k iterations of N events inject k x N events in order."""
        macro = click_macro((0, 5, 10, 15))

        result = controller.execute_macro(macro, iterations=3).result(TIMEOUT)

        assert result.success
        assert result.iterations_completed == 3
        assert result.events_executed == 12
        assert injector.calls == list(macro.events) * 3

    def test_speed_multiplier_scales_delays(self, controller, injector):
        """Test injection timing at double speed."""
        macro = click_macro((0, 100, 250))

        controller.execute_macro(macro, iterations=1, speed_multiplier=2.0).result(TIMEOUT)

        start = injector.times[0]
        offsets = [(t - start) * 1000 for t in injector.times]
        assert 45 <= offsets[1] <= 100
        assert 70 <= offsets[2] - offsets[1] <= 130

    def test_macro_defaults_used(self, controller, injector):
        """Test that iterations default to the macro's playback config."""
        macro = click_macro((0, 1), playback_config=PlaybackConfig(default_iterations=2))

        result = controller.execute_macro(macro).result(TIMEOUT)

        assert result.iterations_completed == 2
        assert len(injector.calls) == 4

    def test_iteration_delay(self, controller, injector):
        """Test the pause inserted between iterations."""
        macro = click_macro((0,), playback_config=PlaybackConfig(iteration_delay_ms=80))

        controller.execute_macro(macro, iterations=2).result(TIMEOUT)

        assert (injector.times[1] - injector.times[0]) * 1000 >= 75

    def test_returns_to_idle(self, controller):
        """Test the state sequence of a completed run."""
        states = []
        controller.state.subscribe(states.append)

        controller.execute_macro(click_macro((0, 1)), iterations=1).result(TIMEOUT)

        assert controller.state.value is PlaybackState.IDLE
        assert states == [PlaybackState.IDLE, PlaybackState.PLAYING, PlaybackState.STOPPED, PlaybackState.IDLE]

    def test_progress_and_log(self, controller):
        """Test the final progress snapshot and execution log."""
        macro = click_macro((0, 1, 2))

        result = controller.execute_macro(macro, iterations=1).result(TIMEOUT)

        progress = controller.progress.value
        assert progress.macro_id == macro.id
        assert progress.macro_name == macro.name
        assert progress.total_events == 3
        assert progress.events_executed == 3
        assert progress.current_iteration == 1
        assert result.execution_log[0].startswith("Executed: MouseDownEvent at 0")
        assert controller.last_result is result

    def test_on_complete_callback(self, controller):
        """Test that the completion callback receives the result."""
        results = []
        controller.on_complete = results.append

        result = controller.execute_macro(click_macro((0,)), iterations=1).result(TIMEOUT)

        assert wait_until(lambda: results == [result])

    def test_invalid_arguments(self, controller):
        """Test that bad iteration and speed values are rejected."""
        macro = click_macro()
        with pytest.raises(ValueError):
            controller.execute_macro(macro, iterations=-1)
        with pytest.raises(ValueError):
            controller.execute_macro(macro, speed_multiplier=0)
        assert controller.state.value is PlaybackState.IDLE

    def test_failed_injection_does_not_abort(self, rng):
        """Test that a failing event is logged and playback continues."""
        injector = RecordingInjector(fail_on=lambda event: isinstance(event, MouseUpEvent))
        controller = PlaybackController(injector, rng=rng)
        macro = click_macro((0, 1, 2))

        result = controller.execute_macro(macro, iterations=1).result(TIMEOUT)

        assert result.success
        assert len(injector.calls) == 3
        assert result.events_executed == 2
        assert any(line.startswith("Failed: MouseUpEvent at 1") for line in result.execution_log)

    def test_macro_not_modified_by_randomization(self, controller, injector):
        """Test that click randomization works on a copy."""
        randomization = RandomizationConfig(
            enabled=True,
            click_randomization=ClickRandomization(enabled=True, probability=1.0, max_offset_x=3, max_offset_y=3),
        )
        macro = click_macro((0, 1, 2, 3), randomization=randomization)
        original = macro.model_copy(deep=True)

        controller.execute_macro(macro, iterations=1).result(TIMEOUT)

        assert macro == original
        for played, recorded in zip(injector.calls, macro.events):
            assert abs(played.x - recorded.x) <= 3
            assert abs(played.y - recorded.y) <= 3
            assert played.timestamp == recorded.timestamp

    def test_click_randomization_needs_both_switches(self, controller, injector):
        """Test that the top-level switch gates click randomization."""
        randomization = RandomizationConfig(
            enabled=False,
            click_randomization=ClickRandomization(enabled=True, probability=1.0, max_offset_x=50, max_offset_y=50),
        )
        macro = click_macro((0, 1), randomization=randomization)

        controller.execute_macro(macro, iterations=1).result(TIMEOUT)

        assert injector.calls == list(macro.events)


class TestPlaybackControl:
    """Tests for stop, pause and resume."""

    def test_stop_when_idle_is_noop(self, controller, injector):
        """Test that stop on an idle controller changes nothing."""
        states = []
        controller.state.subscribe(states.append, replay=False)

        controller.stop()

        assert controller.state.value is PlaybackState.IDLE
        assert states == []
        assert not injector._stop_requested.is_set()

    def test_stop_during_playback(self, controller, injector):
        """Test that stop ends the run early and counts as success."""
        macro = click_macro((0, 2000, 4000))
        future = controller.execute_macro(macro, iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)

        started = time.monotonic()
        controller.stop()
        result = future.result(TIMEOUT)

        assert time.monotonic() - started < 1.0
        assert result.success
        assert result.events_executed == 1
        assert result.iterations_completed == 0
        assert controller.state.value is PlaybackState.IDLE

    def test_stop_infinite_loop(self, controller, injector):
        """Test that iterations=0 repeats until stopped."""
        future = controller.execute_macro(move_macro(count=3, step_ms=1), iterations=0)
        assert wait_until(lambda: len(injector.calls) >= 10)

        controller.stop()
        result = future.result(TIMEOUT)

        assert result.success
        assert result.iterations_completed >= 3
        assert controller.progress.value.total_iterations == 0

    def test_pause_and_resume(self, controller, injector):
        """Test that a paused run injects nothing until resumed."""
        macro = click_macro((0, 50, 100))
        future = controller.execute_macro(macro, iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)

        controller.pause()
        assert controller.state.value is PlaybackState.PAUSED
        time.sleep(0.2)
        assert len(injector.calls) == 1

        controller.resume()
        result = future.result(TIMEOUT)

        assert result.success
        assert result.events_executed == 3

    def test_stop_while_paused(self, controller, injector):
        """Test that a paused run can be stopped."""
        future = controller.execute_macro(click_macro((0, 50, 100)), iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)
        controller.pause()

        controller.stop()
        result = future.result(TIMEOUT)

        assert result.success
        assert result.events_executed == 1

    def test_toggle_pause(self, controller, injector):
        """Test that toggling flips between paused and playing."""
        future = controller.execute_macro(click_macro((0, 300)), iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)

        controller.toggle_pause()
        assert controller.state.value is PlaybackState.PAUSED
        controller.toggle_pause()
        assert controller.state.value is PlaybackState.PLAYING

        assert future.result(TIMEOUT).events_executed == 2

    def test_new_run_replaces_current(self, controller, injector):
        """Test that starting a run stops the one in progress."""
        first = controller.execute_macro(click_macro((0, 3000)), iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)

        second = controller.execute_macro(click_macro((0, 1), id="second"), iterations=1)

        assert first.result(TIMEOUT).events_executed == 1
        assert second.result(TIMEOUT).events_executed == 2
        assert controller.progress.value.macro_id == "second"

    def test_wait_for_idle(self, controller):
        """Test blocking until the run finishes."""
        controller.execute_macro(click_macro((0, 20)), iterations=1)
        assert controller.wait(TIMEOUT)
        assert controller.state.value is PlaybackState.IDLE


class TestPlaybackHotkeys:
    """Tests for hotkey registration during a run."""

    def test_hotkeys_registered_for_run(self, rng):
        """Test that the macro's hotkeys are registered then released."""
        injector = RecordingInjector()
        seen = []
        injector.execute_event = lambda event: seen.append(injector.hotkeys) or True
        controller = PlaybackController(injector, rng=rng)

        controller.execute_macro(click_macro((0,)), iterations=1).result(TIMEOUT)

        assert seen == [("F9", "F10")]
        assert injector.unregistered

    def test_stop_hotkey_callback(self, controller, injector):
        """Test that the registered stop callback stops playback."""
        future = controller.execute_macro(click_macro((0, 3000)), iterations=1)
        assert wait_until(lambda: len(injector.calls) == 1)

        injector.on_stop()

        assert future.result(TIMEOUT).events_executed == 1

    def test_registration_disabled(self, rng):
        """Test that hotkeys can be left alone."""
        injector = RecordingInjector()
        controller = PlaybackController(injector, PlaybackSettings(register_hotkeys=False), rng=rng)

        controller.execute_macro(click_macro((0,)), iterations=1).result(TIMEOUT)

        assert injector.hotkeys is None
        assert not injector.unregistered


class TestPlaybackBranching:
    """Tests for branch rules during playback."""

    def branching(self, *rules):
        return BranchingConfig(enabled=True, branches=list(rules))

    def test_stop_branch(self, controller, injector):
        """Test that a stop rule ends the run successfully."""
        rule = BranchRule(name="halt", trigger=EveryNIterations(n=2), action=StopExecution())
        macro = click_macro((0, 1), branching=self.branching(rule))

        result = controller.execute_macro(macro, iterations=5).result(TIMEOUT)

        assert result.success
        assert result.iterations_completed == 1
        assert len(injector.calls) == 2
        assert "Playback stopped by branch rule" in result.execution_log

    def test_pause_branch(self, controller, injector):
        """Test that a pause rule delays the iteration."""
        rule = BranchRule(name="breathe", trigger=EveryNIterations(n=2), action=PauseExecution(duration_ms=100))
        macro = click_macro((0,), branching=self.branching(rule))

        result = controller.execute_macro(macro, iterations=2).result(TIMEOUT)

        assert result.iterations_completed == 2
        assert (injector.times[1] - injector.times[0]) * 1000 >= 95

    def test_unexecuted_action_continues(self, controller, injector):
        """Test that declared-only actions are logged and skipped."""
        rule = BranchRule(name="sub", trigger=EveryNIterations(n=1), action=ExecuteMacro(macro_id="other"))
        macro = click_macro((0, 1), branching=self.branching(rule))

        result = controller.execute_macro(macro, iterations=2).result(TIMEOUT)

        assert result.iterations_completed == 2
        assert len(injector.calls) == 4
        assert any("execute_macro" in line for line in result.execution_log)


class TestPlaybackFailures:
    """Tests for unexpected failures inside a run."""

    def test_failure_ends_run_in_error(self, controller, injector, monkeypatch):
        """Test the state, result and progress of a run that raises."""
        def broken_delay(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("macroreplay.engine.playback.randomize_delay", broken_delay)
        states = []
        controller.state.subscribe(states.append)

        result = controller.execute_macro(click_macro((0, 1, 2)), iterations=2).result(TIMEOUT)

        assert states == [PlaybackState.IDLE, PlaybackState.PLAYING, PlaybackState.ERROR, PlaybackState.IDLE]
        assert result.success is False
        assert result.error_message == "kaboom"
        assert result.events_executed == 1
        assert result.iterations_completed == 0
        assert controller.progress.value.error_message == "kaboom"
        assert controller.progress.value.events_executed == 1
        assert controller.last_result is result
        assert len(injector.calls) == 1

    def test_failure_unregisters_hotkeys(self, controller, injector, monkeypatch):
        """Test that hotkeys are released after a failed run."""
        def broken_delay(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("macroreplay.engine.playback.randomize_delay", broken_delay)

        controller.execute_macro(click_macro((0, 1)), iterations=1).result(TIMEOUT)

        assert injector.unregistered

    def test_next_run_after_failure(self, controller, injector, monkeypatch):
        """Test that a failed run does not block the next one."""
        def broken_delay(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("macroreplay.engine.playback.randomize_delay", broken_delay)
        controller.execute_macro(click_macro((0, 1)), iterations=1).result(TIMEOUT)
        monkeypatch.undo()

        result = controller.execute_macro(click_macro((0, 1)), iterations=1).result(TIMEOUT)

        assert result.success
        assert result.error_message is None
