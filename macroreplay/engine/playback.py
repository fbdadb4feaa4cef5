"""
Playback controller that replays macros through an injector.
"""

from __future__ import annotations
import logging
import random
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from macroreplay.config import PlaybackSettings
from macroreplay.engine.branching import evaluate_branches
from macroreplay.engine.observable import Observable
from macroreplay.engine.randomization import randomize_click, randomize_delay
from macroreplay.models.branching import BranchRule, PauseExecution, StopExecution
from macroreplay.models.events import CLICK_EVENTS, Event
from macroreplay.models.macro import Macro
from macroreplay.models.progress import ExecutionResult, PlaybackProgress, PlaybackState
from macroreplay.platform.base import InputInjector

logger = logging.getLogger(__name__)

WORKER_JOIN_TIMEOUT = 5.0


@dataclass
class _Run:
    """Bookkeeping for one playback run."""

    stop_requested: threading.Event = field(default_factory=threading.Event)
    iterations_completed: int = 0
    events_executed: int = 0
    delays: int = 0
    log: List[str] = field(default_factory=list)


class PlaybackController:
    """
    Replays a Macro: idle -> playing <-> paused -> stopped | error -> idle.

    Each run happens on a background thread. ``execute_macro`` returns a
    Future resolved with the run's ExecutionResult; state and progress are
    published through observables. Stop and pause are checked between
    events and at every wait, never in the middle of an injection.

    Usage:
        controller = PlaybackController(PynputInjector())
        future = controller.execute_macro(macro, iterations=3, speed_multiplier=2.0)
        result = future.result()
    """

    def __init__(
        self,
        injector: InputInjector,
        settings: Optional[PlaybackSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the playback controller.

        Args:
            injector: Backend that delivers events to the host
            settings: Pause polling and hotkey settings
            rng: Random source for randomization and branching (seed it for repeatable runs)
            clock: Monotonic clock in seconds
        """
        self.injector = injector
        self.settings = settings or PlaybackSettings()
        self.rng = rng or random.Random()
        self._clock = clock

        self.state: Observable[PlaybackState] = Observable(PlaybackState.IDLE)
        self.progress: Observable[PlaybackProgress] = Observable(PlaybackProgress())

        # Callbacks
        self.on_complete: Optional[Callable[[ExecutionResult], None]] = None

        self._lock = threading.RLock()
        self._run_state: Optional[_Run] = None
        self._worker: Optional[threading.Thread] = None
        self._last_result: Optional[ExecutionResult] = None

    @property
    def last_result(self) -> Optional[ExecutionResult]:
        return self._last_result

    # =========================================================================
    # Commands
    # =========================================================================

    def execute_macro(
        self,
        macro: Macro,
        iterations: Optional[int] = None,
        speed_multiplier: Optional[float] = None,
    ) -> Future:
        """
        Start replaying a macro, stopping any run already in progress.

        Args:
            macro: The macro to replay; it is never modified
            iterations: Times to play (0 = until stopped); defaults to the macro's config
            speed_multiplier: Timing divisor (2.0 = twice as fast); defaults to the macro's config

        Returns:
            Future resolved with the ExecutionResult when the run ends
        """
        config = macro.playback_config
        if iterations is None:
            iterations = 0 if config.infinite_loop else config.default_iterations
        if speed_multiplier is None:
            speed_multiplier = config.speed_multiplier
        if iterations < 0:
            raise ValueError(f"iterations must not be negative, got {iterations}")
        if speed_multiplier <= 0:
            raise ValueError(f"speed_multiplier must be positive, got {speed_multiplier}")

        if self.state.value is not PlaybackState.IDLE:
            logger.info("Stopping the current run before starting a new one")
            self.stop()
        self._join_worker()

        future: Future = Future()
        future.set_running_or_notify_cancel()

        with self._lock:
            events = self.preprocess_events(macro)
            run = _Run()
            self._run_state = run
            self.injector.reset_playback()
            self.progress.set(PlaybackProgress(
                macro_id=macro.id,
                macro_name=macro.name,
                total_iterations=iterations,
                total_events=len(events),
            ))
            self.state.set(PlaybackState.PLAYING)

            self._worker = threading.Thread(
                target=self._run,
                args=(run, macro, events, iterations, speed_multiplier, future),
                name="playback-controller",
                daemon=True,
            )
            self._worker.start()

        logger.info(
            f"Starting playback: {macro.name} "
            f"({len(events)} events, {iterations or 'unlimited'} iterations, {speed_multiplier}x)"
        )
        return future

    def stop(self) -> None:
        """Stop the current run at its next checkpoint. No effect when idle."""
        with self._lock:
            if self.state.value not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
                return
            self.state.set(PlaybackState.STOPPED)
            if self._run_state is not None:
                self._run_state.stop_requested.set()
        self.injector.stop_playback()
        logger.info("Playback stopped")

    def pause(self) -> None:
        with self._lock:
            if self.state.value is not PlaybackState.PLAYING:
                return
            self.state.set(PlaybackState.PAUSED)
        self.injector.pause_playback()
        logger.info("Playback paused")

    def resume(self) -> None:
        with self._lock:
            if self.state.value is not PlaybackState.PAUSED:
                return
            self.state.set(PlaybackState.PLAYING)
        self.injector.resume_playback()
        logger.info("Playback resumed")

    def toggle_pause(self) -> None:
        if self.state.value is PlaybackState.PAUSED:
            self.resume()
        else:
            self.pause()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the controller is idle; False on timeout."""
        return self.state.wait_for(lambda s: s is PlaybackState.IDLE, timeout) is not None

    # =========================================================================
    # Preprocessing
    # =========================================================================

    def preprocess_events(self, macro: Macro) -> List[Event]:
        """Working copy of the macro's events with click randomization applied."""
        randomization = macro.randomization
        if not (randomization.enabled and randomization.click_randomization.enabled):
            return list(macro.events)
        click_config = randomization.click_randomization
        return [
            randomize_click(event, click_config, self.rng) if isinstance(event, CLICK_EVENTS) else event
            for event in macro.events
        ]

    # =========================================================================
    # Background run
    # =========================================================================

    def _run(
        self,
        run: _Run,
        macro: Macro,
        events: List[Event],
        iterations: int,
        speed_multiplier: float,
        future: Future,
    ) -> None:
        started = self._clock()
        error: Optional[str] = None

        self._register_hotkeys(macro)
        try:
            self._play(run, macro, events, iterations, speed_multiplier, started)
        except Exception as e:
            logger.exception("Playback failed")
            error = str(e)
        finally:
            self._unregister_hotkeys()

        result = ExecutionResult(
            success=error is None,
            iterations_completed=run.iterations_completed,
            events_executed=run.events_executed,
            execution_time_ms=(self._clock() - started) * 1000.0,
            error_message=error,
            execution_log=run.log,
        )

        with self._lock:
            # A run abandoned by execute_macro must not overwrite its successor's state
            if self._run_state is run:
                self._last_result = result
                self.progress.update(lambda p: replace(
                    p,
                    events_executed=run.events_executed,
                    elapsed_ms=result.execution_time_ms,
                    error_message=error,
                ))
                self.state.set(PlaybackState.ERROR if error else PlaybackState.STOPPED)
                self.state.set(PlaybackState.IDLE)

        if error:
            logger.error(f"Playback of {macro.name} failed: {error}")
        else:
            logger.info(
                f"Playback complete: {result.iterations_completed} iterations, "
                f"{result.events_executed} events in {result.execution_time_ms:.0f}ms"
            )

        future.set_result(result)
        if self.on_complete:
            self.on_complete(result)

    def _play(
        self,
        run: _Run,
        macro: Macro,
        events: List[Event],
        iterations: int,
        speed_multiplier: float,
        started: float,
    ) -> None:
        iteration = 0
        while iterations == 0 or iteration < iterations:
            if not self._checkpoint(run):
                return
            iteration += 1
            self.progress.update(lambda p: replace(p, current_iteration=iteration, current_event_index=0))

            rule = evaluate_branches(macro.branching, iteration, self.rng)
            if rule is not None and not self._apply_branch(run, rule, iteration):
                return

            for index, event in enumerate(events):
                if not self._checkpoint(run):
                    return

                if self._inject(event):
                    run.events_executed += 1
                    run.log.append(f"Executed: {event.type_name} at {event.timestamp}ms")
                else:
                    run.log.append(f"Failed: {event.type_name} at {event.timestamp}ms")

                executed = run.events_executed
                elapsed = (self._clock() - started) * 1000.0
                self.progress.update(lambda p: replace(
                    p, current_event_index=index + 1, events_executed=executed, elapsed_ms=elapsed
                ))

                if index < len(events) - 1:
                    base_delay = (events[index + 1].timestamp - event.timestamp) / speed_multiplier
                    run.delays += 1
                    delay = randomize_delay(base_delay, macro.randomization, self.rng, run.delays)
                    if not self._suspend(run, max(0.0, delay)):
                        return

            run.iterations_completed += 1

            more_to_play = iterations == 0 or iteration < iterations
            if more_to_play and macro.playback_config.iteration_delay_ms > 0:
                if not self._suspend(run, macro.playback_config.iteration_delay_ms):
                    return

    def _apply_branch(self, run: _Run, rule: BranchRule, iteration: int) -> bool:
        """Run a triggered branch action; False if playback must end."""
        action = rule.action
        run.log.append(f"Branch triggered on iteration {iteration}: {rule.name} ({action.kind})")
        logger.info(f"Branch '{rule.name}' triggered on iteration {iteration}: {action.kind}")

        if isinstance(action, StopExecution):
            run.log.append("Playback stopped by branch rule")
            return False
        if isinstance(action, PauseExecution):
            return self._suspend(run, action.duration_ms)

        run.log.append(f"Branch action '{action.kind}' is not executed yet")
        logger.warning(f"Branch action '{action.kind}' of rule '{rule.name}' is not executed yet")
        return True

    def _inject(self, event: Event) -> bool:
        try:
            return bool(self.injector.execute_event(event))
        except Exception as e:
            logger.warning(f"Injection of {event.type_name} at {event.timestamp}ms failed: {e}")
            return False

    def _checkpoint(self, run: _Run) -> bool:
        """Wait out a pause; False once a stop has been requested."""
        poll_seconds = self.settings.pause_poll_interval_ms / 1000.0
        while True:
            if run.stop_requested.is_set():
                return False
            if self.state.value is not PlaybackState.PAUSED:
                return True
            run.stop_requested.wait(poll_seconds)

    def _suspend(self, run: _Run, delay_ms: float) -> bool:
        if delay_ms > 0 and run.stop_requested.wait(delay_ms / 1000.0):
            return False
        return self._checkpoint(run)

    def _register_hotkeys(self, macro: Macro) -> None:
        if not self.settings.register_hotkeys:
            return
        hotkeys = macro.playback_config.hotkeys
        try:
            self.injector.register_playback_hotkeys(hotkeys.play_pause, hotkeys.stop, self.toggle_pause, self.stop)
        except Exception as e:
            logger.warning(f"Could not register playback hotkeys: {e}")

    def _unregister_hotkeys(self) -> None:
        if not self.settings.register_hotkeys:
            return
        try:
            self.injector.unregister_playback_hotkeys()
        except Exception as e:
            logger.warning(f"Could not unregister playback hotkeys: {e}")

    def _join_worker(self) -> None:
        worker = self._worker
        if worker is None or worker is threading.current_thread():
            return
        worker.join(WORKER_JOIN_TIMEOUT)
        if worker.is_alive():
            logger.warning("Previous playback thread did not finish in time")
