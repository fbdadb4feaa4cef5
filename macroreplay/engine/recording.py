"""
Recording session: turns a live capture stream into a Macro.
"""

from __future__ import annotations
import logging
import platform
import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, Tuple

from macroreplay.config import RecordingConfig
from macroreplay.engine.observable import Observable
from macroreplay.errors import InvalidStateError
from macroreplay.models.events import (
    Event,
    KeyDownEvent,
    KeyUpEvent,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    MouseWheelEvent,
)
from macroreplay.models.macro import Macro, MacroMetadata
from macroreplay.models.progress import (
    ACTIVE_RECORDING_STATES,
    RecordingProgress,
    RecordingState,
)
from macroreplay.platform.base import InputCapture

logger = logging.getLogger(__name__)

# A new recording may start from any resting state
_STARTABLE_STATES = frozenset({
    RecordingState.IDLE,
    RecordingState.COMPLETED,
    RecordingState.CANCELLED,
    RecordingState.ERROR,
})

WORKER_JOIN_TIMEOUT = 2.0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordingSession:
    """
    Owns the capture lifecycle: idle -> countdown -> recording <-> paused ->
    stopping -> completed | cancelled | error.

    Capture runs on a background thread; callers follow it through the
    ``state`` and ``progress`` observables.

    Usage:
        session = RecordingSession(PynputCapture())
        session.start(countdown_seconds=3)
        ...
        macro = session.stop()
    """

    def __init__(
        self,
        capture: InputCapture,
        config: Optional[RecordingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the recording session.

        Args:
            capture: Backend producing captured events
            config: Which event kinds to keep and how to throttle movement
            clock: Monotonic clock in seconds, used for elapsed durations
        """
        self.capture = capture
        self.config = config or RecordingConfig()
        self._clock = clock

        self.state: Observable[RecordingState] = Observable(RecordingState.IDLE)
        self.progress: Observable[RecordingProgress] = Observable(RecordingProgress())

        # Callbacks
        self.on_complete: Optional[Callable[[Macro], None]] = None

        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._events: List[Event] = []
        self._capturing = False
        self._start_time = 0.0
        self._last_move_timestamp: Optional[float] = None
        self._last_move_position: Optional[Tuple[int, int]] = None
        self._last_macro: Optional[Macro] = None

    @property
    def events(self) -> List[Event]:
        """Events accepted so far in the current session."""
        with self._lock:
            return list(self._events)

    @property
    def is_active(self) -> bool:
        return self.state.value in ACTIVE_RECORDING_STATES

    @property
    def last_macro(self) -> Optional[Macro]:
        """Macro produced by the most recent successful stop."""
        return self._last_macro

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, countdown_seconds: Optional[int] = None) -> None:
        """
        Start a recording, optionally after a countdown.

        Returns immediately; the countdown and capture run in the background.

        Raises:
            InvalidStateError: if a recording is already active
            Exception: whatever the capture backend raises when started without
                a countdown; the session is left in ERROR
        """
        countdown = self.config.countdown_seconds if countdown_seconds is None else countdown_seconds
        if countdown < 0:
            raise ValueError(f"countdown_seconds must not be negative, got {countdown}")

        with self._lock:
            if self.state.value not in _STARTABLE_STATES:
                raise InvalidStateError(f"Recording session is already active ({self.state.value.value})")

            self._cancelled.clear()
            self._events = []
            self._last_move_timestamp = None
            self._last_move_position = None
            self._last_macro = None

            stream: Optional[Iterator[Event]] = None
            if countdown > 0:
                self.progress.set(RecordingProgress(is_counting_down=True, countdown_remaining=countdown))
                self.state.set(RecordingState.COUNTDOWN)
            else:
                try:
                    stream = self._begin_capture()
                except Exception as e:
                    logger.exception("Could not start capture")
                    self._fail(e)
                    raise

            self._worker = threading.Thread(
                target=self._run, args=(countdown, stream), name="recording-session", daemon=True
            )
            self._worker.start()

    def stop(self) -> Optional[Macro]:
        """
        Stop the recording and build a Macro from the captured events.

        Returns:
            The new Macro, or None if nothing was being recorded
        """
        with self._lock:
            if self.state.value not in (RecordingState.RECORDING, RecordingState.PAUSED):
                logger.debug(f"stop() ignored in state {self.state.value.value}")
                return None
            self.state.set(RecordingState.STOPPING)

        try:
            self._release_capture()
            self._join_worker()

            with self._lock:
                # Stable sort: events from separate listener threads may interleave
                events = sorted(self._events, key=lambda event: event.timestamp)
                self._events = []
            duration_ms = (self._clock() - self._start_time) * 1000.0

            macro = self._create_macro(events)
            self._last_macro = macro
            self.progress.set(RecordingProgress(
                is_completed=True,
                event_count=len(events),
                duration_ms=duration_ms,
                start_time=self.progress.value.start_time,
                end_time=_now_iso(),
            ))
            self.state.set(RecordingState.COMPLETED)
        except Exception as e:
            logger.exception("Failed to stop recording")
            self._fail(e)
            return None

        logger.info(f"Recording stopped: {macro.event_count} events, {duration_ms:.0f}ms")
        if self.on_complete:
            self.on_complete(macro)
        return macro

    def pause(self) -> None:
        """Discard captured events until ``resume`` is called."""
        with self._lock:
            if self.state.value is RecordingState.RECORDING:
                self.state.set(RecordingState.PAUSED)
                self.progress.update(lambda p: replace(p, is_paused=True))
                logger.info("Recording paused")

    def resume(self) -> None:
        with self._lock:
            if self.state.value is RecordingState.PAUSED:
                self.state.set(RecordingState.RECORDING)
                self.progress.update(lambda p: replace(p, is_paused=False))
                logger.info("Recording resumed")

    def cancel(self) -> None:
        """Abandon the active recording without producing a Macro."""
        with self._lock:
            if self.state.value not in ACTIVE_RECORDING_STATES:
                return
            self.state.set(RecordingState.CANCELLED)
            self._cancelled.set()

        self._release_capture()
        self._join_worker()

        with self._lock:
            self._events = []
            self.progress.set(RecordingProgress())
            self.state.set(RecordingState.IDLE)
        logger.info("Recording cancelled")

    def reset(self) -> None:
        """
        Clear captured events and return to idle.

        Raises:
            InvalidStateError: if a recording is active
        """
        with self._lock:
            if self.state.value in ACTIVE_RECORDING_STATES:
                raise InvalidStateError("Cannot reset while a recording is active")
            self._events = []
            self.progress.set(RecordingProgress())
            self.state.set(RecordingState.IDLE)

    # =========================================================================
    # Background capture
    # =========================================================================

    def _run(self, countdown: int, stream: Optional[Iterator[Event]]) -> None:
        try:
            if stream is None:
                for remaining in range(countdown, 0, -1):
                    self.progress.set(RecordingProgress(is_counting_down=True, countdown_remaining=remaining))
                    if self._cancelled.wait(1.0):
                        return
                with self._lock:
                    if self._cancelled.is_set():
                        return
                    stream = self._begin_capture()

            for event in stream:
                self.admit(event)
        except Exception as e:
            logger.exception("Recording failed")
            self._fail(e)

    def _begin_capture(self) -> Iterator[Event]:
        """Switch to RECORDING and start the capture backend. Called with the lock held."""
        self._events = []
        self._start_time = self._clock()
        self.progress.set(RecordingProgress(is_recording=True, start_time=_now_iso()))
        self.state.set(RecordingState.RECORDING)

        self.capture.register_stop_hotkey(self.config.stop_hotkey, self._on_stop_hotkey)
        self._capturing = True
        logger.info(f"Recording started (press {self.config.stop_hotkey} to stop)")
        return self.capture.start_recording()

    def admit(self, event: Event) -> bool:
        """
        Apply the admission policy to a captured event and buffer it.

        Events arriving while paused are dropped, not queued. Events still
        in the capture stream when ``stop`` is called are kept.

        Returns:
            True if the event was added to the buffer
        """
        with self._lock:
            if self.state.value not in (RecordingState.RECORDING, RecordingState.STOPPING):
                return False
            if not self._should_record(event):
                return False
            if isinstance(event, MouseMoveEvent) and not self.config.use_absolute_coordinates:
                event = self._relative_move(event)
            self._events.append(event)
            count = len(self._events)

        duration_ms = (self._clock() - self._start_time) * 1000.0
        self.progress.update(lambda p: replace(
            p, event_count=count, duration_ms=duration_ms, last_event_type=event.type_name
        ))
        return True

    def _should_record(self, event: Event) -> bool:
        config = self.config
        if isinstance(event, MouseMoveEvent):
            if not config.record_mouse_movement:
                return False
            last = self._last_move_timestamp
            if last is not None and event.timestamp - last < config.mouse_move_throttle_ms:
                return False
            self._last_move_timestamp = event.timestamp
            return True
        if isinstance(event, (MouseDownEvent, MouseUpEvent)):
            return config.record_mouse_clicks
        if isinstance(event, MouseWheelEvent):
            return config.record_mouse_wheel
        if isinstance(event, (KeyDownEvent, KeyUpEvent)):
            return config.record_keyboard
        return True

    def _relative_move(self, event: MouseMoveEvent) -> MouseMoveEvent:
        """Express an absolute move as the offset from the previous recorded move."""
        if not event.is_absolute:
            return event
        previous = self._last_move_position
        self._last_move_position = (event.x, event.y)
        if previous is None:
            return event
        return event.model_copy(update={
            "x": event.x - previous[0],
            "y": event.y - previous[1],
            "is_absolute": False,
        })

    def _on_stop_hotkey(self) -> None:
        # Runs on the capture backend's thread, which stop() shuts down
        threading.Thread(target=self.stop, name="recording-stop", daemon=True).start()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _release_capture(self) -> None:
        with self._lock:
            if not self._capturing:
                return
            self._capturing = False
        self.capture.unregister_stop_hotkey()
        self.capture.stop_recording()

    def _join_worker(self) -> None:
        worker = self._worker
        if worker is None or worker is threading.current_thread():
            return
        worker.join(WORKER_JOIN_TIMEOUT)
        if worker.is_alive():
            logger.warning("Capture thread did not finish in time")

    def _fail(self, error: Exception) -> None:
        with self._lock:
            self._events = []
            self.progress.update(lambda p: replace(
                p, is_recording=False, is_counting_down=False, error_message=str(error)
            ))
            self.state.set(RecordingState.ERROR)
        try:
            self._release_capture()
        except Exception:
            logger.exception("Failed to release capture after an error")

    def _create_macro(self, events: List[Event]) -> Macro:
        now = _now_iso()
        return Macro(
            id=str(uuid.uuid4()),
            name=f"Recorded Macro {now}",
            description=f"Macro recorded on {now}",
            events=events,
            metadata=MacroMetadata(
                created_at=now,
                modified_at=now,
                recorded_platform=platform.system(),
                recorded_resolution=self.capture.screen_resolution(),
            ),
        )
