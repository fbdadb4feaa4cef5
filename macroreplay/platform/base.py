"""
Interfaces for the host capture, injection and persistence backends.
"""

from __future__ import annotations
import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from macroreplay.models.events import Event
from macroreplay.models.macro import Macro, MacroInfo
from macroreplay.models.progress import InjectorProgress, InjectorState

logger = logging.getLogger(__name__)

PAUSE_POLL_SECONDS = 0.05
ITERATION_GAP_SECONDS = 0.1


class InputCapture(ABC):
    """Observes real mouse and keyboard input on the host."""

    @abstractmethod
    def start_recording(self) -> Iterator[Event]:
        """
        Begin capturing.

        Returns:
            A live iterator of captured events that only ends once
            ``stop_recording`` is called
        """
        pass

    @abstractmethod
    def stop_recording(self) -> None:
        """Stop capturing and terminate the live iterator."""
        pass

    @property
    @abstractmethod
    def is_recording(self) -> bool:
        pass

    @abstractmethod
    def register_stop_hotkey(self, hotkey: str, callback: Callable[[], None]) -> None:
        """Invoke ``callback`` when ``hotkey`` is pressed during capture."""
        pass

    @abstractmethod
    def unregister_stop_hotkey(self) -> None:
        pass

    def screen_resolution(self) -> str:
        """Resolution of the captured screen, e.g. "1920x1080"."""
        return "unknown"


class InputInjector(ABC):
    """
    Generates synthetic input events on the host.

    Subclasses implement ``execute_event`` and the hotkey hooks; stop/pause
    bookkeeping and whole-sequence playback are shared.
    """

    def __init__(self):
        self._stop_requested = threading.Event()
        self._paused = threading.Event()
        self._playing = False

    @abstractmethod
    def execute_event(self, event: Event) -> bool:
        """
        Inject a single event.

        Returns:
            True if the event was delivered to the host
        """
        pass

    @abstractmethod
    def register_playback_hotkeys(
        self,
        play_pause: str,
        stop: str,
        on_play_pause: Callable[[], None],
        on_stop: Callable[[], None],
    ) -> None:
        pass

    @abstractmethod
    def unregister_playback_hotkeys(self) -> None:
        pass

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    def reset_playback(self) -> None:
        """Clear stop and pause requests left over from a previous run."""
        self._stop_requested.clear()
        self._paused.clear()

    def stop_playback(self) -> None:
        self._stop_requested.set()
        self._paused.clear()

    def pause_playback(self) -> None:
        self._paused.set()

    def resume_playback(self) -> None:
        self._paused.clear()

    def wait_delay(self, delay_ms: float) -> bool:
        """Sleep for ``delay_ms``; returns False if stopped while waiting."""
        if delay_ms > 0:
            self._stop_requested.wait(delay_ms / 1000.0)
        return not self._stop_requested.is_set()

    def execute_events(self, events: Iterable[Event], iterations: int = 1) -> Iterator[InjectorProgress]:
        """
        Play a sequence on its own, honoring event timestamps.

        Args:
            events: Events to inject, in timestamp order
            iterations: Times to repeat the sequence (0 = until stopped)

        Yields:
            A progress snapshot after each injected event and on every state change
        """
        events = list(events)
        total_events = len(events)
        started = time.monotonic()

        def snapshot(state: InjectorState, iteration: int, index: int, error: Optional[str] = None) -> InjectorProgress:
            return InjectorProgress(
                current_iteration=iteration,
                total_iterations=iterations,
                current_event_index=index,
                total_events=total_events,
                elapsed_ms=(time.monotonic() - started) * 1000.0,
                state=state,
                error_message=error,
            )

        self.reset_playback()
        self._playing = True
        iteration = 0
        index = 0
        failure: Optional[str] = None
        yield snapshot(InjectorState.STARTING, 0, 0)

        try:
            while iterations == 0 or iteration < iterations:
                if self._stop_requested.is_set():
                    break
                iteration += 1
                previous: Optional[Event] = None

                for index, event in enumerate(events, start=1):
                    if self._paused.is_set():
                        yield snapshot(InjectorState.PAUSED, iteration, index - 1)
                        while self._paused.is_set() and not self._stop_requested.is_set():
                            self._stop_requested.wait(PAUSE_POLL_SECONDS)
                    if previous is not None and not self.wait_delay(event.timestamp - previous.timestamp):
                        break
                    if self._stop_requested.is_set():
                        break

                    if not self.execute_event(event):
                        logger.warning(f"Failed to inject {event.type_name} at {event.timestamp}ms")
                    previous = event
                    yield snapshot(InjectorState.PLAYING, iteration, index)

                if iterations == 0 or iteration < iterations:
                    self._stop_requested.wait(ITERATION_GAP_SECONDS)
        except Exception as e:
            logger.exception("Sequence playback failed")
            failure = str(e)
        finally:
            self._playing = False
            self._paused.clear()

        if failure is not None:
            yield snapshot(InjectorState.ERROR, iteration, index, failure)
        elif self._stop_requested.is_set():
            yield snapshot(InjectorState.ABORTED, iteration, index)
        else:
            yield snapshot(InjectorState.COMPLETED, iteration, index)


class MacroStore(ABC):
    """Persists macro definitions."""

    @abstractmethod
    def save_macro(self, macro: Macro) -> bool:
        pass

    @abstractmethod
    def load_macro(self, macro_id: str) -> Optional[Macro]:
        """Return the stored macro, or None if there is none with that id."""
        pass

    @abstractmethod
    def delete_macro(self, macro_id: str) -> bool:
        pass

    @abstractmethod
    def list_macros(self) -> List[MacroInfo]:
        pass

    @abstractmethod
    def export_macro(self, macro: Macro, path: Path) -> bool:
        pass

    @abstractmethod
    def import_macro(self, path: Path) -> Optional[Macro]:
        pass

    @abstractmethod
    def create_backup(self, path: Path) -> bool:
        pass

    @abstractmethod
    def restore_backup(self, path: Path) -> bool:
        pass
