"""
Shared fixtures: in-memory capture and injection backends plus macro builders.
"""

import queue
import random
import time
from typing import Callable, List, Optional

import pytest

from macroreplay.models import (
    Macro,
    MouseButton,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
)
from macroreplay.platform.base import InputCapture, InputInjector
from macroreplay.storage import FileMacroStore

_END = object()


class FakeCapture(InputCapture):
    """Capture backend fed by the test through ``emit``."""

    def __init__(self, resolution: str = "1920x1080"):
        self._queue: queue.Queue = queue.Queue()
        self._recording = False
        self._resolution = resolution
        self.stop_hotkey: Optional[str] = None
        self.stop_callback: Optional[Callable[[], None]] = None
        self.start_count = 0

    def start_recording(self):
        self._queue = queue.Queue()
        self._recording = True
        self.start_count += 1
        return self._drain(self._queue)

    @staticmethod
    def _drain(events: queue.Queue):
        while True:
            item = events.get()
            if item is _END:
                return
            yield item

    def stop_recording(self) -> None:
        if self._recording:
            self._recording = False
            self._queue.put(_END)

    @property
    def is_recording(self) -> bool:
        return self._recording

    def register_stop_hotkey(self, hotkey, callback) -> None:
        self.stop_hotkey = hotkey
        self.stop_callback = callback

    def unregister_stop_hotkey(self) -> None:
        self.stop_hotkey = None
        self.stop_callback = None

    def screen_resolution(self) -> str:
        return self._resolution

    def emit(self, *events) -> None:
        for event in events:
            self._queue.put(event)

    def press_stop_hotkey(self) -> None:
        self.stop_callback()


class RecordingInjector(InputInjector):
    """Injector remembering each event and the time it was injected."""

    def __init__(self, fail_on: Callable = lambda event: False, delay_ms: float = 0):
        super().__init__()
        self.fail_on = fail_on
        self.delay_ms = delay_ms
        self.calls: List = []
        self.times: List[float] = []
        self.hotkeys = None
        self.unregistered = False

    def execute_event(self, event) -> bool:
        self.calls.append(event)
        self.times.append(time.monotonic())
        if self.delay_ms:
            time.sleep(self.delay_ms / 1000.0)
        if self.fail_on(event):
            raise RuntimeError(f"cannot inject {event.type_name}")
        return True

    def register_playback_hotkeys(self, play_pause, stop, on_play_pause, on_stop) -> None:
        self.hotkeys = (play_pause, stop)
        self.on_play_pause = on_play_pause
        self.on_stop = on_stop

    def unregister_playback_hotkeys(self) -> None:
        self.unregistered = True


def click_macro(timestamps=(0, 100, 250), **kwargs) -> Macro:
    """Macro alternating mouse down/up events at the given timestamps."""
    events = []
    for i, ts in enumerate(timestamps):
        event_cls = MouseDownEvent if i % 2 == 0 else MouseUpEvent
        events.append(event_cls(timestamp=ts, x=100 + i, y=200 + i, button=MouseButton.LEFT))
    kwargs.setdefault("id", "click-macro")
    kwargs.setdefault("name", "Click Macro")
    return Macro(events=events, **kwargs)


def move_macro(count: int = 5, step_ms: float = 10, **kwargs) -> Macro:
    events = [MouseMoveEvent(timestamp=i * step_ms, x=i, y=i) for i in range(count)]
    kwargs.setdefault("id", "move-macro")
    kwargs.setdefault("name", "Move Macro")
    return Macro(events=events, **kwargs)


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def injector():
    return RecordingInjector()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(tmp_path):
    return FileMacroStore(tmp_path / "macros")
