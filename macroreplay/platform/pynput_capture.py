"""
Records global mouse/keyboard input using pynput listeners.
"""

from __future__ import annotations
import logging
import queue
import sys
import time
from typing import Any, Callable, FrozenSet, Iterator, List, Optional, Set

from macroreplay.errors import CollaboratorError
from macroreplay.models.events import (
    Event,
    KeyDownEvent,
    KeyModifier,
    KeyUpEvent,
    MouseButton,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    MouseWheelEvent,
)
from macroreplay.platform.base import InputCapture
from macroreplay.platform.hotkeys import matches_key

logger = logging.getLogger(__name__)

_END = object()

if sys.platform == "darwin":
    _COMMAND_MODIFIER = KeyModifier.CMD
elif sys.platform == "win32":
    _COMMAND_MODIFIER = KeyModifier.WIN
else:
    _COMMAND_MODIFIER = KeyModifier.META

_MODIFIER_KEYS = {
    "ctrl": KeyModifier.CTRL, "ctrl_l": KeyModifier.CTRL, "ctrl_r": KeyModifier.CTRL,
    "alt": KeyModifier.ALT, "alt_l": KeyModifier.ALT, "alt_r": KeyModifier.ALT, "alt_gr": KeyModifier.ALT,
    "shift": KeyModifier.SHIFT, "shift_l": KeyModifier.SHIFT, "shift_r": KeyModifier.SHIFT,
    "cmd": _COMMAND_MODIFIER, "cmd_l": _COMMAND_MODIFIER, "cmd_r": _COMMAND_MODIFIER,
}


def key_to_name(key: Any) -> str:
    """Name of a pynput key: the character for printable keys, else the Key name."""
    char = getattr(key, "char", None)
    if char:
        return char
    name = getattr(key, "name", None)
    if name:
        return name
    vk = getattr(key, "vk", None)
    return f"vk_{vk}" if vk is not None else str(key)


def key_to_code(key: Any) -> int:
    vk = getattr(key, "vk", None)
    if vk is None:
        vk = getattr(getattr(key, "value", None), "vk", None)
    return int(vk) if vk is not None else 0


class PynputCapture(InputCapture):
    """
    Captures global mouse and keyboard events.

    Events are timestamped in milliseconds since ``start_recording`` and
    handed to the consumer through a queue-backed iterator. The stop hotkey
    is reported through its callback and never captured as an event.
    """

    def __init__(self):
        try:
            from pynput import keyboard, mouse
        except ImportError as e:
            raise CollaboratorError(
                "Input capture requires pynput. Install with: pip install pynput"
            ) from e

        self._keyboard_module = keyboard
        self._mouse_module = mouse
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._recording = False
        self._started = 0.0
        self._listeners: List[Any] = []
        self._modifiers: Set[KeyModifier] = set()
        self._stop_hotkey: Optional[str] = None
        self._stop_callback: Optional[Callable[[], None]] = None

    # ---- lifecycle ----
    def start_recording(self) -> Iterator[Event]:
        if self._recording:
            raise CollaboratorError("Capture is already running")

        self._queue = queue.Queue()
        self._modifiers = set()
        self._started = time.monotonic()
        self._recording = True

        self._listeners = [
            self._mouse_module.Listener(
                on_move=self._on_move, on_click=self._on_click, on_scroll=self._on_scroll
            ),
            self._keyboard_module.Listener(
                on_press=self._on_key_press, on_release=self._on_key_release
            ),
        ]
        for listener in self._listeners:
            listener.daemon = True
            listener.start()

        logger.info("Capture started")
        return self._drain(self._queue)

    def stop_recording(self) -> None:
        if not self._recording:
            return
        self._recording = False
        for listener in self._listeners:
            listener.stop()
        self._listeners = []
        self._queue.put(_END)
        logger.info("Capture stopped")

    @property
    def is_recording(self) -> bool:
        return self._recording

    def register_stop_hotkey(self, hotkey: str, callback: Callable[[], None]) -> None:
        self._stop_hotkey = hotkey
        self._stop_callback = callback

    def unregister_stop_hotkey(self) -> None:
        self._stop_hotkey = None
        self._stop_callback = None

    @staticmethod
    def _drain(events: "queue.Queue[Any]") -> Iterator[Event]:
        while True:
            item = events.get()
            if item is _END:
                return
            yield item

    # ---- handlers ----
    def _now(self) -> float:
        return (time.monotonic() - self._started) * 1000.0

    def _emit(self, event: Event) -> None:
        if self._recording:
            self._queue.put(event)

    def _on_move(self, x, y):
        self._emit(MouseMoveEvent(timestamp=self._now(), x=int(x), y=int(y)))

    def _on_click(self, x, y, button, pressed):
        try:
            mouse_button = MouseButton(button.name)
        except ValueError:
            logger.debug(f"Ignoring unsupported mouse button {button!r}")
            return
        event_type = MouseDownEvent if pressed else MouseUpEvent
        self._emit(event_type(timestamp=self._now(), x=int(x), y=int(y), button=mouse_button))

    def _on_scroll(self, x, y, dx, dy):
        self._emit(MouseWheelEvent(
            timestamp=self._now(), x=int(x), y=int(y), delta_x=int(dx), delta_y=int(dy)
        ))

    def _on_key_press(self, key):
        name = key_to_name(key)
        if self._stop_hotkey and matches_key(self._stop_hotkey, name):
            if self._stop_callback:
                self._stop_callback()
            return
        modifiers = self._current_modifiers()
        modifier = _MODIFIER_KEYS.get(name)
        if modifier is not None:
            self._modifiers.add(modifier)
        self._emit(KeyDownEvent(
            timestamp=self._now(), key_code=key_to_code(key), key_name=name, modifiers=modifiers
        ))

    def _on_key_release(self, key):
        name = key_to_name(key)
        if self._stop_hotkey and matches_key(self._stop_hotkey, name):
            return
        modifier = _MODIFIER_KEYS.get(name)
        if modifier is not None:
            self._modifiers.discard(modifier)
        self._emit(KeyUpEvent(
            timestamp=self._now(), key_code=key_to_code(key), key_name=name,
            modifiers=self._current_modifiers(),
        ))

    def _current_modifiers(self) -> FrozenSet[KeyModifier]:
        return frozenset(self._modifiers)
