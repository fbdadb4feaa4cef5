"""
OS-level injector for mouse and keyboard events.

Uses pynput to control:
- Mouse position (absolute and relative moves)
- Mouse buttons (press and release)
- Scroll wheel
- Keyboard keys (press and release)
- Global hotkeys for pausing and stopping playback
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Optional

from macroreplay.errors import CollaboratorError
from macroreplay.models.events import (
    DelayEvent,
    Event,
    KeyDownEvent,
    KeyUpEvent,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    MouseWheelEvent,
)
from macroreplay.platform.base import InputInjector
from macroreplay.platform.hotkeys import to_pynput_hotkey

logger = logging.getLogger(__name__)


class PynputInjector(InputInjector):
    """
    Controls the actual OS mouse and keyboard.

    Usage:
        injector = PynputInjector()
        injector.execute_event(MouseMoveEvent(timestamp=0, x=500, y=300))
        injector.execute_event(KeyDownEvent(timestamp=10, key_code=0, key_name="a"))
    """

    def __init__(self):
        super().__init__()
        try:
            from pynput import keyboard, mouse
        except ImportError as e:
            raise CollaboratorError(
                "No input control library available. Install with: pip install pynput"
            ) from e

        self._keyboard_module = keyboard
        self._mouse_module = mouse
        self._mouse = mouse.Controller()
        self._keyboard = keyboard.Controller()
        self._hotkeys: Optional[Any] = None
        logger.info("Using pynput for OS control")

    # =========================================================================
    # Event injection
    # =========================================================================

    def execute_event(self, event: Event) -> bool:
        try:
            return self._dispatch(event)
        except Exception as e:
            logger.warning(f"Could not inject {event.type_name}: {e}")
            return False

    def _dispatch(self, event: Event) -> bool:
        if isinstance(event, MouseMoveEvent):
            if event.is_absolute:
                self._mouse.position = (event.x, event.y)
            else:
                self._mouse.move(event.x, event.y)

        elif isinstance(event, (MouseDownEvent, MouseUpEvent)):
            button = self._button(event.button.value)
            if button is None:
                logger.warning(f"Mouse button {event.button.value} is not supported on this platform")
                return False
            self._mouse.position = (event.x, event.y)
            if isinstance(event, MouseDownEvent):
                self._mouse.press(button)
            else:
                self._mouse.release(button)

        elif isinstance(event, MouseWheelEvent):
            self._mouse.position = (event.x, event.y)
            self._mouse.scroll(event.delta_x, event.delta_y)

        elif isinstance(event, KeyDownEvent):
            self._keyboard.press(self._key(event))

        elif isinstance(event, KeyUpEvent):
            self._keyboard.release(self._key(event))

        elif isinstance(event, DelayEvent):
            return self.wait_delay(event.delay_ms)

        else:
            raise TypeError(f"Unknown event type: {event!r}")

        return True

    def _button(self, name: str) -> Optional[Any]:
        # x1/x2 only exist on some backends
        return getattr(self._mouse_module.Button, name, None)

    def _key(self, event: KeyDownEvent | KeyUpEvent) -> Any:
        """Resolve a recorded key to a pynput key."""
        keyboard = self._keyboard_module
        name = event.key_name
        if len(name) == 1:
            return name
        special = getattr(keyboard.Key, name.lower(), None)
        if special is not None:
            return special
        if event.key_code:
            return keyboard.KeyCode.from_vk(event.key_code)
        raise ValueError(f"Unknown key: {name!r}")

    # =========================================================================
    # Hotkeys
    # =========================================================================

    def register_playback_hotkeys(
        self,
        play_pause: str,
        stop: str,
        on_play_pause: Callable[[], None],
        on_stop: Callable[[], None],
    ) -> None:
        self.unregister_playback_hotkeys()
        self._hotkeys = self._keyboard_module.GlobalHotKeys({
            to_pynput_hotkey(play_pause): on_play_pause,
            to_pynput_hotkey(stop): on_stop,
        })
        self._hotkeys.daemon = True
        self._hotkeys.start()
        logger.info(f"Playback hotkeys registered: {play_pause} = play/pause, {stop} = stop")

    def unregister_playback_hotkeys(self) -> None:
        if self._hotkeys is not None:
            self._hotkeys.stop()
            self._hotkeys = None
            logger.debug("Playback hotkeys unregistered")
