"""
Injector that logs events instead of sending them to the host.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from macroreplay.models.events import DelayEvent, Event
from macroreplay.platform.base import InputInjector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DryRunEntry:
    at: float  # time.monotonic() when the event was "injected"
    event: Event


class DryRunInjector(InputInjector):
    """
    Records every event it is asked to inject.

    Useful for previewing a macro (``play --dry-run``) and anywhere the host
    must not be touched.
    """

    def __init__(self, honor_delays: bool = False, on_event: Optional[Callable[[Event], None]] = None):
        super().__init__()
        self.honor_delays = honor_delays
        self.on_event = on_event
        self.entries: List[DryRunEntry] = []
        self.hotkeys: Optional[tuple] = None

    @property
    def events(self) -> List[Event]:
        return [entry.event for entry in self.entries]

    def execute_event(self, event: Event) -> bool:
        self.entries.append(DryRunEntry(at=time.monotonic(), event=event))
        logger.debug(f"Dry run: {event.type_name} at {event.timestamp}ms")
        if self.on_event:
            self.on_event(event)
        if isinstance(event, DelayEvent) and self.honor_delays:
            return self.wait_delay(event.delay_ms)
        return True

    def register_playback_hotkeys(
        self,
        play_pause: str,
        stop: str,
        on_play_pause: Callable[[], None],
        on_stop: Callable[[], None],
    ) -> None:
        self.hotkeys = (play_pause, stop)
        logger.debug(f"Dry run: hotkeys {play_pause} (play/pause) and {stop} (stop) registered")

    def unregister_playback_hotkeys(self) -> None:
        self.hotkeys = None
