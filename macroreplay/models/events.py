"""
Captured input events.

Every event carries a timestamp in milliseconds relative to the start of the
recording session and a unique id. Events are immutable; randomization
produces modified copies.
"""

from __future__ import annotations
import uuid
from enum import Enum
from typing import Annotated, FrozenSet, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class MouseButton(str, Enum):
    """Mouse buttons that can be pressed and released."""
    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"
    X1 = "x1"
    X2 = "x2"


class KeyModifier(str, Enum):
    """Modifier keys held while a key event was captured."""
    CTRL = "ctrl"
    ALT = "alt"
    SHIFT = "shift"
    WIN = "win"
    CMD = "cmd"
    META = "meta"


class EventType(str, Enum):
    """Discriminator values used in serialized events."""
    MOUSE_MOVE = "mouse_move"
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    MOUSE_WHEEL = "mouse_wheel"
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    DELAY = "delay"


def new_event_id() -> str:
    return str(uuid.uuid4())


class BaseEvent(BaseModel):
    """Fields shared by every event variant."""

    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(ge=0, description="Milliseconds since the recording started")
    event_id: str = Field(default_factory=new_event_id, description="Unique event identifier")

    @property
    def type_name(self) -> str:
        return type(self).__name__


class MouseMoveEvent(BaseEvent):
    """Pointer movement, absolute screen coordinates unless is_absolute is False."""

    type: Literal["mouse_move"] = "mouse_move"
    x: int
    y: int
    is_absolute: bool = True


class MouseDownEvent(BaseEvent):
    """Mouse button pressed at a position."""

    type: Literal["mouse_down"] = "mouse_down"
    x: int
    y: int
    button: MouseButton = MouseButton.LEFT


class MouseUpEvent(BaseEvent):
    """Mouse button released at a position."""

    type: Literal["mouse_up"] = "mouse_up"
    x: int
    y: int
    button: MouseButton = MouseButton.LEFT


class MouseWheelEvent(BaseEvent):
    """Scroll wheel movement at a position."""

    type: Literal["mouse_wheel"] = "mouse_wheel"
    x: int
    y: int
    delta_x: int = 0
    delta_y: int = 0


class KeyDownEvent(BaseEvent):
    """Key pressed."""

    type: Literal["key_down"] = "key_down"
    key_code: int
    key_name: str
    modifiers: FrozenSet[KeyModifier] = Field(default_factory=frozenset)


class KeyUpEvent(BaseEvent):
    """Key released."""

    type: Literal["key_up"] = "key_up"
    key_code: int
    key_name: str
    modifiers: FrozenSet[KeyModifier] = Field(default_factory=frozenset)


class DelayEvent(BaseEvent):
    """Explicit pause inserted into a sequence."""

    type: Literal["delay"] = "delay"
    delay_ms: float = Field(ge=0)


Event = Annotated[
    Union[
        MouseMoveEvent,
        MouseDownEvent,
        MouseUpEvent,
        MouseWheelEvent,
        KeyDownEvent,
        KeyUpEvent,
        DelayEvent,
    ],
    Field(discriminator="type"),
]

# Events whose coordinates are perturbed by click randomization
CLICK_EVENTS = (MouseDownEvent, MouseUpEvent)
