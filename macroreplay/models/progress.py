"""
Short-lived state and progress snapshots published to observers.

None of these are persisted; each published value replaces the previous one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RecordingState(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPING = "stopping"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


# States in which a recording session holds the capture backend
ACTIVE_RECORDING_STATES = frozenset({
    RecordingState.COUNTDOWN,
    RecordingState.RECORDING,
    RecordingState.PAUSED,
    RecordingState.STOPPING,
})


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERROR = "error"


class InjectorState(str, Enum):
    """States reported by an injector running a sequence on its own."""
    STARTING = "starting"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPING = "stopping"
    COMPLETED = "completed"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RecordingProgress:
    is_counting_down: bool = False
    countdown_remaining: int = 0
    is_recording: bool = False
    is_paused: bool = False
    is_completed: bool = False
    event_count: int = 0
    duration_ms: float = 0.0
    start_time: str = ""
    end_time: str = ""
    last_event_type: str = ""
    error_message: Optional[str] = None


@dataclass(frozen=True)
class PlaybackProgress:
    macro_id: str = ""
    macro_name: str = ""
    current_iteration: int = 0
    total_iterations: int = 0  # 0 = until stopped
    current_event_index: int = 0
    total_events: int = 0
    events_executed: int = 0
    elapsed_ms: float = 0.0
    error_message: Optional[str] = None


@dataclass(frozen=True)
class InjectorProgress:
    current_iteration: int
    total_iterations: int
    current_event_index: int
    total_events: int
    elapsed_ms: float
    state: InjectorState
    error_message: Optional[str] = None


@dataclass
class ExecutionResult:
    """Summary emitted once when a playback run ends."""

    success: bool
    iterations_completed: int
    events_executed: int
    execution_time_ms: float
    error_message: Optional[str] = None
    execution_log: List[str] = field(default_factory=list)
