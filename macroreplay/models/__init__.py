"""
Data model for macros, events and playback progress.
"""

from macroreplay.models.events import (
    BaseEvent,
    DelayEvent,
    Event,
    EventType,
    KeyDownEvent,
    KeyModifier,
    KeyUpEvent,
    MouseButton,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    MouseWheelEvent,
)
from macroreplay.models.randomization import (
    ClickRandomization,
    DelayRandomization,
    RandomDistribution,
    RandomizationConfig,
    RandomizationFrequency,
)
from macroreplay.models.branching import (
    AfterNEvents,
    AtTimeOffset,
    BranchBehavior,
    BranchingConfig,
    BranchRule,
    EveryNIterations,
    ExecuteMacro,
    InsertEvents,
    OnEventType,
    PauseExecution,
    RandomProbability,
    SkipEvents,
    StopExecution,
)
from macroreplay.models.macro import (
    FORMAT_VERSION,
    Macro,
    MacroInfo,
    MacroMetadata,
    PlaybackConfig,
    PlaybackHotkeys,
)
from macroreplay.models.progress import (
    ExecutionResult,
    InjectorProgress,
    InjectorState,
    PlaybackProgress,
    PlaybackState,
    RecordingProgress,
    RecordingState,
)

__all__ = [
    "BaseEvent", "DelayEvent", "Event", "EventType", "KeyDownEvent", "KeyModifier",
    "KeyUpEvent", "MouseButton", "MouseDownEvent", "MouseMoveEvent", "MouseUpEvent",
    "MouseWheelEvent",
    "ClickRandomization", "DelayRandomization", "RandomDistribution",
    "RandomizationConfig", "RandomizationFrequency",
    "AfterNEvents", "AtTimeOffset", "BranchBehavior", "BranchingConfig", "BranchRule",
    "EveryNIterations", "ExecuteMacro", "InsertEvents", "OnEventType", "PauseExecution",
    "RandomProbability", "SkipEvents", "StopExecution",
    "FORMAT_VERSION", "Macro", "MacroInfo", "MacroMetadata", "PlaybackConfig",
    "PlaybackHotkeys",
    "ExecutionResult", "InjectorProgress", "InjectorState", "PlaybackProgress",
    "PlaybackState", "RecordingProgress", "RecordingState",
]
