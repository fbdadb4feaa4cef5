"""
Macro definition: an ordered event sequence plus replay configuration.
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import List, Set

import yaml
from pydantic import BaseModel, Field, field_validator

from macroreplay.models.branching import BranchingConfig
from macroreplay.models.events import Event
from macroreplay.models.randomization import RandomizationConfig

FORMAT_VERSION = "1.0"


class PlaybackHotkeys(BaseModel):
    """Symbolic hotkeys controlling playback of a macro."""

    play_pause: str = Field(default="F9", description="Toggle pause during playback")
    stop: str = Field(default="F10", description="Stop playback immediately")
    abort_recording: str = Field(default="F12", description="Stop an active recording")


class PlaybackConfig(BaseModel):
    """How a macro is replayed unless the caller overrides it."""

    default_iterations: int = Field(default=1, ge=0, description="Iterations to play (0 = until stopped)")
    speed_multiplier: float = Field(default=1.0, gt=0, description="2.0 plays twice as fast")
    infinite_loop: bool = Field(default=False, description="Loop until stopped regardless of iterations")
    iteration_delay_ms: float = Field(default=0, ge=0, description="Pause between iterations")
    hotkeys: PlaybackHotkeys = Field(default_factory=PlaybackHotkeys)


class MacroMetadata(BaseModel):
    """Bookkeeping about where and when a macro was made."""

    created_at: str = Field(default="", description="ISO-8601 creation time")
    modified_at: str = Field(default="", description="ISO-8601 modification time")
    created_by: str = ""
    tags: Set[str] = Field(default_factory=set)
    recorded_platform: str = ""
    recorded_resolution: str = ""
    execution_count: int = Field(default=0, ge=0)


class Macro(BaseModel):
    """A named, ordered sequence of input events with replay settings."""

    id: str
    name: str
    description: str = ""
    events: List[Event] = Field(default_factory=list)
    randomization: RandomizationConfig = Field(default_factory=RandomizationConfig)
    branching: BranchingConfig = Field(default_factory=BranchingConfig)
    playback_config: PlaybackConfig = Field(default_factory=PlaybackConfig)
    metadata: MacroMetadata = Field(default_factory=MacroMetadata)
    version: str = FORMAT_VERSION

    @field_validator("events")
    @classmethod
    def _check_event_order(cls, events: List[Event]) -> List[Event]:
        for previous, current in zip(events, events[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError(
                    f"Events must be in timestamp order: {current.timestamp}ms follows {previous.timestamp}ms"
                )
        return events

    @property
    def duration_ms(self) -> float:
        """Timestamp of the last event, 0 for an empty macro."""
        if not self.events:
            return 0.0
        return max(event.timestamp for event in self.events)

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def has_randomization(self) -> bool:
        return self.randomization.enabled

    @property
    def has_branching(self) -> bool:
        return self.branching.enabled

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, text: str) -> Macro:
        return cls.model_validate_json(text)

    @classmethod
    def from_file(cls, path: Path) -> Macro:
        """Load a macro from a JSON or YAML document."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            return cls.model_validate(yaml.safe_load(text))
        return cls.from_json(text)

    def export(self, path: Path, format: str = "json") -> None:
        """Write the macro to a file in JSON or YAML format."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")

        if format == "json":
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        elif format == "yaml":
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            raise ValueError(f"Unknown export format: {format}")


class MacroInfo(BaseModel):
    """Summary of a stored macro used for listings."""

    id: str
    name: str
    description: str = ""
    event_count: int = 0
    duration_ms: float = 0.0
    created_at: str = ""
    modified_at: str = ""
    tags: Set[str] = Field(default_factory=set)

    @classmethod
    def from_macro(cls, macro: Macro) -> MacroInfo:
        return cls(
            id=macro.id,
            name=macro.name,
            description=macro.description,
            event_count=macro.event_count,
            duration_ms=macro.duration_ms,
            created_at=macro.metadata.created_at,
            modified_at=macro.metadata.modified_at,
            tags=set(macro.metadata.tags),
        )
