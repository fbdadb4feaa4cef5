"""
Configuration management for macroreplay.
"""

from __future__ import annotations
from pathlib import Path

from pydantic import BaseModel, Field
import yaml

DEFAULT_MACRO_DIRECTORY = Path.home() / ".macroreplay" / "macros"


class RecordingConfig(BaseModel):
    """Configuration for input recording."""

    record_mouse_movement: bool = Field(default=True, description="Record pointer movement")
    record_mouse_clicks: bool = Field(default=True, description="Record button presses and releases")
    record_keyboard: bool = Field(default=True, description="Record key presses and releases")
    record_mouse_wheel: bool = Field(default=True, description="Record scroll wheel events")
    mouse_move_throttle_ms: float = Field(default=10, ge=0, description="Minimum gap between recorded moves")
    use_absolute_coordinates: bool = Field(default=True, description="Record absolute screen coordinates")
    countdown_seconds: int = Field(default=3, ge=0, description="Countdown before capture begins")
    stop_hotkey: str = Field(default="F12", description="Hotkey that stops the recording")


class PlaybackSettings(BaseModel):
    """Configuration for the playback controller."""

    pause_poll_interval_ms: float = Field(default=50, gt=0, description="How often a paused run re-checks its state")
    register_hotkeys: bool = Field(default=True, description="Register the macro's play/pause and stop hotkeys")


class StorageConfig(BaseModel):
    """Configuration for macro storage."""

    macro_directory: Path = Field(default=DEFAULT_MACRO_DIRECTORY, description="Directory holding macro files")


class Settings(BaseModel):
    """Main configuration for macroreplay."""

    recording: RecordingConfig = Field(default_factory=RecordingConfig)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    verbose: bool = Field(default=False, description="Enable verbose logging")

    @classmethod
    def from_file(cls, path: Path) -> Settings:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    def to_file(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
