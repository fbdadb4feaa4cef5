"""
Randomization settings applied during playback.
"""

from __future__ import annotations
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class RandomDistribution(str, Enum):
    """Distributions available for sampling random offsets."""
    UNIFORM = "uniform"
    GAUSSIAN = "gaussian"
    EXPONENTIAL = "exponential"


class RandomizationFrequency(BaseModel):
    """When delay randomization is applied."""

    every_nth_event: int = Field(default=0, ge=0, description="Only every Nth delay (0 = all delays)")
    probability: float = Field(default=1.0, ge=0.0, le=1.0, description="Chance of applying to an eligible delay")


class DelayRandomization(BaseModel):
    """Random offset added to the delay between consecutive events."""

    min_delay_ms: float = Field(default=-50, description="Smallest offset in ms (may be negative)")
    max_delay_ms: float = Field(default=100, description="Largest offset in ms")
    frequency: RandomizationFrequency = Field(default_factory=RandomizationFrequency)
    distribution: RandomDistribution = RandomDistribution.UNIFORM
    enabled: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> DelayRandomization:
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"min_delay_ms ({self.min_delay_ms}) must not exceed max_delay_ms ({self.max_delay_ms})"
            )
        return self


class ClickRandomization(BaseModel):
    """Random pixel offset applied to mouse press and release positions."""

    max_offset_x: int = Field(default=5, ge=0)
    max_offset_y: int = Field(default=5, ge=0)
    probability: float = Field(default=0.5, ge=0.0, le=1.0, description="Chance of offsetting a click")
    distribution: RandomDistribution = RandomDistribution.UNIFORM
    enabled: bool = False


class RandomizationConfig(BaseModel):
    """Top-level randomization switch plus per-kind settings."""

    delay_randomization: DelayRandomization = Field(default_factory=DelayRandomization)
    click_randomization: ClickRandomization = Field(default_factory=ClickRandomization)
    enabled: bool = False
