"""
Branch rules evaluated once per playback iteration.

Triggers and actions are closed sets of variants discriminated by ``kind``.
Only the every-N-iterations and random-probability triggers are evaluated,
and only the pause and stop actions are executed; the remaining variants are
accepted and stored so macros declaring them load and save unchanged.
"""

from __future__ import annotations
import uuid
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from macroreplay.models.events import Event


class EveryNIterations(BaseModel):
    kind: Literal["every_n_iterations"] = "every_n_iterations"
    n: int = Field(gt=0)


class RandomProbability(BaseModel):
    kind: Literal["random_probability"] = "random_probability"
    probability: float = Field(ge=0.0, le=1.0)


class AfterNEvents(BaseModel):
    kind: Literal["after_n_events"] = "after_n_events"
    n: int = Field(gt=0)


class AtTimeOffset(BaseModel):
    kind: Literal["at_time_offset"] = "at_time_offset"
    offset_ms: float = Field(ge=0)


class OnEventType(BaseModel):
    kind: Literal["on_event_type"] = "on_event_type"
    event_type: str


BranchTrigger = Annotated[
    Union[EveryNIterations, RandomProbability, AfterNEvents, AtTimeOffset, OnEventType],
    Field(discriminator="kind"),
]


class ExecuteMacro(BaseModel):
    kind: Literal["execute_macro"] = "execute_macro"
    macro_id: str
    iterations: int = Field(default=1, ge=1)


class InsertEvents(BaseModel):
    kind: Literal["insert_events"] = "insert_events"
    events: List[Event] = Field(default_factory=list)


class PauseExecution(BaseModel):
    kind: Literal["pause"] = "pause"
    duration_ms: float = Field(ge=0)


class StopExecution(BaseModel):
    kind: Literal["stop"] = "stop"


class SkipEvents(BaseModel):
    kind: Literal["skip_events"] = "skip_events"
    count: int = Field(gt=0)


BranchAction = Annotated[
    Union[ExecuteMacro, InsertEvents, PauseExecution, StopExecution, SkipEvents],
    Field(discriminator="kind"),
]


class BranchBehavior(str, Enum):
    """How the parent macro behaves while a branch runs."""
    PAUSE_PARENT = "pause_parent"
    CONTINUE_PARALLEL = "continue_parallel"
    STOP_PARENT = "stop_parent"


class BranchRule(BaseModel):
    """A trigger paired with the action it fires."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    trigger: BranchTrigger
    action: BranchAction
    enabled: bool = True


class BranchingConfig(BaseModel):
    """Ordered branch rules; the first enabled rule that triggers wins."""

    enabled: bool = False
    branches: List[BranchRule] = Field(default_factory=list)
    branch_behavior: BranchBehavior = BranchBehavior.PAUSE_PARENT
