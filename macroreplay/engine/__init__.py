"""
Recording and playback engine.
"""

from macroreplay.engine.branching import evaluate_branches, should_trigger
from macroreplay.engine.observable import Observable
from macroreplay.engine.playback import PlaybackController
from macroreplay.engine.randomization import randomize_click, randomize_delay, sample_delay_offset
from macroreplay.engine.recording import RecordingSession

__all__ = [
    "Observable",
    "PlaybackController",
    "RecordingSession",
    "evaluate_branches",
    "should_trigger",
    "randomize_click",
    "randomize_delay",
    "sample_delay_offset",
]
