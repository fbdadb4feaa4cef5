"""
macroreplay - record mouse and keyboard input and replay it with randomized
timing and branching.
"""

from macroreplay.config import Settings
from macroreplay.engine import PlaybackController, RecordingSession
from macroreplay.manager import MacroManager
from macroreplay.models import Macro

__version__ = "0.1.0"

__all__ = ["Macro", "MacroManager", "PlaybackController", "RecordingSession", "Settings"]
