"""
Host backends for capturing and injecting input.

The pynput backends import pynput when constructed, so importing this
package never touches the display server.
"""

from macroreplay.platform.base import InputCapture, InputInjector, MacroStore
from macroreplay.platform.dry_run import DryRunInjector
from macroreplay.platform.pynput_capture import PynputCapture
from macroreplay.platform.pynput_injector import PynputInjector

__all__ = [
    "InputCapture",
    "InputInjector",
    "MacroStore",
    "DryRunInjector",
    "PynputCapture",
    "PynputInjector",
]
