"""
Persistence of macro definitions.
"""

from macroreplay.storage.file_store import FileMacroStore

__all__ = ["FileMacroStore"]
