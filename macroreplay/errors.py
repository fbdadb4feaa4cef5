"""
Exception types raised by the recording, playback and storage layers.
"""


class MacroReplayError(Exception):
    """Base class for all macroreplay errors."""


class InvalidStateError(MacroReplayError):
    """An operation was attempted outside of its legal source state."""


class CollaboratorError(MacroReplayError):
    """A capture, injection or persistence backend is unavailable or failed."""


class StorageError(CollaboratorError):
    """Reading or writing macro documents failed."""
