"""
Translation of symbolic hotkeys ("F9", "ctrl+shift+s") for pynput.
"""

from __future__ import annotations
from typing import List

_ALIASES = {
    "control": "ctrl",
    "option": "alt",
    "command": "cmd",
    "win": "cmd",
    "super": "cmd",
    "escape": "esc",
    "return": "enter",
}


def split_hotkey(hotkey: str) -> List[str]:
    """Split "Ctrl+Shift+F9" into normalized key names: ["ctrl", "shift", "f9"]."""
    parts = [part.strip().lower() for part in hotkey.split("+")]
    if not all(parts):
        raise ValueError(f"Invalid hotkey: {hotkey!r}")
    return [_ALIASES.get(part, part) for part in parts]


def to_pynput_hotkey(hotkey: str) -> str:
    """Convert to pynput's GlobalHotKeys syntax, e.g. "F9" -> "<f9>"."""
    return "+".join(part if len(part) == 1 else f"<{part}>" for part in split_hotkey(hotkey))


def matches_key(hotkey: str, key_name: str) -> bool:
    """Whether a single-key hotkey names ``key_name`` (case-insensitive)."""
    parts = split_hotkey(hotkey)
    return len(parts) == 1 and parts[0] == _ALIASES.get(key_name.lower(), key_name.lower())
