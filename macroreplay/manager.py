"""
Application facade tying recording, playback and storage together.
"""

from __future__ import annotations
import logging
import uuid
from concurrent.futures import Future
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from macroreplay.config import Settings
from macroreplay.engine.playback import PlaybackController
from macroreplay.engine.recording import RecordingSession
from macroreplay.errors import CollaboratorError, StorageError
from macroreplay.models.macro import Macro, MacroInfo
from macroreplay.models.progress import RecordingState
from macroreplay.platform.base import InputCapture, InputInjector, MacroStore

logger = logging.getLogger(__name__)

STOP_WAIT_TIMEOUT = 5.0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MacroManager:
    """
    Owns one recording session and one playback controller and persists the
    macros they produce and consume.

    Recordings are saved as soon as they are stopped. Backends are optional
    so that library operations work without access to the host input.
    """

    def __init__(
        self,
        store: MacroStore,
        capture: Optional[InputCapture] = None,
        injector: Optional[InputInjector] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Where macros are persisted
            capture: Capture backend; required for recording only
            injector: Injection backend; required for playback only
            settings: Recording and playback settings
        """
        self.settings = settings or Settings()
        self.store = store
        self._recording = RecordingSession(capture, self.settings.recording) if capture is not None else None
        self._playback = PlaybackController(injector, self.settings.playback) if injector is not None else None

    @property
    def recording(self) -> RecordingSession:
        if self._recording is None:
            raise CollaboratorError("Recording requires an input capture backend")
        return self._recording

    @property
    def playback(self) -> PlaybackController:
        if self._playback is None:
            raise CollaboratorError("Playback requires an input injector backend")
        return self._playback

    # =========================================================================
    # Recording
    # =========================================================================

    def start_recording(self, countdown_seconds: Optional[int] = None) -> None:
        """Start a new recording, stopping any recording already active."""
        if self.recording.is_active:
            logger.info("Stopping the active recording before starting a new one")
            self.recording.stop()
            if self.recording.is_active:
                self.recording.cancel()
        self.recording.start(countdown_seconds)

    def stop_recording(
        self,
        name: Optional[str] = None,
        description: str = "",
        tags: Iterable[str] = (),
    ) -> Optional[Macro]:
        """
        Stop recording, name the new macro and save it.

        Returns:
            The saved macro, or None if nothing was recorded
        """
        macro = self.recording.stop()
        if macro is None:
            # A stop started by the hotkey may still be finishing
            state = self.recording.state.wait_for(
                lambda s: s is not RecordingState.STOPPING, STOP_WAIT_TIMEOUT
            )
            if state is RecordingState.COMPLETED:
                macro = self.recording.last_macro
        if macro is None:
            return None

        updates = {"description": description or macro.description}
        if name:
            updates["name"] = name
        updates["metadata"] = macro.metadata.model_copy(update={
            "modified_at": _now_iso(),
            "tags": set(tags) or set(macro.metadata.tags),
        })
        macro = macro.model_copy(update=updates)

        self.store.save_macro(macro)
        self.recording.reset()
        return macro

    def cancel_recording(self) -> None:
        self.recording.cancel()

    # =========================================================================
    # Playback
    # =========================================================================

    def play(
        self,
        macro: Union[Macro, str],
        iterations: Optional[int] = None,
        speed_multiplier: Optional[float] = None,
    ) -> Future:
        """
        Play a macro (or the stored macro with that id).

        The macro's execution counter is incremented and saved before
        playback starts.
        """
        controller = self.playback
        if isinstance(macro, str):
            macro = self._require(macro)

        counted = macro.model_copy(update={
            "metadata": macro.metadata.model_copy(update={
                "execution_count": macro.metadata.execution_count + 1,
            }),
        })
        if self.store.load_macro(macro.id) is not None:
            self.store.save_macro(counted)

        return controller.execute_macro(counted, iterations, speed_multiplier)

    def stop_playback(self) -> None:
        self.playback.stop()

    def pause_playback(self) -> None:
        self.playback.pause()

    def resume_playback(self) -> None:
        self.playback.resume()

    # =========================================================================
    # Library
    # =========================================================================

    def list_macros(self) -> List[MacroInfo]:
        return self.store.list_macros()

    def load_macro(self, macro_id: str) -> Optional[Macro]:
        return self.store.load_macro(macro_id)

    def delete_macro(self, macro_id: str) -> bool:
        return self.store.delete_macro(macro_id)

    def rename_macro(
        self,
        macro_id: str,
        name: str,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Macro:
        macro = self._require(macro_id)
        metadata_updates = {"modified_at": _now_iso()}
        if tags is not None:
            metadata_updates["tags"] = set(tags)
        renamed = macro.model_copy(update={
            "name": name,
            "description": macro.description if description is None else description,
            "metadata": macro.metadata.model_copy(update=metadata_updates),
        })
        self.store.save_macro(renamed)
        return renamed

    def duplicate_macro(self, macro_id: str) -> Macro:
        macro = self._require(macro_id)
        now = _now_iso()
        duplicated = macro.model_copy(update={
            "id": str(uuid.uuid4()),
            "name": f"{macro.name} (Copy)",
            "metadata": macro.metadata.model_copy(update={
                "created_at": now,
                "modified_at": now,
                "execution_count": 0,
            }),
        })
        self.store.save_macro(duplicated)
        return duplicated

    def export_macro(self, macro_id: str, path: Path) -> bool:
        return self.store.export_macro(self._require(macro_id), path)

    def import_macro(self, path: Path) -> Optional[Macro]:
        """Import a macro file and add it to the store."""
        macro = self.store.import_macro(path)
        if macro is not None:
            self.store.save_macro(macro)
        return macro

    def create_backup(self, path: Path) -> bool:
        return self.store.create_backup(path)

    def restore_backup(self, path: Path) -> bool:
        return self.store.restore_backup(path)

    def _require(self, macro_id: str) -> Macro:
        macro = self.store.load_macro(macro_id)
        if macro is None:
            raise StorageError(f"Macro not found: {macro_id}")
        return macro
