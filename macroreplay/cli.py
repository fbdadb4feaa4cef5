"""
Command-line interface for macroreplay.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml

from macroreplay import __version__
from macroreplay.config import Settings
from macroreplay.errors import MacroReplayError
from macroreplay.manager import MacroManager
from macroreplay.models.events import (
    DelayEvent,
    Event,
    KeyDownEvent,
    KeyUpEvent,
    MouseDownEvent,
    MouseMoveEvent,
    MouseUpEvent,
    MouseWheelEvent,
)
from macroreplay.models.macro import Macro
from macroreplay.models.progress import ACTIVE_RECORDING_STATES, RecordingProgress, RecordingState
from macroreplay.platform.base import InputCapture, InputInjector
from macroreplay.storage import FileMacroStore


def _manager(
    ctx: click.Context,
    capture: Optional[InputCapture] = None,
    injector: Optional[InputInjector] = None,
) -> MacroManager:
    settings: Settings = ctx.obj
    store = FileMacroStore(settings.storage.macro_directory)
    return MacroManager(store, capture=capture, injector=injector, settings=settings)


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    raise SystemExit(1)


def describe_event(event: Event) -> str:
    """One-line human readable summary of an event."""
    if isinstance(event, MouseMoveEvent):
        kind = "to" if event.is_absolute else "by"
        return f"move {kind} ({event.x}, {event.y})"
    if isinstance(event, (MouseDownEvent, MouseUpEvent)):
        action = "press" if isinstance(event, MouseDownEvent) else "release"
        return f"{event.button.value} {action} at ({event.x}, {event.y})"
    if isinstance(event, MouseWheelEvent):
        return f"scroll ({event.delta_x}, {event.delta_y}) at ({event.x}, {event.y})"
    if isinstance(event, (KeyDownEvent, KeyUpEvent)):
        action = "down" if isinstance(event, KeyDownEvent) else "up"
        modifiers = "+".join(sorted(m.value for m in event.modifiers))
        key = f"{modifiers}+{event.key_name}" if modifiers else event.key_name
        return f"key {action} {key}"
    if isinstance(event, DelayEvent):
        return f"wait {event.delay_ms:.0f}ms"
    return event.type_name


def _load(manager: MacroManager, macro: str) -> Tuple[Macro, bool]:
    """Resolve a macro argument: a file path or a stored macro id."""
    path = Path(macro)
    if path.is_file():
        try:
            return Macro.from_file(path), False
        except (ValueError, yaml.YAMLError, OSError) as e:
            _fail(f"Invalid macro file: {e}")
    loaded = manager.load_macro(macro)
    if loaded is None:
        _fail(f"No macro file or stored macro named {macro!r}")
    return loaded, True


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file"
)
@click.option(
    "--macro-dir", "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="MACROREPLAY_DIR",
    help="Directory holding stored macros (overrides the configuration file)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], macro_dir: Optional[Path], verbose: bool):
    """macroreplay - Record and replay mouse and keyboard macros."""
    settings = Settings.from_file(config) if config else Settings()
    if macro_dir is not None:
        settings.storage.macro_directory = macro_dir
    if verbose or settings.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    ctx.obj = settings


@main.command()
@click.option("--name", "-n", type=str, default=None, help="Name for the new macro")
@click.option("--description", type=str, default="", help="Description for the new macro")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag to attach (repeatable)")
@click.option("--countdown", type=int, default=None, help="Seconds to wait before capturing")
@click.option("--no-mouse-movement", is_flag=True, help="Do not record pointer movement")
@click.option("--no-clicks", is_flag=True, help="Do not record mouse clicks")
@click.option("--no-keyboard", is_flag=True, help="Do not record keyboard input")
@click.option("--no-wheel", is_flag=True, help="Do not record scroll wheel input")
@click.pass_context
def record(
    ctx: click.Context,
    name: Optional[str],
    description: str,
    tags: Tuple[str, ...],
    countdown: Optional[int],
    no_mouse_movement: bool,
    no_clicks: bool,
    no_keyboard: bool,
    no_wheel: bool,
):
    """
    Record mouse and keyboard input into a new macro.

    Stop with the stop hotkey (F12 by default) or Ctrl+C.
    """
    from macroreplay.platform.pynput_capture import PynputCapture

    settings: Settings = ctx.obj
    settings.recording = settings.recording.model_copy(update={
        "record_mouse_movement": settings.recording.record_mouse_movement and not no_mouse_movement,
        "record_mouse_clicks": settings.recording.record_mouse_clicks and not no_clicks,
        "record_keyboard": settings.recording.record_keyboard and not no_keyboard,
        "record_mouse_wheel": settings.recording.record_mouse_wheel and not no_wheel,
    })

    try:
        manager = _manager(ctx, capture=PynputCapture())
    except MacroReplayError as e:
        _fail(str(e))

    session = manager.recording
    shown = {"countdown": None}

    def on_progress(progress: RecordingProgress):
        if progress.is_counting_down and progress.countdown_remaining != shown["countdown"]:
            shown["countdown"] = progress.countdown_remaining
            click.echo(f"   {progress.countdown_remaining}...")

    unsubscribe = session.progress.subscribe(on_progress)
    click.echo("🎙️  Preparing to record...")
    manager.start_recording(countdown)

    try:
        state = session.state.wait_for(lambda s: s not in ACTIVE_RECORDING_STATES or s is RecordingState.RECORDING)
        if state is RecordingState.RECORDING:
            click.echo(f"🔴 Recording! Press {settings.recording.stop_hotkey} or Ctrl+C to stop")
        while session.state.wait_for(lambda s: s not in ACTIVE_RECORDING_STATES, timeout=0.5) is None:
            pass
    except KeyboardInterrupt:
        click.echo("")
    finally:
        unsubscribe()

    macro = manager.stop_recording(name=name, description=description, tags=tags)
    if macro is None:
        error = session.progress.value.error_message
        manager.cancel_recording()
        if error:
            _fail(f"Recording failed: {error}")
        click.echo("⚠️  Nothing was recorded")
        return

    click.echo(f"✅ Saved macro: {macro.name}")
    click.echo(f"   - ID: {macro.id}")
    click.echo(f"   - {macro.event_count} events, {macro.duration_ms / 1000:.1f}s")


@main.command()
@click.argument("macro")
@click.option("--iterations", "-n", type=int, default=None, help="Times to play (0 = until stopped)")
@click.option(
    "--speed", "-s",
    type=float,
    default=None,
    help="Playback speed multiplier (0.5 = half speed, 2.0 = double speed)"
)
@click.option("--countdown", type=int, default=3, help="Seconds to wait before playing")
@click.option("--dry-run", is_flag=True, help="Print events instead of injecting them")
@click.pass_context
def play(
    ctx: click.Context,
    macro: str,
    iterations: Optional[int],
    speed: Optional[float],
    countdown: int,
    dry_run: bool,
):
    """
    Play a stored macro (by id) or a macro file.

    This moves your real mouse cursor and types on your keyboard. Stop with
    the macro's stop hotkey (F10 by default) or Ctrl+C.
    """
    if dry_run:
        from macroreplay.platform.dry_run import DryRunInjector

        injector: InputInjector = DryRunInjector(
            on_event=lambda event: click.echo(f"   {event.timestamp:>8.0f}ms  {describe_event(event)}")
        )
    else:
        from macroreplay.platform.pynput_injector import PynputInjector

        try:
            injector = PynputInjector()
        except MacroReplayError as e:
            _fail(str(e))

    manager = _manager(ctx, injector=injector)
    definition, stored = _load(manager, macro)

    click.echo(f"🎮 Loading macro: {definition.name}")
    click.echo(f"   - {definition.event_count} events, {definition.duration_ms / 1000:.1f}s")

    if dry_run:
        click.echo("\n📋 Dry run - events to be played:")
        countdown = 0
    elif countdown > 0:
        import time

        click.echo(f"\n⚠️  Starting playback in {countdown} seconds...")
        for i in range(countdown, 0, -1):
            click.echo(f"   {i}...")
            time.sleep(1)

    try:
        if stored and not dry_run:
            future = manager.play(definition, iterations, speed)
        else:
            future = manager.playback.execute_macro(definition, iterations, speed)
    except ValueError as e:
        _fail(str(e))

    try:
        result = future.result()
    except KeyboardInterrupt:
        manager.stop_playback()
        result = future.result()

    if not result.success:
        _fail(f"Playback failed: {result.error_message}")
    click.echo(
        f"\n✅ Playback complete: {result.iterations_completed} iterations, "
        f"{result.events_executed} events in {result.execution_time_ms / 1000:.1f}s"
    )


@main.command(name="list")
@click.pass_context
def list_macros(ctx: click.Context):
    """List stored macros."""
    manager = _manager(ctx)
    infos = manager.list_macros()
    if not infos:
        click.echo(f"📭 No macros in {manager.settings.storage.macro_directory}")
        return

    click.echo(f"📚 {len(infos)} macros:")
    for info in infos:
        tags = f"  [{', '.join(sorted(info.tags))}]" if info.tags else ""
        click.echo(f"   {info.id}  {info.name}  ({info.event_count} events, {info.duration_ms / 1000:.1f}s){tags}")


@main.command()
@click.argument("macro")
@click.option("--events", "-e", "show_events", is_flag=True, help="Also print every event")
@click.pass_context
def show(ctx: click.Context, macro: str, show_events: bool):
    """Show details of a stored macro or macro file."""
    definition, _ = _load(_manager(ctx), macro)
    metadata = definition.metadata

    click.echo(f"📄 {definition.name}")
    click.echo(f"   - ID: {definition.id}")
    if definition.description:
        click.echo(f"   - Description: {definition.description}")
    click.echo(f"   - Events: {definition.event_count}")
    click.echo(f"   - Duration: {definition.duration_ms / 1000:.1f}s")
    click.echo(f"   - Created: {metadata.created_at or 'unknown'}")
    click.echo(f"   - Played: {metadata.execution_count} times")
    if metadata.tags:
        click.echo(f"   - Tags: {', '.join(sorted(metadata.tags))}")
    click.echo(f"   - Randomization: {'on' if definition.has_randomization else 'off'}")
    click.echo(f"   - Branching: {'on' if definition.has_branching else 'off'}")

    if show_events:
        click.echo("")
        for i, event in enumerate(definition.events):
            click.echo(f"   {i + 1}. {event.timestamp:>8.0f}ms  {describe_event(event)}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(file: Path):
    """Validate a macro file."""
    click.echo(f"🔍 Validating macro: {file}")

    try:
        definition = Macro.from_file(file)
        click.echo("✅ Macro is valid!")
        click.echo(f"   - Name: {definition.name}")
        click.echo(f"   - Events: {definition.event_count}")
        click.echo(f"   - Duration: {definition.duration_ms / 1000:.1f}s")
    except Exception as e:
        _fail(f"Validation failed: {e}")


@main.command()
@click.argument("macro_id")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export(ctx: click.Context, macro_id: str, output: Path):
    """Export a stored macro to a JSON or YAML file (by suffix)."""
    try:
        _manager(ctx).export_macro(macro_id, output)
    except MacroReplayError as e:
        _fail(str(e))
    click.echo(f"✅ Macro exported to: {output}")


@main.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_macro(ctx: click.Context, file: Path):
    """Import a macro file into the store."""
    try:
        macro = _manager(ctx).import_macro(file)
    except MacroReplayError as e:
        _fail(str(e))
    click.echo(f"✅ Imported macro: {macro.name}")
    click.echo(f"   - ID: {macro.id}")


@main.command()
@click.argument("macro_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, macro_id: str, yes: bool):
    """Delete a stored macro."""
    if not yes:
        click.confirm(f"Delete macro {macro_id}?", abort=True)
    try:
        deleted = _manager(ctx).delete_macro(macro_id)
    except MacroReplayError as e:
        _fail(str(e))
    if not deleted:
        _fail(f"Macro not found: {macro_id}")
    click.echo(f"🗑️  Deleted macro: {macro_id}")


@main.command()
@click.argument("macro_id")
@click.pass_context
def duplicate(ctx: click.Context, macro_id: str):
    """Copy a stored macro under a new id."""
    try:
        copy = _manager(ctx).duplicate_macro(macro_id)
    except MacroReplayError as e:
        _fail(str(e))
    click.echo(f"✅ Created: {copy.name}")
    click.echo(f"   - ID: {copy.id}")


@main.command()
@click.argument("path", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def backup(ctx: click.Context, path: Path):
    """Back up every stored macro into a directory."""
    try:
        _manager(ctx).create_backup(path)
    except MacroReplayError as e:
        _fail(str(e))
    click.echo(f"✅ Backup written to: {path}")


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_context
def restore(ctx: click.Context, path: Path):
    """Restore macros from a backup directory."""
    try:
        restored = _manager(ctx).restore_backup(path)
    except MacroReplayError as e:
        _fail(str(e))
    if not restored:
        _fail(f"Not a backup directory: {path}")
    click.echo(f"✅ Restored macros from: {path}")


@main.command()
def check_playback():
    """Check if OS control is available for recording and playback."""
    click.echo("🔍 Checking playback dependencies...\n")

    try:
        from pynput.mouse import Controller as MouseController
        click.echo("  ✅ pynput is available")
        position = MouseController().position
        click.echo(f"     Mouse position: ({position[0]}, {position[1]})")
    except ImportError:
        click.echo("  ❌ pynput not installed")
        click.echo("     Install with: pip install pynput")
    except Exception as e:
        click.echo(f"  ⚠️  pynput error: {e}")
        click.echo("     On Linux, an X server (DISPLAY) is required.")

    click.echo("\n💡 Note: On macOS, you may need to grant accessibility permissions")
    click.echo("   to your terminal app for mouse/keyboard control to work.")


if __name__ == "__main__":
    main()
