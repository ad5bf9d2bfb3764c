"""Trigger config watcher — hot reload of the trigger table.

Runs in the background as an asyncio task.  Watches the directory holding
the trigger file (editors often replace the file rather than write it in
place) and, on any change to that file, reloads and swaps the table.

A reload that fails keeps the previous table active.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from watchfiles import awatch

from maze_control.exceptions import TriggerConfigError
from maze_control.logging import get_logger
from maze_control.triggers.loader import load_trigger_table
from maze_control.triggers.registry import TriggerRegistry

log = get_logger(__name__)


class TriggerConfigWatcher:
    """Reload the trigger table whenever its file changes.

    Usage::

        watcher = TriggerConfigWatcher(Path("config/config.json"), registry)
        watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(self, path: Path, registry: TriggerRegistry) -> None:
        self._path = path.expanduser().resolve()
        self._registry = registry
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self.reload_count = 0
        self.error: str | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="trigger-config-watcher")
        log.info("trigger_watcher_started", path=str(self._path))

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
            self._task = None
        log.info("trigger_watcher_stopped", path=str(self._path))

    def reload(self) -> bool:
        """Load the file and swap it in.  Returns True on success."""
        try:
            table = load_trigger_table(self._path)
        except TriggerConfigError as exc:
            self.error = exc.message
            log.error("trigger_reload_failed", path=str(self._path), reason=exc.reason)
            return False
        self._registry.replace(table)
        self.reload_count += 1
        self.error = None
        log.info("trigger_reload_succeeded", path=str(self._path), trigger_count=len(table))
        return True

    def _reload_guarded(self) -> None:
        try:
            self.reload()
        except Exception as exc:
            # One bad event must not end the watch loop.
            self.error = str(exc)
            log.error(
                "trigger_reload_crashed",
                path=str(self._path),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _run(self) -> None:
        try:
            async for changes in awatch(self._path.parent, stop_event=self._stop_event):
                if any(Path(changed).resolve() == self._path for _, changed in changes):
                    self._reload_guarded()
        except Exception as exc:
            if not self._stop_event.is_set():
                self.error = str(exc)
                log.error("trigger_watcher_error", path=str(self._path), error=str(exc))
