"""Trigger registry — immutable trigger tables and atomic hot swap.

The registry is the single owner of the *active* :class:`TriggerTable`.
Readers take a reference to the current snapshot and keep using it for as
long as they need; a reload builds a complete new table off to the side and
swaps the reference in one assignment.  Readers therefore never see a
half-built table and are never blocked by a reload.

Duplicate ids inside one table are a configuration defect.  Resolution is
deterministic: the first declaration wins, every later duplicate is logged
and listed in :attr:`TriggerTable.duplicate_ids`.
"""

from __future__ import annotations

import threading
from typing import Iterable, Iterator

from maze_control.logging import get_logger
from maze_control.triggers.models import Trigger

log = get_logger(__name__)


class TriggerTable:
    """Immutable, ordered snapshot of trigger definitions."""

    __slots__ = ("_triggers", "_index", "_duplicates")

    def __init__(self, triggers: Iterable[Trigger] = ()) -> None:
        ordered = tuple(triggers)
        index: dict[str, Trigger] = {}
        duplicates: list[str] = []
        for trigger in ordered:
            if trigger.id in index:
                duplicates.append(trigger.id)
                log.warning(
                    "trigger_duplicate_id",
                    trigger_id=trigger.id,
                    kept=index[trigger.id].name,
                    ignored=trigger.name,
                )
                continue
            index[trigger.id] = trigger
        self._triggers = ordered
        self._index = index
        self._duplicates = tuple(duplicates)

    def lookup(self, trigger_id: str) -> Trigger | None:
        return self._index.get(trigger_id)

    def names(self) -> dict[str, str]:
        """Map of trigger id to display name (first declaration per id)."""
        return {tid: t.name for tid, t in self._index.items()}

    @property
    def duplicate_ids(self) -> tuple[str, ...]:
        return self._duplicates

    def __iter__(self) -> Iterator[Trigger]:
        """Iterate the effective triggers in declaration order."""
        return iter(self._index.values())

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, trigger_id: object) -> bool:
        return trigger_id in self._index

    def __repr__(self) -> str:
        return f"TriggerTable({len(self)} triggers, duplicates={list(self._duplicates)})"


class TriggerRegistry:
    """Holder of the active trigger table.

    Usage::

        registry = TriggerRegistry(load_trigger_table(path))
        table = registry.current()        # snapshot, safe to keep
        trigger = registry.lookup("fog")  # convenience over current()
        registry.replace(new_table)       # atomic swap on reload
    """

    def __init__(self, table: TriggerTable | None = None) -> None:
        self._table = table if table is not None else TriggerTable()
        # Serialises writers only; readers just load the reference.
        self._write_lock = threading.Lock()

    def current(self) -> TriggerTable:
        return self._table

    def lookup(self, trigger_id: str) -> Trigger | None:
        return self._table.lookup(trigger_id)

    def replace(self, table: TriggerTable) -> TriggerTable:
        """Swap in *table* and return the previous snapshot."""
        with self._write_lock:
            previous, self._table = self._table, table
        log.info(
            "trigger_table_replaced",
            previous_count=len(previous),
            trigger_count=len(table),
        )
        return previous
