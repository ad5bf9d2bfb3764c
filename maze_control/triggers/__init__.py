"""Trigger definitions, the active trigger table, and its hot reload.

Package structure
-----------------
triggers/
  models.py    — Trigger variants, one per kind tag
  registry.py  — TriggerTable snapshot + TriggerRegistry (atomic swap)
  loader.py    — JSON / YAML trigger file parsing
  watcher.py   — watchfiles-based reload task
"""

from maze_control.triggers.loader import load_trigger_table, parse_trigger_records
from maze_control.triggers.models import (
    HttpDeviceTrigger,
    LightEffectTrigger,
    LightSetStateTrigger,
    LightStatusTrigger,
    RGBColor,
    Trigger,
    TriggerKind,
    parse_trigger,
)
from maze_control.triggers.registry import TriggerRegistry, TriggerTable
from maze_control.triggers.watcher import TriggerConfigWatcher

__all__ = [
    "HttpDeviceTrigger",
    "LightEffectTrigger",
    "LightSetStateTrigger",
    "LightStatusTrigger",
    "RGBColor",
    "Trigger",
    "TriggerConfigWatcher",
    "TriggerKind",
    "TriggerRegistry",
    "TriggerTable",
    "load_trigger_table",
    "parse_trigger",
    "parse_trigger_records",
]
