"""Trigger table loader.

Reads the trigger configuration file and builds a :class:`TriggerTable`.
The file holds one top-level ``triggers`` list::

    {
      "triggers": [
        {"id": "scream", "name": "Scream", "type": "arduino",
         "arduino_ip": "192.168.1.50", "secret_key": "s3cret"},
        {"id": "storm", "name": "Lightning", "type": "govee_lightning",
         "govee_device_ip": "192.168.1.60", "govee_model": "H6076"}
      ]
    }

JSON is the historical format; ``.yaml`` / ``.yml`` files are read with
PyYAML.  All parsing happens before the registry is touched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from maze_control.exceptions import TriggerConfigError
from maze_control.triggers.models import Trigger, parse_trigger
from maze_control.triggers.registry import TriggerTable

_YAML_SUFFIXES = {".yaml", ".yml"}


def parse_trigger_records(raw: Any, source: str = "<memory>") -> TriggerTable:
    """Build a table from an already-decoded config document.

    Raises:
        TriggerConfigError: The document shape or any record is invalid.
    """
    if not isinstance(raw, dict):
        raise TriggerConfigError(source, "top level must be an object with a 'triggers' list")
    records = raw.get("triggers", [])
    if records is None:
        records = []
    if not isinstance(records, list):
        raise TriggerConfigError(source, "'triggers' must be a list")

    triggers: list[Trigger] = []
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise TriggerConfigError(source, f"triggers[{position}] must be an object")
        try:
            triggers.append(parse_trigger(record))
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(p) for p in err["loc"]) or "<root>" for err in exc.errors()
            )
            raise TriggerConfigError(
                source,
                f"triggers[{position}] (id={record.get('id')!r}) invalid fields: {fields}",
            ) from exc
    return TriggerTable(triggers)


def load_trigger_table(path: Path) -> TriggerTable:
    """Read and validate the trigger file at *path*.

    Raises:
        TriggerConfigError: The file is missing, unreadable, or invalid.
    """
    source = str(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TriggerConfigError(source, f"cannot read file: {exc}") from exc

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            raw = yaml.safe_load(text) or {}
        else:
            raw = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise TriggerConfigError(source, f"syntax error: {exc}") from exc

    return parse_trigger_records(raw, source)
