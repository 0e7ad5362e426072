"""Fill a process control block from a JSON description."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from vonsim.pcb import PCB


class _FieldTypeError(ValueError):
    pass


def _int_field(obj: dict[str, Any], key: str, default: int) -> int:
    if key not in obj:
        return default
    value = obj[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _FieldTypeError(f"'{key}' must be a number, got {type(value).__name__}")
    return int(value)


def _str_field(obj: dict[str, Any], key: str, default: str) -> str:
    if key not in obj:
        return default
    value = obj[key]
    if not isinstance(value, str):
        raise _FieldTypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _require_object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise _FieldTypeError(f"{what} must be a JSON object")
    return value


def load_pcb_from_json(path: str | Path, pcb: PCB) -> bool:
    """Read pid, name, priority, program path and memory weights into ``pcb``.

    Returns False if the file cannot be opened or its contents are invalid;
    parse errors are reported on standard error.
    """
    try:
        handle = open(path, encoding="utf-8")
    except OSError:
        return False
    with handle:
        try:
            doc = _require_object(json.load(handle), "document")
            pcb.pid = _int_field(doc, "pid", 0)
            pcb.name = _str_field(doc, "name", "")
            pcb.priority = _int_field(doc, "priority", 0)
            pcb.program_path = _str_field(doc, "program_path", "")
            if "mem_weights" in doc:
                weights = _require_object(doc["mem_weights"], "'mem_weights'")
                pcb.mem_weights.primary = _int_field(weights, "primary", 1)
                pcb.mem_weights.secondary = _int_field(weights, "secondary", 10)
        except (ValueError, UnicodeDecodeError) as exc:
            print(f"Error parsing JSON ({path}): {exc}", file=sys.stderr)
            return False
    return True