# tensor_explorer/observability.py
"""
Observability helpers: timers and dataclass → dict conversion.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from typing import Any, Dict


@dataclass
class Timer:
    """Context manager for measuring durations in milliseconds."""

    name: str
    start: float = 0.0
    duration_ms: float = 0.0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start) * 1000.0


def to_dict(obj: Any) -> Dict[str, Any] | list[Any] | Any:
    """Recursively convert dataclasses (records, load failures) to dicts.

    Enums become their member name and tuples become lists.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.name
    if isinstance(obj, (list, tuple)):
        return [to_dict(x) for x in obj]
    if isinstance(obj, dict):
        return {k: to_dict(v) for k, v in obj.items()}
    return obj
