"""
Human-readable sizes, parameter counts and shapes.
"""
from __future__ import annotations

from typing import Sequence

SIZE_UNITS = ("B", "KB", "MB", "GB")
PARAM_UNITS = ("", "K", "M", "B")


def format_size(n_bytes: int) -> str:
    """Binary (1024) steps, one decimal above bytes: ``1.5 KB``."""
    size = float(n_bytes)
    unit = 0
    while size >= 1024.0 and unit < len(SIZE_UNITS) - 1:
        size /= 1024.0
        unit += 1
    if unit == 0:
        return f"{n_bytes} B"
    return f"{size:.1f} {SIZE_UNITS[unit]}"


def format_parameters(count: int) -> str:
    """Decimal (1000) steps: ``7.2B``."""
    value = float(count)
    unit = 0
    while value >= 1000.0 and unit < len(PARAM_UNITS) - 1:
        value /= 1000.0
        unit += 1
    if unit == 0:
        return str(count)
    return f"{value:.1f}{PARAM_UNITS[unit]}"


def format_shape(shape: Sequence[int]) -> str:
    return "(" + ", ".join(str(d) for d in shape) + ")"
