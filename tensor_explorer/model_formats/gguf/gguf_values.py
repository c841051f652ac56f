# tensor_explorer/model_formats/gguf/gguf_values.py
"""
Typed GGUF metadata values and their display rendering.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any, List, Optional, Tuple


class GGUFValueType(IntEnum):
    """Metadata value type tags."""

    UINT8 = 0
    INT8 = 1
    UINT16 = 2
    INT16 = 3
    UINT32 = 4
    INT32 = 5
    FLOAT32 = 6
    BOOL = 7
    STRING = 8
    ARRAY = 9
    UINT64 = 10
    INT64 = 11
    FLOAT64 = 12

    @property
    def label(self) -> str:
        return TYPE_LABELS[self]


TYPE_LABELS = {
    GGUFValueType.UINT8: "u8",
    GGUFValueType.INT8: "i8",
    GGUFValueType.UINT16: "u16",
    GGUFValueType.INT16: "i16",
    GGUFValueType.UINT32: "u32",
    GGUFValueType.INT32: "i32",
    GGUFValueType.FLOAT32: "f32",
    GGUFValueType.BOOL: "bool",
    GGUFValueType.STRING: "string",
    GGUFValueType.ARRAY: "array",
    GGUFValueType.UINT64: "u64",
    GGUFValueType.INT64: "i64",
    GGUFValueType.FLOAT64: "f64",
}

# struct formats for the fixed-width scalar kinds
SCALAR_FORMATS = {
    GGUFValueType.UINT8: "<B",
    GGUFValueType.INT8: "<b",
    GGUFValueType.UINT16: "<H",
    GGUFValueType.INT16: "<h",
    GGUFValueType.UINT32: "<I",
    GGUFValueType.INT32: "<i",
    GGUFValueType.FLOAT32: "<f",
    GGUFValueType.BOOL: "<B",
    GGUFValueType.UINT64: "<Q",
    GGUFValueType.INT64: "<q",
    GGUFValueType.FLOAT64: "<d",
}

SCALAR_SIZES = {t: struct.calcsize(f) for t, f in SCALAR_FORMATS.items()}

# Arrays longer than this are shown abbreviated
ARRAY_PREVIEW_LIMIT = 5


def _format_float(value: float, fmt: str, max_digits: int) -> str:
    # shortest decimal that survives a round trip through the stored width,
    # written out positionally: 1e-05 shows as 0.00001
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "inf" if value > 0 else "-inf"
    packed = struct.pack(fmt, value)
    text = repr(value)
    for digits in range(1, max_digits + 1):
        candidate = f"{value:.{digits}g}"
        if struct.pack(fmt, float(candidate)) == packed:
            text = candidate
            break
    return format(Decimal(text), "f")


def _array_parts(items: List["GGUFValue"]) -> List[Any]:
    """Display pieces of one array level: literal text and nested values."""
    long = len(items) > ARRAY_PREVIEW_LIMIT
    shown: List[Any] = [items[0], items[1], "...", items[-1]] if long else list(items)
    parts: List[Any] = ["["]
    for i, item in enumerate(shown):
        if i:
            parts.append(", ")
        parts.append(item)
    parts.append(f" ({len(items)})]" if long else "]")
    return parts


@dataclass(frozen=True)
class GGUFValue:
    """A decoded metadata value.

    ``type`` selects the kind. For arrays ``value`` is a list of GGUFValue and
    ``element_type`` is the declared element tag; for every other kind
    ``value`` is the Python scalar.

    Arrays nest to any depth, so ``to_python`` and ``str`` walk them with an
    explicit stack rather than recursing.
    """

    type: GGUFValueType
    value: Any
    element_type: Optional[GGUFValueType] = None

    @property
    def is_array(self) -> bool:
        return self.type == GGUFValueType.ARRAY

    def to_python(self) -> Any:
        """Strip the tags, returning plain Python values (arrays become lists)."""
        if not self.is_array:
            return self.value
        root: List[Any] = []
        stack: List[Tuple[List[GGUFValue], List[Any]]] = [(self.value, root)]
        while stack:
            items, out = stack.pop()
            for item in items:
                if item.is_array:
                    child: List[Any] = []
                    out.append(child)
                    stack.append((item.value, child))
                else:
                    out.append(item.value)
        return root

    def _scalar_text(self) -> str:
        t = self.type
        if t == GGUFValueType.STRING:
            return f'"{self.value}"'
        if t == GGUFValueType.BOOL:
            return "true" if self.value else "false"
        if t == GGUFValueType.FLOAT32:
            return _format_float(self.value, "<f", 9)
        if t == GGUFValueType.FLOAT64:
            return _format_float(self.value, "<d", 17)
        return str(self.value)

    def __str__(self) -> str:
        out: List[str] = []
        # pending pieces, last one next: literal text or a value to render
        pending: List[Any] = [self]
        while pending:
            piece = pending.pop()
            if isinstance(piece, str):
                out.append(piece)
            elif piece.is_array:
                pending.extend(reversed(_array_parts(piece.value)))
            else:
                out.append(piece._scalar_text())
        return "".join(out)
