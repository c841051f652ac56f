# tensor_explorer/model_formats/gguf/gguf_reader.py
"""
Sequential little-endian GGUF decoder: header, typed metadata, tensor records.

Only the structural prefix of the file is read; tensor payload bytes are never
touched.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, List

from loguru import logger

from .gguf import (
    GGUFFile,
    GGUFHeader,
    GGUFInvalidUtf8Error,
    GGUFKV,
    GGUFMagicMismatchError,
    GGUFTensorInfo,
    GGUFTruncatedError,
    GGUFUnknownEncodingError,
    GGUFUnknownTypeError,
)
from .gguf_quantization import lookup_ggml_type
from .gguf_values import SCALAR_FORMATS, SCALAR_SIZES, GGUFValue, GGUFValueType

# b"GGUF" read as a little-endian u32
GGUF_MAGIC = 0x46554747


def _unpack(buf: memoryview, off: int, fmt: str, what: str) -> tuple[tuple[Any, ...], int]:
    size = struct.calcsize(fmt)
    if off + size > len(buf):
        raise GGUFTruncatedError(
            f"Read beyond EOF: need {size} bytes, {max(len(buf) - off, 0)} left",
            offset=off,
            field=what,
            needed=size,
        )
    vals = struct.unpack_from(fmt, buf, off)
    return vals, off + size


def _u32(buf: memoryview, off: int, what: str) -> tuple[int, int]:
    (v,), off = _unpack(buf, off, "<I", what)
    return v, off


def _u64(buf: memoryview, off: int, what: str) -> tuple[int, int]:
    (v,), off = _unpack(buf, off, "<Q", what)
    return v, off


def _bytes(buf: memoryview, off: int, n: int, what: str) -> tuple[bytes, int]:
    if off + n > len(buf):
        raise GGUFTruncatedError(
            f"Read beyond EOF: need {n} bytes, {max(len(buf) - off, 0)} left",
            offset=off,
            field=what,
            needed=n,
        )
    return bytes(buf[off : off + n]), off + n


def _str(buf: memoryview, off: int, what: str) -> tuple[str, int]:
    ln, off = _u64(buf, off, f"{what}.length")
    start = off
    raw, off = _bytes(buf, off, ln, what)
    try:
        return raw.decode("utf-8", "strict"), off
    except UnicodeDecodeError as e:
        raise GGUFInvalidUtf8Error(
            f"Invalid UTF-8 at byte {e.start} of string", offset=start, field=what
        ) from e


def _value_type(code: int, off: int, what: str) -> GGUFValueType:
    try:
        return GGUFValueType(code)
    except ValueError:
        raise GGUFUnknownTypeError(
            f"Unknown GGUF value type {code}", offset=off, field=what
        ) from None


def _scalar(buf: memoryview, off: int, vtype: GGUFValueType, what: str) -> tuple[GGUFValue, int]:
    if vtype == GGUFValueType.STRING:
        s, off = _str(buf, off, what)
        return GGUFValue(vtype, s), off
    (raw,), off = _unpack(buf, off, SCALAR_FORMATS[vtype], what)
    if vtype == GGUFValueType.BOOL:
        raw = raw != 0
    return GGUFValue(vtype, raw), off


@dataclass
class _ArrayFrame:
    element_type: GGUFValueType
    remaining: int
    items: List[GGUFValue] = field(default_factory=list)


def _array_header(buf: memoryview, off: int, what: str) -> tuple[_ArrayFrame, int]:
    tag_off = off
    code, off = _u32(buf, off, f"{what}.element_type")
    elem_type = _value_type(code, tag_off, f"{what}.element_type")
    count, off = _u64(buf, off, f"{what}.count")
    width = SCALAR_SIZES.get(elem_type)
    if width is not None and off + width * count > len(buf):
        raise GGUFTruncatedError(
            f"Array of {count} x {elem_type.label} does not fit in the remaining "
            f"{max(len(buf) - off, 0)} bytes",
            offset=off,
            field=what,
            needed=width * count,
        )
    return _ArrayFrame(elem_type, count), off


def _value(buf: memoryview, off: int, vtype: GGUFValueType, what: str) -> tuple[GGUFValue, int]:
    if vtype != GGUFValueType.ARRAY:
        return _scalar(buf, off, vtype, what)

    # Explicit stack so nesting depth is limited by the input, not the interpreter.
    frame, off = _array_header(buf, off, what)
    stack = [frame]
    while True:
        top = stack[-1]
        if top.remaining == 0:
            stack.pop()
            done = GGUFValue(GGUFValueType.ARRAY, top.items, element_type=top.element_type)
            if not stack:
                return done, off
            stack[-1].items.append(done)
            continue
        top.remaining -= 1
        item_what = f"{what}[{len(top.items)}]"
        if top.element_type == GGUFValueType.ARRAY:
            frame, off = _array_header(buf, off, item_what)
            stack.append(frame)
        else:
            item, off = _scalar(buf, off, top.element_type, item_what)
            top.items.append(item)


def _parse_header(buf: memoryview) -> tuple[GGUFHeader, int]:
    magic, off = _u32(buf, 0, "magic")
    if magic != GGUF_MAGIC:
        raise GGUFMagicMismatchError(
            f"Invalid magic 0x{magic:08x}; not GGUF", offset=0, field="magic"
        )
    version, off = _u32(buf, off, "version")
    n_tensors, off = _u64(buf, off, "tensor_count")
    n_kv, off = _u64(buf, off, "metadata_kv_count")
    return GGUFHeader(magic, version, n_tensors, n_kv), off


def _parse_kv(buf: memoryview, off: int, index: int) -> tuple[GGUFKV, int]:
    key, off = _str(buf, off, f"metadata[{index}].key")
    what = f"metadata[{key}]"
    tag_off = off
    code, off = _u32(buf, off, f"{what}.type")
    vtype = _value_type(code, tag_off, f"{what}.type")
    value, off = _value(buf, off, vtype, what)
    return GGUFKV(key=key, type=vtype, value=value), off


def _parse_tensor_info(buf: memoryview, off: int, index: int) -> tuple[GGUFTensorInfo, int]:
    name, off = _str(buf, off, f"tensor[{index}].name")
    what = f"tensor[{name}]"
    n_dims, off = _u32(buf, off, f"{what}.n_dims")
    if off + 8 * n_dims > len(buf):
        raise GGUFTruncatedError(
            f"{n_dims} dimensions do not fit in the remaining {max(len(buf) - off, 0)} bytes",
            offset=off,
            field=f"{what}.dims",
            needed=8 * n_dims,
        )
    dims: list[int] = []
    for i in range(n_dims):
        d, off = _u64(buf, off, f"{what}.dims[{i}]")
        dims.append(d)
    tag_off = off
    code, off = _u32(buf, off, f"{what}.type")
    ggml_type = lookup_ggml_type(code)
    if ggml_type is None:
        raise GGUFUnknownEncodingError(
            f"Unknown tensor type {code}", offset=tag_off, field=f"{what}.type"
        )
    rel_off, off = _u64(buf, off, f"{what}.offset")  # offset relative to data section
    return GGUFTensorInfo(name=name, dims=tuple(dims), ggml_type=ggml_type, offset=rel_off), off


def decode_gguf(data: Any) -> GGUFFile:
    """Decode the header, metadata and tensor records of a GGUF buffer.

    Args:
        data: Any buffer-protocol object (bytes, bytearray, memoryview, mmap).

    Raises:
        GGUFParseError: One of its subclasses, carrying the field and offset.
    """
    # Views are released on return or raise; a backing mmap can then be closed.
    with memoryview(data) as raw, raw.cast("B") as buf:
        return _decode(buf)


def _decode(buf: memoryview) -> GGUFFile:
    header, off = _parse_header(buf)
    logger.debug(
        "GGUF v{version}: {n_kv} metadata entries, {n_tensors} tensors",
        version=header.version,
        n_kv=header.metadata_kv_count,
        n_tensors=header.tensor_count,
    )

    entries: List[GGUFKV] = []
    for i in range(header.metadata_kv_count):
        item, off = _parse_kv(buf, off, i)
        entries.append(item)

    tensors: List[GGUFTensorInfo] = []
    for i in range(header.tensor_count):
        ti, off = _parse_tensor_info(buf, off, i)
        tensors.append(ti)

    logger.debug("GGUF structure consumed {n} of {total} bytes", n=off, total=len(buf))
    return GGUFFile(header=header, entries=entries, tensors=tensors, end_offset=off)

