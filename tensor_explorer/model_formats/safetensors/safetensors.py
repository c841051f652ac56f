"""
Pure-Python SafeTensors parser (v1-style header).
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

METADATA_KEY = "__metadata__"


class SafeTensorsParseError(Exception):
    """Raised when a SafeTensors file is malformed."""


@dataclass(frozen=True)
class STTensor:
    name: str
    dtype: str
    shape: Tuple[int, ...]
    data_offsets: Tuple[int, int]

    @property
    def n_elements(self) -> int:
        n = 1
        for d in self.shape:
            n *= d
        return n

    @property
    def size_bytes(self) -> int:
        return self.data_offsets[1] - self.data_offsets[0]


@dataclass
class SafeTensorsModel:
    header_size: int
    tensors: List[STTensor]
    data_start: int
    file_size: int
    metadata: Dict[str, str] = field(default_factory=dict)


def parse_safetensors(buf: Any, *, file_size: int) -> SafeTensorsModel:
    """Parse header + tensor metadata (no data reads).

    Tensors keep the order they appear in the JSON header.
    """
    if file_size < 8:
        raise SafeTensorsParseError("File too small for safetensors header")
    header_size = struct.unpack_from("<Q", buf, 0)[0]
    header_start = 8
    header_end = header_start + header_size
    if header_end > file_size:
        raise SafeTensorsParseError(
            f"Header of {header_size} bytes extends beyond EOF ({file_size} bytes)"
        )
    raw = bytes(buf[header_start:header_end]).lstrip()
    if not raw or raw[:1] != b"{":
        raise SafeTensorsParseError("Header does not start with '{'")
    try:
        header = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SafeTensorsParseError(f"Invalid JSON header: {e}") from e
    if not isinstance(header, dict):
        raise SafeTensorsParseError("Header is not a JSON object")

    metadata: Dict[str, str] = {}
    tensors: List[STTensor] = []
    for name, meta in header.items():
        if name == METADATA_KEY:
            if not isinstance(meta, dict):
                raise SafeTensorsParseError(f"{METADATA_KEY} must be an object")
            metadata = {str(k): str(v) for k, v in meta.items()}
            continue
        if not isinstance(meta, dict):
            raise SafeTensorsParseError(f"Invalid tensor meta for {name}")
        dtype = meta.get("dtype")
        shape = meta.get("shape")
        offsets = meta.get("data_offsets")
        if not (
            isinstance(dtype, str)
            and isinstance(shape, list)
            and isinstance(offsets, (list, tuple))
            and len(offsets) == 2
        ):
            raise SafeTensorsParseError(f"Missing/invalid fields for {name}")
        if not all(isinstance(x, int) and x >= 0 for x in shape):
            raise SafeTensorsParseError(f"Invalid shape for {name}")
        if not all(isinstance(x, int) and x >= 0 for x in offsets):
            raise SafeTensorsParseError(f"Invalid data_offsets for {name}")
        begin, end = int(offsets[0]), int(offsets[1])
        if end < begin:
            raise SafeTensorsParseError(f"data_offsets for {name} end before they begin")
        if header_end + end > file_size:
            raise SafeTensorsParseError(f"Data for {name} extends beyond EOF")
        tensors.append(
            STTensor(
                name=name,
                dtype=dtype,
                shape=tuple(int(x) for x in shape),
                data_offsets=(begin, end),
            )
        )

    return SafeTensorsModel(
        header_size=header_size,
        tensors=tensors,
        data_start=header_end,
        file_size=file_size,
        metadata=metadata,
    )
