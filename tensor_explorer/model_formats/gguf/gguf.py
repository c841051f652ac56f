# tensor_explorer/model_formats/gguf/gguf.py
"""
GGUF shared structures and exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .gguf_quantization import QUANTIZATION_MAP, GGMLType
from .gguf_values import GGUFValue, GGUFValueType


@dataclass(frozen=True)
class GGUFHeader:
    magic: int
    version: int
    tensor_count: int
    metadata_kv_count: int


@dataclass(frozen=True)
class GGUFKV:
    key: str
    type: GGUFValueType
    value: GGUFValue


@dataclass(frozen=True)
class GGUFTensorInfo:
    name: str
    dims: Tuple[int, ...]
    ggml_type: GGMLType
    offset: int  # relative to data section

    @property
    def n_elements(self) -> int:
        n = 1
        for d in self.dims:
            n *= d
        return n

    @property
    def bytes_per_element(self) -> float:
        return QUANTIZATION_MAP[self.ggml_type].bytes_per_element

    @property
    def size_bytes(self) -> int:
        """Approximate on-disk size; block padding is not modelled."""
        return int(self.n_elements * self.bytes_per_element)


@dataclass
class GGUFFile:
    header: GGUFHeader
    entries: List[GGUFKV]
    tensors: List[GGUFTensorInfo]
    end_offset: int  # bytes consumed by header + metadata + tensor records
    metadata: Dict[str, GGUFValue] = field(init=False)

    def __post_init__(self) -> None:
        self.metadata = {e.key: e.value for e in self.entries}


class GGUFParseError(Exception):
    """Raised when a GGUF file is malformed.

    Attributes:
        offset: Byte offset where the offending field starts.
        field: Name of the field being decoded.
    """

    def __init__(self, message: str, *, offset: int, field: str):
        super().__init__(f"{message} (field={field}, offset={offset})")
        self.offset = offset
        self.field = field


class GGUFMagicMismatchError(GGUFParseError):
    """The first four bytes are not the GGUF magic."""


class GGUFUnknownTypeError(GGUFParseError):
    """A metadata value-type tag outside the known set."""


class GGUFUnknownEncodingError(GGUFParseError):
    """A tensor encoding tag outside the quantization catalog."""


class GGUFTruncatedError(GGUFParseError):
    """The buffer ended before a declared field finished."""

    def __init__(
        self, message: str, *, offset: int, field: str, needed: Optional[int] = None
    ):
        super().__init__(message, offset=offset, field=field)
        self.needed = needed


class GGUFInvalidUtf8Error(GGUFParseError):
    """A string field does not hold valid UTF-8."""
