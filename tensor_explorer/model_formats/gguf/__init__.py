"""GGUF container decoding."""
from __future__ import annotations

from .gguf import (
    GGUFFile,
    GGUFHeader,
    GGUFInvalidUtf8Error,
    GGUFKV,
    GGUFMagicMismatchError,
    GGUFParseError,
    GGUFTensorInfo,
    GGUFTruncatedError,
    GGUFUnknownEncodingError,
    GGUFUnknownTypeError,
)
from .gguf_quantization import QUANTIZATION_MAP, GGMLType, QuantizationInfo, lookup_quantization
from .gguf_reader import GGUF_MAGIC, decode_gguf
from .gguf_values import GGUFValue, GGUFValueType

__all__ = [
    "GGUF_MAGIC",
    "GGMLType",
    "GGUFFile",
    "GGUFHeader",
    "GGUFInvalidUtf8Error",
    "GGUFKV",
    "GGUFMagicMismatchError",
    "GGUFParseError",
    "GGUFTensorInfo",
    "GGUFTruncatedError",
    "GGUFUnknownEncodingError",
    "GGUFUnknownTypeError",
    "GGUFValue",
    "GGUFValueType",
    "QUANTIZATION_MAP",
    "QuantizationInfo",
    "decode_gguf",
    "lookup_quantization",
]
