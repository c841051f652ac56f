# tensor_explorer/model_formats/gguf/gguf_quantization.py
"""
GGUF Quantization Types (GGML) and metadata.

The catalog is data: adding an encoding means adding an enum member and a
``QUANTIZATION_MAP`` row, the decoder itself does not change.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict


class GGMLType(IntEnum):
    """GGML tensor types, including quantization."""

    F32 = 0
    F16 = 1
    Q4_0 = 2
    Q4_1 = 3
    # Removed upstream
    # Q4_2 = 4
    # Q4_3 = 5
    Q5_0 = 6
    Q5_1 = 7
    Q8_0 = 8
    Q8_1 = 9
    Q2_K = 10
    Q3_K = 11
    Q4_K = 12
    Q5_K = 13
    Q6_K = 14
    Q8_K = 15
    IQ2_XXS = 16
    IQ2_XS = 17
    IQ3_XXS = 18
    IQ1_S = 19
    IQ4_NL = 20
    IQ3_S = 21
    IQ2_S = 22
    IQ4_XS = 23
    I8 = 24
    I16 = 25
    I32 = 26
    I64 = 27
    F64 = 28
    IQ1_M = 29
    BF16 = 30
    Q1_58 = 36


@dataclass(frozen=True)
class QuantizationInfo:
    """Properties of a GGML tensor type."""

    label: str
    block_size: int
    bytes_per_element: float

    @property
    def bits_per_weight(self) -> float:
        return self.bytes_per_element * 8.0

    def get_expected_size(self, n_elements: int) -> int:
        """Approximate byte size for ``n_elements`` values of this type."""
        return int(n_elements * self.bytes_per_element)


# Mapping from GGMLType to its properties.
# bytes_per_element is block bytes / block elements and is fractional for quants.
QUANTIZATION_MAP: Dict[GGMLType, QuantizationInfo] = {
    GGMLType.F32: QuantizationInfo("F32", 1, 4.0),
    GGMLType.F16: QuantizationInfo("F16", 1, 2.0),
    GGMLType.BF16: QuantizationInfo("BF16", 1, 2.0),
    GGMLType.F64: QuantizationInfo("F64", 1, 8.0),
    GGMLType.I8: QuantizationInfo("I8", 1, 1.0),
    GGMLType.I16: QuantizationInfo("I16", 1, 2.0),
    GGMLType.I32: QuantizationInfo("I32", 1, 4.0),
    GGMLType.I64: QuantizationInfo("I64", 1, 8.0),
    # Legacy quants, 32-element blocks
    GGMLType.Q4_0: QuantizationInfo("Q4_0", 32, 0.5625),  # 18 / 32
    GGMLType.Q4_1: QuantizationInfo("Q4_1", 32, 0.625),  # 20 / 32
    GGMLType.Q5_0: QuantizationInfo("Q5_0", 32, 0.6875),  # 22 / 32
    GGMLType.Q5_1: QuantizationInfo("Q5_1", 32, 0.75),  # 24 / 32
    GGMLType.Q8_0: QuantizationInfo("Q8_0", 32, 1.0625),  # 34 / 32
    GGMLType.Q8_1: QuantizationInfo("Q8_1", 32, 1.125),  # 36 / 32
    # K-quants, 256-element super-blocks
    GGMLType.Q2_K: QuantizationInfo("Q2_K", 256, 0.328125),  # 2.625 bpw
    GGMLType.Q3_K: QuantizationInfo("Q3_K", 256, 0.4296875),  # 3.4375 bpw
    GGMLType.Q4_K: QuantizationInfo("Q4_K", 256, 0.5625),  # 4.5 bpw
    GGMLType.Q5_K: QuantizationInfo("Q5_K", 256, 0.6875),  # 5.5 bpw
    GGMLType.Q6_K: QuantizationInfo("Q6_K", 256, 0.8203125),  # 6.5625 bpw
    GGMLType.Q8_K: QuantizationInfo("Q8_K", 256, 1.140625),  # 9.125 bpw
    # Importance quants, 256-element super-blocks (IQ4_NL uses 32)
    GGMLType.IQ1_S: QuantizationInfo("IQ1_S", 256, 0.1953125),  # 1.5625 bpw
    GGMLType.IQ1_M: QuantizationInfo("IQ1_M", 256, 0.21875),  # 1.75 bpw
    GGMLType.IQ2_XXS: QuantizationInfo("IQ2_XXS", 256, 0.2578125),  # 2.0625 bpw
    GGMLType.IQ2_XS: QuantizationInfo("IQ2_XS", 256, 0.2890625),  # 2.3125 bpw
    GGMLType.IQ2_S: QuantizationInfo("IQ2_S", 256, 0.3125),  # 2.5 bpw
    GGMLType.IQ3_XXS: QuantizationInfo("IQ3_XXS", 256, 0.3828125),  # 3.0625 bpw
    GGMLType.IQ3_S: QuantizationInfo("IQ3_S", 256, 0.4296875),  # 3.4375 bpw
    GGMLType.IQ4_NL: QuantizationInfo("IQ4_NL", 32, 0.53125),  # 4.25 bpw
    GGMLType.IQ4_XS: QuantizationInfo("IQ4_XS", 256, 0.53125),  # 4.25 bpw
    GGMLType.Q1_58: QuantizationInfo("Q1_58", 256, 0.1975),  # 1.58 / 8
}


def lookup_ggml_type(code: int) -> GGMLType | None:
    """Return the GGMLType for a raw tag, or None when the tag is unknown."""
    try:
        return GGMLType(code)
    except ValueError:
        return None


_BY_LABEL: Dict[str, QuantizationInfo] = {info.label: info for info in QUANTIZATION_MAP.values()}


def lookup_quantization(label: str) -> QuantizationInfo | None:
    """Return the encoding properties for a display label such as ``Q4_K``."""
    return _BY_LABEL.get(label)
