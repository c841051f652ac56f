"""SafeTensors header decoding."""
from __future__ import annotations

from .safetensors import SafeTensorsModel, SafeTensorsParseError, STTensor, parse_safetensors

__all__ = ["STTensor", "SafeTensorsModel", "SafeTensorsParseError", "parse_safetensors"]
