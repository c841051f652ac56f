"""
tensor_explorer
===============

Inspect GGUF and SafeTensors model files without loading tensor payloads:
decode their headers, metadata and tensor tables, and browse tensor names as an
expandable namespace tree with per-group counts and sizes.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

__all__ = ["__version__"]

try:
    # Read version dynamically from installed package metadata
    __version__: str = _pkg_version("tensorexplorer")
except PackageNotFoundError:  # pragma: no cover - fallback for development environments
    __version__ = "0.0.0-dev"
