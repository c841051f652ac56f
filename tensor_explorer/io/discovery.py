"""
Expand user-supplied paths, globs and model directories into model files.
"""

from __future__ import annotations

import glob
import json
import os
from typing import Iterable, List

from loguru import logger

SUPPORTED_EXTENSIONS = (".safetensors", ".gguf")
INDEX_FILE = "model.safetensors.index.json"


class DiscoveryError(Exception):
    """Raised when a shard index file cannot be read."""


def is_model_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in SUPPORTED_EXTENSIONS


def read_shard_index(index_path: str) -> List[str]:
    """Unique shard file names from an index's ``weight_map``, sorted."""
    try:
        with open(index_path, "r", encoding="utf-8") as f:
            index = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DiscoveryError(f"Failed to read index file {index_path}: {e}") from e
    weight_map = index.get("weight_map") if isinstance(index, dict) else None
    if not isinstance(weight_map, dict):
        return []
    return sorted({v for v in weight_map.values() if isinstance(v, str)})


def _expand_directory(directory: str, *, recursive: bool) -> List[str]:
    index_path = os.path.join(directory, INDEX_FILE)
    if os.path.exists(index_path):
        shards = [os.path.join(directory, name) for name in read_shard_index(index_path)]
        missing = [s for s in shards if not os.path.exists(s)]
        for m in missing:
            logger.warning("Shard listed in index does not exist: {path}", path=m)
        return [s for s in shards if s not in missing]

    found: List[str] = []
    for ext in SUPPORTED_EXTENSIONS:
        pattern = os.path.join(directory, "**", f"*{ext}") if recursive else os.path.join(
            directory, f"*{ext}"
        )
        found.extend(glob.glob(pattern, recursive=recursive))
    return found


def collect_model_files(paths: Iterable[str], *, recursive: bool = False) -> List[str]:
    """Resolve files, directories and glob patterns into a sorted file list."""
    files: List[str] = []
    for path in paths:
        # A pattern matching nothing is treated as a literal path
        expanded = sorted(glob.glob(path)) or [path]
        for p in expanded:
            if not os.path.exists(p):
                logger.warning("Path does not exist: {path}", path=p)
                continue
            if os.path.isdir(p):
                files.extend(_expand_directory(p, recursive=recursive))
            elif is_model_file(p):
                files.append(p)
            else:
                logger.warning("Skipping unsupported file: {path}", path=p)
    files.sort()
    return files
