# tensor_explorer/explorer.py
"""
Load session: decode one or more model files, merge their records and keep the
namespace tree plus its flattened rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from tensor_explorer.io.file_reader import LocalFileSource
from tensor_explorer.model_formats.gguf import GGUFParseError, decode_gguf
from tensor_explorer.model_formats.safetensors import SafeTensorsParseError, parse_safetensors
from tensor_explorer.observability import Timer
from tensor_explorer.records import (
    MetadataRecord,
    TensorRecord,
    merge_metadata_records,
    merge_tensor_records,
    records_from_gguf,
    records_from_safetensors,
)
from tensor_explorer.tree import (
    TreeNode,
    build_tree,
    flatten,
    set_expanded,
    toggle_by_index,
    toggle_by_name,
)


class LoadError(Exception):
    """A single file could not be read or decoded."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass
class LoadFailure:
    path: str
    reason: str


@dataclass
class LoadedFile:
    """Records decoded from one file."""

    path: str
    format: str  # "gguf" | "safetensors"
    file_size: int
    tensors: List[TensorRecord] = field(default_factory=list)
    metadata: List[MetadataRecord] = field(default_factory=list)


def load_file(path: str) -> LoadedFile:
    """Read and decode one model file, picking the decoder by extension.

    Raises:
        LoadError: The file is unreadable, unsupported or malformed.
    """
    src = LocalFileSource(path)
    ext = src.extension
    if ext not in (".gguf", ".safetensors"):
        raise LoadError(path, f"unsupported file type {ext or '(none)'}")

    try:
        with src.open() as mf, Timer("decode") as t:
            if ext == ".gguf":
                fmt = "gguf"
                tensors, metadata = records_from_gguf(decode_gguf(mf.view), source=path)
            else:
                fmt = "safetensors"
                model = parse_safetensors(mf.view, file_size=mf.size)
                tensors, metadata = records_from_safetensors(model, source=path)
            size = mf.size
    except OSError as e:
        raise LoadError(path, f"cannot read file: {e}") from e
    except (GGUFParseError, SafeTensorsParseError) as e:
        raise LoadError(path, f"{fmt} decode failed: {e}") from e

    logger.debug(
        "{path}: {n} tensors, {m} metadata entries decoded in {ms:.2f}ms",
        path=path,
        n=len(tensors),
        m=len(metadata),
        ms=t.duration_ms,
    )
    return LoadedFile(path=path, format=fmt, file_size=size, tensors=tensors, metadata=metadata)


class ModelExplorer:
    """Merged view over a set of model files.

    ``load`` rebuilds everything from disk and swaps the new state in at the
    end; expansion toggles are the only other mutation and re-flatten ``rows``.
    """

    def __init__(self, paths: Sequence[str]):
        self.paths: List[str] = list(paths)
        self.files: List[LoadedFile] = []
        self.failures: List[LoadFailure] = []
        self.tensors: List[TensorRecord] = []
        self.metadata: List[MetadataRecord] = []
        self.tree: List[TreeNode] = []
        self.rows: List[Tuple[TreeNode, int]] = []

    def load(self) -> "ModelExplorer":
        files: List[LoadedFile] = []
        failures: List[LoadFailure] = []
        for path in self.paths:
            try:
                files.append(load_file(path))
            except LoadError as e:
                logger.warning("Skipping {path}: {reason}", path=e.path, reason=e.reason)
                failures.append(LoadFailure(path=e.path, reason=e.reason))

        with Timer("build_tree") as t:
            tensors = merge_tensor_records(f.tensors for f in files)
            metadata = merge_metadata_records(f.metadata for f in files)
            tree = build_tree(tensors, metadata)
        logger.debug(
            "Tree built from {n} tensors in {ms:.2f}ms", n=len(tensors), ms=t.duration_ms
        )

        self.files, self.failures = files, failures
        self.tensors, self.metadata, self.tree = tensors, metadata, tree
        self.rows = flatten(self.tree)
        return self

    @property
    def title(self) -> str:
        if len(self.paths) == 1:
            return self.paths[0]
        return f"{len(self.files)} files"

    @property
    def total_parameters(self) -> int:
        return sum(t.n_elements for t in self.tensors)

    @property
    def total_size(self) -> int:
        return sum(t.size_bytes for t in self.tensors)

    def _reflatten(self, changed: bool) -> bool:
        if changed:
            self.rows = flatten(self.tree)
        return changed

    def toggle(self, index: int) -> bool:
        """Expand/collapse the group shown at row ``index``."""
        return self._reflatten(toggle_by_index(self.tree, index))

    def toggle_by_name(self, name: str) -> bool:
        found = self._reflatten(toggle_by_name(self.tree, name))
        if not found:
            logger.debug("No group named {name!r}", name=name)
        return found

    def expand_all(self) -> None:
        self._reflatten(set_expanded(self.tree, True) > 0)

    def collapse_all(self) -> None:
        self._reflatten(set_expanded(self.tree, False) > 0)

    def node_at(self, index: int) -> Optional[TreeNode]:
        if 0 <= index < len(self.rows):
            return self.rows[index][0]
        return None

    def find_record(self, name: str) -> Optional[Union[TensorRecord, MetadataRecord]]:
        """Tensor with this full name, else metadata key, else None."""
        for rec in self.tensors:
            if rec.name == name:
                return rec
        for meta in self.metadata:
            if meta.name == name:
                return meta
        return None
