# tensor_explorer/records.py
"""
Format-agnostic tensor and metadata records, shared by every decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from tensor_explorer.model_formats.gguf import QUANTIZATION_MAP, GGUFFile
from tensor_explorer.model_formats.safetensors import SafeTensorsModel
from tensor_explorer.tree import natural_sort_key


@dataclass(frozen=True)
class TensorRecord:
    """One tensor, independent of the container it came from."""

    name: str
    dtype: str
    shape: Tuple[int, ...]
    size_bytes: int
    n_elements: int
    source: str = ""


@dataclass(frozen=True)
class MetadataRecord:
    """One metadata key with its display value and type label."""

    name: str
    value: str
    value_type: str
    source: str = ""


def records_from_gguf(
    gguf: GGUFFile, source: str = ""
) -> tuple[List[TensorRecord], List[MetadataRecord]]:
    """Convert a decoded GGUF file into records.

    Metadata follows the file's key order; a repeated key keeps its last value.
    """
    metadata = [
        MetadataRecord(name=key, value=str(value), value_type=value.type.label, source=source)
        for key, value in gguf.metadata.items()
    ]
    tensors = []
    for ti in gguf.tensors:
        info = QUANTIZATION_MAP[ti.ggml_type]
        n_elements = ti.n_elements
        tensors.append(
            TensorRecord(
                name=ti.name,
                dtype=info.label,
                shape=ti.dims,
                size_bytes=info.get_expected_size(n_elements),
                n_elements=n_elements,
                source=source,
            )
        )
    return tensors, metadata


def records_from_safetensors(
    model: SafeTensorsModel, source: str = ""
) -> tuple[List[TensorRecord], List[MetadataRecord]]:
    """Convert a parsed SafeTensors header into records."""
    tensors = [
        TensorRecord(
            name=t.name,
            dtype=t.dtype,
            shape=t.shape,
            size_bytes=t.size_bytes,
            n_elements=t.n_elements,
            source=source,
        )
        for t in model.tensors
    ]
    metadata = [
        MetadataRecord(name=k, value=f'"{v}"', value_type="string", source=source)
        for k, v in model.metadata.items()
    ]
    return tensors, metadata


def _merge(batches: Iterable[Sequence], key) -> list:
    seen: set[str] = set()
    merged = []
    for batch in batches:
        for rec in batch:
            if rec.name in seen:
                continue
            seen.add(rec.name)
            merged.append(rec)
    merged.sort(key=key)
    return merged


def merge_tensor_records(batches: Iterable[Sequence[TensorRecord]]) -> List[TensorRecord]:
    """Concatenate per-file batches, keep the first record seen per name, natural-sort."""
    return _merge(batches, key=lambda r: natural_sort_key(r.name))


def merge_metadata_records(batches: Iterable[Sequence[MetadataRecord]]) -> List[MetadataRecord]:
    """Same first-seen-wins merge for metadata keys."""
    return _merge(batches, key=lambda r: natural_sort_key(r.name))
