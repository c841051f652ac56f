"""
Tests for the SafeTensors header parser.
"""

import json
import struct

import pytest

from gguf_builder import build_safetensors
from tensor_explorer.model_formats.safetensors import SafeTensorsParseError, parse_safetensors


def parse(data):
    return parse_safetensors(data, file_size=len(data))


def raw_header(obj, pad=0):
    raw = json.dumps(obj).encode()
    return struct.pack("<Q", len(raw)) + raw + b"\0" * pad


def test_parse_tensors_in_header_order():
    data = build_safetensors({"b": ("F32", (4,), 16), "a": ("F16", (2, 2), 8)})
    model = parse(data)
    assert [t.name for t in model.tensors] == ["b", "a"]
    b, a = model.tensors
    assert b.data_offsets == (0, 16)
    assert a.size_bytes == 8
    assert a.n_elements == 4
    assert model.data_start == len(data) - 24


def test_metadata_block():
    model = parse(build_safetensors({"w": ("F32", (), 4)}, metadata={"format": "pt"}))
    assert model.metadata == {"format": "pt"}
    assert [t.name for t in model.tensors] == ["w"]
    assert model.tensors[0].n_elements == 1


def test_too_small():
    with pytest.raises(SafeTensorsParseError):
        parse(b"\x01\x02")


def test_header_beyond_eof():
    with pytest.raises(SafeTensorsParseError):
        parse(struct.pack("<Q", 1000) + b"{}")


def test_not_json():
    data = struct.pack("<Q", 3) + b"{x}"
    with pytest.raises(SafeTensorsParseError):
        parse(data)


def test_not_an_object():
    data = struct.pack("<Q", 2) + b"[]"
    with pytest.raises(SafeTensorsParseError):
        parse(data)


@pytest.mark.parametrize(
    "meta",
    [
        {"dtype": "F32", "shape": [1]},
        {"dtype": "F32", "shape": [-1], "data_offsets": [0, 4]},
        {"dtype": "F32", "shape": [1], "data_offsets": [4, 0]},
        {"dtype": 3, "shape": [1], "data_offsets": [0, 4]},
        "nope",
    ],
)
def test_invalid_tensor_entries(meta):
    with pytest.raises(SafeTensorsParseError):
        parse(raw_header({"t": meta}, pad=4))


def test_data_beyond_eof():
    with pytest.raises(SafeTensorsParseError):
        parse(raw_header({"t": {"dtype": "F32", "shape": [2], "data_offsets": [0, 8]}}, pad=4))
