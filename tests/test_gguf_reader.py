"""
Tests for the GGUF decoder.
"""

import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gguf_builder import (
    ARRAY,
    BOOL,
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    STRING,
    U8,
    U16,
    U32,
    U64,
    build_deep_array_gguf,
    build_gguf,
    pack_string,
)
from tensor_explorer.model_formats.gguf import (
    GGUF_MAGIC,
    GGMLType,
    GGUFInvalidUtf8Error,
    GGUFMagicMismatchError,
    GGUFParseError,
    GGUFTruncatedError,
    GGUFUnknownEncodingError,
    GGUFUnknownTypeError,
    GGUFValueType,
    decode_gguf,
)

HEADER_SIZE = 24


# ============================================================================
# Header
# ============================================================================

def test_magic_constant_is_gguf_ascii():
    assert struct.pack("<I", GGUF_MAGIC) == b"GGUF"


def test_header_fields():
    data = build_gguf(
        metadata=[("general.name", STRING, "tiny")],
        tensors=[("a.weight", [2, 3], GGMLType.F32)],
        version=3,
    )
    f = decode_gguf(data)
    assert f.header.magic == GGUF_MAGIC
    assert f.header.version == 3
    assert f.header.tensor_count == 1
    assert f.header.metadata_kv_count == 1


def test_empty_file_body():
    f = decode_gguf(build_gguf())
    assert f.entries == []
    assert f.tensors == []
    assert f.metadata == {}
    assert f.end_offset == HEADER_SIZE


def test_invalid_magic():
    data = build_gguf(magic=b"GGML")
    with pytest.raises(GGUFMagicMismatchError) as exc:
        decode_gguf(data)
    assert exc.value.offset == 0
    assert exc.value.field == "magic"


@given(
    magic=st.binary(min_size=4, max_size=4).filter(lambda b: b != b"GGUF"),
    tail=st.binary(max_size=64),
)
def test_property_any_other_magic_is_rejected(magic, tail):
    with pytest.raises(GGUFMagicMismatchError):
        decode_gguf(magic + tail)


def test_magic_checked_before_counts():
    # absurd counts after a bad magic must not matter
    data = b"XXXX" + struct.pack("<IQQ", 3, 2**63, 2**63)
    with pytest.raises(GGUFMagicMismatchError):
        decode_gguf(data)


def test_accepts_bytearray_and_memoryview():
    data = build_gguf(metadata=[("k", U32, 7)])
    assert decode_gguf(bytearray(data)).metadata["k"].value == 7
    assert decode_gguf(memoryview(data)).metadata["k"].value == 7


# ============================================================================
# Metadata values
# ============================================================================

@pytest.mark.parametrize(
    "vtype, value",
    [
        (U8, 255),
        (I8, -128),
        (U16, 65535),
        (I16, -32768),
        (U32, 2**32 - 1),
        (I32, -(2**31)),
        (U64, 2**64 - 1),
        (I64, -(2**63)),
        (F64, 3.141592653589793),
        (STRING, "héllo wörld"),
        (STRING, ""),
    ],
)
def test_scalar_values(vtype, value):
    f = decode_gguf(build_gguf(metadata=[("key", vtype, value)]))
    v = f.metadata["key"]
    assert v.type == GGUFValueType(vtype)
    assert v.value == value
    assert f.entries[0].type == GGUFValueType(vtype)


def test_float32_value():
    f = decode_gguf(build_gguf(metadata=[("eps", F32, 1e-5)]))
    assert f.metadata["eps"].value == pytest.approx(1e-5)


def test_bool_is_any_nonzero_byte():
    data = build_gguf(metadata=[("t", BOOL, 1), ("f", BOOL, 0), ("x", BOOL, 0x7F)])
    f = decode_gguf(data)
    assert f.metadata["t"].value is True
    assert f.metadata["f"].value is False
    assert f.metadata["x"].value is True


def test_array_of_strings():
    data = build_gguf(metadata=[("tokens", ARRAY, (STRING, ["<s>", "</s>", "a"]))])
    v = decode_gguf(data).metadata["tokens"]
    assert v.is_array
    assert v.element_type == GGUFValueType.STRING
    assert v.to_python() == ["<s>", "</s>", "a"]


def test_empty_array():
    v = decode_gguf(build_gguf(metadata=[("e", ARRAY, (I32, []))])).metadata["e"]
    assert v.to_python() == []
    assert v.element_type == GGUFValueType.INT32


def test_nested_array_three_by_two():
    outer = [(U32, [1, 2]), (U32, [3, 4]), (U32, [5, 6])]
    v = decode_gguf(build_gguf(metadata=[("m", ARRAY, (ARRAY, outer))])).metadata["m"]
    assert v.element_type == GGUFValueType.ARRAY
    assert len(v.value) == 3
    assert all(len(inner.value) == 2 for inner in v.value)
    assert v.to_python() == [[1, 2], [3, 4], [5, 6]]


def test_deep_nesting_does_not_hit_recursion_limit():
    depth = 5000
    v = decode_gguf(build_deep_array_gguf(depth)).metadata["deep"]
    levels = 1
    while v.value and v.value[0].is_array:
        v = v.value[0]
        levels += 1
    assert levels == depth
    assert v.element_type == GGUFValueType.UINT32


def test_duplicate_keys_last_write_wins():
    data = build_gguf(metadata=[("k", U32, 1), ("k", U32, 2)])
    f = decode_gguf(data)
    assert f.metadata["k"].value == 2
    assert [e.value.value for e in f.entries] == [1, 2]


def test_unknown_value_type():
    data = b"GGUF" + struct.pack("<IQQ", 3, 0, 1) + pack_string("k") + struct.pack("<I", 13)
    with pytest.raises(GGUFUnknownTypeError) as exc:
        decode_gguf(data)
    assert exc.value.offset == HEADER_SIZE + 8 + 1
    assert "k" in exc.value.field


def test_unknown_array_element_type():
    data = (
        b"GGUF"
        + struct.pack("<IQQ", 3, 0, 1)
        + pack_string("arr")
        + struct.pack("<IIQ", ARRAY, 99, 0)
    )
    with pytest.raises(GGUFUnknownTypeError):
        decode_gguf(data)


def test_invalid_utf8_key():
    data = b"GGUF" + struct.pack("<IQQ", 3, 0, 1) + pack_string(b"\xff\xfe") + struct.pack("<IB", U8, 1)
    with pytest.raises(GGUFInvalidUtf8Error) as exc:
        decode_gguf(data)
    assert exc.value.offset == HEADER_SIZE + 8


def test_invalid_utf8_value():
    data = b"GGUF" + struct.pack("<IQQ", 3, 0, 1) + pack_string("k") + struct.pack("<I", STRING)
    data += pack_string(b"ok\xc3")
    with pytest.raises(GGUFInvalidUtf8Error):
        decode_gguf(data)


# ============================================================================
# Tensor records
# ============================================================================

def test_tensor_records():
    data = build_gguf(
        tensors=[
            ("token_embd.weight", [4096, 32000], GGMLType.Q4_K, 0),
            ("output_norm.weight", [4096], GGMLType.F32, 73728000),
        ]
    )
    f = decode_gguf(data)
    first, second = f.tensors
    assert first.name == "token_embd.weight"
    assert first.dims == (4096, 32000)
    assert first.ggml_type == GGMLType.Q4_K
    assert first.n_elements == 4096 * 32000
    assert first.size_bytes == int(4096 * 32000 * 0.5625)
    assert second.offset == 73728000
    assert second.size_bytes == 4096 * 4


def test_scalar_tensor_has_one_element():
    ti = decode_gguf(build_gguf(tensors=[("s", [], GGMLType.F16)])).tensors[0]
    assert ti.dims == ()
    assert ti.n_elements == 1
    assert ti.size_bytes == 2


@pytest.mark.parametrize("code", [4, 5, 31, 35, 37, 1000])
def test_unknown_encoding_tag(code):
    data = build_gguf(tensors=[("w", [8], code)])
    with pytest.raises(GGUFUnknownEncodingError) as exc:
        decode_gguf(data)
    assert "w" in exc.value.field


def test_payload_is_not_read():
    structure = build_gguf(tensors=[("w", [2], GGMLType.F32)])
    f = decode_gguf(structure + b"\xab" * 1024)
    assert f.end_offset == len(structure)


# ============================================================================
# Truncation
# ============================================================================

def test_truncated_mid_string_length():
    data = build_gguf(metadata=[("general.name", STRING, "x")])
    with pytest.raises(GGUFTruncatedError) as exc:
        decode_gguf(data[: HEADER_SIZE + 4])
    assert exc.value.field.endswith(".length")
    assert exc.value.offset == HEADER_SIZE


def test_every_proper_prefix_is_truncated():
    data = build_gguf(
        metadata=[
            ("a", U16, 5),
            ("b", ARRAY, (ARRAY, [(STRING, ["x", "yz"])])),
            ("c", F64, 0.5),
        ],
        tensors=[("blk.0.w", [3, 4], GGMLType.Q8_0, 0)],
    )
    decode_gguf(data)
    for n in range(len(data)):
        with pytest.raises(GGUFParseError) as exc:
            decode_gguf(data[:n])
        if n >= 4:
            assert isinstance(exc.value, GGUFTruncatedError)


def test_huge_declared_array_fails_fast():
    data = (
        b"GGUF"
        + struct.pack("<IQQ", 3, 0, 1)
        + pack_string("arr")
        + struct.pack("<IIQ", ARRAY, U64, 2**60)
    )
    with pytest.raises(GGUFTruncatedError) as exc:
        decode_gguf(data)
    assert exc.value.needed == 8 * 2**60


def test_huge_declared_dims_fail_fast():
    data = b"GGUF" + struct.pack("<IQQ", 3, 1, 0) + pack_string("w") + struct.pack("<I", 2**31)
    with pytest.raises(GGUFTruncatedError):
        decode_gguf(data)


# ============================================================================
# Round trip
# ============================================================================

_key = st.text(
    alphabet=st.characters(min_codepoint=33, max_codepoint=0x2FF), min_size=1, max_size=24
)
_kv = st.one_of(
    st.tuples(_key, st.just(U32), st.integers(0, 2**32 - 1)),
    st.tuples(_key, st.just(I64), st.integers(-(2**63), 2**63 - 1)),
    st.tuples(_key, st.just(STRING), st.text(max_size=32)),
    st.tuples(_key, st.just(BOOL), st.integers(0, 1)),
    st.tuples(
        _key,
        st.just(ARRAY),
        st.tuples(st.just(I16), st.lists(st.integers(-(2**15), 2**15 - 1), max_size=8)),
    ),
)
_tensor = st.tuples(
    _key,
    st.lists(st.integers(0, 2**40), max_size=4),
    st.sampled_from(list(GGMLType)),
    st.integers(0, 2**63),
)


@settings(max_examples=60)
@given(metadata=st.lists(_kv, max_size=6), tensors=st.lists(_tensor, max_size=6))
def test_property_round_trip(metadata, tensors):
    f = decode_gguf(build_gguf(metadata=metadata, tensors=tensors))
    assert len(f.entries) == len(metadata)
    for entry, (key, vtype, value) in zip(f.entries, metadata):
        assert entry.key == key
        assert entry.type == vtype
        expected = value[1] if vtype == ARRAY else value
        if vtype == BOOL:
            expected = bool(value)
        assert entry.value.to_python() == expected
    assert [(t.name, list(t.dims), t.ggml_type, t.offset) for t in f.tensors] == [
        (n, d, g, o) for n, d, g, o in tensors
    ]
