from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tlhandshake.tl.codec import (
    BOOL_FALSE_ID,
    BOOL_TRUE_ID,
    InvalidSizeError,
    ShortBufferError,
    TLCodecError,
    TLReader,
    TLWriter,
    UnexpectedConstructorError,
    dumps,
)
from tlhandshake.tl.types import ResPq


def _encode(fn_name: str, value: object) -> bytes:
    w = TLWriter()
    getattr(w, fn_name)(value)
    return w.to_bytes()


@given(st.integers(min_value=-(2**31), max_value=2**31 - 1))
def test_int_roundtrip(value: int) -> None:
    data = _encode("write_int", value)
    assert len(data) == 4
    r = TLReader(data)
    assert r.read_int() == value
    assert r.remaining == 0


@given(st.integers(min_value=-(2**63), max_value=2**63 - 1))
def test_long_roundtrip(value: int) -> None:
    data = _encode("write_long", value)
    assert len(data) == 8
    assert TLReader(data).read_long() == value


def test_int_is_little_endian() -> None:
    assert _encode("write_int", 1) == b"\x01\x00\x00\x00"
    assert _encode("write_int", -1) == b"\xff\xff\xff\xff"
    assert _encode("write_long", 0x0102030405060708) == bytes.fromhex("0807060504030201")


def test_int_out_of_range_is_rejected() -> None:
    with pytest.raises(TLCodecError):
        _encode("write_int", 2**31)
    with pytest.raises(TLCodecError):
        _encode("write_long", -(2**63) - 1)


def test_string_short_form_examples() -> None:
    assert _encode("write_string", "abc") == b"\x03abc"
    assert _encode("write_string", "A") == b"\x01A\x00\x00"
    assert _encode("write_string", "") == b"\x00\x00\x00\x00"


def test_string_long_form_header() -> None:
    data = _encode("write_bytes", b"\x07" * 254)
    assert data[:4] == b"\xfe\xfe\x00\x00"
    assert len(data) == 4 + 256
    assert data[-2:] == b"\x00\x00"
    assert TLReader(data).read_bytes() == b"\x07" * 254


@given(st.binary(max_size=700))
def test_bytes_encoded_length_and_roundtrip(value: bytes) -> None:
    data = _encode("write_bytes", value)
    n = len(value)
    header = 1 if n <= 253 else 4
    assert len(data) == 4 * (-(-(n + header) // 4))

    r = TLReader(data)
    assert r.read_bytes() == value
    assert r.remaining == 0


def test_bytes_rejects_marker_255() -> None:
    with pytest.raises(InvalidSizeError):
        TLReader(b"\xff\x00\x00\x00").read_bytes()


def test_bytes_short_buffer() -> None:
    # Declares 5 bytes, carries 2.
    with pytest.raises(ShortBufferError) as ei:
        TLReader(b"\x05ab").read_bytes()
    assert ei.value.needed == 5
    assert ei.value.remaining == 2


def test_bytes_missing_padding_is_short_buffer() -> None:
    with pytest.raises(ShortBufferError):
        TLReader(b"\x01A").read_bytes()


def test_short_reads_do_not_advance_past_end() -> None:
    r = TLReader(b"\x01\x02\x03")
    with pytest.raises(ShortBufferError):
        r.read_int()
    assert r.offset == 0
    with pytest.raises(ShortBufferError):
        TLReader(b"\x00" * 7).read_long()


def test_bigint_is_big_endian_inside_bytes() -> None:
    data = _encode("write_bigint", 0x010203)
    assert data == b"\x03\x01\x02\x03"
    assert TLReader(data).read_bigint() == 0x010203
    assert _encode("write_bigint", 0) == b"\x01\x00\x00\x00"


def test_bigint_rejects_negative() -> None:
    with pytest.raises(TLCodecError):
        _encode("write_bigint", -1)


def test_bool_constructors() -> None:
    assert _encode("write_bool", True) == BOOL_TRUE_ID.to_bytes(4, "little")
    assert _encode("write_bool", False) == BOOL_FALSE_ID.to_bytes(4, "little")
    assert TLReader(BOOL_TRUE_ID.to_bytes(4, "little")).read_bool() is True
    with pytest.raises(UnexpectedConstructorError):
        TLReader(b"\x00\x00\x00\x00").read_bool()


def test_fixed_width_values() -> None:
    w = TLWriter()
    w.write_value("int128", b"\x01" * 16)
    w.write_value("int256", b"\x02" * 32)
    r = TLReader(w.to_bytes())
    assert r.read_value("int128") == b"\x01" * 16
    assert r.read_value("int256") == b"\x02" * 32

    with pytest.raises(TLCodecError):
        TLWriter().write_value("int128", b"\x01" * 15)
    with pytest.raises(ShortBufferError):
        TLReader(b"\x00" * 31).read_value("int256")


@pytest.mark.parametrize("type_expr", ["lnog", "double", "int32", "Vector<lnog>"])
def test_unknown_bare_type_is_rejected(type_expr: str) -> None:
    r = TLReader((0x1CB5C415).to_bytes(4, "little") + b"\x01\x00\x00\x00" + b"\x00" * 8)
    with pytest.raises(TLCodecError, match="Unsupported type expression"):
        r.read_value(type_expr)


def test_boxed_type_reads_an_object() -> None:
    res_pq = ResPq(
        nonce=b"\x01" * 16,
        server_nonce=b"\x02" * 16,
        pq=bytes.fromhex("17ed48941a08f981"),
        server_public_key_fingerprints=[1],
    )
    r = TLReader(dumps(res_pq))
    assert r.read_value("ResPQ") == res_pq
    assert r.remaining == 0
