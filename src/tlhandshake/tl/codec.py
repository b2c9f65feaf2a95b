from __future__ import annotations

import struct
from typing import Any

from tlhandshake.core.bytes import BytesError, align_length, be_bytes_to_int, int_to_be_bytes

from .registry import get_constructor
from .types import UnknownConstructor

VECTOR_CONSTRUCTOR_ID = 0x1CB5C415
BOOL_TRUE_ID = 0x997275B5
BOOL_FALSE_ID = 0xBC799737

_LONG_STRING_MARKER = 254


class TLCodecError(Exception):
    pass


class ShortBufferError(TLCodecError):
    """A read needs more bytes than remain in the buffer."""

    def __init__(self, needed: int, remaining: int, *, what: str = "value") -> None:
        super().__init__(f"Short buffer reading {what}: need {needed} bytes, have {remaining}")
        self.needed = needed
        self.remaining = remaining


class InvalidSizeError(TLCodecError):
    """A declared length or count is not acceptable."""


class UnexpectedConstructorError(TLCodecError):
    """A constructor id was read where a different one was required."""

    def __init__(self, got: int, *, expected: int | None = None, what: str = "value") -> None:
        if expected is None:
            msg = f"Unexpected constructor {got:#010x} for {what}"
        else:
            msg = f"Unexpected constructor {got:#010x} for {what} (expected {expected:#010x})"
        super().__init__(msg)
        self.got = got
        self.expected = expected


def _pad4(n: int) -> int:
    return align_length(n, 4)


def _pack(fmt: str, value: int, what: str) -> bytes:
    try:
        return struct.pack(fmt, value)
    except struct.error as e:
        raise TLCodecError(f"{what} out of range: {value!r}") from e


class TLWriter:
    __slots__ = ("_buf",)

    def __init__(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def write_int(self, value: int) -> None:
        self._buf += _pack("<i", int(value), "int")

    def write_uint(self, value: int) -> None:
        self._buf += _pack("<I", int(value), "uint")

    def write_long(self, value: int) -> None:
        self._buf += _pack("<q", int(value), "long")

    def write_ulong(self, value: int) -> None:
        self._buf += _pack("<Q", int(value), "ulong")

    def write_raw(self, data: bytes) -> None:
        self._buf += data

    def write_bytes(self, data: bytes) -> None:
        ln = len(data)
        if ln < _LONG_STRING_MARKER:
            self._buf.append(ln)
            self._buf += data
            self._buf += b"\x00" * _pad4(1 + ln)
            return
        if ln >= 1 << 24:
            raise TLCodecError("bytes value too long for TL encoding")

        self._buf.append(_LONG_STRING_MARKER)
        self._buf += ln.to_bytes(3, "little")
        self._buf += data
        self._buf += b"\x00" * _pad4(4 + ln)

    def write_string(self, value: str | bytes | bytearray) -> None:
        if isinstance(value, (bytes, bytearray)):
            self.write_bytes(bytes(value))
            return
        if isinstance(value, str):
            self.write_bytes(value.encode("utf-8"))
            return
        raise TLCodecError("string value must be str/bytes/bytearray")

    def write_bigint(self, value: int) -> None:
        """Big-endian unsigned magnitude, TL bytes-encoded."""

        try:
            self.write_bytes(int_to_be_bytes(value))
        except BytesError as e:
            raise TLCodecError("bigint must be non-negative") from e

    def write_bool(self, value: bool) -> None:
        self.write_uint(BOOL_TRUE_ID if value else BOOL_FALSE_ID)

    def write_long_vector(self, values: list[int]) -> None:
        self.write_uint(VECTOR_CONSTRUCTOR_ID)
        self.write_int(len(values))
        for v in values:
            self.write_long(v)

    def write_object(self, obj: Any) -> None:
        tl_id = getattr(obj, "TL_ID", None)
        if not isinstance(tl_id, int) or tl_id == 0:
            raise TLCodecError(f"Object has invalid TL_ID: {obj!r}")
        self.write_uint(tl_id)
        for field, type_expr in obj.TL_PARAMS:
            self.write_value(type_expr, getattr(obj, field))

    def write_value(self, type_expr: str, value: Any) -> None:
        type_expr = type_expr.strip()
        if type_expr == "int":
            self.write_int(int(value))
            return
        if type_expr == "long":
            self.write_long(int(value))
            return
        if type_expr in ("int128", "int256"):
            size = 16 if type_expr == "int128" else 32
            if isinstance(value, int):
                value = int(value).to_bytes(size, "little", signed=False)
            if not isinstance(value, (bytes, bytearray)) or len(value) != size:
                raise TLCodecError(f"{type_expr} must be {size} bytes")
            self._buf += bytes(value)
            return
        if type_expr == "string":
            self.write_string(value)
            return
        if type_expr == "bytes":
            if not isinstance(value, (bytes, bytearray)):
                raise TLCodecError("bytes value must be bytes/bytearray")
            self.write_bytes(bytes(value))
            return
        if type_expr == "Bool":
            self.write_bool(bool(value))
            return
        if type_expr.startswith("Vector<") and type_expr.endswith(">"):
            inner = type_expr[len("Vector<") : -1].strip()
            if not isinstance(value, list):
                raise TLCodecError("Vector value must be a list")
            self.write_uint(VECTOR_CONSTRUCTOR_ID)
            self.write_int(len(value))
            for item in value:
                self.write_value(inner, item)
            return

        if hasattr(value, "TL_ID"):
            self.write_object(value)
            return
        raise TLCodecError(f"Unsupported type expression: {type_expr!r}")


class TLReader:
    """
    Bounds-checked reader over an immutable buffer.

    Each reader owns its cursor; create one per decode.
    """

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _read(self, n: int, what: str = "value") -> bytes:
        if n < 0:
            raise InvalidSizeError(f"Negative size reading {what}: {n}")
        if n > self.remaining:
            raise ShortBufferError(n, self.remaining, what=what)
        out = self._data[self._pos : self._pos + n]
        self._pos += n
        return out

    def read_raw(self, n: int) -> bytes:
        return self._read(n, "raw bytes")

    def read_rest(self) -> bytes:
        return self._read(self.remaining, "rest")

    def read_int(self) -> int:
        return int(struct.unpack("<i", self._read(4, "int"))[0])

    def read_uint(self) -> int:
        return int(struct.unpack("<I", self._read(4, "uint"))[0])

    def read_long(self) -> int:
        return int(struct.unpack("<q", self._read(8, "long"))[0])

    def read_ulong(self) -> int:
        return int(struct.unpack("<Q", self._read(8, "ulong"))[0])

    def read_bytes(self) -> bytes:
        first = self._read(1, "bytes length")[0]
        if first < _LONG_STRING_MARKER:
            ln = first
            data = self._read(ln, "bytes payload")
            self._read(_pad4(1 + ln), "bytes padding")
            return data
        if first != _LONG_STRING_MARKER:
            raise InvalidSizeError(f"Invalid bytes length marker: {first}")
        ln = int.from_bytes(self._read(3, "bytes length"), "little")
        data = self._read(ln, "bytes payload")
        self._read(_pad4(4 + ln), "bytes padding")
        return data

    def read_string(self) -> bytes:
        # TL "string" has the same wire form as "bytes"; decoding text is up to the caller.
        return self.read_bytes()

    def read_bigint(self) -> int:
        return be_bytes_to_int(self.read_bytes())

    def read_bool(self) -> bool:
        cid = self.read_uint()
        if cid == BOOL_TRUE_ID:
            return True
        if cid == BOOL_FALSE_ID:
            return False
        raise UnexpectedConstructorError(cid, what="Bool")

    def _read_vector_header(self, what: str) -> int:
        cid = self.read_uint()
        if cid != VECTOR_CONSTRUCTOR_ID:
            raise UnexpectedConstructorError(cid, expected=VECTOR_CONSTRUCTOR_ID, what=what)
        return self.read_int()

    def read_long_vector(self) -> list[int]:
        count = self._read_vector_header("Vector<long>")
        if count <= 0:
            raise InvalidSizeError(f"Invalid Vector<long> count: {count}")
        if count * 8 > self.remaining:
            raise ShortBufferError(count * 8, self.remaining, what="Vector<long> items")
        return [self.read_long() for _ in range(count)]

    def read_value(self, type_expr: str) -> Any:
        type_expr = type_expr.strip()
        if type_expr == "int":
            return self.read_int()
        if type_expr == "long":
            return self.read_long()
        if type_expr == "int128":
            return self._read(16, "int128")
        if type_expr == "int256":
            return self._read(32, "int256")
        if type_expr in ("string", "bytes"):
            return self.read_bytes()
        if type_expr == "Bool":
            return self.read_bool()
        if type_expr == "Vector<long>":
            return self.read_long_vector()
        if type_expr.startswith("Vector<") and type_expr.endswith(">"):
            inner = type_expr[len("Vector<") : -1].strip()
            count = self._read_vector_header(type_expr)
            if count < 0:
                raise InvalidSizeError(f"Negative {type_expr} count: {count}")
            return [self.read_value(inner) for _ in range(count)]
        if not type_expr[:1].isupper():
            # Bare (lowercase) names are primitives; only boxed types carry an id.
            raise TLCodecError(f"Unsupported type expression: {type_expr!r}")
        return self.read_object()

    def read_object(self) -> Any:
        """
        Read a constructor id and its fields.

        Unregistered ids yield `UnknownConstructor` holding the rest of the buffer.
        Field decoding stops at the first error; no partial object is returned.
        """

        cid = self.read_uint()
        cls = get_constructor(cid)
        if cls is None:
            return UnknownConstructor(constructor_id=cid, data=self.read_rest())

        kwargs: dict[str, Any] = {}
        for field, type_expr in cls.TL_PARAMS:
            kwargs[field] = self.read_value(type_expr)
        return cls(**kwargs)


def dumps(obj: Any) -> bytes:
    w = TLWriter()
    w.write_object(obj)
    return w.to_bytes()


def loads(data: bytes) -> Any:
    return TLReader(data).read_object()


def loads_prefix(data: bytes) -> tuple[Any, int]:
    """Decode one object from the start of `data`; also return the bytes consumed."""

    r = TLReader(data)
    obj = r.read_object()
    return obj, r.offset
