from __future__ import annotations


class BytesError(Exception):
    pass


def xor_bytes(a: bytes, b: bytes) -> bytes:
    if len(a) != len(b):
        raise BytesError("xor_bytes requires equal-length inputs")
    return bytes(x ^ y for x, y in zip(a, b, strict=True))


def be_bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big", signed=False)


def int_to_be_bytes(n: int, length: int | None = None) -> bytes:
    """
    Big-endian unsigned encoding of `n`.

    Without `length` the shortest form is used (at least one byte).
    """

    if n < 0:
        raise BytesError("negative int")
    if length is None:
        length = (n.bit_length() + 7) // 8 or 1
    try:
        return n.to_bytes(length, "big", signed=False)
    except OverflowError as e:
        raise BytesError(f"int does not fit in {length} bytes") from e


def align_length(n: int, multiple: int) -> int:
    if multiple <= 0:
        raise BytesError("multiple must be > 0")
    return (-n) % multiple
