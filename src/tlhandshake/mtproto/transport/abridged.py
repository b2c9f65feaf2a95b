from __future__ import annotations

from dataclasses import dataclass

from .base import MalformedFrameError, TransportError

_LONG_MARKER = 0x7F
_MAX_WORDS = 1 << 24


def _encode_header(words: int) -> bytes:
    if words < _LONG_MARKER:
        return bytes([words])
    if words >= _MAX_WORDS:
        raise TransportError(f"Payload too large for abridged framing ({words} words)")
    return bytes([_LONG_MARKER]) + words.to_bytes(3, "little")


def _peek_header(buffer: bytearray) -> tuple[int, int] | None:
    """Return (header_len, words) once the whole length prefix is buffered."""

    if not buffer:
        return None
    first = buffer[0]
    if first < _LONG_MARKER:
        return 1, first
    if first > _LONG_MARKER:
        # High bit set: quick-ack marker, never requested by this client.
        raise MalformedFrameError(f"Unexpected abridged length prefix: {first:#04x}")
    if len(buffer) < 4:
        return None
    return 4, int.from_bytes(buffer[1:4], "little")


@dataclass(frozen=True, slots=True)
class AbridgedFraming:
    """
    Abridged TCP framing, announced by a single 0xef byte after connecting.

    Each frame is a length prefix counted in 4-byte words followed by the
    payload: one byte when the count is below 0x7f, otherwise 0x7f and a
    3-byte little-endian count. Both directions use the same word count.
    """

    CONNECT_HEADER: bytes = b"\xef"

    def encode(self, payload: bytes) -> bytes:
        words, rem = divmod(len(payload), 4)
        if rem:
            raise TransportError(
                f"Abridged payload must be a multiple of 4 bytes, got {len(payload)}"
            )
        return _encode_header(words) + payload

    def decode_from_buffer(self, buffer: bytearray) -> bytes | None:
        header = _peek_header(buffer)
        if header is None:
            return None
        header_len, words = header
        end = header_len + words * 4
        if len(buffer) < end:
            return None
        payload = bytes(buffer[header_len:end])
        del buffer[:end]
        return payload
