from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class TransportError(Exception):
    pass


class MalformedFrameError(TransportError):
    """A frame that cannot be a valid message (too short, bad prefix)."""


class ServerErrorFrameError(TransportError):
    """
    The server sent a 4-byte frame: a signed int32 error code instead of a message
    (e.g. -404 for an unknown auth key, -429 for flood).
    """

    def __init__(self, code: int) -> None:
        super().__init__(f"Server returned transport error code {code}")
        self.code = code


class Framing(Protocol):
    """
    Transport framing is responsible only for:
    - turning raw packet bytes into framed bytes (encode)
    - reading framed bytes and extracting a raw packet (decode)
    """

    CONNECT_HEADER: bytes

    def encode(self, payload: bytes) -> bytes: ...
    def decode_from_buffer(self, buffer: bytearray) -> bytes | None: ...


class PacketTransport(Protocol):
    async def send(self, payload: bytes) -> None: ...
    async def recv(self) -> bytes: ...


@dataclass(frozen=True, slots=True)
class Endpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"
