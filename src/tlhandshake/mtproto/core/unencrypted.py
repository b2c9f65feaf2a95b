from __future__ import annotations

import struct
from dataclasses import dataclass

from tlhandshake.mtproto.transport.base import MalformedFrameError, ServerErrorFrameError
from tlhandshake.tl.codec import TLReader

HEADER_LEN = 8 + 8 + 4  # auth_key_id + msg_id + length
_ERROR_FRAME_LEN = 4
_MIN_FRAME_LEN = 8


class UnencryptedMessageError(MalformedFrameError):
    pass


class LengthMismatchError(UnencryptedMessageError):
    def __init__(self, declared: int, actual: int) -> None:
        super().__init__(f"Declared body length {declared} does not match frame ({actual})")
        self.declared = declared
        self.actual = actual


class InvalidMsgIdError(UnencryptedMessageError):
    def __init__(self, msg_id: int) -> None:
        super().__init__(f"Server msg_id has invalid low bits: {msg_id} (mod 4 = {msg_id % 4})")
        self.msg_id = msg_id


class EncryptedFrameError(UnencryptedMessageError):
    """A frame with a non-zero auth_key_id; decryption belongs to the encrypted layer."""

    def __init__(self, auth_key_id: int) -> None:
        super().__init__(f"Encrypted frame (auth_key_id={auth_key_id:#018x}) during key exchange")
        self.auth_key_id = auth_key_id


@dataclass(frozen=True, slots=True)
class UnencryptedMessage:
    msg_id: int
    body: bytes  # TL-serialized payload (e.g. ReqPq)

    def pack(self) -> bytes:
        # auth_key_id=0 (8 bytes), then msg_id (8), then length (4), then body
        if self.msg_id % 4 != 0:
            raise UnencryptedMessageError("client msg_id must be divisible by 4")
        if len(self.body) % 4 != 0:
            raise UnencryptedMessageError("body length must be divisible by 4")
        return (
            struct.pack("<q", 0)
            + struct.pack("<q", int(self.msg_id))
            + struct.pack("<i", len(self.body))
            + self.body
        )


def check_error_frame(data: bytes) -> None:
    """
    Raise for frames that cannot carry a message at all.

    A 4-byte frame is the server's int32 error code; anything else of 8 bytes
    or less is malformed.
    """

    if len(data) == _ERROR_FRAME_LEN:
        raise ServerErrorFrameError(struct.unpack("<i", data)[0])
    if len(data) <= _MIN_FRAME_LEN:
        raise MalformedFrameError(f"Frame too small: {len(data)} bytes")


def unpack_unencrypted(data: bytes) -> UnencryptedMessage:
    """
    Parse a received unencrypted frame payload.

    Validates the declared length against the frame size and requires the
    server msg_id to be 1 or 3 mod 4. Codec errors (e.g. ShortBufferError for a
    truncated header) propagate unchanged.
    """

    check_error_frame(data)
    r = TLReader(data)
    auth_key_id = r.read_ulong()
    if auth_key_id != 0:
        raise EncryptedFrameError(auth_key_id)
    msg_id = r.read_long()
    ln = r.read_int()
    if ln != len(data) - HEADER_LEN:
        raise LengthMismatchError(ln, len(data) - HEADER_LEN)
    if msg_id % 4 not in (1, 3):
        raise InvalidMsgIdError(msg_id)
    return UnencryptedMessage(msg_id=msg_id, body=r.read_rest())
