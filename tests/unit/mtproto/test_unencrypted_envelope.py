from __future__ import annotations

import struct

import pytest

from tlhandshake.mtproto.core.unencrypted import (
    EncryptedFrameError,
    InvalidMsgIdError,
    LengthMismatchError,
    UnencryptedMessage,
    UnencryptedMessageError,
    unpack_unencrypted,
)
from tlhandshake.mtproto.transport.base import MalformedFrameError, ServerErrorFrameError
from tlhandshake.tl.codec import ShortBufferError


def _frame(
    *, auth_key_id: int = 0, msg_id: int = 5, length: int | None = None, body: bytes
) -> bytes:
    ln = len(body) if length is None else length
    return struct.pack("<QqI", auth_key_id, msg_id, ln) + body


def test_pack_layout() -> None:
    packed = UnencryptedMessage(msg_id=4, body=b"\x00\x00\x00\x00").pack()
    assert packed == b"\x00" * 8 + b"\x04" + b"\x00" * 7 + b"\x04\x00\x00\x00" + b"\x00" * 4


def test_pack_rejects_bad_client_msg_id() -> None:
    with pytest.raises(UnencryptedMessageError):
        UnencryptedMessage(msg_id=5, body=b"\x00" * 4).pack()


def test_unpack_server_message() -> None:
    out = unpack_unencrypted(_frame(msg_id=(1 << 32) | 1, body=b"\x01\x02\x03\x04"))
    assert out.msg_id == (1 << 32) | 1
    assert out.body == b"\x01\x02\x03\x04"


def test_unpack_accepts_msg_id_3_mod_4() -> None:
    assert unpack_unencrypted(_frame(msg_id=7, body=b"\x00" * 4)).msg_id == 7


@pytest.mark.parametrize(
    ("frame", "code"),
    [(b"\xff\xff\xff\xff", -1), (struct.pack("<i", -404), -404), (struct.pack("<i", -429), -429)],
)
def test_four_byte_frame_is_server_error(frame: bytes, code: int) -> None:
    with pytest.raises(ServerErrorFrameError) as ei:
        unpack_unencrypted(frame)
    assert ei.value.code == code


@pytest.mark.parametrize("size", [0, 1, 3, 5, 8])
def test_tiny_frames_are_malformed(size: int) -> None:
    with pytest.raises(MalformedFrameError) as ei:
        unpack_unencrypted(b"\x00" * size)
    assert not isinstance(ei.value, ServerErrorFrameError)


def test_truncated_header_is_short_buffer() -> None:
    with pytest.raises(ShortBufferError):
        unpack_unencrypted(b"\x00" * 12)


def test_unpack_rejects_nonzero_auth_key_id() -> None:
    with pytest.raises(EncryptedFrameError) as ei:
        unpack_unencrypted(_frame(auth_key_id=1, body=b"\x00" * 4))
    assert ei.value.auth_key_id == 1


@pytest.mark.parametrize("declared", [0, 8, 100])
def test_unpack_rejects_length_mismatch(declared: int) -> None:
    with pytest.raises(LengthMismatchError) as ei:
        unpack_unencrypted(_frame(length=declared, body=b"\x00" * 4))
    assert ei.value.declared == declared
    assert ei.value.actual == 4


@pytest.mark.parametrize("msg_id", [4, 6, 8])
def test_unpack_rejects_client_style_msg_id(msg_id: int) -> None:
    with pytest.raises(InvalidMsgIdError):
        unpack_unencrypted(_frame(msg_id=msg_id, body=b"\x00" * 4))
