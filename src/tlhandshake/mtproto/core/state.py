from __future__ import annotations

import enum
from dataclasses import dataclass, field

from tlhandshake.mtproto.core.msg_id import MsgIdGenerator
from tlhandshake.mtproto.crypto.hashes import sha1


class SessionStateError(Exception):
    pass


class HandshakeStage(enum.Enum):
    INIT = "init"
    AWAITING_PQ = "awaiting_pq"
    PQ_RECEIVED = "pq_received"
    DH_REQUESTED = "dh_requested"
    DH_PARAMS_RECEIVED = "dh_params_received"
    CLIENT_DH_SENT = "client_dh_sent"
    COMPLETE = "complete"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (HandshakeStage.COMPLETE, HandshakeStage.ABORTED)


def auth_key_id_u64(auth_key: bytes) -> int:
    """
    auth_key_id: last 8 bytes of SHA1(auth_key), interpreted as uint64 LE.
    """

    return int.from_bytes(sha1(auth_key)[-8:], "little", signed=False)


@dataclass(slots=True)
class Session:
    """
    Protocol state for one connection attempt.

    Filled in stage by stage by the handshake engine; holds no I/O handles.
    Values sent as TL int128/int256 are kept as bytes, DH numbers as ints.
    """

    msg_id_gen: MsgIdGenerator = field(default_factory=MsgIdGenerator)
    stage: HandshakeStage = HandshakeStage.INIT

    nonce: bytes | None = None  # int128
    server_nonce: bytes | None = None  # int128
    new_nonce: bytes | None = None  # int256

    pq: int | None = None
    p: int | None = None
    q: int | None = None
    public_key_fingerprint: int | None = None

    dh_prime: int | None = None
    g: int | None = None
    g_a: int | None = None  # server public value
    b: int | None = None  # client private exponent
    g_b: int | None = None  # client public value
    retry_id: int = 0
    server_time: int | None = None

    auth_key: bytes | None = None
    server_salt: bytes | None = None  # 8 bytes (little-endian)
    _seq: int = 0

    @property
    def auth_key_id(self) -> int:
        if self.auth_key is None:
            raise SessionStateError("auth_key is not established")
        return auth_key_id_u64(self.auth_key)

    @property
    def established(self) -> bool:
        return self.stage is HandshakeStage.COMPLETE and self.auth_key is not None

    def next_msg_id(self) -> int:
        return self.msg_id_gen.next()

    def next_seq_no(self, *, content_related: bool) -> int:
        if content_related:
            out = self._seq * 2 + 1
            self._seq += 1
            return out
        return self._seq * 2

    def require(self, name: str) -> bytes:
        """Return a nonce field that must already be set at this point."""

        value = getattr(self, name)
        if not isinstance(value, bytes):
            raise SessionStateError(f"{name} is not set (stage={self.stage.value})")
        return value
