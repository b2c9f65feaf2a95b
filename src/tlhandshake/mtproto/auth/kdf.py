from __future__ import annotations

from tlhandshake.core.bytes import xor_bytes
from tlhandshake.mtproto.crypto.hashes import sha1

NEW_NONCE_LEN = 32
SERVER_NONCE_LEN = 16


class KdfError(Exception):
    pass


def _check_len(name: str, value: bytes, expected: int) -> None:
    if len(value) != expected:
        raise KdfError(f"{name} must be {expected} bytes, got {len(value)}")


def tmp_aes_key_iv(*, new_nonce: bytes, server_nonce: bytes) -> tuple[bytes, bytes]:
    """
    Key and iv protecting server_DH_inner_data and client_DH_inner_data.

    With ns = sha1(new_nonce + server_nonce), sn = sha1(server_nonce + new_nonce)
    and nn = sha1(new_nonce + new_nonce):

        key = ns + sn[:12]
        iv  = sn[12:] + nn + new_nonce[:4]
    """

    _check_len("new_nonce", new_nonce, NEW_NONCE_LEN)
    _check_len("server_nonce", server_nonce, SERVER_NONCE_LEN)

    ns = sha1(new_nonce + server_nonce)
    sn = sha1(server_nonce + new_nonce)
    nn = sha1(new_nonce + new_nonce)
    return ns + sn[:12], sn[12:] + nn + new_nonce[:4]


def server_salt(*, new_nonce: bytes, server_nonce: bytes) -> bytes:
    """First salt of the session: new_nonce[:8] XOR server_nonce[:8]."""

    if len(new_nonce) < 8 or len(server_nonce) < 8:
        raise KdfError("nonces too short")
    return xor_bytes(new_nonce[:8], server_nonce[:8])


def auth_key_aux_hash(auth_key: bytes) -> bytes:
    return sha1(auth_key)[:8]


def retry_id(auth_key: bytes) -> int:
    """retry_id for client_DH_inner_data after dh_gen_retry: aux hash of the rejected key."""

    return int.from_bytes(auth_key_aux_hash(auth_key), "little", signed=True)


def new_nonce_hash(*, new_nonce: bytes, auth_key: bytes, number: int) -> bytes:
    """
    Hash carried by dh_gen_ok (1), dh_gen_retry (2) and dh_gen_fail (3):
    bytes 4..20 of sha1(new_nonce + [number] + auth_key_aux_hash).
    """

    if number not in (1, 2, 3):
        raise KdfError(f"new_nonce_hash number must be 1, 2 or 3, got {number}")
    _check_len("new_nonce", new_nonce, NEW_NONCE_LEN)
    return sha1(new_nonce + bytes([number]) + auth_key_aux_hash(auth_key))[4:]


def params_fail_hash(new_nonce: bytes) -> bytes:
    """server_DH_params_fail.new_nonce_hash: last 16 bytes of sha1(new_nonce)."""

    _check_len("new_nonce", new_nonce, NEW_NONCE_LEN)
    return sha1(new_nonce)[-16:]
