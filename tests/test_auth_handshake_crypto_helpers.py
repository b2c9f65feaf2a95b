from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from tlhandshake.mtproto.auth.handshake import (
    AuthHandshakeError,
    UnexpectedResponseError,
    build_pq_inner_data,
    decrypt_server_dh_inner,
    encrypt_client_dh_inner,
    rsa_encrypt_inner_data,
)
from tlhandshake.mtproto.auth.kdf import tmp_aes_key_iv
from tlhandshake.mtproto.crypto.aes_ige import AesIge
from tlhandshake.mtproto.crypto.hashes import sha1
from tlhandshake.mtproto.crypto.rsa import RsaPublicKey
from tlhandshake.tl.codec import dumps, loads_prefix
from tlhandshake.tl.types import (
    ClientDhInnerData,
    DhGenOk,
    PQInnerData,
    ResPq,
    ServerDhInnerData,
    ServerDhParamsOk,
)

NEW_NONCE = b"\x11" * 32
NONCE = b"\x01" * 16
SERVER_NONCE = b"\x02" * 16


def _encrypt_answer(plaintext: bytes) -> ServerDhParamsOk:
    key, iv = tmp_aes_key_iv(new_nonce=NEW_NONCE, server_nonce=SERVER_NONCE)
    return ServerDhParamsOk(
        nonce=NONCE,
        server_nonce=SERVER_NONCE,
        encrypted_answer=AesIge(key=key, iv=iv).encrypt(plaintext),
    )


def _pad16(data: bytes, fill: bytes = b"\x00") -> bytes:
    return data + fill * ((-len(data)) % 16)


def _server_inner() -> ServerDhInnerData:
    return ServerDhInnerData(
        nonce=NONCE,
        server_nonce=SERVER_NONCE,
        g=3,
        dh_prime=b"\x03" * 64,
        g_a=b"\x04" * 64,
        server_time=123456,
    )


def test_decrypt_server_dh_inner_strips_sha1_prefix() -> None:
    inner = _server_inner()
    data = dumps(inner)
    out = decrypt_server_dh_inner(_encrypt_answer(_pad16(sha1(data) + data)), new_nonce=NEW_NONCE)
    assert out == inner


def test_decrypt_server_dh_inner_rejects_bad_hash() -> None:
    data = dumps(_server_inner())
    answer = _encrypt_answer(_pad16(b"\x00" * 20 + data))
    with pytest.raises(AuthHandshakeError, match="sha1"):
        decrypt_server_dh_inner(answer, new_nonce=NEW_NONCE)


def test_decrypt_server_dh_inner_rejects_long_padding() -> None:
    data = dumps(_server_inner())
    plain = _pad16(sha1(data) + data) + b"\x00" * 16
    with pytest.raises(AuthHandshakeError, match="padding"):
        decrypt_server_dh_inner(_encrypt_answer(plain), new_nonce=NEW_NONCE)


def test_decrypt_server_dh_inner_rejects_other_constructor() -> None:
    other = dumps(DhGenOk(nonce=NONCE, server_nonce=SERVER_NONCE, new_nonce_hash1=b"\x00" * 16))
    with pytest.raises(UnexpectedResponseError):
        decrypt_server_dh_inner(
            _encrypt_answer(_pad16(sha1(other) + other)), new_nonce=NEW_NONCE
        )


def test_encrypt_client_dh_inner_roundtrip() -> None:
    inner = ClientDhInnerData(
        nonce=NONCE, server_nonce=SERVER_NONCE, retry_id=0, g_b=b"\x05" * 256
    )
    ct = encrypt_client_dh_inner(inner, new_nonce=NEW_NONCE, server_nonce=SERVER_NONCE)
    assert len(ct) % 16 == 0

    key, iv = tmp_aes_key_iv(new_nonce=NEW_NONCE, server_nonce=SERVER_NONCE)
    plain = AesIge(key=key, iv=iv).decrypt(ct)
    obj, consumed = loads_prefix(plain[20:])
    assert obj == inner
    assert plain[:20] == sha1(plain[20 : 20 + consumed])


def test_build_pq_inner_data_echoes_nonces() -> None:
    res_pq = ResPq(
        nonce=NONCE,
        server_nonce=SERVER_NONCE,
        pq=bytes.fromhex("17ed48941a08f981"),
        server_public_key_fingerprints=[1],
    )
    inner = build_pq_inner_data(res_pq, p=0x494C553B, q=0x53911073, new_nonce=NEW_NONCE)
    assert inner.pq == res_pq.pq
    assert (inner.p, inner.q) == (bytes.fromhex("494c553b"), bytes.fromhex("53911073"))
    assert (inner.nonce, inner.server_nonce, inner.new_nonce) == (NONCE, SERVER_NONCE, NEW_NONCE)


def test_rsa_encrypt_inner_data_uses_raw_padding(server_private_key: rsa.RSAPrivateKey) -> None:
    key = RsaPublicKey(key=server_private_key.public_key())
    inner = PQInnerData(
        pq=b"\x01\x43",
        p=b"\x11",
        q=b"\x13",
        nonce=NONCE,
        server_nonce=SERVER_NONCE,
        new_nonce=b"\x03" * 32,
    )

    ct = rsa_encrypt_inner_data(inner, key)
    assert len(ct) == key.key_size_bytes

    priv = server_private_key.private_numbers()
    m_bytes = pow(int.from_bytes(ct, "big"), priv.d, priv.public_numbers.n).to_bytes(
        len(ct), "big"
    )

    assert m_bytes[0] == 0
    padded = m_bytes[1:]
    inner_bytes = dumps(inner)
    assert padded[:20] == sha1(inner_bytes)
    assert padded[20 : 20 + len(inner_bytes)] == inner_bytes
