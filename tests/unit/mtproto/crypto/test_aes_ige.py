from __future__ import annotations

import pytest

from tlhandshake.mtproto.crypto.aes_ige import AesIge, AesIgeError


def test_encrypt_decrypt_roundtrip() -> None:
    key = bytes.fromhex("00" * 32)
    iv = bytes.fromhex("11" * 32)
    data = bytes(range(64))
    aes = AesIge(key=key, iv=iv)
    ct = aes.encrypt(data)
    assert ct != data
    assert len(ct) == len(data)
    assert aes.decrypt(ct) == data


def test_blocks_are_chained() -> None:
    aes = AesIge(key=b"\x01" * 32, iv=b"\x02" * 32)
    ct = aes.encrypt(b"\x00" * 32)
    # Identical plaintext blocks must not give identical ciphertext blocks.
    assert ct[:16] != ct[16:]


def test_iv_changes_output() -> None:
    data = b"\x00" * 16
    a = AesIge(key=b"\x01" * 32, iv=b"\x02" * 32).encrypt(data)
    b = AesIge(key=b"\x01" * 32, iv=b"\x03" * 32).encrypt(data)
    assert a != b


def test_rejects_bad_sizes() -> None:
    with pytest.raises(AesIgeError):
        AesIge(key=b"\x00" * 16, iv=b"\x00" * 32)
    with pytest.raises(AesIgeError):
        AesIge(key=b"\x00" * 32, iv=b"\x00" * 16)
    with pytest.raises(AesIgeError):
        AesIge(key=b"\x00" * 32, iv=b"\x00" * 32).encrypt(b"\x00" * 15)
    with pytest.raises(AesIgeError):
        AesIge(key=b"\x00" * 32, iv=b"\x00" * 32).decrypt(b"\x00" * 17)
