from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from tlhandshake.mtproto.auth.server_keys import (
    DEFAULT_FINGERPRINT,
    ServerKeyRing,
    default_server_keyring,
    to_signed_fingerprint,
)
from tlhandshake.mtproto.crypto.rsa import RsaPublicKey


def test_to_signed_fingerprint() -> None:
    assert to_signed_fingerprint(14101943622620965665) == -4344800451088585951
    assert to_signed_fingerprint(-4344800451088585951) == -4344800451088585951
    assert to_signed_fingerprint(5) == 5
    with pytest.raises(ValueError):
        to_signed_fingerprint(1 << 64)


def test_default_keyring_fingerprint() -> None:
    ring = default_server_keyring()
    assert ring.fingerprints == frozenset({DEFAULT_FINGERPRINT})
    assert DEFAULT_FINGERPRINT == -4344800451088585951


def test_select_uses_server_order(server_private_key: rsa.RSAPrivateKey) -> None:
    mine = RsaPublicKey(key=server_private_key.public_key())
    ring = ServerKeyRing.from_keys([mine, *default_server_keyring().keys_by_fingerprint.values()])

    assert ring.select([123, mine.fingerprint, DEFAULT_FINGERPRINT]) is mine
    picked = ring.select([DEFAULT_FINGERPRINT, mine.fingerprint])
    assert picked is not None
    assert picked.fingerprint == DEFAULT_FINGERPRINT
    assert ring.select([1, 2, 3]) is None
    assert ring.select([]) is None


def test_restrict_accepts_unsigned_form() -> None:
    ring = default_server_keyring()
    assert ring.restrict([0xC3B42B026CE86B21]).fingerprints == ring.fingerprints
    assert ring.restrict([42]).fingerprints == frozenset()
