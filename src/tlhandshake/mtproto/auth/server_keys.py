from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from tlhandshake.mtproto.crypto.rsa import RsaPublicKey


def to_signed_fingerprint(fp: int) -> int:
    """
    Normalize a fingerprint to the signed TL "long" form used on the wire.

    Unsigned values such as 14101943622620965665 map to their two's complement.
    """

    fp = int(fp)
    if not -(1 << 63) <= fp < (1 << 64):
        raise ValueError(f"fingerprint out of 64-bit range: {fp}")
    return fp - (1 << 64) if fp >= (1 << 63) else fp


@dataclass(frozen=True, slots=True)
class ServerKeyRing:
    """
    Trusted server RSA public keys for the auth key exchange.

    Fingerprints are stored as **signed int64**, matching TL "long" decoding.
    """

    keys_by_fingerprint: dict[int, RsaPublicKey]

    @classmethod
    def from_keys(cls, keys: Iterable[RsaPublicKey]) -> ServerKeyRing:
        return cls(keys_by_fingerprint={k.fingerprint: k for k in keys})

    @property
    def fingerprints(self) -> frozenset[int]:
        return frozenset(self.keys_by_fingerprint)

    def restrict(self, fingerprints: Iterable[int]) -> ServerKeyRing:
        """Keep only keys whose fingerprint is listed (signed or unsigned form)."""

        allowed = {to_signed_fingerprint(fp) for fp in fingerprints}
        return ServerKeyRing(
            keys_by_fingerprint={
                fp: k for fp, k in self.keys_by_fingerprint.items() if fp in allowed
            }
        )

    def select(self, server_fingerprints: list[int]) -> RsaPublicKey | None:
        """First trusted key in the server's order, or None."""

        for fp in server_fingerprints:
            key = self.keys_by_fingerprint.get(to_signed_fingerprint(fp))
            if key is not None:
                return key
        return None


DEFAULT_RSA_PEM = b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAwVACPi9w23mF3tBkdZz+zwrzKOaaQdr01vAbU4E1pvkfj4sqDsm6
lyDONS789sVoD/xCS9Y0hkkC3gtL1tSfTlgCMOOul9lcixlEKzwKENj1Yz/s7daS
an9tqw3bfUV/nqgbhGX81v/+7RFAEd+RwFnK7a+XYl9sluzHRyVVaTTveB2GazTw
Efzk2DWgkBluml8OREmvfraX3bkHZJTKX4EQSjBbbdJ2ZXIsRrYOXfaA+xayEGB+
8hdlLmAjbCVfaigxX0CDqWeR1yFL9kwd9P0NsZRPsmoqVwMbMu7mStFai6aIhc3n
Slv8kg9qv1m6XHVQY3PnEw+QQtqSIXklHwIDAQAB
-----END RSA PUBLIC KEY-----
"""

# Unsigned form: 0xc3b42b026ce86b21 (14101943622620965665).
DEFAULT_FINGERPRINT = to_signed_fingerprint(0xC3B42B026CE86B21)


def default_server_keyring() -> ServerKeyRing:
    return ServerKeyRing.from_keys([RsaPublicKey.from_bytes(DEFAULT_RSA_PEM)])
