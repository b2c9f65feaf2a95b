from __future__ import annotations

from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tlhandshake.core.bytes import be_bytes_to_int, int_to_be_bytes
from tlhandshake.tl.codec import TLWriter

from .hashes import sha1
from .random import random_bytes


class RsaError(Exception):
    pass


def load_rsa_public_key(data: bytes) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from DER (SubjectPublicKeyInfo or PKCS#1) or PEM bytes.
    """

    try:
        if data.lstrip().startswith(b"-----BEGIN"):
            key = serialization.load_pem_public_key(data)
        else:
            key = serialization.load_der_public_key(data)
    except ValueError as e:
        raise RsaError("Unable to load RSA public key") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise RsaError("Not an RSA public key")
    return key


def fingerprint_of(key: rsa.RSAPublicKey) -> int:
    """
    Key fingerprint as sent in resPQ.server_public_key_fingerprints:
    the last 8 bytes of SHA1(TL bytes(n) + TL bytes(e)), read as a signed
    little-endian int64 (TL "long").
    """

    nums = key.public_numbers()
    w = TLWriter()
    w.write_bigint(nums.n)
    w.write_bigint(nums.e)
    return int.from_bytes(sha1(w.to_bytes())[-8:], "little", signed=True)


def rsa_encrypt_raw(key: rsa.RSAPublicKey, data: bytes) -> bytes:
    """
    Raw RSA encryption used for p_q_inner_data.

    The plaintext block is sha1(data) + data + random padding, sized to
    key_size_bytes - 1 so it is always below the modulus. The ciphertext is
    exactly key_size_bytes long.
    """

    numbers = key.public_numbers()
    k = (key.key_size + 7) // 8
    if k < 64:
        raise RsaError("RSA key too small")

    target_len = k - 1
    prefix = sha1(data) + data
    if len(prefix) > target_len:
        raise RsaError("Data too long for raw RSA padding")

    padded = prefix + random_bytes(target_len - len(prefix))
    c = pow(be_bytes_to_int(padded), numbers.e, numbers.n)
    return int_to_be_bytes(c, k)


@dataclass(frozen=True, slots=True)
class RsaPublicKey:
    """
    A trusted server key: matched by `fingerprint`, used to encrypt p_q_inner_data.
    """

    key: rsa.RSAPublicKey

    @classmethod
    def from_bytes(cls, data: bytes) -> RsaPublicKey:
        return cls(key=load_rsa_public_key(data))

    @property
    def fingerprint(self) -> int:
        return fingerprint_of(self.key)

    @property
    def key_size_bytes(self) -> int:
        return (self.key.key_size + 7) // 8

    def encrypt_raw(self, data: bytes) -> bytes:
        return rsa_encrypt_raw(self.key, data)
