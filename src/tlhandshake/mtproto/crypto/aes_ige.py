from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tlhandshake.core.bytes import xor_bytes

BLOCK_SIZE = 16


class AesIgeError(Exception):
    pass


def _ige(data: bytes, block_fn: Callable[[bytes], bytes], pre: bytes, post: bytes) -> bytes:
    """
    Shared IGE chaining: out_i = block_fn(in_i ^ pre) ^ post, then
    pre <- out_i and post <- in_i.
    """

    if len(data) % BLOCK_SIZE != 0:
        raise AesIgeError(f"Data length must be a multiple of {BLOCK_SIZE}, got {len(data)}")
    out = bytearray()
    for i in range(0, len(data), BLOCK_SIZE):
        block = data[i : i + BLOCK_SIZE]
        res = xor_bytes(block_fn(xor_bytes(block, pre)), post)
        out += res
        pre, post = res, block
    return bytes(out)


@dataclass(frozen=True, slots=True)
class AesIge:
    """
    AES-256-IGE, used to wrap the DH inner data during the key exchange.

    `iv` is 32 bytes: the first half chains ciphertext, the second plaintext.
    """

    key: bytes
    iv: bytes

    def __post_init__(self) -> None:
        if len(self.key) != 32:
            raise AesIgeError("AES-256 key must be 32 bytes")
        if len(self.iv) != 2 * BLOCK_SIZE:
            raise AesIgeError("IGE iv must be 32 bytes")

    def _cipher(self) -> Cipher[modes.ECB]:
        return Cipher(algorithms.AES(self.key), modes.ECB())

    def encrypt(self, plaintext: bytes) -> bytes:
        ctx = self._cipher().encryptor()
        return _ige(plaintext, ctx.update, self.iv[:BLOCK_SIZE], self.iv[BLOCK_SIZE:])

    def decrypt(self, ciphertext: bytes) -> bytes:
        ctx = self._cipher().decryptor()
        return _ige(ciphertext, ctx.update, self.iv[BLOCK_SIZE:], self.iv[:BLOCK_SIZE])
