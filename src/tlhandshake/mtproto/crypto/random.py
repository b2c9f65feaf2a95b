from __future__ import annotations

import secrets

from tlhandshake.core.bytes import align_length


def random_bytes(n: int) -> bytes:
    if n < 0:
        raise ValueError("n must be >= 0")
    return secrets.token_bytes(n)


def random_padding(length: int, multiple: int) -> bytes:
    """Random bytes extending `length` to the next multiple of `multiple`."""

    return random_bytes(align_length(length, multiple))
