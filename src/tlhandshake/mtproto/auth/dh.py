from __future__ import annotations

from dataclasses import dataclass

from tlhandshake.core.bytes import be_bytes_to_int, int_to_be_bytes
from tlhandshake.mtproto.core.state import auth_key_id_u64
from tlhandshake.mtproto.crypto.random import random_bytes

DH_PRIME_BITS = 2048
DH_KEY_BYTES = DH_PRIME_BITS // 8
# g_a and g_b must keep this distance from 1 and from dh_prime - 1.
_SAFETY_MARGIN = 1 << (DH_PRIME_BITS - 64)


class DhError(Exception):
    pass


def check_dh_params(*, g: int, dh_prime: int, g_a: int) -> None:
    """
    Sanity checks on server-supplied DH parameters.

    Primality of dh_prime is not re-tested here; the value is only trusted
    because it arrived inside data encrypted with the nonce-derived key.
    """

    if not 2 <= g <= 7:
        raise DhError(f"invalid g: {g}")
    if dh_prime.bit_length() != DH_PRIME_BITS or dh_prime % 2 == 0:
        raise DhError("invalid dh_prime: expected an odd 2048-bit number")
    check_dh_public(g_a, dh_prime, name="g_a")


def check_dh_public(value: int, dh_prime: int, *, name: str) -> None:
    if not 1 < value < dh_prime - 1:
        raise DhError(f"invalid {name}: out of range")
    if not _SAFETY_MARGIN <= value <= dh_prime - _SAFETY_MARGIN:
        raise DhError(f"invalid {name}: too close to range bounds")


@dataclass(frozen=True, slots=True)
class DhResult:
    b: int
    g_b: bytes  # DH_KEY_BYTES, sent in client_DH_inner_data.g_b
    auth_key: bytes  # DH_KEY_BYTES
    auth_key_id: int  # uint64


def make_dh_result(*, g: int, dh_prime: bytes, g_a: bytes) -> DhResult:
    """
    Client side of the DH exchange:
    - choose random 2048-bit b
    - g_b = g^b mod dh_prime
    - auth_key = g_a^b mod dh_prime
    """

    p = be_bytes_to_int(dh_prime)
    ga = be_bytes_to_int(g_a)
    check_dh_params(g=g, dh_prime=p, g_a=ga)

    while True:
        b = be_bytes_to_int(random_bytes(DH_KEY_BYTES))
        gb = pow(g, b, p)
        try:
            check_dh_public(gb, p, name="g_b")
        except DhError:
            continue
        break

    auth = int_to_be_bytes(pow(ga, b, p), DH_KEY_BYTES)
    return DhResult(
        b=b,
        g_b=int_to_be_bytes(gb, DH_KEY_BYTES),
        auth_key=auth,
        auth_key_id=auth_key_id_u64(auth),
    )
