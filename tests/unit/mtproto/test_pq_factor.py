from __future__ import annotations

import pytest

from tlhandshake.mtproto.auth.pq import PqFactorizationError, factorize_pq, is_probable_prime


def test_factorize_small() -> None:
    p, q = factorize_pq(17 * 19)
    assert (p, q) == (17, 19)


def test_factorize_even() -> None:
    assert factorize_pq(2 * 1000003) == (2, 1000003)


def test_factorize_server_sized_pq() -> None:
    # The 63-bit example from the protocol documentation.
    assert factorize_pq(0x17ED48941A08F981) == (0x494C553B, 0x53911073)


def test_factorize_orders_factors() -> None:
    p, q = factorize_pq(10009 * 10007)
    assert (p, q) == (10007, 10009)


@pytest.mark.parametrize("pq", [0, 1, 101, 2**61 - 1])
def test_reject_trivial_and_prime(pq: int) -> None:
    with pytest.raises(PqFactorizationError):
        factorize_pq(pq)


def test_reject_more_than_two_factors() -> None:
    with pytest.raises(PqFactorizationError):
        factorize_pq(3 * 5 * 7)


def test_reject_oversized_pq() -> None:
    with pytest.raises(PqFactorizationError):
        factorize_pq((1 << 64) + 1)


def test_is_probable_prime() -> None:
    assert is_probable_prime(2**61 - 1)
    assert not is_probable_prime(561)  # Carmichael number
    assert not is_probable_prime(0x17ED48941A08F981)
