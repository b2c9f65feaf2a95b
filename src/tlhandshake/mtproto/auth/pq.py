from __future__ import annotations

import math
import secrets

_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)
# Deterministic Miller-Rabin bases for n < 2**64.
_MR_BASES = (2, 325, 9375, 28178, 450775, 9780504, 1795265022)


class PqFactorizationError(Exception):
    pass


def is_probable_prime(n: int) -> bool:
    if n < 2:
        return False
    for p in _SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False
    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for a in _MR_BASES:
        a %= n
        if a == 0:
            continue
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == n - 1:
                break
        else:
            return False
    return True


def _brent(n: int) -> int:
    """Return a non-trivial factor of the odd composite `n` (Pollard rho, Brent's cycle)."""

    while True:
        y = secrets.randbelow(n - 1) + 1
        c = secrets.randbelow(n - 1) + 1
        m = 128
        g = r = q = 1
        x = ys = y
        while g == 1:
            x = y
            for _ in range(r):
                y = (y * y + c) % n
            k = 0
            while k < r and g == 1:
                ys = y
                for _ in range(min(m, r - k)):
                    y = (y * y + c) % n
                    q = q * abs(x - y) % n
                g = math.gcd(q, n)
                k += m
            r *= 2
        if g == n:
            g = 1
            while g == 1:
                ys = (ys * ys + c) % n
                g = math.gcd(abs(x - ys), n)
        if g != n:
            return g


def factorize_pq(pq: int) -> tuple[int, int]:
    """
    Split pq into its two prime factors (p, q) with p < q.

    The server's pq is a product of two distinct primes and fits in 64 bits.
    """

    if pq <= 1:
        raise PqFactorizationError("pq must be > 1")
    if pq.bit_length() > 64:
        raise PqFactorizationError(f"pq is too large: {pq.bit_length()} bits")
    if is_probable_prime(pq):
        raise PqFactorizationError("pq is prime (expected composite)")

    factor = next((p for p in _SMALL_PRIMES if pq % p == 0), None)
    if factor is None:
        factor = _brent(pq)
    p, q = sorted((factor, pq // factor))
    if p * q != pq or not is_probable_prime(p) or not is_probable_prime(q):
        raise PqFactorizationError(f"pq is not a product of two primes: {pq}")
    return p, q
