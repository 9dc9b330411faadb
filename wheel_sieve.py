# wheel_sieve.py - base prime table + mod-210 wheel candidate stream
from __future__ import annotations
import logging
import math
from typing import Iterator, List

from twin_constants import (
    DEFAULT_SIEVE_LIMIT, FIRST_SIEVE_PRIME, WHEEL_MODULUS, WHEEL_OFFSETS,
    WHEEL_PRIMES, WHEEL_SIZE,
)

logger = logging.getLogger(__name__)

# ---------- helpers ----------

def v2(x: int) -> int:
    """2-adic valuation: number of trailing zero bits, with v2(0) = 0."""
    if x == 0:
        return 0
    x = abs(x)
    return (x & -x).bit_length() - 1

def sieve_upto(limit: int) -> List[int]:
    if limit < 2: return []
    sieve = bytearray(b"\x01") * (limit + 1)
    sieve[0:2] = b"\x00\x00"
    for p in range(2, math.isqrt(limit) + 1):
        if sieve[p]:
            start = p * p
            sieve[start:limit + 1:p] = b"\x00" * (((limit - start) // p) + 1)
    return [i for i, b in enumerate(sieve) if b]

# ---------- base sieve ----------

class BaseSieve:
    """
    Trial-division table: every prime in [11, limit].

    2, 3, 5 and 7 are not stored, the wheel already excludes their
    multiples. The table is read-only after construction and can be shared
    between analyzers.

    Precondition: limit must exceed sqrt(largest candidate ever tested).
    Beyond limit**2 composites whose smallest factor is > limit are reported
    prime. This is not checked per call.
    """

    def __init__(self, limit: int = DEFAULT_SIEVE_LIMIT):
        self.limit = max(int(limit), 2)
        self.primes: List[int] = [p for p in sieve_upto(self.limit) if p >= FIRST_SIEVE_PRIME]
        logger.debug("base sieve: %d primes in [11, %d]", len(self.primes), self.limit)

    @property
    def max_safe_candidate(self) -> int:
        return self.limit * self.limit

    def is_prime_from_wheel(self, n: int) -> bool:
        # caller guarantees gcd(n, 210) == 1; 121 = 11^2 is the first such composite
        if n < 121:
            return n > 1
        r = math.isqrt(n)
        for p in self.primes:
            if p > r:
                break
            if n % p == 0:
                return False
        return True

    def is_prime(self, n: int) -> bool:
        if n < 2: return False
        if n in WHEEL_PRIMES: return True
        if n % 2 == 0 or n % 3 == 0 or n % 5 == 0 or n % 7 == 0: return False
        return self.is_prime_from_wheel(n)

    def __len__(self) -> int:
        return len(self.primes)

# ---------- wheel ----------

class WheelCandidateGenerator:
    """Infinite increasing stream of integers coprime to 210, from a lower bound."""

    def __init__(self, start: int = 3):
        start = max(int(start), 3)
        self.start = start
        self._base = (start // WHEEL_MODULUS) * WHEEL_MODULUS
        self._idx = 0
        for i, off in enumerate(WHEEL_OFFSETS):
            if self._base + off >= start:
                self._idx = i
                break
        else:
            self._base += WHEEL_MODULUS

    def current(self) -> int:
        return self._base + WHEEL_OFFSETS[self._idx]

    def advance(self) -> None:
        self._idx += 1
        if self._idx >= WHEEL_SIZE:
            self._idx = 0
            self._base += WHEEL_MODULUS

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        n = self.current()
        self.advance()
        return n
