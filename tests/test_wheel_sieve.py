import math
from itertools import islice

import pytest

from twin_constants import WHEEL_OFFSETS, WHEEL_SIZE
from wheel_sieve import BaseSieve, WheelCandidateGenerator, sieve_upto, v2


def trial_division(n):
    if n < 2:
        return False
    d = 2
    while d * d <= n:
        if n % d == 0:
            return False
        d += 1
    return True


def test_v2():
    assert v2(0) == 0
    assert v2(1) == 0
    assert v2(12) == 2
    assert v2(8) == 3
    assert v2(7) == 0
    assert v2(2 ** 70) == 70


def test_sieve_upto():
    assert sieve_upto(1) == []
    assert sieve_upto(30) == [2, 3, 5, 7, 11, 13, 17, 19, 23, 29]


def test_base_sieve_keeps_primes_from_11():
    s = BaseSieve(100)
    assert s.primes[0] == 11
    assert s.primes[-1] == 97
    assert all(p >= 11 for p in s.primes)
    assert s.primes == sorted(s.primes)
    assert s.max_safe_candidate == 10_000


def test_base_sieve_limit_is_inclusive():
    assert BaseSieve(97).primes[-1] == 97


def test_is_prime_small_cases(sieve):
    assert not sieve.is_prime(-5)
    assert not sieve.is_prime(0)
    assert not sieve.is_prime(1)
    for p in (2, 3, 5, 7, 11, 13, 113, 127):
        assert sieve.is_prime(p)
    for c in (4, 9, 49, 121, 143, 169, 209, 221):
        assert not sieve.is_prime(c)


def test_is_prime_matches_trial_division(sieve):
    for n in range(0, 20_000):
        assert sieve.is_prime(n) == trial_division(n), n


def test_is_prime_matches_reference_up_to_a_million(reference):
    s = BaseSieve(1000)   # 1000**2 covers the range
    mismatches = [n for n in range(2, len(reference)) if s.is_prime(n) != reference[n]]
    assert mismatches == []


def test_is_prime_from_wheel_below_121(sieve):
    for off in WHEEL_OFFSETS:
        if off < 121:
            assert sieve.is_prime_from_wheel(off) == (off > 1)


def test_is_prime_from_wheel_large(sieve):
    assert sieve.is_prime_from_wheel(1_000_003)
    assert not sieve.is_prime_from_wheel(1009 * 1013)
    assert sieve.is_prime_from_wheel(3_999_971)


def test_too_small_limit_gives_false_positives():
    s = BaseSieve(20)
    # 23 * 29 is coprime to 210 and its smallest factor exceeds the limit
    assert 23 * 29 > s.max_safe_candidate
    assert s.is_prime_from_wheel(23 * 29)


def expected_first(b):
    n = max(b, 3)
    while math.gcd(n, 210) != 1:
        n += 1
    return n


@pytest.mark.parametrize("b", [0, 1, 2, 3, 4, 10, 11, 12, 120, 121, 122, 209, 210, 211, 212,
                               1000, 999_999, 10 ** 12 + 5, 2 ** 64 + 1])
def test_wheel_first_value(b):
    assert WheelCandidateGenerator(b).current() == expected_first(b)


@pytest.mark.parametrize("b", [3, 200, 4_321, 10 ** 9 + 7])
def test_wheel_increasing_and_coprime(b):
    vals = list(islice(WheelCandidateGenerator(b), 3 * WHEEL_SIZE + 5))
    assert all(math.gcd(v, 210) == 1 for v in vals)
    assert all(a < c for a, c in zip(vals, vals[1:]))


def test_wheel_visits_every_coprime():
    vals = list(islice(WheelCandidateGenerator(3), 2 * WHEEL_SIZE))
    expected = [n for n in range(3, 421) if math.gcd(n, 210) == 1]
    assert vals[:len(expected)] == expected


def test_wheel_wraps_block():
    w = WheelCandidateGenerator(209)
    assert w.current() == 209
    w.advance()
    assert w.current() == 211
    w.advance()
    assert w.current() == 221


def test_wheel_current_does_not_advance():
    w = WheelCandidateGenerator(100)
    assert w.current() == w.current() == 101
    assert next(w) == 101
    assert w.current() == 103


def test_wheel_restart_by_reconstruction():
    a = list(islice(WheelCandidateGenerator(500), 10))
    b = list(islice(WheelCandidateGenerator(500), 10))
    assert a == b
