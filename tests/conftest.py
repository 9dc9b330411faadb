import pytest

from wheel_sieve import BaseSieve

REFERENCE_LIMIT = 10 ** 6


def reference_flags(limit):
    flags = [True] * (limit + 1)
    flags[0] = flags[1] = False
    i = 2
    while i * i <= limit:
        if flags[i]:
            for j in range(i * i, limit + 1, i):
                flags[j] = False
        i += 1
    return flags


@pytest.fixture(scope="session")
def reference():
    """Primality flags for 0..10^6 from a plain list-based sieve."""
    return reference_flags(REFERENCE_LIMIT)


@pytest.fixture(scope="session")
def reference_primes(reference):
    return [i for i, ok in enumerate(reference) if ok]


@pytest.fixture(scope="session")
def sieve():
    # exact for every candidate below 2000**2 = 4_000_000
    return BaseSieve(2000)
