# twin_constants.py - fixed constants for the prime / twin-prime thermodynamics engine
#
# The kT model coefficients are empirical curve fits, not theorems. They are
# kept here verbatim and never re-derived at runtime.

from __future__ import annotations
import math
from typing import Tuple

# ---------- Hardy-Littlewood ----------
C2 = 0.6601618158468695739278121100145557   # twin prime constant

# cumulative model: kT_cum = a*ln^2(p) + b*ln(p) + c
KT_CUM_LN2 = 0.7784
KT_CUM_LN = -2.32
KT_CUM_C = -13.9

# local (per decade) model: kT_local ~ ln^2(p)/(2*C2) - <gap_min>
KT_LOC_LN2 = 0.7499
KT_LOC_LN = -0.24
KT_LOC_C = -16.7

RATIO_THEORETICAL = 0.7499       # kT / ln^2(p), asymptotic local value
OFFSET_PRIMES = 2.0              # gap_min for consecutive odd primes

# ---------- 2-adic reference ----------
LN2 = math.log(2.0)
KT_BINARY = 1.0 / LN2            # 1.4426950408889634
V2_MEAN_THEORETICAL = 2.0
V2_P_THEORETICAL: Tuple[float, ...] = (0.5, 0.25, 0.125)
V2_BUCKETS = 8                   # buckets k=1..7 exact, last one is k>=8

# ---------- regimes ----------
FROZEN_LIMIT = 500
TRANSITION_LIMIT = 10_000
ASYMPTOTIC_LIMIT = 100_000       # twins above this feed the asymptotic kT
PRECISE_LIMIT = 1_000_000

# sample-size guards for derived statistics
ASYMPTOTIC_MIN_SAMPLES = 10      # strictly more than this
CORRELATION_MIN_SAMPLES = 10     # strictly more than this
BOLTZMANN_MIN_TWINS = 100        # strictly more than this
BOLTZMANN_MIN_CELL = 10          # at least this many per transition cell

# ---------- mod 30 twin classes ----------
TWIN_CLASSES: Tuple[int, int, int] = (11, 17, 29)

# GAP_MIN[i][j]: smallest gap from a twin of class i to the next twin of class j
GAP_MIN: Tuple[Tuple[int, int, int], ...] = (
    (30,  6, 18),   # 11 -> 11, 17, 29
    (24, 30, 12),   # 17 -> 11, 17, 29
    (12, 18, 30),   # 29 -> 11, 17, 29
)

# ---------- wheel mod 210 = 2*3*5*7 ----------
WHEEL_MODULUS = 210
WHEEL_OFFSETS: Tuple[int, ...] = (
    1, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47,
    53, 59, 61, 67, 71, 73, 79, 83, 89, 97, 101, 103,
    107, 109, 113, 121, 127, 131, 137, 139, 143, 149, 151, 157,
    163, 167, 169, 173, 179, 181, 187, 191, 193, 197, 199, 209,
)
WHEEL_SIZE = len(WHEEL_OFFSETS)  # 48
WHEEL_PRIMES: Tuple[int, ...] = (2, 3, 5, 7)
FIRST_SIEVE_PRIME = 11

# ---------- run defaults ----------
DEFAULT_SIEVE_LIMIT = 10_000_000
SNAPSHOT_EVERY = 5000
SUMMARY_EVERY = 100_000
N_DECADES = 8                    # decade i spans [10^(i+3), 10^(i+4))
FIRST_DECADE_EXP = 3
