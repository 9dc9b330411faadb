# twin_stats.py - immutable statistics records for the twin-prime engine
from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from twin_constants import (
    ASYMPTOTIC_MIN_SAMPLES, FIRST_DECADE_EXP, FROZEN_LIMIT, GAP_MIN, KT_BINARY,
    KT_CUM_C, KT_CUM_LN, KT_CUM_LN2, KT_LOC_C, KT_LOC_LN, KT_LOC_LN2, N_DECADES, PRECISE_LIMIT,
    RATIO_THEORETICAL, TRANSITION_LIMIT, TWIN_CLASSES, V2_BUCKETS,
)

# ---------- enums ----------

class AnalysisMode(Enum):
    PRIMES = "primes"
    TWINS = "twins"
    BOTH = "both"

class Regime(Enum):
    FROZEN = 0        # n < 500, twin gaps sit on gap_min
    TRANSITION = 1    # 500 <= n < 10k
    ASYMPTOTIC = 2    # 10k <= n < 1M
    PRECISE = 3       # n >= 1M

REGIME_NAMES = {
    Regime.FROZEN: "FROZEN",
    Regime.TRANSITION: "TRANSITION",
    Regime.ASYMPTOTIC: "ASYMPTOTIC",
    Regime.PRECISE: "PRECISE",
}

def regime_for(n: int) -> Regime:
    if n < FROZEN_LIMIT: return Regime.FROZEN
    if n < TRANSITION_LIMIT: return Regime.TRANSITION
    if n < PRECISE_LIMIT: return Regime.ASYMPTOTIC
    return Regime.PRECISE

# ---------- residue classes / decades ----------

def class_index(p: int) -> int:
    """Index of p mod 30 in (11, 17, 29), or -1 if p cannot open a twin pair."""
    r = p % 30
    if r == TWIN_CLASSES[0]: return 0
    if r == TWIN_CLASSES[1]: return 1
    if r == TWIN_CLASSES[2]: return 2
    return -1

def decade_index(p: int) -> int:
    """floor(log10(p)) - 3, or -1 outside [10^3, 10^11). Exact for big ints."""
    if p < 10 ** FIRST_DECADE_EXP:
        return -1
    idx = len(str(p)) - 1 - FIRST_DECADE_EXP
    return idx if idx < N_DECADES else -1

def gap_min(c_prev: int, c_curr: int) -> int:
    return GAP_MIN[c_prev][c_curr]

# ---------- models ----------

def kt_twin_cumulative(n: float) -> float:
    ln = math.log(n)
    return KT_CUM_LN2 * ln * ln + KT_CUM_LN * ln + KT_CUM_C

def kt_twin_local_at(x: float) -> float:
    ln = math.log(x)
    return KT_LOC_LN2 * ln * ln + KT_LOC_LN * ln + KT_LOC_C

def decade_midpoint(i: int) -> float:
    return 10.0 ** (i + FIRST_DECADE_EXP + 0.5)

def kt_twin_local(i: int) -> float:
    """Local model evaluated at the geometric midpoint of decade i."""
    return kt_twin_local_at(decade_midpoint(i))

# ---------- records ----------

Matrix3 = Tuple[Tuple[int, int, int], ...]

def _zero3() -> Matrix3:
    return ((0, 0, 0), (0, 0, 0), (0, 0, 0))

@dataclass(frozen=True)
class TransitionStats:
    """Twin-to-twin transitions between mod-30 classes: counts and gap sums."""
    counts: Matrix3 = field(default_factory=_zero3)
    gap_sums: Matrix3 = field(default_factory=_zero3)

    def count(self, i: int, j: int) -> int:
        return self.counts[i][j]

    def avg_gap(self, i: int, j: int) -> float:
        c = self.counts[i][j]
        return self.gap_sums[i][j] / c if c > 0 else 0.0

    def probability(self, i: int, j: int) -> float:
        total = sum(self.counts[i])
        return self.counts[i][j] / total if total > 0 else 0.0

    def kt_cell(self, i: int, j: int) -> float:
        return self.avg_gap(i, j) - GAP_MIN[i][j]

    @property
    def total(self) -> int:
        return sum(sum(row) for row in self.counts)

@dataclass(frozen=True)
class DecadeStats:
    index: int
    count: int = 0
    sum_excess: int = 0
    sum_ln2: float = 0.0

    @property
    def kt(self) -> float:
        return self.sum_excess / self.count if self.count > 0 else 0.0

    @property
    def avg_ln2(self) -> float:
        return self.sum_ln2 / self.count if self.count > 0 else 0.0

    @property
    def ratio(self) -> float:
        ln2 = self.avg_ln2
        return self.kt / ln2 if self.count > 0 and ln2 > 0 else 0.0

    @property
    def pct_theoretical(self) -> float:
        return self.ratio / RATIO_THEORETICAL * 100.0

    @property
    def midpoint(self) -> float:
        return decade_midpoint(self.index)

    @property
    def kt_theoretical(self) -> float:
        return kt_twin_local(self.index)

    @property
    def error_pct(self) -> float:
        theory = self.kt_theoretical
        if self.count == 0 or theory <= 0:
            return 0.0
        return 100.0 * abs(self.kt - theory) / theory

    @property
    def label(self) -> str:
        return f"10^{self.index + FIRST_DECADE_EXP}"

def empty_decades() -> Tuple[DecadeStats, ...]:
    return tuple(DecadeStats(i) for i in range(N_DECADES))

def _zero_hist() -> Tuple[int, ...]:
    return (0,) * V2_BUCKETS

@dataclass(frozen=True)
class Stats:
    """
    One snapshot of a run. Built from the accumulators and handed to the
    consumer; nothing in it is shared with the running loop.

    Guarded fields read 0.0 until their sample counts are large enough:
      avg_twin_gap, kt_twin_empirical   twin_count > 1
      kt_twin_asymptotic, kt_ratio      asymptotic_count > 10
      corr_v2                           v2_pair_count > 10
      boltzmann_r2                      twin_count > 100, boltzmann_cells >= 2

    skipped_twins counts gap-2 pairs whose lower member is not 11, 17 or 29
    mod 30. Only (3, 5) and (5, 7) can land there.
    """
    current_n: int = 0
    prime_count: int = 0
    twin_count: int = 0
    skipped_twins: int = 0
    mode: AnalysisMode = AnalysisMode.BOTH
    regime: Regime = Regime.FROZEN

    avg_prime_gap: float = 0.0
    avg_twin_gap: float = 0.0

    kt_prime_empirical: float = 0.0
    kt_prime_theoretical: float = 0.0

    kt_twin_empirical: float = 0.0
    kt_twin_theoretical: float = 0.0
    kt_twin_asymptotic: float = 0.0
    asymptotic_count: int = 0
    kt_ratio: float = 0.0
    kt_binary: float = KT_BINARY

    mean_v2: float = 0.0
    v2_histogram: Tuple[int, ...] = field(default_factory=_zero_hist)
    mean_v2_gap: float = 0.0
    v2_gap_histogram: Tuple[int, ...] = field(default_factory=_zero_hist)
    v2_pair_count: int = 0
    corr_v2: float = 0.0

    transitions: TransitionStats = field(default_factory=TransitionStats)
    boltzmann_r2: float = 0.0
    boltzmann_cells: int = 0

    decades: Tuple[DecadeStats, ...] = field(default_factory=empty_decades)

    @property
    def regime_name(self) -> str:
        return REGIME_NAMES[self.regime]

    @property
    def kt_prime_error_pct(self) -> float:
        if self.kt_prime_theoretical <= 0:
            return 0.0
        return 100.0 * abs(self.kt_prime_empirical - self.kt_prime_theoretical) / self.kt_prime_theoretical

    @property
    def kt_twin_error_pct(self) -> float:
        if self.kt_twin_theoretical <= 0 or self.asymptotic_count <= ASYMPTOTIC_MIN_SAMPLES:
            return 0.0
        return 100.0 * abs(self.kt_twin_asymptotic - self.kt_twin_theoretical) / self.kt_twin_theoretical

    def v2_probabilities(self, k_max: int = 3) -> Tuple[float, ...]:
        return _bucket_fractions(self.v2_histogram, k_max)

    def v2_gap_probabilities(self, k_max: int = 3) -> Tuple[float, ...]:
        return _bucket_fractions(self.v2_gap_histogram, k_max)

def _bucket_fractions(hist: Tuple[int, ...], k_max: int) -> Tuple[float, ...]:
    total = sum(hist)
    if total == 0:
        return (0.0,) * k_max
    return tuple(hist[k] / total for k in range(k_max))
