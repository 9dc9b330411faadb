import dataclasses
import math

import pytest

from twin_constants import GAP_MIN, KT_BINARY, TWIN_CLASSES
from twin_stats import (
    DecadeStats, Regime, Stats, TransitionStats, class_index, decade_index,
    decade_midpoint, kt_twin_cumulative, kt_twin_local, regime_for,
)


@pytest.mark.parametrize("n, regime", [
    (3, Regime.FROZEN),
    (499, Regime.FROZEN),
    (500, Regime.TRANSITION),
    (9999, Regime.TRANSITION),
    (10_000, Regime.ASYMPTOTIC),
    (999_999, Regime.ASYMPTOTIC),
    (1_000_000, Regime.PRECISE),
    (10 ** 15, Regime.PRECISE),
])
def test_regime_boundaries(n, regime):
    assert regime_for(n) is regime


def test_class_index():
    assert class_index(11) == 0
    assert class_index(17) == 1
    assert class_index(29) == 2
    assert class_index(1019) == 2
    assert class_index(1021) == -1
    assert class_index(3) == -1
    assert class_index(5) == -1


def test_twin_lower_members_always_have_valid_class(reference_primes):
    lowers = [p for p, q in zip(reference_primes, reference_primes[1:]) if q - p == 2 and p >= 11]
    assert len(lowers) > 8000
    assert all(class_index(p) >= 0 for p in lowers)


@pytest.mark.parametrize("p, idx", [
    (999, -1),
    (1000, 0),
    (9_999, 0),
    (10_000, 1),
    (999_999, 2),
    (1_000_000, 3),
    (10 ** 11 - 1, 7),
    (10 ** 11, -1),
])
def test_decade_index(p, idx):
    assert decade_index(p) == idx


def test_gap_min_matrix_follows_mod_30():
    for i, ci in enumerate(TWIN_CLASSES):
        for j, cj in enumerate(TWIN_CLASSES):
            expected = (cj - ci) % 30 or 30
            assert GAP_MIN[i][j] == expected
    assert [GAP_MIN[i][i] for i in range(3)] == [30, 30, 30]


def test_models():
    assert kt_twin_cumulative(math.e) == pytest.approx(0.7784 - 2.32 - 13.9)
    ln = math.log(10 ** 3.5)
    assert decade_midpoint(0) == pytest.approx(10 ** 3.5)
    assert kt_twin_local(0) == pytest.approx(0.7499 * ln * ln - 0.24 * ln - 16.7)


def test_transition_stats_empty_is_guarded():
    t = TransitionStats()
    assert t.avg_gap(0, 1) == 0.0
    assert t.probability(0, 1) == 0.0
    assert t.total == 0


def test_transition_stats_derived():
    t = TransitionStats(
        counts=((1, 3, 0), (0, 0, 0), (2, 2, 4)),
        gap_sums=((60, 30, 0), (0, 0, 0), (40, 60, 200)),
    )
    assert t.avg_gap(0, 1) == 10.0
    assert t.probability(0, 1) == 0.75
    assert t.probability(2, 2) == 0.5
    assert t.kt_cell(2, 2) == 50.0 - 30
    assert t.total == 12


def test_decade_stats_derived():
    empty = DecadeStats(1)
    assert (empty.kt, empty.avg_ln2, empty.ratio, empty.error_pct) == (0.0, 0.0, 0.0, 0.0)
    d = DecadeStats(2, count=4, sum_excess=200, sum_ln2=400.0)
    assert d.kt == 50.0
    assert d.avg_ln2 == 100.0
    assert d.ratio == 0.5
    assert d.pct_theoretical == pytest.approx(0.5 / 0.7499 * 100)
    assert d.label == "10^5"
    theory = kt_twin_local(2)
    assert d.error_pct == pytest.approx(100 * abs(50.0 - theory) / theory)


def test_stats_is_frozen():
    s = Stats()
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.prime_count = 3
    assert s.kt_binary == pytest.approx(1 / math.log(2))
    assert s.kt_binary == KT_BINARY
    assert len(s.v2_histogram) == 8
    assert len(s.decades) == 8
    assert s.v2_probabilities() == (0.0, 0.0, 0.0)


def test_stats_error_pct_guards():
    s = Stats(kt_twin_theoretical=100.0, kt_twin_asymptotic=90.0, asymptotic_count=10)
    assert s.kt_twin_error_pct == 0.0
    s = dataclasses.replace(s, asymptotic_count=11)
    assert s.kt_twin_error_pct == pytest.approx(10.0)
