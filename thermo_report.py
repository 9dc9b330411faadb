# thermo_report.py - console tables, decade refit, plots and CSV for Stats snapshots
from __future__ import annotations
import csv
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from twin_constants import (
    ASYMPTOTIC_MIN_SAMPLES, GAP_MIN, KT_LOC_C, KT_LOC_LN, KT_LOC_LN2,
    RATIO_THEORETICAL, TWIN_CLASSES,
    V2_MEAN_THEORETICAL, V2_P_THEORETICAL,
)
from twin_stats import AnalysisMode, Stats, kt_twin_local_at

logger = logging.getLogger(__name__)

TREND_DOWN, TREND_UP, TREND_FLAT = "down", "up", "flat"
TREND_BAND = 0.5     # error-% points
OK_ERROR_PCT = 3.0

# ---------- decade table ----------

@dataclass(frozen=True)
class DecadeRow:
    label: str
    count: int
    kt: float
    kt_theoretical: float
    error_pct: float
    pct_theoretical: float
    trend: str          # "" for the first populated decade
    ok: bool

def decade_rows(stats: Stats) -> List[DecadeRow]:
    """Populated decades with the local-model comparison and error trend."""
    rows: List[DecadeRow] = []
    prev_err: Optional[float] = None
    for d in stats.decades:
        if d.count == 0:
            continue
        err = d.error_pct
        trend = ""
        if prev_err is not None:
            if err < prev_err - TREND_BAND: trend = TREND_DOWN
            elif err > prev_err + TREND_BAND: trend = TREND_UP
            else: trend = TREND_FLAT
        rows.append(DecadeRow(d.label, d.count, d.kt, d.kt_theoretical, err,
                              d.pct_theoretical, trend, err < OK_ERROR_PCT))
        prev_err = err
    return rows

def fit_local_model(stats: Stats, min_decades: int = 3) -> Optional[Tuple[float, float, float]]:
    """
    Weighted least squares kT = a*ln^2 + b*ln + c over populated decades,
    with ln taken as sqrt(mean ln^2(p)) of each decade. None with too few decades.
    """
    pts = [d for d in stats.decades if d.count > 0 and d.avg_ln2 > 0]
    if len(pts) < min_decades:
        return None
    x = np.sqrt(np.array([d.avg_ln2 for d in pts]))
    y = np.array([d.kt for d in pts])
    w = np.sqrt(np.array([d.count for d in pts], dtype=float))
    a, b, c = np.polyfit(x, y, 2, w=w)
    return float(a), float(b), float(c)

# ---------- text rendering ----------

def _fmt_pct(p: float) -> str:
    return f"{p * 100:5.1f}%"

def render(stats: Stats) -> str:
    """Full multi-line report of one snapshot. The mode picks which blocks show."""
    out: List[str] = []
    show_primes = stats.mode in (AnalysisMode.PRIMES, AnalysisMode.BOTH)
    show_twins = stats.mode in (AnalysisMode.TWINS, AnalysisMode.BOTH)

    out.append(f"n={stats.current_n}  pi(n)={stats.prime_count}  pi2(n)={stats.twin_count}  regime={stats.regime_name}")

    if show_primes:
        out.append(f"[primes] <gap>={stats.avg_prime_gap:.3f}  kT={stats.kt_prime_empirical:.3f}  "
                   f"kT_theo=ln(p)-2={stats.kt_prime_theoretical:.3f}  err={stats.kt_prime_error_pct:.2f}%")

    if show_twins:
        asym = (f"{stats.kt_twin_asymptotic:.1f} (n={stats.asymptotic_count})"
                if stats.asymptotic_count > ASYMPTOTIC_MIN_SAMPLES else "waiting...")
        out.append(f"[twins]  <gap>={stats.avg_twin_gap:.1f}  kT(total)={stats.kt_twin_empirical:.1f}  "
                   f"kT(p>100k)={asym}  kT_theo={stats.kt_twin_theoretical:.1f}")
        out.append(f"         kT/ln2(p)={stats.kt_ratio:.4f} (ref {RATIO_THEORETICAL})  "
                   f"err={stats.kt_twin_error_pct:.2f}%")

    p_v2 = stats.v2_probabilities()
    p_gap = stats.v2_gap_probabilities()
    out.append(f"[2-adic] <v2(p+1)>={stats.mean_v2:.4f}  <v2(gap)>={stats.mean_v2_gap:.4f}  "
               f"ref={V2_MEAN_THEORETICAL:.1f}  kT=1/ln2={stats.kt_binary:.4f}")
    for k, (a, b, ref) in enumerate(zip(p_v2, p_gap, V2_P_THEORETICAL), start=1):
        out.append(f"         P(k={k}) {a:.3f} {b:.3f}  ref {ref:.3f}")
    out.append(f"         corr r={stats.corr_v2:.4f} (pairs={stats.v2_pair_count})")

    if show_twins:
        out.append(render_transitions(stats))
        out.append(render_decades(stats))
    return "\n".join(out)

def render_transitions(stats: Stats) -> str:
    t = stats.transitions
    head = "        " + "".join(f"->{c:<10d}" for c in TWIN_CLASSES)
    lines = ["[mod 30 transitions] probability / <gap> (gap_min)", head]
    for i, ci in enumerate(TWIN_CLASSES):
        cells = []
        for j in range(3):
            cells.append(f"{_fmt_pct(t.probability(i, j))} {t.avg_gap(i, j):4.0f}({GAP_MIN[i][j]:>2d})")
        lines.append(f"  {ci}->  " + "  ".join(cells))
    lines.append(f"  Boltzmann R^2 = {stats.boltzmann_r2:.4f} (cells={stats.boltzmann_cells})")
    return "\n".join(lines)

def render_decades(stats: Stats) -> str:
    lines = ["[local kT per decade]  dec      n       kT   obs/theo (err%)  trend"]
    for r in decade_rows(stats):
        mark = f"{r.trend} ok" if r.ok and r.trend in (TREND_DOWN, TREND_FLAT) else r.trend
        lines.append(f"  {r.label:>6} {r.count:8d} {r.kt:8.1f}   {r.kt:.0f}/{r.kt_theoretical:.0f} ({r.error_pct:.1f}%)  {mark}")
    fit = fit_local_model(stats)
    if fit is not None:
        a, b, c = fit
        lines.append(f"  refit: {a:.4f}*ln^2 {b:+.3f}*ln {c:+.2f}   "
                     f"(fixed {KT_LOC_LN2}*ln^2 {KT_LOC_LN:+.2f}*ln {KT_LOC_C:+.1f})")
    return "\n".join(lines)

def summary_line(stats: Stats) -> str:
    return (f"n={stats.current_n} | pi={stats.prime_count} | pi2={stats.twin_count} | "
            f"{stats.regime_name} | kT={stats.kt_twin_asymptotic:.1f} | ratio={stats.kt_ratio:.4f}")

# ---------- exports ----------

def save_decades_csv(stats: Stats, path: str) -> None:
    with open(path, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(["decade", "count", "kt", "kt_theoretical", "error_pct", "pct_theoretical", "trend"])
        for r in decade_rows(stats):
            w.writerow([r.label, r.count, f"{r.kt:.4f}", f"{r.kt_theoretical:.4f}",
                        f"{r.error_pct:.3f}", f"{r.pct_theoretical:.3f}", r.trend])
    logger.info("decade table saved to %s", path)

def plot_decades(stats: Stats, path: str) -> bool:
    """Observed kT per decade against the local model. False if nothing to plot."""
    pts = [d for d in stats.decades if d.count > 0]
    if not pts:
        logger.warning("no populated decades, plot skipped")
        return False
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    xs = np.array([d.midpoint for d in pts])
    obs = np.array([d.kt for d in pts])
    grid = np.logspace(np.log10(xs.min()) - 0.5, np.log10(xs.max()) + 0.5, 200)
    model = np.array([kt_twin_local_at(g) for g in grid])

    plt.figure(figsize=(12, 7))
    plt.plot(xs, obs, 'o-', color='#1f77b4', linewidth=3, label='Observed kT (per decade)')
    plt.plot(grid, model, '--', color='#ff7f0e', alpha=0.8,
             label=f'Local model {KT_LOC_LN2}ln² {KT_LOC_LN:+.2f}ln {KT_LOC_C:+.1f}')
    plt.xscale('log')
    plt.title(f"Twin prime kT by decade\n(n={stats.current_n}, twins={stats.twin_count})", fontsize=16)
    plt.xlabel("p", fontsize=14)
    plt.ylabel("kT = <gap - gap_min>", fontsize=14)
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=12)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()
    logger.info("decade plot saved to %s", path)
    return True
