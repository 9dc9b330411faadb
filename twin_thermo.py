# twin_thermo.py - streaming prime / twin-prime thermodynamics analyzer
#
# One background thread walks the mod-210 wheel, tests candidates against the
# base sieve and folds every prime into a set of running accumulators. Every
# `snapshot_every` primes it hands an immutable Stats record to the consumer.
# Control (configure / start or run / stop) comes from the consumer side.

from __future__ import annotations
import itertools
import logging
import math
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from twin_constants import (
    ASYMPTOTIC_LIMIT, ASYMPTOTIC_MIN_SAMPLES, BOLTZMANN_MIN_CELL,
    BOLTZMANN_MIN_TWINS, CORRELATION_MIN_SAMPLES, DEFAULT_SIEVE_LIMIT, GAP_MIN,
    N_DECADES, OFFSET_PRIMES, SNAPSHOT_EVERY, SUMMARY_EVERY, V2_BUCKETS,
    WHEEL_PRIMES,
)
from twin_stats import (
    AnalysisMode, DecadeStats, Stats, TransitionStats, class_index,
    decade_index, kt_twin_cumulative, regime_for,
)
from wheel_sieve import BaseSieve, WheelCandidateGenerator, v2

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Stats], None]
FinishedCallback = Callable[[], None]

# ---------- errors ----------

class ThermoError(Exception):
    pass

class InvalidConfigurationError(ThermoError, ValueError):
    pass

class AlreadyRunningError(ThermoError, RuntimeError):
    pass

# ---------- configuration ----------

@dataclass(frozen=True)
class AnalyzerConfig:
    start_value: Union[int, str] = 3
    mode: Union[AnalysisMode, str] = AnalysisMode.BOTH
    concurrency_hint: bool = False     # reserved, the loop is single threaded
    snapshot_every: int = SNAPSHOT_EVERY
    sieve_limit: int = DEFAULT_SIEVE_LIMIT

    def validated(self) -> "AnalyzerConfig":
        """Normalized copy, or InvalidConfigurationError."""
        start = self.start_value
        if isinstance(start, bool):
            raise InvalidConfigurationError(f"start value must be an integer, got {start!r}")
        if isinstance(start, str):
            try:
                start = int(start.strip())
            except ValueError:
                raise InvalidConfigurationError(f"start value is not numeric: {self.start_value!r}") from None
        if not isinstance(start, int):
            raise InvalidConfigurationError(f"start value must be an integer, got {type(start).__name__}")
        if start < 2:
            raise InvalidConfigurationError(f"start value must be >= 2, got {start}")
        try:
            mode = AnalysisMode(self.mode)
        except ValueError:
            raise InvalidConfigurationError(f"unknown analysis mode: {self.mode!r}") from None
        for name, lo in (("snapshot_every", 1), ("sieve_limit", 11)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < lo:
                raise InvalidConfigurationError(f"{name} must be >= {lo}")
        return replace(self, start_value=start, mode=mode, concurrency_hint=bool(self.concurrency_hint))

# ---------- accumulators ----------

def _bump(hist: List[int], k: int) -> None:
    if k >= V2_BUCKETS:
        hist[V2_BUCKETS - 1] += 1
    elif k >= 1:
        hist[k - 1] += 1

@dataclass
class StreamAccumulators:
    """
    Running sums for one run. Owned by the loop thread; the only way out is
    snapshot(), which copies everything into a frozen Stats.
    """
    mode: AnalysisMode = AnalysisMode.BOTH

    prime_count: int = 0
    last_prime: int = 0
    sum_prime_gaps: int = 0

    twin_count: int = 0
    skipped_twins: int = 0
    last_twin: int = 0
    last_twin_class: int = -1
    sum_twin_gaps: int = 0
    sum_twin_excess: int = 0

    asymptotic_count: int = 0
    sum_asymptotic_excess: int = 0

    sum_v2: int = 0
    v2_hist: List[int] = field(default_factory=lambda: [0] * V2_BUCKETS)

    # paired samples x = v2(previous twin + 1), y = v2(twin gap)
    pair_count: int = 0
    sum_x: int = 0
    sum_y: int = 0
    sum_xy: int = 0
    sum_xx: int = 0
    sum_yy: int = 0
    v2_gap_hist: List[int] = field(default_factory=lambda: [0] * V2_BUCKETS)

    trans_count: List[List[int]] = field(default_factory=lambda: [[0] * 3 for _ in range(3)])
    trans_gap: List[List[int]] = field(default_factory=lambda: [[0] * 3 for _ in range(3)])

    dec_count: List[int] = field(default_factory=lambda: [0] * N_DECADES)
    dec_excess: List[int] = field(default_factory=lambda: [0] * N_DECADES)
    dec_ln2: List[float] = field(default_factory=lambda: [0.0] * N_DECADES)

    def add_prime(self, n: int) -> None:
        """Fold one confirmed prime into the sums. Primes must arrive in increasing order."""
        self.prime_count += 1
        k = v2(n + 1)
        self.sum_v2 += k
        _bump(self.v2_hist, k)

        if self.last_prime:
            gap = n - self.last_prime
            self.sum_prime_gaps += gap
            if gap == 2:
                self._add_twin(self.last_prime)
        self.last_prime = n

    def _add_twin(self, p: int) -> None:
        c = class_index(p)
        if c < 0:
            self.skipped_twins += 1
            return
        self.twin_count += 1

        prev, c_prev = self.last_twin, self.last_twin_class
        if prev and c_prev >= 0:
            twin_gap = p - prev
            excess = twin_gap - GAP_MIN[c_prev][c]
            self.sum_twin_gaps += twin_gap
            self.sum_twin_excess += excess

            y = v2(twin_gap)
            x = v2(prev + 1)
            _bump(self.v2_gap_hist, y)
            self.pair_count += 1
            self.sum_x += x
            self.sum_y += y
            self.sum_xy += x * y
            self.sum_xx += x * x
            self.sum_yy += y * y

            d = decade_index(prev)
            if d >= 0:
                ln = math.log(prev)
                self.dec_count[d] += 1
                self.dec_excess[d] += excess
                self.dec_ln2[d] += ln * ln

            if prev > ASYMPTOTIC_LIMIT:
                self.asymptotic_count += 1
                self.sum_asymptotic_excess += excess

            self.trans_count[c_prev][c] += 1
            self.trans_gap[c_prev][c] += twin_gap

        self.last_twin = p
        self.last_twin_class = c

    def correlation(self) -> float:
        """Pearson r of the paired v2 samples; 0.0 until more than 10 pairs or with a flat side."""
        m = self.pair_count
        if m <= CORRELATION_MIN_SAMPLES:
            return 0.0
        mx, my = self.sum_x / m, self.sum_y / m
        cov = self.sum_xy / m - mx * my
        var_x = self.sum_xx / m - mx * mx
        var_y = self.sum_yy / m - my * my
        if var_x <= 0 or var_y <= 0:
            return 0.0
        return cov / math.sqrt(var_x * var_y)

    def snapshot(self, current_n: int) -> Stats:
        """Derive every statistic from the current sums. Does not modify self."""
        ln = math.log(current_n) if current_n > 0 else 0.0
        ln2 = ln * ln

        avg_prime_gap = kt_prime = 0.0
        if self.prime_count > 1:
            avg_prime_gap = self.sum_prime_gaps / (self.prime_count - 1)
            kt_prime = avg_prime_gap - OFFSET_PRIMES

        avg_twin_gap = kt_twin = 0.0
        if self.twin_count > 1:
            n_trans = self.twin_count - 1
            avg_twin_gap = self.sum_twin_gaps / n_trans
            kt_twin = self.sum_twin_excess / n_trans

        kt_asym = 0.0
        if self.asymptotic_count > ASYMPTOTIC_MIN_SAMPLES:
            kt_asym = self.sum_asymptotic_excess / self.asymptotic_count
        kt_ratio = kt_asym / ln2 if ln2 > 0 and kt_asym > 0 else 0.0

        transitions = TransitionStats(
            counts=tuple(tuple(row) for row in self.trans_count),
            gap_sums=tuple(tuple(row) for row in self.trans_gap),
        )
        r2, cells = boltzmann_r2(transitions, kt_twin, self.twin_count)

        return Stats(
            current_n=current_n,
            prime_count=self.prime_count,
            twin_count=self.twin_count,
            skipped_twins=self.skipped_twins,
            mode=self.mode,
            regime=regime_for(current_n),
            avg_prime_gap=avg_prime_gap,
            avg_twin_gap=avg_twin_gap,
            kt_prime_empirical=kt_prime,
            kt_prime_theoretical=ln - OFFSET_PRIMES if current_n > 0 else 0.0,
            kt_twin_empirical=kt_twin,
            kt_twin_theoretical=kt_twin_cumulative(current_n) if current_n > 0 else 0.0,
            kt_twin_asymptotic=kt_asym,
            asymptotic_count=self.asymptotic_count,
            kt_ratio=kt_ratio,
            mean_v2=self.sum_v2 / self.prime_count if self.prime_count else 0.0,
            v2_histogram=tuple(self.v2_hist),
            mean_v2_gap=self.sum_y / self.pair_count if self.pair_count else 0.0,
            v2_gap_histogram=tuple(self.v2_gap_hist),
            v2_pair_count=self.pair_count,
            corr_v2=self.correlation(),
            transitions=transitions,
            boltzmann_r2=r2,
            boltzmann_cells=cells,
            decades=tuple(
                DecadeStats(i, self.dec_count[i], self.dec_excess[i], self.dec_ln2[i])
                for i in range(N_DECADES)
            ),
        )

def boltzmann_r2(transitions: TransitionStats, kt_mean: float, twin_count: int) -> Tuple[float, int]:
    """
    Consistency of kT across transition cells: R^2 = 1 - ssRes/ssTot with
    ssRes = sum (kT_cell - kT_mean)^2 and ssTot = sum kT_cell^2 over cells
    holding at least 10 samples. Returns (r2, cells_used); r2 stays 0.0 with
    100 twins or fewer, kT_mean <= 0, fewer than 2 cells, or ssTot == 0.
    """
    if twin_count <= BOLTZMANN_MIN_TWINS or kt_mean <= 0:
        return 0.0, 0
    ss_res = ss_tot = 0.0
    cells = 0
    for i in range(3):
        for j in range(3):
            if transitions.count(i, j) < BOLTZMANN_MIN_CELL:
                continue
            kt_cell = transitions.kt_cell(i, j)
            ss_res += (kt_cell - kt_mean) ** 2
            ss_tot += kt_cell * kt_cell
            cells += 1
    if cells > 1 and ss_tot > 0:
        return 1.0 - ss_res / ss_tot, cells
    return 0.0, cells

# ---------- analyzer ----------

class AnalyzerState(Enum):
    CONFIGURING = "configuring"
    RUNNING = "running"
    STOPPED = "stopped"

class StreamAnalyzer:
    """
    configure() -> start() or run() -> ... stop() -> on_finished.

    on_snapshot and on_finished are called from the thread running the
    stream (the worker after start(), the caller in run()). Stop is
    cooperative: the flag is checked once per candidate, so a stop request
    lands within one primality test.
    """

    def __init__(
        self,
        sieve: Optional[BaseSieve] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
        on_finished: Optional[FinishedCallback] = None,
    ):
        self.on_snapshot = on_snapshot
        self.on_finished = on_finished
        self._sieve = sieve
        self._owns_sieve = sieve is None
        self._config: Optional[AnalyzerConfig] = None
        self._state = AnalyzerState.CONFIGURING
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last: Optional[Stats] = None

    # ----- control -----

    def configure(
        self,
        start_value: Union[int, str] = 3,
        mode: Union[AnalysisMode, str] = AnalysisMode.BOTH,
        concurrency_hint: bool = False,
        *,
        snapshot_every: int = SNAPSHOT_EVERY,
        sieve_limit: Optional[int] = None,
    ) -> AnalyzerConfig:
        with self._lock:
            if self._state is AnalyzerState.RUNNING:
                raise AlreadyRunningError("cannot reconfigure a running analyzer")
            if sieve_limit is None:
                sieve_limit = self._sieve.limit if self._sieve is not None else DEFAULT_SIEVE_LIMIT
            self._config = AnalyzerConfig(start_value, mode, concurrency_hint, snapshot_every, sieve_limit)
            return self._config

    def _begin(self) -> Tuple[AnalyzerConfig, BaseSieve, threading.Event]:
        # caller holds self._lock
        if self._state is AnalyzerState.RUNNING:
            raise AlreadyRunningError("analyzer is already running")
        if self._config is None:
            raise InvalidConfigurationError("configure() must be called before start() or run()")
        cfg = self._config.validated()
        if self._sieve is None or (self._owns_sieve and self._sieve.limit != cfg.sieve_limit):
            self._sieve = BaseSieve(cfg.sieve_limit)
            self._owns_sieve = True
        self._stop = threading.Event()
        self._last = None
        self._state = AnalyzerState.RUNNING
        logger.info("starting at n=%d mode=%s", cfg.start_value, cfg.mode.value)
        return cfg, self._sieve, self._stop

    def start(self) -> None:
        """Run the stream on a background daemon thread."""
        with self._lock:
            args = self._begin()
            self._thread = threading.Thread(
                target=self._process, args=args, name="twin-thermo", daemon=True,
            )
            thread = self._thread
        thread.start()

    def run(self) -> None:
        """
        Same as start(), but the stream runs on the calling thread and this
        returns only once it is stopped, normally from on_snapshot.
        """
        with self._lock:
            args = self._begin()
            self._thread = None
        self._process(*args)

    def stop(self) -> None:
        with self._lock:
            stop = self._stop
        if not stop.is_set():
            logger.info("stop requested")
        stop.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        t = self._thread
        if t is None:
            return True
        t.join(timeout)
        return not t.is_alive()

    @property
    def state(self) -> AnalyzerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is AnalyzerState.RUNNING

    @property
    def last_snapshot(self) -> Optional[Stats]:
        return self._last

    @property
    def sieve(self) -> Optional[BaseSieve]:
        return self._sieve

    # ----- worker -----

    def _process(self, cfg: AnalyzerConfig, sieve: BaseSieve, stop: threading.Event) -> None:
        acc = StreamAccumulators(mode=cfg.mode)
        small = [p for p in WHEEL_PRIMES if p >= cfg.start_value and p != 2]
        stream = itertools.chain(small, WheelCandidateGenerator(cfg.start_value))
        is_prime = sieve.is_prime_from_wheel
        every = cfg.snapshot_every
        since = 0
        warned = False
        try:
            while not stop.is_set():
                n = next(stream)
                if not is_prime(n):
                    continue
                acc.add_prime(n)
                since += 1
                if since >= every:
                    since = 0
                    if not warned and n > sieve.max_safe_candidate:
                        warned = True
                        logger.warning("n=%d is past the sieve's safe range (%d); primality is no longer exact",
                                       n, sieve.max_safe_candidate)
                    self._emit(acc.snapshot(n), every)
        finally:
            with self._lock:
                self._state = AnalyzerState.STOPPED
            logger.info("finished: primes=%d twins=%d last=%d", acc.prime_count, acc.twin_count, acc.last_prime)
            if self.on_finished is not None:
                self.on_finished()

    def _emit(self, snap: Stats, every: int) -> None:
        self._last = snap
        logger.debug("snapshot n=%d primes=%d twins=%d", snap.current_n, snap.prime_count, snap.twin_count)
        if snap.prime_count % SUMMARY_EVERY < every:
            logger.info("n=%d | twins=%d | kT=%.1f | ratio=%.4f",
                        snap.current_n, snap.twin_count, snap.kt_twin_asymptotic, snap.kt_ratio)
        if self.on_snapshot is not None:
            self.on_snapshot(snap)
