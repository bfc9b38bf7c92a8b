# ═══════════════════════════════════════════════════════════════════════════════
# PART 10: TABLES
# CSV configuration sweeps, result rows, optimal-configuration search
# ═══════════════════════════════════════════════════════════════════════════════


"""
Sweep files describe configurations one CSV line at a time:

    "W","num active","C","D1","D2","H","Q","R","G_m","H_m"[,"S"]

Every field is a single value or a quoted comma list; a line with lists
expands to the Cartesian product of its values.  -1 means "unspecified".
Either Q or S (synapses per neuron) is given and the other is -1.  Any
line containing '#' is a comment.

Optimal-search files instead hold

    "H","S","C","D1","D2"[,"G_max","G_step"]

and each combination runs optimize_row().
"""

from __future__ import annotations

import csv
import itertools
import logging
import math
from dataclasses import dataclass
from typing import (
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
)

from cognon.core.config import EPSILON, CognonError, NeuronConfig, TrainConfig
from cognon.core.experiment import run_configuration
from cognon.core.random_source import RandomSource
from cognon.core.statistics import NeuronStatistics

logger = logging.getLogger(__name__)

DEFAULT_REPETITIONS: int = 10
DEFAULT_G_MAX: float = 1.9
DEFAULT_G_STEP: float = 0.1

TABLE_COLUMNS = (
    "W", "num active",
    "C", "D1", "D2", "H", "Q", "R", "G_m", "H_m", "spn",
    "pL", "pL stddev", "pF", "pF stddev",
    "bpn", "bpn stddev", "bps", "bps stddev",
    "spn after", "spn after stddev",
    "R*pL", "R*pL stddev", "D_eff", "D_eff stddev",
)
TABLE_HEADER: str = ",".join(f'"{c}"' for c in TABLE_COLUMNS)


class TableFormatError(CognonError):
    """Raised for a malformed line in a sweep or optimal-search file."""
    pass


# ── Parsing ──────────────────────────────────────────────────────────────────


def _parse_list(text: str, convert: Callable[[str], float]) -> List:
    values = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            values.append(convert(token))
        except ValueError:
            raise TableFormatError(f"not a number: {token!r}")
    return values


def parse_int_list(text: str) -> List[int]:
    """'10' -> [10]; '10,20,30' -> [10, 20, 30]."""
    return _parse_list(text, lambda t: int(float(t)))


def parse_float_list(text: str) -> List[float]:
    return _parse_list(text, float)


@dataclass
class TableRow:
    """One configuration from a sweep file; -1 marks an unspecified value."""
    W: int
    num_active: int
    C: int
    D1: int
    D2: int
    H: float
    Q: float
    R: int
    G_m: float = -1.0
    H_m: float = -1.0

    def to_train_config(self) -> TrainConfig:
        """H_m defaults to H * G_m when only G_m is given."""
        config = NeuronConfig(
            C=self.C, D1=self.D1, D2=self.D2, H=self.H, Q=self.Q, R=self.R
        )
        if self.G_m > 0.0:
            config.G_m = self.G_m
            config.H_m = self.H_m if self.H_m >= 0.0 else self.H * self.G_m
        return TrainConfig(
            config=config,
            W=self.W,
            num_active=self.num_active if self.num_active > 0 else None,
        )


@dataclass
class OptimalRow:
    H: float
    S: int
    C: int
    D1: int
    D2: int
    G_max: float = DEFAULT_G_MAX
    G_step: float = DEFAULT_G_STEP


def _split_lines(lines: Iterable[str]) -> Iterator[List[str]]:
    for line in lines:
        line = line.rstrip("\n")
        if "#" in line:
            continue
        fields = next(csv.reader([line], skipinitialspace=True), [])
        if len(fields) < 2:
            continue
        yield fields


def expand_row(fields: Sequence[str]) -> Iterator[TableRow]:
    """Cartesian product of the values in one sweep line."""
    if len(fields) < 10:
        raise TableFormatError(
            f"expected at least 10 values, got {len(fields)}: {fields!r}"
        )
    W = parse_int_list(fields[0])
    num_active = parse_int_list(fields[1])
    C = parse_int_list(fields[2])
    D1 = parse_int_list(fields[3])
    D2 = parse_int_list(fields[4])
    H = parse_float_list(fields[5])
    Q = parse_float_list(fields[6])
    R = parse_int_list(fields[7])
    G_m = parse_float_list(fields[8]) or [-1.0]
    H_m = parse_float_list(fields[9]) or [-1.0]
    S = parse_int_list(fields[10]) if len(fields) > 10 else [-1]
    S = S or [-1]

    for w, a, c, d1, d2, h, q, r, g_m, h_m, s in itertools.product(
        W, num_active, C, D1, D2, H, Q, R, G_m, H_m, S
    ):
        if q <= 0.0 and s > 0:
            q = (s + EPSILON) / (c * h * r)
        elif not (q > 0.0 and s <= 0):
            raise TableFormatError("specify either Q or S, and the other as -1")
        yield TableRow(w, a, c, d1, d2, h, q, r, g_m, h_m)


def parse_table(lines: Iterable[str]) -> Iterator[TableRow]:
    for fields in _split_lines(lines):
        yield from expand_row(fields)


def parse_optimal(lines: Iterable[str]) -> Iterator[OptimalRow]:
    for fields in _split_lines(lines):
        if len(fields) < 5:
            raise TableFormatError(
                f"expected at least 5 values, got {len(fields)}: {fields!r}"
            )
        G_max = parse_float_list(fields[5]) if len(fields) > 5 else []
        G_step = parse_float_list(fields[6]) if len(fields) > 6 else []
        for h, s, c, d1, d2, g_max, g_step in itertools.product(
            parse_float_list(fields[0]),
            parse_int_list(fields[1]),
            parse_int_list(fields[2]),
            parse_int_list(fields[3]),
            parse_int_list(fields[4]),
            G_max or [DEFAULT_G_MAX],
            G_step or [DEFAULT_G_STEP],
        ):
            yield OptimalRow(h, s, c, d1, d2, g_max, g_step)


# ── Running and formatting ──────────────────────────────────────────────────


def run_table_row(
    row: TableRow,
    repetitions: int = DEFAULT_REPETITIONS,
    random: Optional[RandomSource] = None,
    max_workers: Optional[int] = None,
    executor: str = "thread",
) -> NeuronStatistics:
    logger.info("Row %s", row)
    return run_configuration(
        repetitions, row.to_train_config(), random=random,
        max_workers=max_workers, executor=executor,
    )


def format_table_row(stats: NeuronStatistics) -> str:
    """One CSV line in TABLE_COLUMNS order."""
    train = stats.config
    cfg = train.config
    spn = stats.synapses_per_neuron.mean()
    pL = stats.true_true
    bpn = stats.bits_per_neuron
    q_after = stats.q_after
    d_eff = stats.d_effective

    values = [
        f"{train.W}",
        f"{train.num_active}" if train.num_active is not None else "-1",
        f"{cfg.C}",
        f"{cfg.D1}",
        f"{cfg.D2}",
        f"{cfg.H:f}",
        f"{cfg.Q:f}",
        f"{cfg.R}",
        f"{cfg.G_m:f}" if cfg.G_m is not None else "-1.0",
        f"{cfg.H_m:f}" if cfg.H_m is not None else "-1.0",
        f"{spn:f}",
        f"{pL.mean():f}",
        f"{pL.stddev():f}",
        f"{stats.false_true.mean():f}",
        f"{stats.false_true.stddev():f}",
        f"{bpn.mean():f}",
        f"{bpn.stddev():f}",
        f"{bpn.mean() / spn:f}",
        f"{bpn.stddev() / spn:f}",
        f"{q_after.mean() * spn:f}",
        f"{q_after.stddev() * spn:f}",
        f"{cfg.R * pL.mean():f}",
        f"{cfg.R * pL.stddev():f}",
        f"{d_eff.mean():f}",
        f"{d_eff.stddev():f}",
    ]
    return ",".join(values)


# ── Optimal search ──────────────────────────────────────────────────────────


def optimize_row(
    H: float,
    S: int,
    C: int,
    D1: int,
    D2: int,
    G_max: float = DEFAULT_G_MAX,
    G_step: float = DEFAULT_G_STEP,
    run: Optional[Callable[[TableRow], NeuronStatistics]] = None,
    report: Optional[Callable[[NeuronStatistics, bool], None]] = None,
) -> Optional[NeuronStatistics]:
    """
    Search G_m, Q and W for the most bits per neuron at S synapses.

    G_m steps down from G_max to 1.  For each G_m, Q steps down from just
    above the best Q so far (R follows from S, C, H, Q), and for each Q, W
    steps up from 10 to 10000.  A candidate qualifies when D_eff > 0.4,
    pF < pL and pF < 0.03.  Each loop stops early once results stop
    improving.

    run(row) evaluates one configuration (run_table_row by default).
    report(stats, is_new_optimum) sees every evaluated configuration.
    Returns the best statistics found, or None unless some qualifying
    configuration stored more than zero bits.
    """
    if G_step <= 0.0:
        raise TableFormatError(f"G_step must be positive, got {G_step}")
    run = run or run_table_row
    optimal: Optional[NeuronStatistics] = None
    optimal_bpn = -1.0
    optimal_Q = 2.0 * D1

    G_m = G_max
    while 1.0 <= G_m:
        H_m = H * G_m
        best_bpn_G = -1.0
        best_pL_G = -1.0
        G_had_optimal = False
        last_R = -1

        Q = min(2.0 * D1, optimal_Q + (2.0 * D1) / 10.0)
        while 0.5 < Q:
            current_Q = Q
            Q -= D1 / 10.0

            R = int(math.floor(S / (C * H * current_Q) + EPSILON))
            if R <= 1 or 400 < R or R == last_R:
                continue
            last_R = R

            Q_had_optimal = False
            max_bpn = -1.0
            max_pL = -1.0
            min_pF = 100.0
            Q_actual = S / float(C * H * R)

            w = 10
            while w <= 10000:
                stats = run(TableRow(w, -1, C, D1, D2, H, Q_actual, R, G_m, H_m))
                bpn = stats.bits_per_neuron.mean()
                d_eff = stats.d_effective.mean()
                pL = stats.true_true.mean()
                pF = stats.false_true.mean()

                max_pL = max(max_pL, pL)
                min_pF = min(min_pF, pF)

                is_optimal = 0.4 < d_eff and pF < pL and pF < 0.03 and optimal_bpn < bpn
                if is_optimal:
                    optimal = stats.copy()
                    optimal_bpn = bpn
                    optimal_Q = current_Q
                    Q_had_optimal = True
                    G_had_optimal = True
                    logger.debug("New optimum %.3f bpn at G_m=%g Q=%g W=%d",
                                 bpn, G_m, current_Q, w)
                if report is not None:
                    report(stats, is_optimal)

                if 0.0 < max_bpn and (
                    (bpn < 0.9 * max_bpn and bpn < optimal_bpn)
                    or (bpn < 0.1 * max_bpn and optimal_bpn < 0.0)
                ):
                    break  # bpn declining
                if pL < EPSILON:
                    break  # not learning
                if 0.1 < pF or pL < pF:
                    break  # too many false positives
                if bpn <= 0.0:
                    break  # no information

                max_bpn = max(max_bpn, bpn)
                w += 10 if w < 100 else (100 if w < 1000 else 1000)

            best_pL_G = max(best_pL_G, max_pL)
            best_bpn_G = max(best_bpn_G, max_bpn)

            if max_pL < EPSILON:
                break
            if 0.0 < optimal_bpn and max_pL < min_pF:
                break
            if 0.0 < optimal_bpn and current_Q < optimal_Q and not Q_had_optimal:
                break

        if best_bpn_G < 0.7 * optimal_bpn:
            break
        if best_pL_G < EPSILON:
            break
        if 0.0 < optimal_bpn and not G_had_optimal:
            break
        G_m -= G_step

    if optimal_bpn <= 0.0:
        return None
    return optimal
