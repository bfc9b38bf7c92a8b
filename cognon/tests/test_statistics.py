"""Tests for Statistic, Histogram and NeuronStatistics merging."""

import numpy as np
import pytest

from cognon.core.config import NeuronConfig, TrainConfig
from cognon.core.statistics import (
    Histogram,
    NeuronStatistics,
    Statistic,
    histogram_entropy,
)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _stat(*values):
    s = Statistic()
    for v in values:
        s.add_sample(v)
    return s


def _hist(*values):
    h = Histogram()
    for i, v in enumerate(values):
        h.add_sample(i, v)
    return h


# ── Statistic ───────────────────────────────────────────────────────────────


def test_statistic_basic():
    s = _stat(3.0, 4.0, 5.0)
    assert s.count == 3
    assert s.mean() == pytest.approx(4.0)
    assert s.stddev() == pytest.approx(1.0)
    assert s.values == [3.0, 4.0, 5.0]


def test_statistic_sentinels():
    assert Statistic().mean() == -1.0
    assert Statistic().stddev() == -1.0
    assert _stat(2.0).stddev() == -1.0
    assert _stat(2.0).mean() == 2.0


def test_statistic_stddev_clamped():
    """Rounding never produces a negative variance."""
    s = _stat(*([0.1] * 7))
    assert s.stddev() >= 0.0
    assert s.stddev() == pytest.approx(0.0, abs=1e-6)


def test_statistic_merge():
    a = _stat(3.0, 4.0, 5.0)
    b = _stat(5.0, 6.0, 7.0)
    c = a + b
    assert c.count == 6
    assert c.mean() == pytest.approx(5.0)
    assert c.stddev() == pytest.approx(1.4142135623)
    assert c.values == [3.0, 4.0, 5.0, 5.0, 6.0, 7.0]
    # Operands untouched
    assert a.count == 3


def test_statistic_merge_uneven():
    b = _stat(5.0, 6.0, 7.0, 8.0)
    assert b.stddev() == pytest.approx(1.2909944487)

    c = _stat(3.0, 4.0, 5.0) + b
    assert c.mean() == pytest.approx(5.42857142857)
    assert c.stddev() == pytest.approx(1.71824938596)


def test_statistic_incomplete_values_dropped():
    """Merging with a summary-only statistic drops the raw list."""
    stripped = _stat(1.0, 2.0)
    stripped.strip_values()
    assert not stripped.has_all_values

    merged = _stat(3.0) + stripped
    assert merged.count == 3
    assert merged.values == []
    assert merged.mean() == pytest.approx(2.0)

    # And stays dropped as more samples arrive
    merged.add_sample(4.0)
    assert merged.values == []


def test_statistic_merge_with_empty_keeps_values():
    merged = _stat(1.0, 2.0) + Statistic()
    assert merged.values == [1.0, 2.0]
    merged = Statistic() + _stat(1.0, 2.0)
    assert merged.values == [1.0, 2.0]


def test_statistic_merge_associative_commutative():
    rng = np.random.default_rng(3)
    for _ in range(20):
        a, b, c = (_stat(*rng.normal(size=rng.integers(1, 6))) for _ in range(3))
        left = (a + b) + c
        right = a + (b + c)
        swapped = c + b + a
        for other in (right, swapped):
            assert left.count == other.count
            assert left.mean() == pytest.approx(other.mean())
            assert left.stddev() == pytest.approx(other.stddev())


# ── Histogram ───────────────────────────────────────────────────────────────


def test_histogram_merge_pads_with_zeros():
    c = _hist(0, 3, 5, 1) + _hist(1, 4)
    assert len(c) == 4
    assert c.means() == pytest.approx([0.5, 3.5, 2.5, 0.5])
    assert c.counts() == [2, 2, 2, 2]


def test_histogram_merge_chain():
    a = _hist(0, 3, 5, 1)
    b = _hist(1, 4)
    c = b.copy()
    c += a + a
    assert c.means() == pytest.approx([1 / 3.0, 10 / 3.0, 10 / 3.0, 2 / 3.0])
    assert c.counts() == [3, 3, 3, 3]


def test_histogram_merge_with_empty():
    c = Histogram() + _hist(1, 2)
    assert c.means() == [1.0, 2.0]
    c = _hist(1, 2) + Histogram()
    assert c.means() == [1.0, 2.0]


def test_set_histogram():
    h = Histogram.from_counts([4, 0, 2])
    assert h.means() == [4.0, 0.0, 2.0]
    assert h.counts() == [1, 1, 1]

    h.set_histogram([1])
    assert h.counts() == [2, 1, 1]


def test_histogram_strip_values():
    h = _hist(1, 2)
    h.strip_values()
    assert all(b.values == [] for b in h.buckets)
    assert h.means() == [1.0, 2.0]


# ── NeuronStatistics ────────────────────────────────────────────────────────


def _record(pl):
    cfg = TrainConfig(config=NeuronConfig(C=1, D1=1, D2=1, H=10, Q=1, R=10), W=5)
    rec = NeuronStatistics(config=cfg)
    rec.true_true.add_sample(pl)
    rec.delay_histogram.set_histogram([3, 1])
    return rec


def test_neuron_statistics_merge():
    total = _record(0.2) + _record(0.4)
    assert total.true_true.count == 2
    assert total.true_true.mean() == pytest.approx(0.3)
    assert total.delay_histogram.means() == [3.0, 1.0]
    assert total.config.W == 5
    # Untouched measures stay empty
    assert total.bits_per_neuron.count == 0


def test_neuron_statistics_merge_in_place():
    total = NeuronStatistics()
    for pl in (0.1, 0.2, 0.3):
        total += _record(pl)
    assert total.true_true.count == 3
    assert total.true_true.mean() == pytest.approx(0.2)


def test_neuron_statistics_copy_and_strip():
    rec = _record(0.5)
    dup = rec.copy()
    dup.true_true.add_sample(1.0)
    assert rec.true_true.count == 1

    rec.strip_values()
    assert rec.true_true.values == []
    assert rec.delay_histogram[0].values == []
    assert rec.true_true.mean() == 0.5


# ── Entropy ─────────────────────────────────────────────────────────────────


def test_histogram_entropy():
    assert histogram_entropy([5, 5]) == pytest.approx(2.0)
    assert histogram_entropy([0, 7, 0]) == pytest.approx(1.0)
    assert histogram_entropy([1, 1, 1, 1]) == pytest.approx(4.0)
    assert histogram_entropy([0, 0]) == 0.0
    assert histogram_entropy([]) == 0.0
