"""Tests for the closed-form capacity model."""

import math

import numpy as np
import pytest

from cognon.core.analysis import (
    capacity,
    expected_strengthen_synapses,
    false_positive_curve,
    lbinomial,
    prob_false_positive,
    prob_fire,
    prob_strengthen_synapses,
)
from cognon.core.bob import bits_per_neuron


def _tail(n, p, k_min):
    """P(Binomial(n, p) >= k_min) computed exactly."""
    return sum(math.comb(n, k) * p ** k * (1 - p) ** (n - k) for k in range(k_min, n + 1))


# ── Building blocks ─────────────────────────────────────────────────────────


def test_lbinomial_is_a_distribution():
    total = sum(math.exp(lbinomial(10, k, 0.3)) for k in range(11))
    assert total == pytest.approx(1.0)
    assert math.exp(lbinomial(4, 2, 0.5)) == pytest.approx(6 / 16.0)


def test_lbinomial_edges():
    assert lbinomial(5, 0, 0.0) == 0.0
    assert lbinomial(5, 5, 1.0) == 0.0
    assert lbinomial(5, 1, 0.0) == -math.inf
    with pytest.raises(ValueError):
        lbinomial(5, 6, 0.5)


def test_capacity():
    assert capacity(0.1, 0.2, 40) == 0.0
    assert capacity(0.2, 0.2, 40) == 0.0
    # Same formula Bob uses once the false-alarm floor is added
    assert capacity(0.5, 0.01 + 1 / 360.0, 10) == pytest.approx(
        bits_per_neuron(10, 5, 5, 1, 99)
    )
    assert capacity(0.5, 0.01, 10) > 0.0


# ── prob_fire ───────────────────────────────────────────────────────────────


def test_prob_fire_no_strong_synapses():
    assert prob_fire(20, 0, 0.5, 2.0, 10) == pytest.approx(_tail(20, 0.5, 10))


def test_prob_fire_all_strong_synapses():
    """Every input counts G: need H / G active inputs."""
    assert prob_fire(20, 20, 0.5, 2.0, 10) == pytest.approx(_tail(20, 0.5, 5))


def test_prob_fire_grows_with_strengthening():
    values = [prob_fire(100, s, 0.1, 1.5, 12) for s in (0, 20, 50, 100)]
    assert values == sorted(values)
    assert all(0.0 <= v <= 1.0 for v in values)


def test_prob_fire_rejects_bad_rate():
    with pytest.raises(ValueError, match="rate"):
        prob_fire(10, 0, 0.0, 1.5, 5)


def test_prob_false_positive_floored():
    assert prob_false_positive(20, 0, 0.5, 2.0, 10, w=10 ** 9) == 0.0
    fired = prob_fire(20, 0, 0.5, 2.0, 10)
    expected = fired - 5 / 2.0 ** 10
    assert prob_false_positive(20, 0, 0.5, 2.0, 10, w=5) == pytest.approx(expected)


# ── Strengthening chain ─────────────────────────────────────────────────────


def test_prob_strengthen_rows_are_distributions():
    probs = prob_strengthen_synapses(60, 0.1, 1.9, 6, 30)
    assert probs.shape == (31, 61)
    np.testing.assert_allclose(probs.sum(axis=1), np.ones(31))
    assert probs[0, 0] == 1.0
    assert np.all(probs >= 0.0)


def test_prob_strengthen_never_fires():
    probs = prob_strengthen_synapses(30, 0.1, 1.5, 1000, 5)
    np.testing.assert_allclose(probs[:, 0], np.ones(6))


def test_prob_strengthen_always_fires():
    """With H = 0 the first word strengthens exactly its active inputs."""
    n, rate = 12, 0.25
    probs = prob_strengthen_synapses(n, rate, 1.5, 0, 1)
    expected = [math.comb(n, k) * rate ** k * (1 - rate) ** (n - k) for k in range(n + 1)]
    np.testing.assert_allclose(probs[1], expected)


def test_expected_strengthen_monotone():
    expected = expected_strengthen_synapses(60, 0.1, 1.9, 6, 40)
    assert expected.shape == (41,)
    assert expected[0] == 0.0
    assert np.all(np.diff(expected) >= -1e-9)
    assert expected[-1] <= 60


def test_false_positive_curve():
    curve = false_positive_curve(100, 0.1, 1.5, 10, 20)
    assert curve.shape == (20,)
    assert np.all((curve >= 0.0) & (curve <= 1.0 + 1e-9))
    assert curve[0] > 0.0
    # More taught words, more strengthened synapses, more false alarms
    assert curve[-1] >= curve[0]
