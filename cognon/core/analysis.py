# ═══════════════════════════════════════════════════════════════════════════════
# PART 9: ANALYSIS
# Closed-form model of synapse-strength learning, used as a cross-check
# ═══════════════════════════════════════════════════════════════════════════════


"""
Treats a single-container, single-delay neuron with n synapses and
synapse-strength learning as a Markov chain over "number of strengthened
synapses".  Each input fires independently with probability `rate` (1/R).
A word makes the neuron fire when

    G * (active strengthened) + (active unstrengthened) >= H

and firing during training strengthens every active unstrengthened synapse.

The simulator should agree with these curves when configured with C=1,
D1=D2=1 and Q chosen so that length = n.
"""

from __future__ import annotations

import math

import numpy as np

from cognon.core.bob import lchoose
from cognon.core.config import EPSILON


def lbinomial(n: float, k: float, p: float) -> float:
    """Natural log of the Binomial(n, p) probability of exactly k successes."""
    if not (0.0 <= k <= n and 0.0 <= p <= 1.0):
        raise ValueError(f"lbinomial needs 0 <= k <= n and 0 <= p <= 1, got n={n} k={k} p={p}")
    result = lchoose(n, k)
    if k > 0:
        result += k * math.log(p) if p > 0.0 else -math.inf
    if n - k > 0:
        result += (n - k) * math.log(1.0 - p) if p < 1.0 else -math.inf
    return result


def capacity(prob_learn: float, prob_false: float, w: int) -> float:
    """
    Bits learned from w words given the learn and false-alarm rates.

    0 when the neuron does no better than chance.
    """
    if prob_learn <= prob_false:
        return 0.0
    return (w / math.log(2.0)) * (
        math.log(1.0 - prob_learn)
        - math.log(1.0 - prob_false)
        + prob_learn
        * (
            -math.log(1.0 - prob_learn)
            + math.log(1.0 - prob_false)
            + math.log(prob_learn)
            - math.log(prob_false)
        )
    )


def _binomial_pmf(n: int, p: float) -> np.ndarray:
    """P(k successes) for k = 0..n."""
    if n == 0:
        return np.ones(1)
    k = np.arange(n + 1)
    log_fact = np.concatenate([[0.0], np.cumsum(np.log(np.arange(1, n + 1)))])
    log_pmf = log_fact[n] - log_fact[k] - log_fact[n - k]
    with np.errstate(divide="ignore", invalid="ignore"):
        log_pmf = log_pmf + np.where(k > 0, k * np.log(p), 0.0)
        log_pmf = log_pmf + np.where(n - k > 0, (n - k) * np.log1p(-p), 0.0)
    return np.exp(log_pmf)


def _check_rate(rate: float) -> None:
    if not 0.0 < rate < 1.0:
        raise ValueError(f"rate must lie in (0, 1), got {rate}")


def prob_fire(n: int, n_strong: int, rate: float, G: float, H: float) -> float:
    """Probability that a random word fires a neuron with n_strong strengthened synapses."""
    _check_rate(rate)
    weak = _binomial_pmf(n - n_strong, rate)
    strong = _binomial_pmf(n_strong, rate)

    # tail[j] = P(at least j active unstrengthened synapses)
    tail = np.concatenate([np.cumsum(weak[::-1])[::-1], [0.0]])
    j = np.arange(n - n_strong + 1, dtype=np.float64)
    i = np.arange(n_strong + 1, dtype=np.float64)
    first = np.searchsorted(j, H - G * i - EPSILON, side="left")
    fired = np.minimum(tail[first], 1.0)
    return float(min(np.dot(strong, fired), 1.0))


def prob_false_positive(
    n: int, n_strong: int, rate: float, G: float, H: float, w: int
) -> float:
    """prob_fire less the chance of drawing one of the w taught words."""
    result = prob_fire(n, n_strong, rate, G, H) - w / 2.0 ** (n * rate)
    return max(result, 0.0)


def prob_strengthen_synapses(
    n: int, rate: float, G: float, H: float, w: int
) -> np.ndarray:
    """
    Distribution of strengthened-synapse counts while training w words.

    Returns a (w + 1) x (n + 1) matrix; row i is the distribution of the
    number of strengthened synapses after i words.  Rows sum to 1.
    """
    _check_rate(rate)
    pmf = [_binomial_pmf(m, rate) for m in range(n + 1)]
    result = np.zeros((w + 1, n + 1))
    result[0, 0] = 1.0

    for i in range(1, w + 1):
        prev = result[i - 1]
        for j in np.flatnonzero(prev):
            # Weight of each count k of active strengthened synapses
            weight = prev[j] * pmf[j]
            # suffix[k] = weight of at least k active strengthened synapses
            suffix = np.concatenate([np.cumsum(weight[::-1])[::-1], [0.0]])

            p = pmf[n - j]
            l = np.arange(n - j + 1, dtype=np.float64)
            k = np.arange(j + 1, dtype=np.float64)
            # Fired for l unstrengthened inputs iff k >= first[l]
            first = np.searchsorted(G * k, H - l - EPSILON, side="left")
            fired = suffix[first] * p

            result[i, j:] += fired
            result[i, j] += prev[j] - fired.sum()

        # Rounding drift
        result[i] /= result[i].sum()
    return result


def expected_strengthen_synapses(
    n: int, rate: float, G: float, H: float, w: int
) -> np.ndarray:
    """Expected number of strengthened synapses after 0..w words."""
    probs = prob_strengthen_synapses(n, rate, G, H, w)
    return probs @ np.arange(n + 1, dtype=np.float64)


def false_positive_curve(
    n: int, rate: float, G: float, H: float, w: int
) -> np.ndarray:
    """
    False-alarm probability after training 1..w words.

    After training the threshold is G * H, so that is what a random word
    must reach.
    """
    probs = prob_strengthen_synapses(n, rate, G, H, w)
    fp = np.array(
        [prob_false_positive(n, j, rate, G, G * H, w) for j in range(n + 1)]
    )
    return probs[1:] @ fp
