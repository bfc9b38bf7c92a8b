# ═══════════════════════════════════════════════════════════════════════════════
# PART 7: BOB (EVALUATOR)
# Confusion matrix and information measures for a trained neuron
# ═══════════════════════════════════════════════════════════════════════════════


"""
Bob gets a trained neuron and the wordset it was trained on.  He checks
which training words still fire at their learned delay (true_true vs
true_false), then shows the neuron fresh random words that were never taught
and counts how many of them fire anyway (false_true vs false_false).

From the four counts he estimates how much information the neuron stores:
bits_per_neuron (a rate estimate) and mutual_information (a counting
argument over the space of possible words).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Set

import numpy as np

from cognon.core.config import CognonError
from cognon.core.neuron import Neuron
from cognon.core.statistics import NeuronStatistics
from cognon.core.wordset import Word, Wordset

# Floor on the false-alarm rate used by bits_per_neuron
FALSE_ALARM_FLOOR: float = 1.0 / 360.0

PROB_MIN: float = 1.0e-7
PROB_MAX: float = 0.999999


class ExhaustedWordSpaceError(CognonError):
    """Raised when no test word distinct from the training words turns up."""
    pass


@dataclass
class ConfusionMatrix:
    """<ground truth>_<neuron response> counts."""
    true_true: int = 0
    true_false: int = 0
    false_true: int = 0
    false_false: int = 0

    @property
    def true_count(self) -> int:
        return self.true_true + self.true_false

    @property
    def false_count(self) -> int:
        return self.false_true + self.false_false


def lchoose(n: float, k: float) -> float:
    """Natural log of the binomial coefficient C(n, k) for real n, k."""
    return math.lgamma(n + 1) - math.lgamma(n - k + 1) - math.lgamma(k + 1)


def _lchoose_small_k(n: float, k: int) -> float:
    """lchoose(n, k) for integer k much smaller than n.

    Sums log(n - i) instead of differencing lgamma values, which lose all
    precision once n is astronomically large.
    """
    return float(np.sum(np.log(n - np.arange(k)))) - math.lgamma(k + 1)


def bits_per_neuron(
    num_words: int,
    true_true: int,
    true_false: int,
    false_true: int,
    false_false: int,
) -> float:
    """Information stored about num_words taught words, in bits."""
    if true_true + true_false == 0:
        return 0.0

    prob_false = FALSE_ALARM_FLOOR
    if false_true + false_false > 0:
        prob_false += false_true / float(false_true + false_false)
    prob_learn = true_true / float(true_true + true_false)

    if prob_learn < prob_false:
        return 0.0

    prob_false = min(max(prob_false, PROB_MIN), PROB_MAX)
    prob_learn = min(max(prob_learn, PROB_MIN), PROB_MAX)

    info = (
        math.log(1.0 - prob_learn)
        - math.log(1.0 - prob_false)
        - prob_learn * math.log(1.0 - prob_learn)
        + prob_learn * math.log(1.0 - prob_false)
        + prob_learn * math.log(prob_learn)
        - prob_learn * math.log(prob_false)
    )
    return num_words * info / math.log(2.0)


def mutual_information(
    neuron: Neuron,
    true_true: int,
    true_false: int,
    false_true: int,
    false_false: int,
) -> float:
    """
    Bits that distinguish the learned words from the rest of word space.

    Word space has Z = 2**length members.  Compares the number of ways to
    pick the learned words among the Z*pL words the neuron accepts with the
    number of ways false alarms could account for them.  Adds log2(D1) bits
    per learned word when the learned delay itself carries information.
    """
    if true_true == 0:
        return 0.0

    num_words = true_true + true_false
    prob_learn = true_true / float(num_words)
    prob_false = 0.0
    if false_true + false_false > 0:
        prob_false = false_true / float(false_true + false_false)
    if prob_false < PROB_MIN:
        prob_false = 1.0e-6

    log_z = neuron.length * math.log(2.0)
    if log_z < 700.0:
        z = math.exp(log_z)
        if z <= num_words:
            return 0.0
        false_alarms = (z - num_words) * prob_false
        # lchoose(fa + tt, fa) == lchoose(fa + tt, tt)
        result = _lchoose_small_k(z * prob_learn, true_true)
        result -= _lchoose_small_k(false_alarms + true_true, true_true)
    else:
        # z overflows a double; C(n, k) ~ n**k / k! for n >> k
        result = true_true * (math.log(prob_learn) - math.log(prob_false))
    result /= math.log(2.0)

    if neuron.D1 > 1:
        result += true_true * math.log2(neuron.D1)
    return max(result, 0.0)


class Bob:
    """Evaluates a trained neuron."""

    def __init__(self, max_redraws: int = 10000) -> None:
        # Consecutive duplicate draws tolerated for one test word
        self.max_redraws = max_redraws

    def test(
        self,
        num_test_words: int,
        words: Wordset,
        neuron: Neuron,
        stats: NeuronStatistics,
    ) -> ConfusionMatrix:
        """Fill the confusion matrix and add every derived sample to stats."""
        cm = ConfusionMatrix()
        self.test_training_set(words, neuron, cm)
        self.test_test_set(words, neuron, num_test_words, cm)

        total = cm.true_count
        if total > 0:
            stats.true_true.add_sample(cm.true_true / float(total))
            stats.true_false.add_sample(cm.true_false / float(total))
        stats.true_count.add_sample(total)

        total = cm.false_count
        if total > 0:
            stats.false_true.add_sample(cm.false_true / float(total))
            stats.false_false.add_sample(cm.false_false / float(total))
        stats.false_count.add_sample(total)

        bpn = bits_per_neuron(
            len(words), cm.true_true, cm.true_false, cm.false_true, cm.false_false
        )
        stats.bits_per_neuron.add_sample(bpn)
        stats.bits_per_neuron_per_refractory_period.add_sample(bpn / float(neuron.R))
        stats.mutual_information.add_sample(
            mutual_information(
                neuron, cm.true_true, cm.true_false, cm.false_true, cm.false_false
            )
        )
        return cm

    def test_training_set(
        self, words: Wordset, neuron: Neuron, cm: ConfusionMatrix
    ) -> None:
        for i in range(len(words)):
            slot = neuron.expose(words.get_word(i))
            if 0 <= slot < neuron.slots and slot == words.delay(i):
                cm.true_true += 1
            else:
                cm.true_false += 1

    def test_test_set(
        self,
        words: Wordset,
        neuron: Neuron,
        num_test_words: int,
        cm: ConfusionMatrix,
    ) -> None:
        training: Set[Word] = {words.get_word(i) for i in range(len(words))}
        test = Wordset(words.random)
        test.copy_config(1, words)

        for _ in range(num_test_words):
            word = self._draw_unseen(test, training)
            slot = neuron.expose(word)
            if 0 <= slot < neuron.slots:
                cm.false_true += 1
            else:
                cm.false_false += 1

    def _draw_unseen(self, test: Wordset, training: Set[Word]) -> Word:
        test.init()
        redraws = 0
        while test.get_word(0) in training:
            redraws += 1
            if redraws > self.max_redraws:
                raise ExhaustedWordSpaceError(
                    f"{self.max_redraws} consecutive random words were all "
                    f"training words; word space is too small"
                )
            test.init()
        return test.get_word(0)
