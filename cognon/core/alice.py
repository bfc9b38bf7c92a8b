# ═══════════════════════════════════════════════════════════════════════════════
# PART 6: ALICE (TRAINER)
# Teaches a neuron a wordset, one word at a time
# ═══════════════════════════════════════════════════════════════════════════════


"""
Alice shows every word of a wordset to a neuron in training mode and stores
the slot the neuron fired at as that word's learned delay.  Words the neuron
did not fire on keep DISABLED.

The caller owns both the neuron and the wordset.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from cognon.core.neuron import InputDelayHistograms, Neuron
from cognon.core.wordset import Wordset


@dataclass
class TrainingHistograms:
    """Diagnostics gathered during a training pass."""
    # Number of words that trained to each delay slot
    delay: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    inputs: InputDelayHistograms = field(default_factory=InputDelayHistograms)


class Alice:
    """Trains a neuron on a wordset."""

    def train(self, words: Wordset, neuron: Neuron) -> int:
        """Train on every word; return how many words the neuron fired on."""
        learned = 0
        neuron.start_training()
        for i in range(len(words)):
            delay = neuron.train(words.get_word(i))
            if not 0 <= delay < neuron.slots:
                continue
            words.set_delay(i, delay)
            learned += 1
        neuron.finish_training()
        return learned

    def train_histogram(
        self, words: Wordset, neuron: Neuron
    ) -> TrainingHistograms:
        """Same as train(), additionally collecting per-word histograms."""
        hist = TrainingHistograms()
        neuron.start_training()
        for i in range(len(words)):
            word = words.get_word(i)
            delay = neuron.train(word)
            if not 0 <= delay < neuron.slots:
                continue
            words.set_delay(i, delay)
            if hist.delay.size < delay + 1:
                hist.delay = np.concatenate(
                    [hist.delay, np.zeros(delay + 1 - hist.delay.size, dtype=np.int64)]
                )
            hist.delay[delay] += 1
            neuron.get_input_delay_histogram(word, hist.inputs)
        neuron.finish_training()
        return hist
