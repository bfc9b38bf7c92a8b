# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: NEURON
# Synapse arrays, first-fire threshold evaluation, learning rules
# ═══════════════════════════════════════════════════════════════════════════════


"""
Time is quantized.  A signal arriving on synapse i with input delay x reaches
the soma at slot delays[i] + x.  Each container (dendrite) sums the strengths
of the signals arriving in a slot; the neuron fires at the earliest slot in
which any container reaches the threshold H.

Training only ever touches synapses.  When the neuron fires on a training
word, every synapse that contributed to a firing container is handed to the
active learning rule:

- ATROPHY: the synapse is frozen.  At the end of training every synapse that
  was never frozen is disabled for good.
- STRENGTH: the synapse's strength becomes G_m and it is marked frozen.  At
  the end of training the threshold switches from H to H_m.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from cognon.core.config import (
    DISABLED,
    EPSILON,
    ConfigurationError,
    NeuronConfig,
)
from cognon.core.random_source import RandomSource
from cognon.core.wordset import Word, WordError

logger = logging.getLogger(__name__)


class LearningRule(Enum):
    """How a neuron changes the synapses that made it fire."""
    ATROPHY = "atrophy"    # Freeze contributors, disable the rest at the end
    STRENGTH = "strength"  # Strengthen contributors to G_m, raise H to H_m

    @classmethod
    def for_config(cls, config: NeuronConfig) -> "LearningRule":
        return cls.STRENGTH if config.is_strength else cls.ATROPHY


@dataclass
class InputDelayHistograms:
    """Per-word diagnostics accumulated while training."""
    # (delay, container) pairs that reached threshold, by delay
    fired: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    # Delay holding the single largest container sum, by delay
    max_sum: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    # Every (delay, container) sum, bucketed by floor(sum)
    h_values: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))


def _grow(counts: np.ndarray, size: int) -> np.ndarray:
    if counts.size >= size:
        return counts
    return np.concatenate([counts, np.zeros(size - counts.size, dtype=np.int64)])


class Neuron:
    """
    A single Cognon neuron.

    Lifecycle: init(config) -> start_training() -> train(word)... ->
    finish_training() -> expose(word)...

    Not thread safe: train() mutates synapses and every call rewrites the
    per-container scratch sums.
    """

    def __init__(
        self,
        config: Optional[NeuronConfig] = None,
        random: Optional[RandomSource] = None,
    ) -> None:
        self.random = random or RandomSource()
        self.config: Optional[NeuronConfig] = None
        self.rule: Optional[LearningRule] = None

        self.H: float = 1.0
        self.Q_after: float = -1.0
        self.length: int = -1

        self.delays: np.ndarray = np.zeros(0, dtype=np.int64)
        self.containers: np.ndarray = np.zeros(0, dtype=np.int64)
        self.frozen: np.ndarray = np.zeros(0, dtype=bool)
        self.strength: np.ndarray = np.zeros(0, dtype=np.float64)
        self.sums: np.ndarray = np.zeros(0, dtype=np.float64)

        if config is not None:
            self.init(config)

    # ── Configuration ───────────────────────────────────────────────────────

    def init(self, config: NeuronConfig) -> None:
        """Validate config, draw a fresh synapse topology, reset all state."""
        config.validate()

        self.config = config
        self.H = float(config.H)
        self.Q_after = -1.0
        self.length = config.length

        if self.delays.size != self.length:
            self.delays = np.zeros(self.length, dtype=np.int64)
            self.containers = np.zeros(self.length, dtype=np.int64)
            self.frozen = np.zeros(self.length, dtype=bool)
            self.strength = np.zeros(self.length, dtype=np.float64)
        self.sums = np.zeros(config.C, dtype=np.float64)

        self.delays[:] = self.random.integers(config.D2, self.length)
        self.containers[:] = self.random.integers(config.C, self.length)
        self.frozen[:] = False
        self.strength[:] = 1.0

        self.rule = LearningRule.for_config(config)
        logger.debug(
            "Neuron init: %d synapses, C=%d D1=%d D2=%d H=%g rule=%s",
            self.length, config.C, config.D1, config.D2, config.H,
            self.rule.value,
        )

    # ── Properties ──────────────────────────────────────────────────────────

    @property
    def C(self) -> int:
        return self._require_config().C

    @property
    def D1(self) -> int:
        return self._require_config().D1

    @property
    def D2(self) -> int:
        return self._require_config().D2

    @property
    def Q(self) -> float:
        return self._require_config().Q

    @property
    def R(self) -> int:
        return self._require_config().R

    @property
    def G_m(self) -> float:
        cfg = self._require_config()
        return cfg.G_m if cfg.G_m is not None else -1.0

    @property
    def H_m(self) -> float:
        cfg = self._require_config()
        return cfg.H_m if cfg.H_m is not None else -1.0

    @property
    def slots(self) -> int:
        """Delay spread D1 + D2."""
        return self._require_config().slots

    # ── Firing ──────────────────────────────────────────────────────────────

    def expose(self, word: Word) -> int:
        """
        Earliest slot at which some container reaches H, or DISABLED.

        Reads synapse state only; calling it repeatedly gives the same answer.
        """
        sums = self._slot_sums(word)
        fired_slots = np.flatnonzero(np.any(sums + EPSILON >= self.H, axis=1))
        if fired_slots.size == 0:
            self.sums = sums[-1].copy()
            return DISABLED
        d = int(fired_slots[0])
        self.sums = sums[d].copy()
        return d

    def train(self, word: Word) -> int:
        """Expose, then apply the learning rule to every contributing synapse."""
        if self.rule is None:
            raise ConfigurationError("Neuron.train() called before init()")

        d = self.expose(word)
        if d == DISABLED:
            return d

        fired_containers = np.flatnonzero(self.sums + EPSILON >= self.H)
        arrival = self.delays[word.synapses] + word.delays
        contributing = word.synapses[
            (arrival == d)
            & np.isin(self.containers[word.synapses], fired_containers)
        ]
        self._update_synapses(contributing)
        return d

    def start_training(self) -> None:
        cfg = self._require_config()
        if self.rule is LearningRule.STRENGTH:
            self.H = float(cfg.H)

    def finish_training(self) -> None:
        """Make the learned topology permanent and record Q_after."""
        cfg = self._require_config()
        if self.rule is LearningRule.ATROPHY:
            atrophied = ~self.frozen
            self.strength[atrophied] = 0.0
            self.delays[atrophied] = DISABLED
        else:
            self.H = float(cfg.H_m)

        self.Q_after = int(np.count_nonzero(self.frozen)) / float(self.length)

    def _update_synapses(self, synapses: np.ndarray) -> None:
        if self.rule is LearningRule.ATROPHY:
            self.frozen[synapses] = True
        else:
            self.strength[synapses] = self.config.G_m
            self.frozen[synapses] = True

    # ── Diagnostics ─────────────────────────────────────────────────────────

    def get_input_delay_histogram(
        self, word: Word, histograms: Optional[InputDelayHistograms] = None
    ) -> InputDelayHistograms:
        """Accumulate firing, max-sum, and container-sum histograms for word."""
        if histograms is None:
            histograms = InputDelayHistograms()
        s = self.slots
        sums = self._slot_sums(word)

        fired = np.count_nonzero(sums + EPSILON >= self.H, axis=1)
        histograms.fired = _grow(histograms.fired, s + 1)
        histograms.fired[:s] += fired

        # First (delay, container) in scan order holding the largest sum
        m = int(np.argmax(sums.reshape(-1))) // sums.shape[1]
        histograms.max_sum = _grow(histograms.max_sum, s + 1)
        histograms.max_sum[m] += 1

        buckets = np.floor(sums.reshape(-1) + EPSILON).astype(np.int64)
        counts = np.bincount(buckets)
        histograms.h_values = _grow(histograms.h_values, counts.size)
        histograms.h_values[: counts.size] += counts

        self.sums = sums[-1].copy()
        return histograms

    def get_synapse_delay_histogram(self) -> np.ndarray:
        """Count of live synapses at each delay, length D2 + 1."""
        d2 = self.D2
        live = self.delays[(self.delays >= 0) & (self.delays < d2)]
        return np.bincount(live, minlength=d2 + 1).astype(np.int64)

    # ── Internal ────────────────────────────────────────────────────────────

    def _require_config(self) -> NeuronConfig:
        if self.config is None:
            raise ConfigurationError("Neuron has not been initialized")
        return self.config

    def _slot_sums(self, word: Word) -> np.ndarray:
        """(slots, C) matrix of summed strengths arriving per slot/container."""
        cfg = self._require_config()
        self._check_word(word)

        s = cfg.slots
        arrival = self.delays[word.synapses] + word.delays
        on_time = arrival < s
        synapses = word.synapses[on_time]
        cells = arrival[on_time] * cfg.C + self.containers[synapses]
        sums = np.bincount(
            cells, weights=self.strength[synapses], minlength=s * cfg.C
        )
        return sums.reshape(s, cfg.C)

    def _check_word(self, word: Word) -> None:
        if len(word) == 0:
            return
        if word.synapses[0] < 0 or word.synapses[-1] >= self.length:
            raise WordError(
                f"word references synapses outside [0, {self.length})"
            )
        delays = word.delays
        bad = (delays != DISABLED) & ((delays < 0) | (delays >= self.config.D1))
        if np.any(bad):
            raise WordError(
                f"word input delays must lie in [0, {self.config.D1})"
            )
