# ═══════════════════════════════════════════════════════════════════════════════
# PART 5: STATISTICS
# Streaming accumulators pooled across independent trials
# ═══════════════════════════════════════════════════════════════════════════════


"""
Every trial produces one NeuronStatistics record.  Records from repeated
trials are merged with `+`, which is associative and commutative up to float
rounding, so it does not matter in which order parallel jobs finish.

A Statistic keeps count, sum, and sum of squares.  It also keeps the raw
samples while it can do so exactly: the raw list is either empty or exactly
`count` long.  Merging a complete list with an incomplete one drops the list
rather than keeping a partial one.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field, fields
from typing import Iterable, List, Sequence

import numpy as np

from cognon.core.config import TrainConfig


@dataclass
class Statistic:
    """Count, sum, sum of squares, and (while complete) the raw samples."""
    count: int = 0
    sum: float = 0.0
    ssum: float = 0.0
    values: List[float] = field(default_factory=list)

    @property
    def has_all_values(self) -> bool:
        return len(self.values) == self.count

    def add_sample(self, value: float) -> None:
        value = float(value)
        if self.count == 0 or self.has_all_values:
            self.values.append(value)
        self.count += 1
        self.sum += value
        self.ssum += value * value

    def mean(self) -> float:
        """sum / count, or -1 when empty."""
        if self.count > 0:
            return self.sum / float(self.count)
        return -1.0

    def stddev(self) -> float:
        """Sample standard deviation, or -1 for fewer than two samples."""
        if self.count > 1:
            v = self.count * self.ssum - self.sum * self.sum
            v /= float(self.count * (self.count - 1))
            return math.sqrt(v) if v >= 0.0 else 0.0
        return -1.0

    def strip_values(self) -> None:
        self.values.clear()

    def copy(self) -> "Statistic":
        return Statistic(self.count, self.sum, self.ssum, list(self.values))

    def __iadd__(self, other: "Statistic") -> "Statistic":
        if (
            self.count > 0
            and other.count > 0
            and not (self.has_all_values and other.has_all_values)
        ):
            self.values.clear()
        else:
            self.values.extend(other.values)
        self.count += other.count
        self.sum += other.sum
        self.ssum += other.ssum
        return self

    def __add__(self, other: "Statistic") -> "Statistic":
        result = self.copy()
        result += other
        return result


@dataclass
class Histogram:
    """Buckets of independent Statistics, grown on demand."""
    buckets: List[Statistic] = field(default_factory=list)

    @classmethod
    def from_counts(cls, counts: Iterable[int]) -> "Histogram":
        hist = cls()
        hist.set_histogram(counts)
        return hist

    def add_sample(self, bucket: int, value: float) -> None:
        while len(self.buckets) <= bucket:
            self.buckets.append(Statistic())
        self.buckets[bucket].add_sample(value)

    def set_histogram(self, counts: Iterable[int]) -> None:
        """One sample per bucket: bucket i receives counts[i]."""
        counts = list(counts)
        for i in range(len(counts) - 1, -1, -1):
            self.add_sample(i, float(counts[i]))

    def means(self) -> List[float]:
        return [b.mean() for b in self.buckets]

    def counts(self) -> List[int]:
        return [b.count for b in self.buckets]

    def strip_values(self) -> None:
        for b in self.buckets:
            b.strip_values()

    def copy(self) -> "Histogram":
        return Histogram([b.copy() for b in self.buckets])

    def __len__(self) -> int:
        return len(self.buckets)

    def __getitem__(self, i: int) -> Statistic:
        return self.buckets[i]

    def __iadd__(self, other: "Histogram") -> "Histogram":
        # A bucket missing on one side counts as that many zero samples
        own_count = self.buckets[0].count if self.buckets else 0
        other_count = other.buckets[0].count if other.buckets else 0

        for i, theirs in enumerate(other.buckets):
            if i >= len(self.buckets):
                padded = Statistic()
                for _ in range(own_count):
                    padded.add_sample(0.0)
                self.buckets.append(padded)
            self.buckets[i] += theirs
        for i in range(len(other.buckets), len(self.buckets)):
            for _ in range(other_count):
                self.buckets[i].add_sample(0.0)
        return self

    def __add__(self, other: "Histogram") -> "Histogram":
        result = self.copy()
        result += other
        return result


@dataclass
class NeuronStatistics:
    """Everything measured about one configuration, pooled over trials."""
    config: TrainConfig = field(default_factory=TrainConfig)

    # Confusion matrix, <truth>_<neuron response>, as probabilities
    true_true: Statistic = field(default_factory=Statistic)
    true_false: Statistic = field(default_factory=Statistic)
    true_count: Statistic = field(default_factory=Statistic)
    false_true: Statistic = field(default_factory=Statistic)
    false_false: Statistic = field(default_factory=Statistic)
    false_count: Statistic = field(default_factory=Statistic)

    # Derived measures
    bits_per_neuron: Statistic = field(default_factory=Statistic)
    bits_per_neuron_per_refractory_period: Statistic = field(default_factory=Statistic)
    mutual_information: Statistic = field(default_factory=Statistic)
    q_after: Statistic = field(default_factory=Statistic)
    synapses_per_neuron: Statistic = field(default_factory=Statistic)
    d_effective: Statistic = field(default_factory=Statistic)

    # Diagnostics
    delay_histogram: Histogram = field(default_factory=Histogram)
    input_delay_histogram: Histogram = field(default_factory=Histogram)
    input_max_sum_delay_histogram: Histogram = field(default_factory=Histogram)
    h_histogram: Histogram = field(default_factory=Histogram)
    word_delay_histogram: Histogram = field(default_factory=Histogram)
    synapse_before_delay_histogram: Histogram = field(default_factory=Histogram)
    synapse_after_delay_histogram: Histogram = field(default_factory=Histogram)

    def _measures(self):
        for f in fields(self):
            if f.name != "config":
                yield f.name, getattr(self, f.name)

    def strip_values(self) -> None:
        """Keep only summary values (count, sum, ssum)."""
        for _, measure in self._measures():
            measure.strip_values()

    def copy(self) -> "NeuronStatistics":
        return copy.deepcopy(self)

    def __iadd__(self, other: "NeuronStatistics") -> "NeuronStatistics":
        for name, measure in self._measures():
            measure += getattr(other, name)
        return self

    def __add__(self, other: "NeuronStatistics") -> "NeuronStatistics":
        result = self.copy()
        result += other
        return result


def histogram_entropy(counts: Sequence[int]) -> float:
    """2 ** (base-2 entropy) of a count histogram; 0 if it is empty."""
    counts = np.asarray(counts, dtype=np.float64)
    total = counts.sum()
    if total == 0.0:
        return 0.0
    prob = counts[counts > 0] / total
    entropy = -float(np.sum(prob * np.log2(prob)))
    return 2.0 ** entropy
