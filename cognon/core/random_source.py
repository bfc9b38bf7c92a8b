# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: RANDOM SOURCE
# One generator per task, never shared across workers
# ═══════════════════════════════════════════════════════════════════════════════


"""
Every neuron and wordset draws from a RandomSource that it is handed (or that
it creates).  Parallel jobs get their own children via spawn(), so results
are reproducible from one root seed and no two workers touch the same
generator state.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np


class RandomSource:
    """Uniform integer draws backed by a numpy PCG64 generator."""

    def __init__(
        self,
        seed: Optional[int] = None,
        seed_sequence: Optional[np.random.SeedSequence] = None,
    ) -> None:
        self._seed_sequence = seed_sequence or np.random.SeedSequence(seed)
        self.generator = np.random.Generator(np.random.PCG64(self._seed_sequence))

    def integers(self, n: int, size: int) -> np.ndarray:
        """Array of uniform integers in [0, n)."""
        return self.generator.integers(0, n, size=size, dtype=np.int64)

    def bernoulli_mask(self, size: int, period: int) -> np.ndarray:
        """Boolean array where each entry is True with probability 1/period."""
        return self.generator.integers(0, period, size=size) == 0

    def choice_without_replacement(self, n: int, k: int) -> np.ndarray:
        """k distinct integers from [0, n)."""
        return self.generator.choice(n, size=k, replace=False)

    def spawn(self, count: int) -> List["RandomSource"]:
        """Independent child sources, one per job."""
        return [
            RandomSource(seed_sequence=child)
            for child in self._seed_sequence.spawn(count)
        ]
