# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: WORDS AND WORDSETS
# Sparse input patterns and the trained delay recorded for each
# ═══════════════════════════════════════════════════════════════════════════════


"""
A word is the set of input signals that reach a neuron during one time
window.  Only the synapses that receive a signal are stored, each paired with
the axon delay of its signal.  Silent synapses are simply absent; the dense
form (to_dense) marks them with DISABLED.

Two generation policies:
- Bernoulli ("orig"): every synapse fires with probability 1/R.
- Fixed: exactly num_active distinct synapses fire.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from cognon.core.config import DISABLED, CognonError, ConfigurationError
from cognon.core.random_source import RandomSource


class WordError(CognonError):
    """Raised when a word references synapses or delays it cannot have."""
    pass


class Word:
    """
    Sorted association list synapse -> input delay.

    Two parallel int64 arrays, ordered by synapse index.  Words are hashable
    and totally ordered (lexicographically over (synapse, delay) pairs) so a
    set of training words can be checked for duplicates.
    """

    __slots__ = ("synapses", "delays", "_key")

    def __init__(
        self,
        synapses: Optional[Sequence[int]] = None,
        delays: Optional[Sequence[int]] = None,
    ) -> None:
        syn = np.asarray(synapses if synapses is not None else [], dtype=np.int64)
        dly = np.asarray(delays if delays is not None else [], dtype=np.int64)
        if syn.shape != dly.shape or syn.ndim != 1:
            raise WordError(
                f"synapses and delays must be equal-length vectors, "
                f"got {syn.shape} and {dly.shape}"
            )
        order = np.argsort(syn, kind="stable")
        syn = syn[order]
        dly = dly[order]
        if syn.size > 1 and np.any(syn[1:] == syn[:-1]):
            raise WordError("a synapse may appear in a word at most once")
        self.synapses: np.ndarray = syn
        self.delays: np.ndarray = dly
        self._key: Optional[Tuple[bytes, bytes]] = None

    # ── Constructors ────────────────────────────────────────────────────────

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]]) -> "Word":
        pairs = list(pairs)
        if not pairs:
            return cls()
        synapses, delays = zip(*pairs)
        return cls(synapses, delays)

    @classmethod
    def from_dense(cls, values: Sequence[int], max_delay: int) -> "Word":
        """Keep entries whose value lies in [0, max_delay); drop the rest."""
        values = np.asarray(values, dtype=np.int64)
        active = np.flatnonzero((values >= 0) & (values < max_delay))
        return cls(active, values[active])

    # ── Views ───────────────────────────────────────────────────────────────

    def to_dense(self, length: int) -> np.ndarray:
        """Per-synapse delays, DISABLED where no signal arrives."""
        dense = np.full(length, DISABLED, dtype=np.int64)
        dense[self.synapses] = self.delays
        return dense

    def pairs(self) -> List[Tuple[int, int]]:
        return list(zip(self.synapses.tolist(), self.delays.tolist()))

    def key(self) -> Tuple[bytes, bytes]:
        if self._key is None:
            self._key = (self.synapses.tobytes(), self.delays.tobytes())
        return self._key

    # ── Protocols ───────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return int(self.synapses.size)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self.pairs())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Word):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def __lt__(self, other: "Word") -> bool:
        # A proper prefix sorts first
        return self.pairs() < other.pairs()

    def __repr__(self) -> str:
        return f"Word({self.pairs()!r})"


class Wordset:
    """
    A collection of words plus the delay each was trained to.

    Example, testing an already-trained neuron:

        words = Wordset(random)
        words.configure(num_words, neuron.length, neuron.D1, neuron.R)
        for i in range(len(words)):
            delay = neuron.expose(words.get_word(i))
    """

    def __init__(self, random: Optional[RandomSource] = None) -> None:
        self.random = random or RandomSource()
        self.num_words: int = -1
        self.word_length: int = -1
        self.num_delays: int = -1
        self.refractory_period: int = -1
        self.num_active: int = -1
        self.words: List[Word] = []
        self._delays: np.ndarray = np.zeros(0, dtype=np.int64)

    # ── Configuration ───────────────────────────────────────────────────────

    def configure(
        self,
        num_words: int,
        word_length: int,
        num_delays: int,
        refractory_period: int,
    ) -> None:
        """Bernoulli policy: each synapse fires with probability 1/R."""
        self.num_words = num_words
        self.word_length = word_length
        self.num_delays = num_delays
        self.refractory_period = refractory_period
        self.init()

    def configure_fixed(
        self,
        num_words: int,
        word_length: int,
        num_delays: int,
        num_active: int,
    ) -> None:
        """Fixed policy: exactly num_active distinct synapses fire per word."""
        if not 0 < num_active < word_length:
            raise ConfigurationError(
                f"num_active must lie in (0, {word_length}), got {num_active}"
            )
        self.num_active = num_active
        self.configure(num_words, word_length, num_delays, -1)

    def copy_config(self, num_words: int, other: "Wordset") -> None:
        """Adopt other's policy and parameters with a different word count."""
        if other.refractory_period > 0:
            self.configure(
                num_words, other.word_length, other.num_delays,
                other.refractory_period,
            )
        else:
            self.configure_fixed(
                num_words, other.word_length, other.num_delays, other.num_active
            )

    # ── Generation ──────────────────────────────────────────────────────────

    def init(self) -> None:
        """Re-randomize every word and forget all trained delays."""
        if self.refractory_period <= 0 and self.num_active <= 0:
            raise ConfigurationError("Wordset has not been configured")
        if self.num_delays < 1:
            raise ConfigurationError(
                f"num_delays must be positive, got {self.num_delays}"
            )

        self._delays = np.full(self.num_words, DISABLED, dtype=np.int64)
        if self.refractory_period > 0:
            self.words = [self._random_word_bernoulli() for _ in range(self.num_words)]
        else:
            self.words = [self._random_word_fixed() for _ in range(self.num_words)]

    def _random_word_bernoulli(self) -> Word:
        active = np.flatnonzero(
            self.random.bernoulli_mask(self.word_length, self.refractory_period)
        )
        return Word(active, self.random.integers(self.num_delays, active.size))

    def _random_word_fixed(self) -> Word:
        active = self.random.choice_without_replacement(
            self.word_length, self.num_active
        )
        return Word(active, self.random.integers(self.num_delays, self.num_active))

    def set_size(self, num_words: int) -> None:
        self.num_words = num_words
        self.init()

    # ── Access ──────────────────────────────────────────────────────────────

    @property
    def size(self) -> int:
        return len(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def get_word(self, i: int) -> Word:
        return self.words[i]

    def set_word(self, i: int, word: Word) -> None:
        self.words[i] = word

    def delay(self, i: int) -> int:
        """Trained delay slot for word i, DISABLED if none or out of range."""
        if 0 <= i < self._delays.size:
            return int(self._delays[i])
        return DISABLED

    def set_delay(self, i: int, delay: int) -> int:
        if 0 <= i < self._delays.size:
            self._delays[i] = delay
            return delay
        return DISABLED
