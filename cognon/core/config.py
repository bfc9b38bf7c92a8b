# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: CONFIGURATION
# Neuron and training parameters, shared constants, error base classes
# ═══════════════════════════════════════════════════════════════════════════════


"""
A Cognon neuron is fully described by six numbers (C, D1, D2, H, Q, R) and,
for the synapse-strength learning variant, the pair (G_m, H_m).  A training
run adds the number of words to teach (W) and optionally a fixed number of
active inputs per word and a number of random test words.

Optional fields are plain ``None``; a config with a missing required field
is a caller error and fails validation immediately.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple


# A synapse or input value that never fires.  Large enough that neither
# DISABLED nor DISABLED + DISABLED lands in a valid delay slot.
DISABLED: int = 1 << 29

# Slack for floating point comparisons against the firing threshold.
EPSILON: float = 1.0e-6

# Random words shown to a trained neuron when the caller does not say.
DEFAULT_NUM_TEST_WORDS: int = 100000


# ── Exceptions ───────────────────────────────────────────────────────────────


class CognonError(Exception):
    """Base class for all errors raised by the simulator."""
    pass


class ConfigurationError(CognonError):
    """Raised when a neuron, training, or wordset configuration is malformed."""
    pass


# ── Configs ──────────────────────────────────────────────────────────────────


@dataclass
class NeuronConfig:
    """Configuration of a single neuron."""
    C: Optional[int] = None      # Containers (independently summing dendrites)
    D1: Optional[int] = None     # Input (axon) delays
    D2: Optional[int] = None     # Synapse (dendrite) delays
    H: Optional[float] = None    # Firing threshold
    Q: Optional[float] = None    # Oversampling rate
    R: Optional[int] = None      # Refractory period

    # Synapse-strength learning; both or neither
    G_m: Optional[float] = None  # Strength given to a trained synapse
    H_m: Optional[float] = None  # Firing threshold after training

    @property
    def is_strength(self) -> bool:
        """True when the neuron learns by strengthening synapses."""
        return self.G_m is not None and self.H_m is not None

    @property
    def length(self) -> int:
        """Number of synapses, floor(C*H*Q*R)."""
        return int(math.floor(self.C * self.H * self.Q * self.R + EPSILON))

    @property
    def slots(self) -> int:
        """Number of distinct delay slots a signal can arrive in."""
        return self.D1 + self.D2

    def validate(self) -> None:
        """Raise ConfigurationError unless this config describes a neuron."""
        for name in ("C", "D1", "D2", "H", "Q", "R"):
            if getattr(self, name) is None:
                raise ConfigurationError(f"NeuronConfig.{name} is required")
        if self.C < 1:
            raise ConfigurationError(f"C must be at least 1, got {self.C}")
        if self.D1 < 1:
            raise ConfigurationError(f"D1 must be at least 1, got {self.D1}")
        if self.D1 > self.D2:
            raise ConfigurationError(
                f"D1 must not exceed D2, got D1={self.D1} D2={self.D2}"
            )
        if self.H < 1:
            raise ConfigurationError(f"H must be at least 1, got {self.H}")
        if self.R < 1:
            raise ConfigurationError(f"R must be at least 1, got {self.R}")
        if (self.G_m is None) != (self.H_m is None):
            raise ConfigurationError("G_m and H_m must be given together")
        if self.length < 1:
            raise ConfigurationError(
                f"C*H*Q*R gives {self.length} synapses; need at least one"
            )

    def sort_key(self) -> Tuple:
        return tuple(_presence_key(getattr(self, name)) for name in _NEURON_ORDER)


@dataclass
class TrainConfig:
    """A neuron configuration plus what to teach it and how to test it."""
    config: NeuronConfig = field(default_factory=NeuronConfig)
    W: Optional[int] = None               # Words to train
    num_active: Optional[int] = None      # Fixed active inputs per word
    num_test_words: Optional[int] = None  # Random words shown after training

    def validate(self) -> None:
        self.config.validate()
        if self.W is None or self.W < 1:
            raise ConfigurationError(f"W must be at least 1, got {self.W}")
        if self.num_active is not None and self.num_active < 1:
            raise ConfigurationError(
                f"num_active must be positive, got {self.num_active}"
            )
        if self.num_test_words is not None and self.num_test_words < 1:
            raise ConfigurationError(
                f"num_test_words must be positive, got {self.num_test_words}"
            )

    def copy(self, **changes) -> "TrainConfig":
        """Deep-enough copy; keyword arguments replace top-level fields."""
        return replace(self, config=replace(self.config), **changes)

    def sort_key(self) -> Tuple:
        own = tuple(_presence_key(getattr(self, name)) for name in _TRAIN_ORDER)
        return self.config.sort_key() + own

    def __lt__(self, other: "TrainConfig") -> bool:
        return self.sort_key() < other.sort_key()


_NEURON_ORDER = ("C", "D1", "D2", "H", "Q", "R", "G_m", "H_m")
_TRAIN_ORDER = ("W", "num_active", "num_test_words")


def _presence_key(value) -> Tuple:
    # Absent values sort before present ones
    return (0, 0) if value is None else (1, value)
