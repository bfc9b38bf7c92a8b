"""Shared test fixtures."""

import pytest

from cognon.core.config import NeuronConfig, TrainConfig
from cognon.core.random_source import RandomSource


@pytest.fixture
def random():
    """Seeded random source so every test run draws the same neurons and words."""
    return RandomSource(42)


@pytest.fixture
def small_config():
    """Single container, single delay: 64 synapses."""
    return NeuronConfig(C=1, D1=1, D2=1, H=10, Q=0.64000001, R=10)


@pytest.fixture
def small_train_config(small_config):
    return TrainConfig(config=small_config, W=40, num_test_words=2000)
