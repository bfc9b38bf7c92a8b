# ═══════════════════════════════════════════════════════════════════════════════
# PART 8: EXPERIMENT DRIVER
# One trial (train + test) and many trials pooled in parallel
# ═══════════════════════════════════════════════════════════════════════════════


"""
run_experiment() is a single self-contained trial: fresh neuron, fresh
wordset, Alice trains, Bob tests, one NeuronStatistics comes back.

run_configuration() repeats the trial enough times to get stable numbers and
pools the results.  Trials share nothing but the accumulator; each gets its
own RandomSource spawned from the caller's, and merges happen under a lock.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import (
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)
from typing import Optional, Tuple

from cognon.core.alice import Alice
from cognon.core.bob import Bob
from cognon.core.config import (
    DEFAULT_NUM_TEST_WORDS,
    ConfigurationError,
    TrainConfig,
)
from cognon.core.neuron import Neuron
from cognon.core.random_source import RandomSource
from cognon.core.statistics import NeuronStatistics, histogram_entropy
from cognon.core.wordset import Wordset

logger = logging.getLogger(__name__)

# Aggregate sizes run_configuration() aims for
MIN_TRAINED_WORDS: int = 10000
MIN_TEST_EXPOSURES: int = 1000000
MIN_TEST_WORDS_PER_TRIAL: int = 1000

EXECUTORS = ("thread", "process", "serial")


def run_experiment(
    train_config: TrainConfig, random: Optional[RandomSource] = None
) -> NeuronStatistics:
    """Train and test one neuron; return that trial's statistics."""
    cfg = train_config.config
    if (cfg.G_m is None) != (cfg.H_m is None):
        raise ConfigurationError("G_m and H_m must be given together")
    train_config.validate()

    random = random or RandomSource()
    result = NeuronStatistics(config=train_config.copy())

    neuron = Neuron(random=random)
    neuron.init(cfg)

    words = Wordset(random)
    if train_config.num_active is not None:
        words.configure_fixed(
            train_config.W, neuron.length, cfg.D1, train_config.num_active
        )
    else:
        words.configure(train_config.W, neuron.length, cfg.D1, cfg.R)

    synapse_before = neuron.get_synapse_delay_histogram()
    hist = Alice().train_histogram(words, neuron)
    synapse_after = neuron.get_synapse_delay_histogram()

    result.delay_histogram.set_histogram(hist.delay)
    result.input_delay_histogram.set_histogram(hist.inputs.fired)
    result.input_max_sum_delay_histogram.set_histogram(hist.inputs.max_sum)
    result.h_histogram.set_histogram(hist.inputs.h_values)
    # Per-word delay histogram is not collected
    result.word_delay_histogram.set_histogram([])
    result.synapse_before_delay_histogram.set_histogram(synapse_before)
    result.synapse_after_delay_histogram.set_histogram(synapse_after)

    # Only meaningful if the neuron learned something
    if hist.delay.size and hist.delay.max() > 0:
        result.d_effective.add_sample(histogram_entropy(hist.delay))

    num_test_words = train_config.num_test_words
    if num_test_words is None:
        num_test_words = DEFAULT_NUM_TEST_WORDS
    Bob().test(num_test_words, words, neuron, result)

    result.q_after.add_sample(neuron.Q_after)
    result.synapses_per_neuron.add_sample(neuron.length)
    return result


def plan_repetitions(repetitions: int, train_config: TrainConfig) -> Tuple[int, int]:
    """
    Number of trials and test words per trial for a configuration.

    At least MIN_TRAINED_WORDS words are trained in aggregate.  Unless the
    config fixes num_test_words, every trial tests on enough random words to
    reach MIN_TEST_EXPOSURES in aggregate, but never fewer than
    MIN_TEST_WORDS_PER_TRIAL.
    """
    if repetitions < 1:
        raise ConfigurationError(f"repetitions must be positive, got {repetitions}")
    if train_config.W is None or train_config.W < 1:
        raise ConfigurationError(f"W must be at least 1, got {train_config.W}")

    n = repetitions
    if n * train_config.W < MIN_TRAINED_WORDS:
        n = int(math.ceil(MIN_TRAINED_WORDS / float(train_config.W)))

    if train_config.num_test_words is not None:
        return n, train_config.num_test_words
    num_test_words = int(math.ceil(MIN_TEST_EXPOSURES / float(n)))
    return n, max(MIN_TEST_WORDS_PER_TRIAL, num_test_words)


def run_configuration(
    repetitions: int,
    train_config: TrainConfig,
    random: Optional[RandomSource] = None,
    max_workers: Optional[int] = None,
    executor: str = "thread",
) -> NeuronStatistics:
    """
    Run many independent trials of one configuration and pool them.

    The returned statistics echo the config with num_test_words filled in.
    Any exception raised by a trial propagates after the pool shuts down.
    """
    if executor not in EXECUTORS:
        raise ConfigurationError(
            f"executor must be one of {EXECUTORS}, got {executor!r}"
        )
    train_config.validate()

    n, num_test_words = plan_repetitions(repetitions, train_config)
    job_config = train_config.copy(num_test_words=num_test_words)
    logger.info(
        "Running %d trials of W=%d with %d test words each (%s)",
        n, job_config.W, num_test_words, executor,
    )

    result = NeuronStatistics(config=job_config.copy())
    lock = threading.Lock()

    def merge(partial: NeuronStatistics) -> None:
        nonlocal result
        with lock:
            result += partial

    def trial(source: RandomSource) -> None:
        merge(run_experiment(job_config, source))

    sources = (random or RandomSource()).spawn(n)

    if executor == "serial":
        for i, source in enumerate(sources):
            trial(source)
            logger.debug("Trial %d/%d done", i + 1, n)
        return result

    if executor == "process":
        # Workers cannot touch result; merge in this thread as jobs finish
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            futures = [
                pool.submit(run_experiment, job_config, source) for source in sources
            ]
            for done, future in enumerate(as_completed(futures), start=1):
                merge(future.result())
                logger.debug("Trial %d/%d done", done, n)
        return result

    # Threads merge their own trials
    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="CognonTrial"
    ) as pool:
        futures = [pool.submit(trial, source) for source in sources]
        for done, future in enumerate(as_completed(futures), start=1):
            future.result()
            logger.debug("Trial %d/%d done", done, n)

    return result
