"""Tests for NeuronConfig and TrainConfig."""

import pytest

from cognon.core.config import (
    DISABLED,
    ConfigurationError,
    NeuronConfig,
    TrainConfig,
)


def _config(**overrides):
    values = dict(C=1, D1=1, D2=1, H=10, Q=0.362, R=30)
    values.update(overrides)
    return NeuronConfig(**values)


# ── Length ──────────────────────────────────────────────────────────────────


def test_length_is_floor_of_chqr():
    """length == floor(C*H*Q*R + eps)."""
    assert _config().length == 108
    assert _config(C=10, Q=0.362).length == 1086
    assert _config(C=1, D1=4, D2=7, H=100, Q=5.448, R=30).length == 16344


def test_length_tolerates_rounding_below_integer():
    """A product a hair under an integer still counts as that integer."""
    cfg = _config(H=10, Q=0.64 - 1e-9, R=10)
    assert cfg.length == 64


def test_slots():
    assert _config(D1=4, D2=7).slots == 11


def test_disabled_never_lands_in_a_slot():
    assert DISABLED > 1000000
    assert DISABLED + DISABLED > DISABLED


# ── Validation ──────────────────────────────────────────────────────────────


def test_valid_config_passes():
    _config().validate()
    _config(G_m=1.3, H_m=13).validate()


@pytest.mark.parametrize("missing", ["C", "D1", "D2", "H", "Q", "R"])
def test_missing_required_field(missing):
    cfg = _config(**{missing: None})
    with pytest.raises(ConfigurationError, match=missing):
        cfg.validate()


def test_d1_greater_than_d2_rejected():
    with pytest.raises(ConfigurationError, match="D1 must not exceed D2"):
        _config(D1=3, D2=2).validate()


def test_h_below_one_rejected():
    with pytest.raises(ConfigurationError, match="H must be at least 1"):
        _config(H=0.5).validate()


def test_c_below_one_rejected():
    with pytest.raises(ConfigurationError, match="C must be at least 1"):
        _config(C=0).validate()


def test_strength_pair_must_be_complete():
    with pytest.raises(ConfigurationError, match="together"):
        _config(G_m=1.3).validate()
    with pytest.raises(ConfigurationError, match="together"):
        _config(H_m=13).validate()


def test_zero_synapses_rejected():
    with pytest.raises(ConfigurationError, match="synapses"):
        _config(Q=0.001).validate()


def test_is_strength():
    assert not _config().is_strength
    assert _config(G_m=1.3, H_m=13).is_strength


def test_train_config_requires_words():
    with pytest.raises(ConfigurationError, match="W must be at least 1"):
        TrainConfig(config=_config()).validate()
    with pytest.raises(ConfigurationError, match="W must be at least 1"):
        TrainConfig(config=_config(), W=0).validate()


def test_train_config_num_active_positive():
    with pytest.raises(ConfigurationError, match="num_active"):
        TrainConfig(config=_config(), W=5, num_active=0).validate()


# ── Copy and ordering ───────────────────────────────────────────────────────


def test_copy_is_independent():
    original = TrainConfig(config=_config(), W=5)
    copied = original.copy(num_test_words=100)

    assert copied.num_test_words == 100
    assert original.num_test_words is None
    copied.config.H = 20
    assert original.config.H == 10


def test_equality_is_by_value():
    assert TrainConfig(config=_config(), W=5) == TrainConfig(config=_config(), W=5)
    assert TrainConfig(config=_config(), W=5) != TrainConfig(config=_config(), W=6)


def test_ordering_absent_before_present():
    plain = TrainConfig(config=_config(), W=5)
    strength = TrainConfig(config=_config(G_m=1.1, H_m=11), W=5)
    assert plain < strength
    assert not strength < plain


def test_ordering_follows_field_order():
    a = TrainConfig(config=_config(C=1, H=20), W=5)
    b = TrainConfig(config=_config(C=2, H=10), W=5)
    assert a < b
    assert sorted([b, a]) == [a, b]
