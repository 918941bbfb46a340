import numpy as np
import pytest

from mlpaint.config import EngineConfig
from mlpaint.models import Layers
from mlpaint.session import SuggestionSession
from mlpaint.synthetic import make_synthetic_scene


class ConstantClassifier:
    """Classifier double with the same scoring interface as PixelClassifier."""

    def __init__(self, p_negative=0.5):
        self.p_negative = p_negative

    def prob_negative(self, fvs):
        return np.full(np.atleast_2d(fvs).shape[0], self.p_negative, dtype=np.float64)

    def prob_positive(self, fvs):
        return 1.0 - self.prob_negative(fvs)


@pytest.fixture
def fast_config():
    return EngineConfig(n_trees=5, speculate=False, random_state=0)


@pytest.fixture
def scene64():
    return make_synthetic_scene(64, 64, seed=3)


@pytest.fixture
def noise_layers():
    rng = np.random.default_rng(7)
    return Layers(image=rng.integers(0, 256, (64, 64, 3), dtype=np.uint8))


@pytest.fixture
def blank_layers():
    def make(height=32, width=32):
        return Layers(image=np.full((height, width, 3), 128, dtype=np.uint8))
    return make


@pytest.fixture
def make_session(fast_config):
    sessions = []

    def make(layers, **overrides):
        s = SuggestionSession(layers, fast_config.with_overrides(**overrides))
        sessions.append(s)
        return s

    yield make
    for s in sessions:
        s.close()


@pytest.fixture
def seeded_session(make_session, blank_layers):
    """Uniform-cost session grown from one seed, no training involved."""
    def make(height=32, width=32, seed=(4, 4), p_negative=0.5, labels=None, **overrides):
        layers = blank_layers(height, width)
        if labels is not None:
            layers.labels[...] = labels
        s = make_session(layers, **overrides)
        s.cost_field.classifier = ConstantClassifier(p_negative)
        assert s.engine.initialize([seed])
        return s
    return make
