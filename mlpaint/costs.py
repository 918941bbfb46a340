# costs.py — label/stroke constraints and classifier score folded into a per-pixel cost

# region Imports
from typing import Callable, Dict, Tuple
import logging
import math
import numpy as np
from .config import EngineConfig, SEED_COST
from .features import FeatureExtractor
from .models import Label, Layers, Stroke, UntrainedClassifierError
from .strokes import StrokeMask
# endregion

LOGGER = logging.getLogger(__name__)


# region Cost Field
class CostField:
    """
    Per-pixel traversal cost combining hard constraints with the classifier:

      locked label (lock mode) -> inf
      NO_DATA                  -> inf
      fresh positive paint     -> SEED_COST
      fresh negative paint     -> inf
      otherwise                -> max(P(negative) ** score_power, SEED_COST)

    Classifier output is cached per tile of coarse-lattice points; the cache
    holds raw probabilities, so changing ``score_power`` needs no re-evaluation.
    """

    def __init__(self, layers: Layers, strokes: StrokeMask, features: FeatureExtractor,
                 config: EngineConfig):
        self.layers = layers
        self.strokes = strokes
        self.features = features
        self.grid_step = config.grid_step
        self.tile = config.cost_tile
        self.lock_mode = config.lock_mode
        self.score_power = config.score_power
        self._classifier = None
        self._tiles: Dict[Tuple[int, int], np.ndarray] = {}

    # region Classifier
    @property
    def classifier(self):
        return self._classifier

    @classifier.setter
    def classifier(self, clf):
        self._classifier = clf
        self._tiles.clear()

    def set_grid_step(self, step: int):
        self.grid_step = step
        self._tiles.clear()
    # endregion

    # region Hard Constraints
    def barrier(self, rows, cols) -> np.ndarray:
        """True where the cost is infinite regardless of the classifier."""
        lab = self.layers.labels[rows, cols]
        st = self.strokes.codes[rows, cols]
        out = (lab == Label.NO_DATA) | (st == Stroke.FRESH_NEGATIVE)
        if self.lock_mode:
            out |= lab != Label.UNLABELED
        return out
    # endregion

    # region Edge Cost
    def edge_cost(self, x: int, y: int) -> float:
        lab = self.layers.labels[y, x]
        if lab != Label.UNLABELED and self.lock_mode:
            return math.inf
        if lab == Label.NO_DATA:
            return math.inf
        st = self.strokes.codes[y, x]
        if st == Stroke.FRESH_POSITIVE:
            return SEED_COST
        if st == Stroke.FRESH_NEGATIVE:
            return math.inf
        return max(self.prob_negative(x, y) ** self.score_power, SEED_COST)

    def edge_cost_fn(self) -> Callable[[Tuple[int, int]], float]:
        def cost(v: Tuple[int, int]) -> float:
            return self.edge_cost(v[0], v[1])
        return cost
    # endregion

    # region Classifier Probabilities
    def prob_negative(self, x: int, y: int) -> float:
        if self._classifier is None:
            raise UntrainedClassifierError("Must put positive paint down first")
        s = self.grid_step
        if x % s or y % s:
            return float(self._classifier.prob_negative(self.features.vectors([x], [y]))[0])
        lx, ly = x // s, y // s
        key = (lx // self.tile, ly // self.tile)
        probs = self._tiles.get(key)
        if probs is None:
            probs = self._eval_tile(*key)
            self._tiles[key] = probs
        return float(probs[ly % self.tile, lx % self.tile])

    def _eval_tile(self, tx: int, ty: int) -> np.ndarray:
        s, T = self.grid_step, self.tile
        xs = (tx * T + np.arange(T)) * s
        ys = (ty * T + np.arange(T)) * s
        xs = xs[xs < self.features.width]
        ys = ys[ys < self.features.height]
        yy, xx = np.meshgrid(ys, xs, indexing="ij")
        probs = self._classifier.prob_negative(self.features.vectors(xx.ravel(), yy.ravel()))
        return probs.reshape(len(ys), len(xs))
    # endregion
# endregion
