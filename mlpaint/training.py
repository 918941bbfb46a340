# training.py — two-phase positive/unlabeled training of the pixel classifier

# region Imports
from __future__ import annotations
from typing import Optional, Tuple
import logging
import time
import numpy as np
from sklearn.ensemble import RandomForestClassifier
from .config import EngineConfig
from .features import FeatureExtractor
from .grid import points_bounds
from .models import Label, Rect, Stroke, StrokeKind
from .sampler import stratified_sample
from .strokes import StrokeMask
# endregion

LOGGER = logging.getLogger(__name__)


# region Classifier
class PixelClassifier:
    """Probabilistic binary classifier over feature vectors (1 = positive)."""

    def __init__(self, model: RandomForestClassifier, n_positives: int, n_negatives: int) -> None:
        self.model = model
        self.n_positives = n_positives
        self.n_negatives = n_negatives

    def prob_positive(self, fvs: np.ndarray) -> np.ndarray:
        fvs = np.atleast_2d(fvs)
        if fvs.shape[0] == 0:
            return np.zeros(0, dtype=np.float64)
        classes = list(self.model.classes_)
        if 1 not in classes:
            return np.zeros(fvs.shape[0], dtype=np.float64)
        if len(classes) == 1:
            return np.ones(fvs.shape[0], dtype=np.float64)
        return self.model.predict_proba(fvs)[:, classes.index(1)]

    def prob_negative(self, fvs: np.ndarray) -> np.ndarray:
        return 1.0 - self.prob_positive(fvs)

    def __repr__(self) -> str:
        return (f"PixelClassifier(trees={len(self.model.estimators_)}, "
                f"pos={self.n_positives}, neg={self.n_negatives})")
# endregion


class ClassifierTrainer:
    """
    Gathers positives and negatives with the stratified sampler, trains a
    random forest, drops negatives the forest itself scores as positive-like
    (mean positive probability of the known positives is the cut), and
    retrains on what is left.
    """

    def __init__(self, features: FeatureExtractor, config: EngineConfig) -> None:
        self.features = features
        self.config = config
        self.width = features.width
        self.height = features.height
        self.rng = np.random.default_rng(config.random_state)

    # region Public API
    def train(
        self,
        strokes: StrokeMask,
        labels: np.ndarray,
        lock_mode: bool,
    ) -> Optional[PixelClassifier]:
        """Train from the stroke mask. Returns None (caller keeps its classifier) if too few positives."""
        t0 = time.perf_counter()
        codes = strokes.codes
        positives, estimate = stratified_sample(
            strokes.region_rect(StrokeKind.POSITIVE),
            lambda xs, ys: codes[ys, xs] == Stroke.FRESH_POSITIVE,
            self.config.max_positives, self.width, self.height,
        )
        strokes.num_positives_estimate = estimate
        if len(positives) < self.config.min_train_positives:
            LOGGER.info("Only %d positives painted (< %d); classifier left unchanged",
                        len(positives), self.config.min_train_positives)
            return None

        negatives = self._stroke_negatives(strokes)

        def unlabeled(xs, ys):
            ok = codes[ys, xs] == Stroke.UNPAINTED
            if lock_mode:
                ok &= labels[ys, xs] == Label.UNLABELED
            return ok

        negatives = self._pad_random_negatives(negatives, len(positives), unlabeled)
        LOGGER.debug("gathered %d positives, %d negatives in %.3fs",
                     len(positives), len(negatives), time.perf_counter() - t0)
        return self._train_pu(positives, negatives)

    def train_for_growth(
        self,
        strokes: StrokeMask,
        labels: np.ndarray,
        distances: np.ndarray,
        ring: Tuple,
        threshold: float,
        lock_mode: bool,
    ) -> Optional[PixelClassifier]:
        """Train with positives taken from inside the current suggestion instead of raw strokes."""
        t0 = time.perf_counter()
        if ring:
            bounds = points_bounds(((x, y) for _, _, x, y in ring), self.config.grid_step,
                                   self.width, self.height)
        else:
            bounds = Rect(0, 0, self.width, self.height)
        positives, _ = stratified_sample(
            bounds,
            lambda xs, ys: (distances[ys, xs] != 0) & (distances[ys, xs] < threshold),
            self.config.max_positives, self.width, self.height,
        )
        if len(positives) < self.config.min_growth_positives:
            LOGGER.debug("Only %d pixels inside suggestion (< %d); no growth classifier",
                         len(positives), self.config.min_growth_positives)
            return None

        negatives = self._stroke_negatives(strokes)
        codes = strokes.codes

        def outside(xs, ys):
            d = distances[ys, xs]
            ok = (codes[ys, xs] == Stroke.UNPAINTED) & ((d == 0) | (d > threshold))
            if lock_mode:
                ok &= labels[ys, xs] == Label.UNLABELED
            return ok

        negatives = self._pad_random_negatives(negatives, len(positives), outside)
        LOGGER.debug("gathered %d growth positives, %d negatives in %.3fs",
                     len(positives), len(negatives), time.perf_counter() - t0)
        return self._train_pu(positives, negatives)
    # endregion

    # region Sample Gathering
    def _stroke_negatives(self, strokes: StrokeMask) -> np.ndarray:
        codes = strokes.codes
        negatives, _ = stratified_sample(
            strokes.region_rect(StrokeKind.NEGATIVE),
            lambda xs, ys: codes[ys, xs] == Stroke.FRESH_NEGATIVE,
            self.config.max_negatives // 2, self.width, self.height,
        )
        return negatives

    def _pad_random_negatives(self, negatives: np.ndarray, n_positives: int, predicate,
                              max_rounds: int = 50) -> np.ndarray:
        """Top up with uniformly random qualifying pixels to min(2 * positives, max_negatives)."""
        want = min(2 * n_positives, self.config.max_negatives)
        parts = [negatives]
        have = len(negatives)
        for _ in range(max_rounds):
            if have >= want:
                break
            n_draw = max(64, 2 * (want - have))
            xs = self.rng.integers(0, self.width, n_draw)
            ys = self.rng.integers(0, self.height, n_draw)
            ok = np.asarray(predicate(xs, ys), dtype=bool)
            take = np.flatnonzero(ok)[: want - have]
            if take.size:
                parts.append(np.stack([xs[take], ys[take]], axis=1))
                have += take.size
        else:
            if have < want:
                LOGGER.debug("random negatives exhausted at %d of %d", have, want)
        return np.concatenate(parts).astype(np.intp) if have else np.zeros((0, 2), dtype=np.intp)
    # endregion

    # region PU Training
    def _fit(self, X: np.ndarray, y: np.ndarray) -> RandomForestClassifier:
        model = RandomForestClassifier(
            n_estimators=self.config.n_trees,
            random_state=self.config.random_state,
        )
        model.fit(X, y)
        return model

    def _train_pu(self, positives: np.ndarray, negatives: np.ndarray) -> PixelClassifier:
        t0 = time.perf_counter()
        pos_fvs = self.features.vectors(positives[:, 0], positives[:, 1])
        neg_fvs = self.features.vectors(negatives[:, 0], negatives[:, 1]) if len(negatives) \
            else np.zeros((0, self.features.n_features))
        npos, nneg = len(pos_fvs), len(neg_fvs)

        X = np.concatenate([pos_fvs, neg_fvs])
        y = np.concatenate([np.ones(npos, dtype=int), np.zeros(nneg, dtype=int)])
        phase1 = PixelClassifier(self._fit(X, y), npos, nneg)
        t1 = time.perf_counter()

        pos_mean_prob_pos = float(np.mean(phase1.prob_positive(pos_fvs)))
        keep = phase1.prob_positive(neg_fvs) < pos_mean_prob_pos if nneg else np.zeros(0, dtype=bool)
        neg_fvs = neg_fvs[keep]

        X = np.concatenate([pos_fvs, neg_fvs])
        y = np.concatenate([np.ones(npos, dtype=int), np.zeros(len(neg_fvs), dtype=int)])
        final = PixelClassifier(self._fit(X, y), npos, len(neg_fvs))
        LOGGER.info(
            "trained classifier: %d pos, %d of %d neg kept (cut %.3f), %.1f%% positive, %.3fs + %.3fs",
            npos, len(neg_fvs), nneg, pos_mean_prob_pos, 100.0 * npos / len(X),
            t1 - t0, time.perf_counter() - t1,
        )
        return final
    # endregion
