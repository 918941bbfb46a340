# session.py — one labeling session: strokes in, suggestions out, commits into the label layer

# region Imports
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple
import logging
import os
import time
import numpy as np
from affine import Affine

from .commit import LabelCommitter
from .config import EngineConfig, SCORE_POWER_STEP
from .costs import CostField
from .features import FeatureExtractor
from .growth import GrowthEngine
from .models import Label, Layers, Rect, StrokeEvent, StrokeKind, UntrainedClassifierError
from .speculator import BackgroundSpeculator
from .strokes import Brush, StrokeMask
from .training import ClassifierTrainer
# endregion

LOGGER = logging.getLogger(__name__)


class SuggestionSession:
    """
    Wires the suggestion engine together for a host application. Every method
    runs on the caller's thread and returns once the engine state is final;
    only the speculator works in the background.

    Typical cycle: ``paint`` one or more dabs, ``release`` to train and seed,
    ``grow``/``shrink`` to pick the boundary, ``commit`` to accept.
    """

    def __init__(self, layers: Layers, config: Optional[EngineConfig] = None,
                 view: Optional[Affine] = None):
        self.config = config or EngineConfig()
        self.layers = layers
        W, H = layers.width, layers.height
        self.features = FeatureExtractor(layers.image, layers.aux)
        self.strokes = StrokeMask(W, H, view)
        self.cost_field = CostField(layers, self.strokes, self.features, self.config)
        self.trainer = ClassifierTrainer(self.features, self.config)
        # speculator trainer (and its RNG) is never shared with the caller's thread
        self.speculator = (BackgroundSpeculator(ClassifierTrainer(self.features, self.config))
                           if self.config.speculate else None)
        self.engine = GrowthEngine(W, H, self.cost_field, self.config, self.speculator)
        self.committer = LabelCommitter(layers, self.strokes, self.engine, self.config)
        self.brush = Brush(self.config.grid_step)
        LOGGER.info("Session ready: %dx%d image, %d features, grid step %d",
                    W, H, self.features.n_features, self.config.grid_step)

    # region Painting
    def paint(self, x: float, y: float, kind: StrokeKind = StrokeKind.POSITIVE,
              radius: Optional[float] = None):
        """Add one brush dab at screen position (x, y)."""
        self.strokes.paint((x, y), self.brush.radius if radius is None else radius, kind)

    def stroke(self, event: StrokeEvent):
        self.strokes.apply(event)

    def release(self) -> bool:
        """
        End of a stroke: retrain from the current paint and restart the
        suggestion from the painted seeds. Returns True if a suggestion is live.
        """
        t0 = time.perf_counter()
        clf = self.trainer.train(self.strokes, self.layers.labels, self.cost_field.lock_mode)
        if clf is not None:
            self.cost_field.classifier = clf
        if self.cost_field.classifier is None:
            self.engine.reset()
            LOGGER.info("No classifier yet; paint more positive area first")
            return False
        seeds = self.engine.seed_points(self.strokes.seeds)
        ok = self.engine.initialize(seeds, self.strokes.num_positives_estimate)
        LOGGER.debug("release handled in %.3fs", time.perf_counter() - t0)
        return ok
    # endregion

    # region Navigation
    def grow(self) -> bool:
        return self.engine.grow_suggestion()

    def shrink(self) -> bool:
        return self.engine.shrink_suggestion()

    def commit(self, label: int = Label.POSITIVE) -> int:
        return self.committer.commit(label)

    def undo(self) -> bool:
        return self.committer.undo()

    def clear(self):
        """Drop the paint, the suggestion and the classifier. Labels are untouched."""
        self.strokes.reset()
        self.engine.reset()
        self.cost_field.classifier = None
        LOGGER.info("Suggestion cleared")

    def fill_no_data(self) -> int:
        return self.committer.fill_no_data()
    # endregion

    # region Settings
    @property
    def score_power(self) -> float:
        return self.cost_field.score_power

    @property
    def lock_mode(self) -> bool:
        return self.cost_field.lock_mode

    def adjust_score_power(self, delta: float = SCORE_POWER_STEP) -> float:
        self.cost_field.score_power = max(0.0, self.cost_field.score_power + delta)
        LOGGER.info("score power := %.2f", self.cost_field.score_power)
        self._restart()
        return self.cost_field.score_power

    def set_lock_mode(self, flag: bool):
        self.cost_field.lock_mode = bool(flag)
        LOGGER.info("lock mode := %s", self.cost_field.lock_mode)
        self._restart()

    def set_grid_step(self, step: int):
        self.config = self.config.with_overrides(grid_step=step)
        self.trainer.config = self.config
        if self.speculator is not None:
            self.speculator.trainer.config = self.config
        self.engine.config = self.config
        self.engine.step = step
        self.cost_field.set_grid_step(step)
        self.brush.grid_step = step
        self.brush.multiply(1.0)
        LOGGER.info("grid step := %d", step)
        self._restart()

    def _restart(self):
        if self.engine.rings:
            self.release()
    # endregion

    # region Suggestion State
    @property
    def has_suggestion(self) -> bool:
        return bool(self.engine.rings) and self.engine.ring_index >= 0

    @property
    def ring_index(self) -> int:
        return self.engine.ring_index

    def threshold(self) -> float:
        return self.engine.current_threshold()

    def bounds(self) -> Rect:
        return self.engine.ring_bounds()

    def suggestion_mask(self) -> np.ndarray:
        return self.engine.enclosed_mask()

    def state(self) -> Dict[str, Any]:
        live = self.has_suggestion
        return {
            "width": self.layers.width,
            "height": self.layers.height,
            "ring_index": self.engine.ring_index,
            "rings": len(self.engine.rings),
            "threshold": float(self.threshold()) if live else None,
            "bounds": list(self.bounds()) if live else None,
            "saturated": self.engine.saturated() if live else None,
            "score_power": self.score_power,
            "lock_mode": self.lock_mode,
            "grid_step": self.config.grid_step,
            "brush_radius": self.brush.radius,
            "undo_depth": len(self.committer.undo_stack),
            "positives_estimate": self.strokes.num_positives_estimate,
            "classifier": repr(self.cost_field.classifier) if self.cost_field.classifier else None,
        }
    # endregion

    # region Probability Map
    def probability_map(self, workers: Optional[int] = None, chunk_rows: int = 64) -> np.ndarray:
        """P(positive) for every pixel, evaluated in row chunks on a thread pool."""
        clf = self.cost_field.classifier
        if clf is None:
            raise UntrainedClassifierError("Must put positive paint down first")
        t0 = time.perf_counter()
        H, W = self.layers.height, self.layers.width
        chunks = [(y0, min(y0 + chunk_rows, H)) for y0 in range(0, H, chunk_rows)]

        def evaluate(span: Tuple[int, int]) -> np.ndarray:
            y0, y1 = span
            return clf.prob_positive(self.features.rows(y0, y1)).reshape(y1 - y0, W)

        with ThreadPoolExecutor(max_workers=workers or min(8, os.cpu_count() or 1)) as pool:
            out = np.concatenate(list(pool.map(evaluate, chunks)), axis=0)
        LOGGER.debug("probability map %dx%d in %.3fs", W, H, time.perf_counter() - t0)
        return out
    # endregion

    # region Lifecycle
    def close(self):
        if self.speculator is not None:
            self.speculator.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
    # endregion
