# commit.py — write accepted suggestions into the label layer, with bounded undo

# region Imports
from collections import deque
from typing import Deque
import logging
import time
import numpy as np
from skimage.measure import label as connected_components
from .config import EngineConfig
from .growth import GrowthEngine
from .models import Label, Layers, Stroke, StrokeKind
from .sampler import stratified_sample
from .strokes import StrokeMask
# endregion

LOGGER = logging.getLogger(__name__)


class LabelCommitter:
    """Owns every write to ``layers.labels`` and the undo snapshots taken before each one."""

    def __init__(self, layers: Layers, strokes: StrokeMask, engine: GrowthEngine, config: EngineConfig):
        self.layers = layers
        self.strokes = strokes
        self.engine = engine
        self.undo_stack: Deque[np.ndarray] = deque(maxlen=config.undo_depth)
        self._undo_in_progress = False
        self.unsaved_changes = False

    # region Undo Snapshots
    def snapshot(self):
        if len(self.undo_stack) == self.undo_stack.maxlen:
            LOGGER.debug("undo history full; dropping oldest snapshot")
        self.undo_stack.append(self.layers.labels.copy())

    def undo(self) -> bool:
        if not self.undo_stack:
            LOGGER.info("There is no more history saved to undo.")
            return False
        if self._undo_in_progress:
            return False
        self._undo_in_progress = True
        try:
            # in place, so every holder of the labels array sees the restore
            self.layers.labels[...] = self.undo_stack.pop()
            self.strokes.pending_reset = False
            self.unsaved_changes = True
        finally:
            self._undo_in_progress = False
        LOGGER.info("Undo restored labels (%d snapshots left)", len(self.undo_stack))
        return True
    # endregion

    # region Commit
    def commit(self, label_index: int) -> int:
        """Write the current suggestion as ``label_index``. Returns the number of pixels written."""
        if not self.engine.rings or self.engine.ring_index < 0:
            LOGGER.info("Nothing to commit: no suggestion has been grown")
            return 0
        t0 = time.perf_counter()
        label_index = Label(label_index)
        self.snapshot()

        mask = self.engine.enclosed_mask()
        labels = self.layers.labels
        if self.engine.cost_field.lock_mode:
            mask &= labels == Label.UNLABELED
        else:
            mask &= labels != Label.NO_DATA
        labels[mask] = label_index
        self.strokes.pending_reset = True
        self.unsaved_changes = True
        n = int(mask.sum())
        LOGGER.info("Committed %d pixels as %s in %.3fs", n, label_index.name, time.perf_counter() - t0)
        return n
    # endregion

    # region NO_DATA Fill
    def fill_no_data(self, n_samples: int = 50) -> int:
        """
        Mark as NO_DATA every connected region of constant base-image value that
        the positive paint touches, provided all sampled paint pixels agree on
        that value. Returns the number of pixels written.
        """
        codes = self.strokes.codes
        picked, _ = stratified_sample(
            self.strokes.region_rect(StrokeKind.POSITIVE),
            lambda xs, ys: codes[ys, xs] == Stroke.FRESH_POSITIVE,
            n_samples, self.layers.width, self.layers.height,
        )
        if len(picked) == 0:
            return 0
        band = self.layers.image[..., 0]
        values = band[picked[:, 1], picked[:, 0]]
        if np.any(values != values[0]):
            LOGGER.info("Painted pixels span several image values; NO_DATA fill skipped")
            return 0

        regions = connected_components(band == values[0], connectivity=2)
        ids = np.unique(regions[picked[:, 1], picked[:, 0]])
        ids = ids[ids != 0]
        mask = np.isin(regions, ids)
        self.snapshot()
        self.layers.labels[mask] = Label.NO_DATA
        self.strokes.pending_reset = True
        self.unsaved_changes = True
        LOGGER.info("Filled %d pixels as NO_DATA", int(mask.sum()))
        return int(mask.sum())
    # endregion
