# growth.py — multi-source incremental shortest-path growth over the coarse block grid

# region Imports
from typing import Iterable, List, Optional, Tuple
import heapq
import logging
import math
import time
import numpy as np
from .config import EngineConfig, SEED_COST, reps_increment
from .costs import CostField
from .grid import block_slices, in_bounds, neighbors_4, points_bounds, snap
from .models import InsufficientSeedError, Label, Rect, Stroke
# endregion

LOGGER = logging.getLogger(__name__)

# Heap entry: (cost, insertion counter, x, y). A ring is a frozen heap.
Entry = Tuple[float, int, int, int]
Ring = Tuple[Entry, ...]


class GrowthEngine:
    """
    Rings are snapshots of the search frontier. Ring 0 holds the seeds; ring
    i+1 is ring i's heap after another batch of pops and pushes. History is
    append-only, so moving the ring index back and forth never re-searches.

    distances: 0 = unvisited, > 0 = cost of the block's search entry, inf for
    barrier pixels of a visited block or blocks reached only through barriers.
    extent: bounding box of every block pushed since the last reset.
    """

    def __init__(self, width: int, height: int, cost_field: CostField, config: EngineConfig,
                 speculator=None):
        self.width = width
        self.height = height
        self.cost_field = cost_field
        self.config = config
        self.step = config.grid_step
        self.speculator = speculator
        self.distances = np.zeros((height, width), dtype=np.float64)
        self.rings: List[Ring] = []
        self.ring_index = -1
        self.generation = 0
        self.n_positives: Optional[int] = None
        self.extent = Rect(0, 0, 0, 0)
        self._counter = 0

    # region Seeding
    def seed_points(self, candidates: Iterable[Tuple[float, float]]) -> List[Tuple[int, int]]:
        """Snap raw positive-dab centers to the lattice and drop unusable ones."""
        labels = self.cost_field.layers.labels
        codes = self.cost_field.strokes.codes
        lock = self.cost_field.lock_mode
        out = []
        for px, py in candidates:
            x, y = snap(int(px), int(py), self.step)
            if not in_bounds(x, y, self.width, self.height):
                continue
            lab = labels[y, x]
            if lock and lab != Label.UNLABELED:
                continue
            if lab == Label.NO_DATA:
                continue
            if codes[y, x] != Stroke.FRESH_POSITIVE:
                continue
            out.append((x, y))
        return out

    def reset(self):
        self.distances.fill(0.0)
        self.rings = []
        self.ring_index = -1
        self.extent = Rect(0, 0, 0, 0)
        self.generation += 1

    def initialize(self, seeds: Iterable[Tuple[int, int]], n_positives: Optional[int] = None) -> bool:
        """
        Seed ring 0, then pre-grow to ``default_growth`` rings: an interior
        phase sized to fill the painted area, then peripheral steps whose
        batches follow ``reps_increment``. Returns False if no seed survived.
        """
        t0 = time.perf_counter()
        self.reset()
        self.n_positives = n_positives
        heap: List[Entry] = []
        for x, y in seeds:
            if self.distances[y, x] != 0:
                continue
            self._push(heap, SEED_COST, x, y)
        if not heap:
            LOGGER.info("No usable seed points; suggestion not started")
            return False
        self.rings.append(tuple(heap))

        for _ in range(self.config.default_growth):
            self.grow_step(self._batch_for(len(self.rings)))
        self.ring_index = self.config.default_growth
        LOGGER.debug("seeded %d points and pre-grew %d rings in %.3fs",
                     len(heap), self.config.default_growth, time.perf_counter() - t0)
        self.speculate()
        return True
    # endregion

    # region Search Step
    def _push(self, heap: List[Entry], cost: float, x: int, y: int):
        self._counter += 1
        heapq.heappush(heap, (cost, self._counter, x, y))
        self._fill_block(cost, x, y)
        e = self.extent
        x1, y1 = min(x + self.step, self.width), min(y + self.step, self.height)
        if e.empty:
            self.extent = Rect(x, y, x1, y1)
        else:
            self.extent = Rect(min(e.x0, x), min(e.y0, y), max(e.x1, x1), max(e.y1, y1))

    def _fill_block(self, cost: float, x: int, y: int):
        rows, cols = block_slices(x, y, self.step, self.width, self.height)
        block = self.distances[rows, cols]
        block[...] = cost
        block[self.cost_field.barrier(rows, cols)] = math.inf

    def _batch_for(self, ring_number: int) -> int:
        return reps_increment(self.n_positives, ring_number, self.config.interior_steps, self.step)

    def grow_step(self, batch: int) -> Ring:
        """Pop up to ``batch`` cheapest entries from a copy of the newest ring and append the result."""
        heap = list(self.rings[-1])
        cost_fn = self.cost_field.edge_cost_fn()
        for _ in range(batch):
            if not heap or heap[0][0] == math.inf:
                break
            _, _, x, y = heapq.heappop(heap)
            d = float(self.distances[y, x])
            for nx, ny in neighbors_4((x, y), self.step, self.width, self.height):
                if self.distances[ny, nx] == 0:
                    self._push(heap, cost_fn((nx, ny)) + d, nx, ny)
        ring = tuple(heap)
        self.rings.append(ring)
        return ring

    def saturated(self) -> bool:
        last = self.rings[-1] if self.rings else ()
        return not last or bool(last[0][0] == math.inf)
    # endregion

    # region Navigation
    def grow_suggestion(self) -> bool:
        if self.ring_index < 0 or not self.rings:
            raise InsufficientSeedError("You will need select-paint, not avoid-paint alone.")
        if self.ring_index + 1 < len(self.rings):
            self.ring_index += 1
            return True
        if self.saturated():
            LOGGER.info("Growth saturated at ring %d", self.ring_index)
            return False

        if self.speculator is not None:
            spare = self.speculator.collect(self.generation, self.ring_index,
                                            self.cost_field.strokes.version)
            if spare is not None:
                self.cost_field.classifier = spare
                LOGGER.info("Swapped in spare classifier for ring %d", self.ring_index + 1)

        t0 = time.perf_counter()
        self.grow_step(self._batch_for(len(self.rings)))
        self.ring_index += 1
        LOGGER.debug("grew ring %d in %.3fs", self.ring_index, time.perf_counter() - t0)
        self.speculate()
        return True

    def shrink_suggestion(self) -> bool:
        if self.ring_index <= 0:
            return False
        self.ring_index -= 1
        return True

    def speculate(self):
        """Hand a snapshot of the newest ring to the background speculator."""
        if self.speculator is None or not self.rings or self.ring_index != len(self.rings) - 1:
            return
        strokes = self.cost_field.strokes
        self.speculator.dispatch(
            (self.generation, self.ring_index, strokes.version),
            strokes.snapshot(),
            self.cost_field.layers.labels.copy(),
            self.distances.copy(),
            self.rings[-1],
            self.current_threshold(),
            self.cost_field.lock_mode,
        )
    # endregion

    # region Suggestion Queries
    def _ring(self, index: Optional[int]) -> Ring:
        if not self.rings:
            raise InsufficientSeedError("No suggestion has been grown yet.")
        idx = self.ring_index if index is None else index
        return self.rings[max(0, min(idx, len(self.rings) - 1))]

    def current_threshold(self, index: Optional[int] = None) -> float:
        ring = self._ring(index)
        return ring[0][0] if ring else math.inf

    def ring_bounds(self, index: Optional[int] = None) -> Rect:
        ring = self._ring(index)
        if not ring:
            return Rect(0, 0, self.width, self.height)
        return points_bounds(((x, y) for _, _, x, y in ring), self.step, self.width, self.height)

    def frontier(self, index: Optional[int] = None) -> List[Tuple[int, int]]:
        return [(x, y) for _, _, x, y in self._ring(index)]

    def enclosed_mask(self, index: Optional[int] = None) -> np.ndarray:
        mask = np.zeros((self.height, self.width), dtype=bool)
        if not self.rings:
            return mask
        thr = self.current_threshold(index)
        b = self.extent
        sub = self.distances[b.y0:b.y1, b.x0:b.x1]
        mask[b.y0:b.y1, b.x0:b.x1] = (sub > 0) & np.isfinite(sub) & (sub <= thr)
        return mask

    def enclosed_pixels(self, index: Optional[int] = None) -> np.ndarray:
        """(N, 2) array of (x, y) inside the suggestion for the given ring (default: current)."""
        ys, xs = np.nonzero(self.enclosed_mask(index))
        return np.stack([xs, ys], axis=1)
    # endregion
