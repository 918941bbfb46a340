# sampler.py — spatially stratified sampling of qualifying pixels inside a rectangle

# region Imports
from typing import Callable, List, Tuple
import logging
import time
import numpy as np
from .config import OVERSAMPLE
from .models import Rect
# endregion

LOGGER = logging.getLogger(__name__)

# Vectorized predicate: (xs, ys) int arrays -> bool array of the same length.
Predicate = Callable[[np.ndarray, np.ndarray], np.ndarray]


# region Offset Ordering
def cell_offsets(cell: int) -> List[Tuple[int, int]]:
    """
    Intra-cell offsets ordered by recursive halving: (0, 0) first, then the
    three half-cell offsets, then quarter-cell offsets applied to every offset
    seen so far, and so on. Any prefix is spread over the whole cell.
    """
    offsets = [(0, 0)]
    k = 0
    while 4 ** k < cell * cell:
        j = 4 ** k
        sep = cell // 2 ** (k + 1)
        for dx, dy in ((sep, sep), (sep, 0), (0, sep)):
            offsets.extend((ox + dx, oy + dy) for ox, oy in offsets[:j])
        k += 1
    return offsets
# endregion


# region Cell Size
def cell_size(area: int, target_count: int, width: int, height: int) -> int:
    """Smallest power of two L with area / L^2 <= target_count / OVERSAMPLE."""
    budget = max(target_count / float(OVERSAMPLE), 1e-9)
    cap = 1
    while cap < max(width, height):
        cap *= 2
    cell = 1
    while area / float(cell * cell) > budget and cell < cap:
        cell *= 2
    return cell
# endregion


# region Stratified Sample
def stratified_sample(
    rect: Rect,
    predicate: Predicate,
    target_count: int,
    width: int,
    height: int,
) -> Tuple[np.ndarray, int]:
    """
    Returns (coords, estimated_total).

    coords: (N, 2) int array of (x, y), N <= target_count, every row satisfying
    ``predicate`` and lying inside ``rect`` clipped to the grid.
    estimated_total: qualifying pixels in the rectangle, extrapolated from the
    hit rate over every candidate tested.
    """
    t0 = time.perf_counter()
    rect = rect.clip(width, height)
    if rect.empty or target_count <= 0:
        return np.zeros((0, 2), dtype=np.intp), 0

    cell = cell_size(rect.area, target_count, width, height)
    col_origins = np.arange(rect.x0, rect.x1, cell)
    row_origins = np.arange(rect.y0, rect.y1, cell)

    accepted: List[np.ndarray] = []
    n_accepted = 0
    tested = 0
    hits = 0
    for ox, oy in cell_offsets(cell):
        if n_accepted >= target_count:
            break
        xs1 = col_origins + ox
        ys1 = row_origins + oy
        xs1 = xs1[xs1 < rect.x1]
        ys1 = ys1[ys1 < rect.y1]
        if xs1.size == 0 or ys1.size == 0:
            continue
        yy, xx = np.meshgrid(ys1, xs1, indexing="ij")   # raster order: rows outer
        xx = xx.ravel()
        yy = yy.ravel()
        ok = np.asarray(predicate(xx, yy), dtype=bool)
        tested += ok.size
        hits += int(ok.sum())
        take = np.flatnonzero(ok)[: target_count - n_accepted]
        if take.size:
            accepted.append(np.stack([xx[take], yy[take]], axis=1))
            n_accepted += take.size

    coords = np.concatenate(accepted) if accepted else np.zeros((0, 2), dtype=np.intp)
    estimate = int(rect.area * hits / tested) if tested else 0
    LOGGER.debug(
        "sampled %d of %d requested from %dx%d rect (cell=%d, est. total %d) in %.3fs",
        n_accepted, target_count, rect.x1 - rect.x0, rect.y1 - rect.y0, cell, estimate,
        time.perf_counter() - t0,
    )
    return coords.astype(np.intp), estimate
# endregion
