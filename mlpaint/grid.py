# region Imports
from typing import Iterable, Tuple
import numpy as np
from .models import Rect
# endregion

# region Coarse Lattice Helpers
def snap(x: int, y: int, step: int) -> Tuple[int, int]:
    return x - x % step, y - y % step


def in_bounds(x: int, y: int, width: int, height: int) -> bool:
    return 0 <= x < width and 0 <= y < height


def neighbors_4(u, step, width, height):
    x, y = u
    for dx, dy in ((0, step), (0, -step), (step, 0), (-step, 0)):
        xx, yy = x + dx, y + dy
        if 0 <= xx < width and 0 <= yy < height:
            yield (xx, yy)


def block_slices(x: int, y: int, step: int, width: int, height: int):
    """Row/col slices of the step x step block whose top-left pixel is (x, y)."""
    return slice(y, min(y + step, height)), slice(x, min(x + step, width))
# endregion

# region Bounds
def points_bounds(points: Iterable[Tuple[int, int]], step: int, width: int, height: int) -> Rect:
    """
    Bounding rectangle of block origins, covering each block fully and
    expanded by one more block on every side.
    """
    xs, ys = [], []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return Rect(0, 0, 0, 0)
    return Rect(min(xs) - step, min(ys) - step, max(xs) + 2 * step, max(ys) + 2 * step).clip(width, height)


def mask_bounds(mask: np.ndarray) -> Rect:
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return Rect(0, 0, 0, 0)
    cols = np.flatnonzero(mask.any(axis=0))
    return Rect(int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1)
# endregion
