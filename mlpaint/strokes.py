# strokes.py — tri-state fresh-paint mask, positive/negative areas and brush sizing

# region Imports
from __future__ import annotations
from typing import List, Optional, Tuple
import logging
import math
import numpy as np
from affine import Affine
from shapely.affinity import affine_transform
from shapely.geometry.base import BaseGeometry
from shapely.geometry import GeometryCollection, Point

from .models import Rect, Stroke, StrokeEvent, StrokeKind
# endregion

LOGGER = logging.getLogger(__name__)


# region Brush Sizing
def radius_from_digit(digit: int, grid_step: int) -> float:
    rr = int(1.25 ** digit + 0.1) * (digit + 1)
    return max(float(rr), grid_step / 2.0 + 1)


class Brush:
    """Brush radius in screen pixels, kept between half a block and the digit-9 size."""

    def __init__(self, grid_step: int, digit: int = 4):
        self.grid_step = grid_step
        self.radius = radius_from_digit(digit, grid_step)

    def set_digit(self, digit: int) -> float:
        self.radius = radius_from_digit(digit, self.grid_step)
        return self.radius

    def multiply(self, scale: float) -> float:
        r = self.radius * scale
        r = max(self.grid_step / 2.0 + 1, r)
        self.radius = min(r, radius_from_digit(9, self.grid_step))
        LOGGER.debug("brush radius := %.2f", self.radius)
        return self.radius
# endregion


# region Stroke Mask
class StrokeMask:
    """
    codes:    (H, W) uint8 of ``Stroke`` values
    positive: shapely geometry of the positive paint, world coordinates
    negative: shapely geometry of the negative paint, world coordinates
    seeds:    raw world-coordinate centers of every positive dab

    ``view`` maps world (image) coordinates to screen coordinates; stroke
    events arrive in screen coordinates and are painted through its inverse.
    """

    def __init__(self, width: int, height: int, view: Optional[Affine] = None):
        self.width = width
        self.height = height
        self.view = view if view is not None else Affine.identity()
        self.codes = np.zeros((height, width), dtype=np.uint8)
        self.positive: BaseGeometry = GeometryCollection()
        self.negative: BaseGeometry = GeometryCollection()
        self.seeds: List[Tuple[float, float]] = []
        self.num_positives_estimate: Optional[int] = None
        self.pending_reset = False
        self.version = 0

    # region Lifecycle
    def reset(self):
        self.codes.fill(Stroke.UNPAINTED)
        self.positive = GeometryCollection()
        self.negative = GeometryCollection()
        self.seeds = []
        self.num_positives_estimate = None
        self.pending_reset = False
        self.version += 1

    def snapshot(self) -> "StrokeMask":
        """Deep copy for readers on other threads."""
        other = StrokeMask(self.width, self.height, self.view)
        other.codes = self.codes.copy()
        other.positive = self.positive
        other.negative = self.negative
        other.seeds = list(self.seeds)
        other.num_positives_estimate = self.num_positives_estimate
        other.version = self.version
        return other
    # endregion

    # region Painting
    def apply(self, event: StrokeEvent):
        self.paint(event.center, event.radius, event.kind)

    def paint(self, center: Tuple[float, float], radius: float, kind: StrokeKind):
        if self.pending_reset:
            self.reset()
        kind = StrokeKind(kind)
        inverse = ~self.view
        cx, cy = center
        brush = affine_transform(Point(cx, cy).buffer(radius), inverse.to_shapely())
        if kind == StrokeKind.POSITIVE:
            self.seeds.append(inverse * (cx, cy))

        self._fill(center, radius, brush.bounds, Stroke(int(kind)))

        if kind == StrokeKind.POSITIVE:
            self.positive = self.positive.union(brush)
            self.negative = self.negative.difference(brush)
        elif kind == StrokeKind.NEGATIVE:
            self.negative = self.negative.union(brush)
            self.positive = self.positive.difference(brush)
        else:
            self.positive = self.positive.difference(brush)
            self.negative = self.negative.difference(brush)
        self.version += 1

    def _fill(self, center, radius, bounds, code: Stroke):
        minx, miny, maxx, maxy = bounds
        x0, y0 = max(0, int(math.floor(minx))), max(0, int(math.floor(miny)))
        x1 = min(self.width, int(math.ceil(maxx)) + 1)
        y1 = min(self.height, int(math.ceil(maxy)) + 1)
        if x1 <= x0 or y1 <= y0:
            return
        # pixel centers mapped back to screen space, tested against the round brush
        yy, xx = np.mgrid[y0:y1, x0:x1]
        v = self.view
        sx = v.a * (xx + 0.5) + v.b * (yy + 0.5) + v.c
        sy = v.d * (xx + 0.5) + v.e * (yy + 0.5) + v.f
        inside = np.hypot(sx - center[0], sy - center[1]) <= radius
        self.codes[y0:y1, x0:x1][inside] = code
    # endregion

    # region Regions
    def region_rect(self, kind: StrokeKind) -> Rect:
        geom = self.positive if kind == StrokeKind.POSITIVE else self.negative
        if geom.is_empty:
            return Rect(0, 0, 0, 0)
        minx, miny, maxx, maxy = geom.bounds
        return Rect(int(math.floor(minx)), int(math.floor(miny)),
                    int(math.ceil(maxx)) + 1, int(math.ceil(maxy)) + 1).clip(self.width, self.height)

    def count(self, code: Stroke) -> int:
        return int(np.count_nonzero(self.codes == code))
    # endregion
# endregion
