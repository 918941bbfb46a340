import numpy as np
from affine import Affine

from mlpaint.models import Stroke, StrokeEvent, StrokeKind
from mlpaint.strokes import Brush, StrokeMask, radius_from_digit


def test_radius_from_digit():
    assert radius_from_digit(4, 4) == 10
    assert radius_from_digit(0, 4) == 3.0
    assert radius_from_digit(9, 4) == 70


def test_brush_multiply_clamps():
    b = Brush(grid_step=4)
    assert b.radius == 10
    assert b.multiply(100) == radius_from_digit(9, 4)
    assert b.multiply(1e-6) == 3.0
    assert b.set_digit(2) == radius_from_digit(2, 4)


def test_paint_positive_disk():
    m = StrokeMask(64, 64)
    m.paint((32, 32), 12, StrokeKind.POSITIVE)
    n = m.count(Stroke.FRESH_POSITIVE)
    assert 400 <= n <= 480
    assert m.codes[32, 32] == Stroke.FRESH_POSITIVE
    assert m.codes[32, 50] == Stroke.UNPAINTED
    assert m.seeds == [(32.0, 32.0)]
    assert abs(m.positive.area - np.pi * 144) < 5
    r = m.region_rect(StrokeKind.POSITIVE)
    assert r.x0 <= 20 and r.x1 >= 44 and r.y0 <= 20 and r.y1 >= 44


def test_negative_overrides_positive_and_erase_clears():
    m = StrokeMask(40, 40)
    v0 = m.version
    m.apply(StrokeEvent((20, 20), 8, StrokeKind.POSITIVE))
    m.apply(StrokeEvent((20, 20), 3, StrokeKind.NEGATIVE))
    assert m.codes[20, 20] == Stroke.FRESH_NEGATIVE
    assert m.codes[20, 26] == Stroke.FRESH_POSITIVE
    assert not m.positive.contains(m.negative.representative_point())
    m.apply(StrokeEvent((20, 20), 10, StrokeKind.ERASE))
    assert m.count(Stroke.FRESH_POSITIVE) == 0 and m.count(Stroke.FRESH_NEGATIVE) == 0
    assert m.positive.is_empty and m.negative.is_empty
    assert m.version == v0 + 3
    # erase and negative dabs never become seeds
    assert len(m.seeds) == 1


def test_paint_through_view_transform():
    # screen = 2 * world
    m = StrokeMask(50, 50, view=Affine.scale(2))
    m.paint((40, 40), 10, StrokeKind.POSITIVE)
    assert m.seeds == [(20.0, 20.0)]
    assert m.codes[20, 20] == Stroke.FRESH_POSITIVE
    assert m.codes[20, 24] == Stroke.FRESH_POSITIVE
    assert m.codes[20, 25] == Stroke.UNPAINTED
    assert abs(m.positive.area - np.pi * 25) < 1


def test_pending_reset_clears_before_next_paint():
    m = StrokeMask(40, 40)
    m.paint((10, 10), 4, StrokeKind.POSITIVE)
    m.pending_reset = True
    assert m.codes[10, 10] == Stroke.FRESH_POSITIVE
    m.paint((30, 30), 4, StrokeKind.POSITIVE)
    assert m.codes[10, 10] == Stroke.UNPAINTED
    assert m.codes[30, 30] == Stroke.FRESH_POSITIVE
    assert not m.pending_reset
    assert m.seeds == [(30.0, 30.0)]


def test_snapshot_is_independent():
    m = StrokeMask(20, 20)
    m.paint((5, 5), 3, StrokeKind.POSITIVE)
    snap = m.snapshot()
    m.paint((15, 15), 3, StrokeKind.NEGATIVE)
    assert snap.codes[15, 15] == Stroke.UNPAINTED
    assert snap.version == m.version - 1
    assert len(snap.seeds) == 1
