import numpy as np
import pytest
from shapely.geometry import box

from conftest import ConstantClassifier
from mlpaint.config import SEED_COST
from mlpaint.models import (
    InsufficientSeedError, Label, Stroke, StrokeKind, UntrainedClassifierError,
)
from mlpaint.training import PixelClassifier


def _paint_disk(session, center=(32, 32), radius=12):
    session.paint(center[0], center[1], StrokeKind.POSITIVE, radius=radius)


def test_release_seeds_ring_zero_at_the_stroke(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.strokes.count(Stroke.FRESH_POSITIVE) >= 400
    assert s.release()
    assert isinstance(s.cost_field.classifier, PixelClassifier)
    d = s.engine.distances[32, 32]
    assert 0 < d <= 10 * SEED_COST
    ring0 = s.engine.enclosed_pixels(0)
    assert len(ring0) > 0
    assert [32, 32] in ring0.tolist()
    cx, cy = ring0.mean(axis=0)
    assert abs(cx - 33.5) <= 4 and abs(cy - 33.5) <= 4
    assert s.ring_index == s.config.default_growth


def test_negative_rows_never_enclosed(make_session, scene64):
    s = make_session(scene64.layers)
    for x in range(0, 64, 4):
        s.paint(x, 5, StrokeKind.NEGATIVE, radius=8)
    assert (s.strokes.codes[0:11] == Stroke.FRESH_NEGATIVE).all()
    _paint_disk(s, center=(32, 42))
    assert s.release()
    for _ in range(15):
        s.grow()
    for i in range(len(s.engine.rings)):
        assert not s.engine.enclosed_mask(i)[0:11].any()


def test_five_grows_on_trained_session(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.release()
    start = s.ring_index
    areas = [len(s.engine.enclosed_pixels())]
    for _ in range(5):
        assert s.grow()
        areas.append(len(s.engine.enclosed_pixels()))
    assert s.ring_index == start + 5
    assert areas == sorted(areas)


def test_suggestion_prefers_the_painted_blob(make_session):
    from mlpaint.synthetic import make_synthetic_scene
    scene = make_synthetic_scene(96, 96, seed=1)
    s = make_session(scene.layers)
    cx, cy = scene.center
    s.paint(cx, cy, StrokeKind.POSITIVE, radius=8)
    assert s.release()
    mask = s.suggestion_mask()
    assert mask.sum() > 0
    inside = (mask & scene.vegetation).sum() / mask.sum()
    assert inside > 0.75


def test_twenty_nine_positives_keep_the_classifier(make_session, noise_layers):
    s = make_session(noise_layers)
    existing = ConstantClassifier()
    s.cost_field.classifier = existing
    s.strokes.codes[10, 10:39] = Stroke.FRESH_POSITIVE
    s.strokes.positive = box(10, 10, 39, 11)
    s.release()
    assert s.cost_field.classifier is existing

    s.strokes.codes[10, 39] = Stroke.FRESH_POSITIVE
    s.strokes.positive = box(10, 10, 40, 11)
    s.release()
    assert s.cost_field.classifier is not existing
    assert isinstance(s.cost_field.classifier, PixelClassifier)


def test_only_negative_paint_leaves_no_suggestion(make_session, scene64):
    s = make_session(scene64.layers)
    s.paint(10, 10, StrokeKind.NEGATIVE, radius=8)
    assert not s.release()
    assert s.cost_field.classifier is None
    with pytest.raises(InsufficientSeedError):
        s.grow()


def test_clear_drops_suggestion_and_classifier(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.release()
    s.clear()
    assert not s.has_suggestion
    assert s.cost_field.classifier is None
    assert s.strokes.count(Stroke.FRESH_POSITIVE) == 0
    with pytest.raises(UntrainedClassifierError):
        s.probability_map()


def test_probability_map(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s, radius=8)
    assert s.release()
    prob = s.probability_map(workers=3, chunk_rows=10)
    assert prob.shape == (64, 64)
    assert prob.min() >= 0 and prob.max() <= 1
    assert prob[32, 32] > prob[~scene64.vegetation].mean()


def test_score_power_restarts_suggestion(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.release()
    s.grow()
    assert s.adjust_score_power(0.25) == pytest.approx(2.25)
    assert s.ring_index == s.config.default_growth
    assert s.cost_field.score_power == pytest.approx(2.25)
    s.adjust_score_power(-10)
    assert s.score_power == 0.0


def test_lock_mode_and_grid_step_changes(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.release()
    s.set_lock_mode(False)
    assert not s.lock_mode and s.has_suggestion
    s.set_grid_step(8)
    assert s.config.grid_step == 8
    assert s.engine.step == 8
    frontier = s.engine.frontier()
    assert frontier and all(x % 8 == 0 and y % 8 == 0 for x, y in frontier)
    with pytest.raises(ValueError):
        s.set_grid_step(0)


def test_commit_cycle_on_trained_session(make_session, scene64):
    s = make_session(scene64.layers)
    _paint_disk(s)
    assert s.release()
    before = s.layers.labels.copy()
    n = s.commit(Label.POSITIVE)
    assert n == s.suggestion_mask().sum()
    assert s.undo()
    np.testing.assert_array_equal(s.layers.labels, before)


def test_state_reports_engine_values(make_session, scene64):
    s = make_session(scene64.layers)
    st = s.state()
    assert st["threshold"] is None and st["rings"] == 0
    _paint_disk(s)
    s.release()
    st = s.state()
    assert st["ring_index"] == s.config.default_growth
    assert st["threshold"] == s.threshold()
    assert len(st["bounds"]) == 4
    assert st["lock_mode"] is True


def test_session_with_speculation_grows(scene64, fast_config):
    from mlpaint.session import SuggestionSession
    with SuggestionSession(scene64.layers, fast_config.with_overrides(speculate=True)) as s:
        _paint_disk(s)
        assert s.release()
        assert s.speculator.wait(30)
        assert s.grow()
        assert s.ring_index == s.config.default_growth + 1


def test_coarser_grid_step_reclamps_brush(make_session, scene64):
    s = make_session(scene64.layers)
    assert s.brush.set_digit(0) == 3.0
    s.set_grid_step(16)
    assert s.brush.radius == 9.0
    s.paint(33, 33, StrokeKind.POSITIVE)
    assert s.strokes.codes[32, 32] == Stroke.FRESH_POSITIVE
