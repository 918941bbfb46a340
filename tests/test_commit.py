import numpy as np

from mlpaint.models import Label, Stroke, StrokeKind


def test_commit_then_undo_restores_labels_exactly(seeded_session):
    labels = np.zeros((32, 32), dtype=np.uint8)
    labels[20:24, 0:8] = Label.CLASS_7
    s = seeded_session(labels=labels)
    before = s.layers.labels.copy()
    held = s.layers.labels
    n = s.commit(Label.POSITIVE)
    assert n > 0
    assert (s.layers.labels == Label.POSITIVE).sum() == n
    assert s.undo()
    assert s.layers.labels is held
    assert s.layers.labels.dtype == np.uint8
    np.testing.assert_array_equal(s.layers.labels, before)


def test_commit_writes_exactly_the_suggestion(seeded_session):
    s = seeded_session()
    mask = s.suggestion_mask()
    s.commit(Label.CLASS_9)
    np.testing.assert_array_equal(s.layers.labels == Label.CLASS_9, mask)


def test_undo_history_is_bounded(seeded_session):
    s = seeded_session()
    for i in range(12):
        s.commit(Label.CLASS_3 + (i % 5))
    assert len(s.committer.undo_stack) == s.config.undo_depth
    for _ in range(s.config.undo_depth):
        assert s.undo()
    assert not s.undo()
    assert not s.undo()


def test_undo_without_history_is_a_no_op(seeded_session):
    s = seeded_session()
    before = s.layers.labels.copy()
    assert not s.undo()
    np.testing.assert_array_equal(s.layers.labels, before)


def test_commit_without_growth_does_nothing(make_session, blank_layers):
    s = make_session(blank_layers())
    assert s.commit(Label.POSITIVE) == 0
    assert len(s.committer.undo_stack) == 0
    assert (s.layers.labels == Label.UNLABELED).all()


def test_lock_mode_commit_keeps_existing_labels(seeded_session):
    labels = np.zeros((32, 32), dtype=np.uint8)
    labels[8:16, 8:16] = Label.CLASS_3
    s = seeded_session(labels=labels)
    while s.grow():
        pass
    s.commit(Label.POSITIVE)
    assert (s.layers.labels[8:16, 8:16] == Label.CLASS_3).all()
    assert (s.layers.labels == Label.POSITIVE).sum() == 32 * 32 - 64


def test_unlocked_commit_overwrites_labels_but_not_no_data(seeded_session):
    labels = np.zeros((32, 32), dtype=np.uint8)
    labels[8:16, 8:16] = Label.CLASS_3
    labels[24:28, 24:28] = Label.NO_DATA
    s = seeded_session(labels=labels, lock_mode=False)
    while s.grow():
        pass
    s.commit(Label.POSITIVE)
    assert (s.layers.labels[8:16, 8:16] == Label.POSITIVE).all()
    assert (s.layers.labels[24:28, 24:28] == Label.NO_DATA).all()


def test_commit_marks_strokes_for_reset(seeded_session):
    s = seeded_session()
    s.paint(6, 6, StrokeKind.POSITIVE, radius=3)
    s.commit(Label.POSITIVE)
    assert s.strokes.pending_reset
    assert s.strokes.codes[6, 6] == Stroke.FRESH_POSITIVE
    s.paint(25, 25, StrokeKind.POSITIVE, radius=3)
    assert s.strokes.codes[6, 6] == Stroke.UNPAINTED
    assert s.strokes.codes[25, 25] == Stroke.FRESH_POSITIVE


def _flat_region_layers(make_session):
    from mlpaint.models import Layers
    rng = np.random.default_rng(5)
    img = rng.integers(1, 256, (64, 64, 3)).astype(np.uint8)
    img[10:30, 10:30, 0] = 0
    img[40:50, 40:50, 0] = 0
    return make_session(Layers(image=img))


def test_fill_no_data_marks_touched_flat_region(make_session):
    s = _flat_region_layers(make_session)
    s.paint(20, 20, StrokeKind.POSITIVE, radius=4)
    n = s.fill_no_data()
    assert n == 400
    assert (s.layers.labels[10:30, 10:30] == Label.NO_DATA).all()
    assert (s.layers.labels[40:50, 40:50] == Label.UNLABELED).all()
    assert s.undo()
    assert (s.layers.labels == Label.UNLABELED).all()


def test_fill_no_data_skips_mixed_values(make_session):
    s = _flat_region_layers(make_session)
    s.paint(30, 20, StrokeKind.POSITIVE, radius=6)
    assert s.fill_no_data() == 0
    assert (s.layers.labels == Label.UNLABELED).all()
    assert len(s.committer.undo_stack) == 0
