import numpy as np
from shapely.geometry import box

from mlpaint.features import FeatureExtractor
from mlpaint.models import Label, Stroke, StrokeKind
from mlpaint.strokes import StrokeMask
from mlpaint.training import ClassifierTrainer, PixelClassifier


def _row_of_positives(n, width=64, height=64):
    m = StrokeMask(width, height)
    m.codes[10, 10:10 + n] = Stroke.FRESH_POSITIVE
    m.positive = box(10, 10, 10 + n, 11)
    return m


def test_train_needs_thirty_positives(noise_layers, fast_config):
    trainer = ClassifierTrainer(FeatureExtractor(noise_layers.image), fast_config)
    strokes = _row_of_positives(29)
    assert trainer.train(strokes, noise_layers.labels, True) is None
    assert strokes.num_positives_estimate == 29

    strokes = _row_of_positives(30)
    clf = trainer.train(strokes, noise_layers.labels, True)
    assert isinstance(clf, PixelClassifier)
    assert clf.n_positives == 30
    assert clf.n_negatives <= 60


def test_trained_classifier_separates_colors(scene64, fast_config):
    layers = scene64.layers
    fx = FeatureExtractor(layers.image, layers.aux)
    trainer = ClassifierTrainer(fx, fast_config)
    strokes = StrokeMask(64, 64)
    cx, cy = scene64.center
    strokes.paint((cx, cy), 6, StrokeKind.POSITIVE)
    clf = trainer.train(strokes, layers.labels, True)
    assert clf is not None

    yy, xx = np.mgrid[:64, :64]
    central = np.hypot(xx - cx, yy - cy) <= scene64.radius - 1
    ys, xs = np.nonzero(central)
    p_veg = clf.prob_positive(fx.vectors(xs, ys)).mean()
    ys, xs = np.nonzero(~scene64.vegetation)
    p_ground = clf.prob_positive(fx.vectors(xs, ys)).mean()
    assert p_veg > 0.6
    assert p_ground < 0.3
    np.testing.assert_allclose(clf.prob_negative(fx.vector(0, 0)), 1 - clf.prob_positive(fx.vector(0, 0)))


def test_random_negatives_avoid_paint_and_locked_labels(noise_layers, fast_config):
    trainer = ClassifierTrainer(FeatureExtractor(noise_layers.image), fast_config)
    labels = noise_layers.labels
    labels[:, 32:] = Label.CLASS_4
    strokes = _row_of_positives(20)
    codes = strokes.codes

    def unlabeled(xs, ys):
        return (codes[ys, xs] == Stroke.UNPAINTED) & (labels[ys, xs] == Label.UNLABELED)

    negs = trainer._pad_random_negatives(np.zeros((0, 2), dtype=np.intp), 100, unlabeled)
    assert len(negs) == 200
    assert (negs[:, 0] < 32).all()
    assert (codes[negs[:, 1], negs[:, 0]] == Stroke.UNPAINTED).all()


def test_train_for_growth_uses_suggestion_interior(noise_layers, fast_config):
    trainer = ClassifierTrainer(FeatureExtractor(noise_layers.image), fast_config)
    strokes = StrokeMask(64, 64)
    distances = np.zeros((64, 64))
    ring = ((1.0, 0, 8, 8), (1.0, 1, 24, 24))
    # too small: 8x8 pixels inside
    distances[8:16, 8:16] = 0.5
    assert trainer.train_for_growth(strokes, noise_layers.labels, distances, ring, 1.0, True) is None

    distances[8:24, 8:24] = 0.5
    clf = trainer.train_for_growth(strokes, noise_layers.labels, distances, ring, 1.0, True)
    assert clf is not None
    assert clf.n_positives == 256


def test_single_class_model_probabilities():
    from sklearn.ensemble import RandomForestClassifier
    X = np.random.default_rng(0).random((10, 6))
    model = RandomForestClassifier(n_estimators=3, random_state=0).fit(X, np.ones(10, dtype=int))
    clf = PixelClassifier(model, 10, 0)
    np.testing.assert_array_equal(clf.prob_positive(X), np.ones(10))
    assert clf.prob_positive(np.zeros((0, 6))).shape == (0,)
