# features.py — per-pixel feature vectors: RGB, HSV and auxiliary layer samples

# region Imports
from typing import Dict, Sequence
import numpy as np
from matplotlib.colors import rgb_to_hsv
# endregion


# region Feature Extractor
class FeatureExtractor:
    """
    Maps pixel coordinates to fixed-length vectors

        [r, g, b, hue, saturation, brightness, aux_0, aux_1, ...]

    r, g, b are scaled to [0, 1]; hue/saturation/brightness follow the usual
    HSB convention, all in [0, 1]. Each auxiliary layer contributes its raw
    sample (band 0), or 0 where the coordinate falls outside the layer.
    """

    def __init__(self, image: np.ndarray, aux: Dict[str, np.ndarray] = None):
        self.image = image
        self.aux = [a if a.ndim == 2 else a[..., 0] for a in (aux or {}).values()]
        self.height, self.width = image.shape[:2]

    @property
    def n_features(self) -> int:
        return 6 + len(self.aux)

    def vector(self, x: int, y: int) -> np.ndarray:
        return self.vectors(np.array([x]), np.array([y]))[0]

    def vectors(self, xs: Sequence[int], ys: Sequence[int]) -> np.ndarray:
        xs = np.asarray(xs, dtype=np.intp)
        ys = np.asarray(ys, dtype=np.intp)
        out = np.zeros((xs.size, self.n_features), dtype=np.float64)
        if xs.size == 0:
            return out
        inside = (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
        rgb = np.zeros((xs.size, 3), dtype=np.float64)
        rgb[inside] = self.image[ys[inside], xs[inside], :3] / 255.0
        out[:, 0:3] = rgb
        out[:, 3:6] = rgb_to_hsv(rgb)
        for i, layer in enumerate(self.aux):
            lh, lw = layer.shape
            ok = (xs >= 0) & (xs < lw) & (ys >= 0) & (ys < lh)
            out[ok, 6 + i] = layer[ys[ok], xs[ok]]
        return out

    def rows(self, y0: int, y1: int) -> np.ndarray:
        """Feature vectors of every pixel in rows [y0, y1), in raster order."""
        ys, xs = np.mgrid[y0:y1, 0:self.width]
        return self.vectors(xs.ravel(), ys.ravel())
# endregion
