# synthetic.py
# ----------------
# Synthetic aerial-like scenes for tests and the shell's --synthetic mode.
#
# Exposes:
#   - SyntheticScene              (layers + ground truth)
#   - make_synthetic_scene(height=256, width=256, seed=0, ...)
#
# Dependencies: numpy

from __future__ import annotations
from typing import NamedTuple, Tuple
import numpy as np

from .models import Layers


class SyntheticScene(NamedTuple):
    """
    layers:     base image + one auxiliary "elevation" band, labels all UNLABELED
    vegetation: (H, W) bool ground truth of the green blobs
    center:     (x, y) of the central blob, always present
    radius:     radius of the central blob in pixels
    """
    layers: Layers
    vegetation: np.ndarray
    center: Tuple[int, int]
    radius: int


def make_synthetic_scene(
    height: int = 256,
    width: int = 256,
    seed: int = 0,
    n_blobs: int = 4,
    noise: float = 10.0,
) -> SyntheticScene:
    """
    Reddish textured ground with green vegetation blobs. One blob sits in the
    middle of the image; the others are scattered so they never touch it.
    """
    rng = np.random.default_rng(seed)
    H, W = height, width
    rr, cc = np.ogrid[:H, :W]

    # vegetation blobs
    r0 = max(4, min(H, W) // 6)
    cx, cy = W // 2, H // 2
    veg = np.hypot(rr - cy, cc - cx) <= r0
    for _ in range(max(0, n_blobs - 1)):
        for _attempt in range(50):
            r = int(rng.integers(max(3, r0 // 3), max(4, r0 // 2) + 1))
            bx, by = int(rng.integers(r, W - r)), int(rng.integers(r, H - r))
            if np.hypot(bx - cx, by - cy) > r0 + r + 8:
                veg |= np.hypot(rr - by, cc - bx) <= r
                break

    # ground texture: long waves plus per-pixel noise
    yy, xx = np.meshgrid(np.linspace(0, 4 * np.pi, H), np.linspace(0, 4 * np.pi, W), indexing="ij")
    shade = 15 * np.sin(0.5 * xx) * np.cos(0.4 * yy)
    rgb = np.empty((H, W, 3), dtype=np.float64)
    rgb[..., 0] = 160 + shade
    rgb[..., 1] = 110 + 0.5 * shade
    rgb[..., 2] = 80 + 0.3 * shade
    rgb[veg] = (50, 140, 60)
    rgb += rng.normal(0, noise, (H, W, 3))
    image = np.clip(rgb, 0, 255).astype(np.uint8)

    # elevation-like auxiliary band with a few craters
    elev = 200 * np.sin(0.2 * xx) * np.cos(0.15 * yy) + rng.normal(0, 5.0, (H, W))
    for _ in range(3):
        ey, ex = rng.integers(0, H), rng.integers(0, W)
        dist = np.hypot(rr - ey, cc - ex)
        elev -= 100 * np.exp(-(dist ** 2) / (2 * rng.uniform(6, 14) ** 2))

    layers = Layers(image=image, aux={"elevation": elev.astype(np.float32)})
    return SyntheticScene(layers=layers, vegetation=veg, center=(cx, cy), radius=r0)
