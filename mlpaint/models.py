# models.py — pixel codes, layer container, stroke events and error taxonomy

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, NamedTuple, Optional, Tuple
import numpy as np


# region Pixel Codes
class Label(IntEnum):
    """Persistent label layer codes."""
    UNLABELED = 0
    NEGATIVE = 1
    POSITIVE = 2
    CLASS_3 = 3
    CLASS_4 = 4
    CLASS_5 = 5
    CLASS_6 = 6
    CLASS_7 = 7
    CLASS_8 = 8
    CLASS_9 = 9
    CLASS_10 = 10
    CLASS_11 = 11
    CLASS_12 = 12
    CLASS_13 = 13
    CLASS_14 = 14
    NO_DATA = 15


class Stroke(IntEnum):
    """Ephemeral stroke mask codes."""
    UNPAINTED = 0
    FRESH_POSITIVE = 1
    FRESH_NEGATIVE = 2


class StrokeKind(IntEnum):
    ERASE = 0
    POSITIVE = 1
    NEGATIVE = 2
# endregion


# region Errors
class ContractViolation(RuntimeError):
    """Caller broke an engine precondition; not recoverable automatically."""


class ExtentMismatchError(ContractViolation, ValueError):
    pass


class InsufficientSeedError(ContractViolation):
    pass


class UntrainedClassifierError(ContractViolation):
    pass
# endregion


# region Geometry
class Rect(NamedTuple):
    """Half-open pixel rectangle [x0, x1) x [y0, y1)."""
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def empty(self) -> bool:
        return self.x1 <= self.x0 or self.y1 <= self.y0

    @property
    def area(self) -> int:
        return 0 if self.empty else (self.x1 - self.x0) * (self.y1 - self.y0)

    def clip(self, width: int, height: int) -> "Rect":
        return Rect(max(0, self.x0), max(0, self.y0), min(width, self.x1), min(height, self.y1))


@dataclass(frozen=True)
class StrokeEvent:
    center: Tuple[float, float]   # (x, y) in screen coordinates of the host view
    radius: float
    kind: StrokeKind
# endregion


# region Layers
@dataclass
class Layers:
    """
    image:  (H, W, 3) uint8 base RGB image
    labels: (H, W) uint8 label codes, see ``Label``
    aux:    name -> (H, W) single-band auxiliary layers, in feature order
    """
    image: np.ndarray
    labels: Optional[np.ndarray] = None
    aux: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        if self.image.ndim == 2:
            self.image = np.repeat(self.image[..., None], 3, axis=2)
        if self.image.ndim != 3 or self.image.shape[2] < 3:
            raise ExtentMismatchError(f"Base image must be (H, W, 3), got {self.image.shape}")
        self.image = np.ascontiguousarray(self.image[..., :3])
        H, W = self.image.shape[:2]
        if self.labels is None:
            self.labels = np.full((H, W), Label.UNLABELED, dtype=np.uint8)
        else:
            self.labels = np.array(self.labels, dtype=np.uint8, copy=True)
        if self.labels.shape != (H, W):
            raise ExtentMismatchError(
                f"The labels size {self.labels.shape[::-1]} does not match the image size {(W, H)}."
            )
        for name, layer in self.aux.items():
            if layer.shape[:2] != (H, W):
                raise ExtentMismatchError(
                    f"Layer {name!r} size {layer.shape[1::-1]} does not match the image size {(W, H)}."
                )

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def width(self) -> int:
        return self.image.shape[1]
# endregion
