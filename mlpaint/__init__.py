# mlpaint — classifier-guided region suggestions for raster labeling

from .config import EngineConfig
from .models import (
    ContractViolation,
    ExtentMismatchError,
    InsufficientSeedError,
    Label,
    Layers,
    Stroke,
    StrokeEvent,
    StrokeKind,
    UntrainedClassifierError,
)
from .session import SuggestionSession

__version__ = "0.1.0"
