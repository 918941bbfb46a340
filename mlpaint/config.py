# config.py — engine defaults and the explicit EngineConfig threaded through construction

# region Imports
from dataclasses import dataclass, replace
from typing import Optional
# endregion

# region Defaults
SEED_COST = 1e-5          # cost of a fresh-positive pixel and of every seed
DEFAULT_GROWTH = 40       # ring index selected right after seeding
INTERIOR_STEPS = 20       # growth steps spent filling the painted interior
DEFAULT_GRID_STEP = 4     # coarse block edge in pixels
UNDO_DEPTH = 10

MAX_POSITIVES = 4000
MAX_NEGATIVES = 8000
N_TREES = 30
MIN_TRAIN_POSITIVES = 30
MIN_GROWTH_POSITIVES = 100
OVERSAMPLE = 50           # sampler budgets this many candidates per accepted point

DEFAULT_SCORE_POWER = 2.0
SCORE_POWER_STEP = 0.25
COST_TILE = 64            # lattice points per side of a cached classifier tile
# endregion

# region Engine Configuration
@dataclass(frozen=True)
class EngineConfig:
    grid_step: int = DEFAULT_GRID_STEP
    default_growth: int = DEFAULT_GROWTH
    interior_steps: int = INTERIOR_STEPS
    score_power: float = DEFAULT_SCORE_POWER
    lock_mode: bool = True
    n_trees: int = N_TREES
    max_positives: int = MAX_POSITIVES
    max_negatives: int = MAX_NEGATIVES
    min_train_positives: int = MIN_TRAIN_POSITIVES
    min_growth_positives: int = MIN_GROWTH_POSITIVES
    undo_depth: int = UNDO_DEPTH
    speculate: bool = True
    random_state: Optional[int] = None
    cost_tile: int = COST_TILE

    def __post_init__(self):
        if self.grid_step < 1:
            raise ValueError(f"grid_step must be >= 1, got {self.grid_step}")
        if self.score_power < 0:
            raise ValueError(f"score_power must be >= 0, got {self.score_power}")
        if not 0 <= self.interior_steps <= self.default_growth:
            raise ValueError(
                f"interior_steps ({self.interior_steps}) must lie in [0, default_growth={self.default_growth}]"
            )
        if self.undo_depth < 1 or self.n_trees < 1 or self.cost_tile < 1:
            raise ValueError("undo_depth, n_trees and cost_tile must be positive")

    def with_overrides(self, **kw) -> "EngineConfig":
        return replace(self, **kw)
# endregion

# region Growth Batch Policy
def reps_increment(n_positives, ring_index: int, interior_steps: int, grid_step: int) -> int:
    """
    Number of pops for the growth step that produces ring ``ring_index``.

    The interior phase spreads the estimated painted area evenly over
    ``interior_steps`` rings. Past it, batches scale with the ring index so the
    frontier keeps pace with its own perimeter.
    """
    if not n_positives or interior_steps <= 0:
        return 1
    base = float(n_positives) / (interior_steps * grid_step * grid_step)
    if ring_index < interior_steps:
        return max(1, int(base))
    return max(1, int(base * ring_index / interior_steps))
# endregion
