from fmrec.training.optimizers import (
    OPTIMIZER_REGISTRY,
    BaseOptimizer,
    FTRLOptimizer,
    FTRLState,
    build_optimizer,
    SGDOptimizer,
)
from fmrec.training.trainer import (
    ConvergenceController,
    Trainer,
    TrainingResult,
    TrainingState,
)

__all__ = [
    "OPTIMIZER_REGISTRY",
    "BaseOptimizer",
    "SGDOptimizer",
    "FTRLOptimizer",
    "FTRLState",
    "build_optimizer",
    "ConvergenceController",
    "Trainer",
    "TrainingResult",
    "TrainingState",
]
