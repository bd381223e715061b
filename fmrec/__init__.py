"""Factorization Machine training engine for sparse multi-field data.

Plain FM and field-aware FM (FFM), trained online with SGD or
FTRL-Proximal over an in-memory interaction tensor.
"""

__version__ = "0.1.0"

from fmrec.config import ExperimentConfig, load_config, validate_config
from fmrec.data import FieldMap, InteractionTensor, SparseFeatureEncoder, SparseVector
from fmrec.errors import ConfigurationError, FMError, InvalidFieldKey, NumericDivergence
from fmrec.models import (
    FactorizationMachine,
    FieldAwareFactorizationMachine,
    ParameterStore,
    build_model,
)
from fmrec.training import (
    FTRLOptimizer,
    SGDOptimizer,
    Trainer,
    TrainingResult,
    TrainingState,
)

__all__ = [
    "ExperimentConfig",
    "load_config",
    "validate_config",
    "FieldMap",
    "InteractionTensor",
    "SparseFeatureEncoder",
    "SparseVector",
    "FMError",
    "ConfigurationError",
    "InvalidFieldKey",
    "NumericDivergence",
    "FactorizationMachine",
    "FieldAwareFactorizationMachine",
    "ParameterStore",
    "build_model",
    "SGDOptimizer",
    "FTRLOptimizer",
    "Trainer",
    "TrainingResult",
    "TrainingState",
]
