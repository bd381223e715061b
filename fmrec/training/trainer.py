from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from fmrec.config import (
    DataConfig,
    ExperimentConfig,
    FieldConfig,
    TrainingConfig,
    validate_config,
)
from fmrec.data.encoder import SparseFeatureEncoder, SparseVector
from fmrec.data.schema import FieldMap
from fmrec.data.tensor import InteractionTensor
from fmrec.errors import ConfigurationError, NumericDivergence
from fmrec.models import BaseFactorizationMachine, build_model
from fmrec.training.optimizers import BaseOptimizer, build_optimizer
from fmrec.utils import get_logger, seed_everything

logger = logging.getLogger(__name__)


class TrainingState(Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"


@dataclass
class TrainingResult:
    state: TrainingState
    num_iterations: int
    loss: float
    last_loss: float
    history: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state is TrainingState.CONVERGED


class ConvergenceController:
    """Tracks the loss trace and decides when to stop.

    ``last_loss`` is snapshotted from ``loss`` at the start of every
    iteration unless ``snapshot_last_loss`` is off, in which case it keeps
    its initial 0.0 for the whole run. A non-finite loss always ends
    training with NumericDivergence, early stopping or not.
    """

    def __init__(
        self,
        num_iterations: int,
        early_stop: bool = False,
        tolerance: float = 1e-5,
        relative: bool = False,
        snapshot_last_loss: bool = True,
    ):
        self.num_iterations = num_iterations
        self.early_stop = early_stop
        self.tolerance = tolerance
        self.relative = relative
        self.snapshot_last_loss = snapshot_last_loss

        self.loss = 0.0
        self.last_loss = 0.0
        self.state = TrainingState.RUNNING
        self.history: List[float] = []

    @classmethod
    def from_config(cls, config: TrainingConfig) -> ConvergenceController:
        return cls(
            num_iterations=config.num_iterations,
            early_stop=config.early_stop,
            tolerance=config.tolerance,
            relative=config.relative_tolerance,
            snapshot_last_loss=config.snapshot_last_loss,
        )

    def reset(self) -> None:
        """Back to a fresh RUNNING state with an empty loss trace."""
        self.loss = 0.0
        self.last_loss = 0.0
        self.state = TrainingState.RUNNING
        self.history = []

    def begin_iteration(self) -> None:
        if self.snapshot_last_loss:
            self.last_loss = self.loss
        self.loss = 0.0

    def delta(self) -> float:
        delta = abs(self.last_loss - self.loss)
        if self.relative:
            delta /= max(abs(self.last_loss), np.finfo(np.float64).tiny)
        return delta

    def is_converged(self) -> bool:
        return self.delta() < self.tolerance

    def end_iteration(self, loss: float, iteration: int) -> TrainingState:
        """Record an epoch's loss and move the state machine.

        Args:
            loss: Scaled epoch loss.
            iteration: Zero-based index of the finished iteration.
        """
        self.loss = loss
        self.history.append(loss)
        if not math.isfinite(loss):
            raise NumericDivergence(loss, iteration)

        if self.early_stop and self.is_converged():
            self.state = TrainingState.CONVERGED
        elif iteration + 1 >= self.num_iterations:
            self.state = TrainingState.MAX_ITER_REACHED
        else:
            self.state = TrainingState.RUNNING
        return self.state


class Trainer:
    """Online training loop: one optimizer step per entry, in stored order.

    Every entry is encoded up front, so a bad key fails the run before any
    parameter changes. Epochs then replay the encoded entries sequentially;
    each example sees the updates of all examples before it.
    """

    def __init__(
        self,
        model: BaseFactorizationMachine,
        optimizer: BaseOptimizer,
        tensor: InteractionTensor,
        config: TrainingConfig,
        encoder: Optional[SparseFeatureEncoder] = None,
    ):
        if tensor.num_dimensions != model.field_map.num_fields:
            raise ConfigurationError(
                f"Tensor has {tensor.num_dimensions} dimensions, "
                f"model expects {model.field_map.num_fields} fields"
            )
        if optimizer.model is not model:
            raise ConfigurationError("Optimizer is bound to a different model")
        self.model = model
        self.optimizer = optimizer
        self.tensor = tensor
        self.tcfg = config
        self.encoder = encoder or SparseFeatureEncoder(model.field_map)
        self.controller = ConvergenceController.from_config(config)

    @classmethod
    def from_config(cls, config: ExperimentConfig, tensor: InteractionTensor) -> Trainer:
        """Build field map, parameters, model and optimizer from ``config``.

        Fields come from ``config.data.fields`` when declared, otherwise
        from the tensor's own dimensions.
        """
        if config.data.fields:
            field_map = FieldMap.from_config(config.data.fields)
            if field_map.cardinalities != tensor.dimensions:
                raise ConfigurationError(
                    f"Configured cardinalities {field_map.cardinalities} "
                    f"do not match tensor dimensions {tensor.dimensions}"
                )
        else:
            field_map = tensor.field_map()
        validate_config(_with_fields(config, field_map))

        get_logger("fmrec", log_file=config.log_file)
        rng = seed_everything(config.seed)
        model = build_model(config.model_name, field_map, config.model, rng=rng)

        name = config.training.optimizer
        opt_config = config.sgd if name == "sgd" else config.ftrl
        optimizer = build_optimizer(name, model, opt_config)

        logger.info(
            f"Model: {config.model_name} with {name} "
            f"(p={field_map.num_features}, fields={field_map.num_fields}, "
            f"k={config.model.num_factors}, {model.params.num_parameters:,} parameters)"
        )
        return cls(model, optimizer, tensor, config.training)

    @property
    def field_map(self) -> FieldMap:
        return self.model.field_map

    @property
    def loss(self) -> float:
        return self.controller.loss

    @property
    def last_loss(self) -> float:
        return self.controller.last_loss

    def _encode_all(self) -> List[SparseVector]:
        return [
            self.encoder.encode(keys, entry=idx)
            for idx, keys in enumerate(self.tensor.keys)
        ]

    def _train_epoch(self, encoded: List[SparseVector], iteration: int) -> float:
        total = 0.0
        for idx, x in enumerate(encoded):
            contribution = self.optimizer.step(x, float(self.tensor.labels[idx]))
            if not math.isfinite(contribution):
                logger.error(f"Non-finite loss at iteration {iteration + 1}, entry {idx}")
                raise NumericDivergence(contribution, iteration, entry=idx)
            total += contribution
        return 0.5 * total

    def fit(self) -> TrainingResult:
        """Main training loop."""
        encoded = self._encode_all()
        ctl = self.controller
        ctl.reset()
        num_iterations = self.tcfg.num_iterations

        for iteration in range(num_iterations):
            t0 = time.time()
            ctl.begin_iteration()
            loss = self._train_epoch(encoded, iteration)
            try:
                state = ctl.end_iteration(loss, iteration)
            except NumericDivergence:
                logger.error(f"Loss diverged at iteration {iteration + 1}: {loss}")
                raise

            elapsed = time.time() - t0
            logger.info(
                f"Iteration {iteration + 1}/{num_iterations} [{elapsed:.2f}s] "
                f"loss={loss:.6f} delta={ctl.last_loss - loss:.6f}"
            )

            if state is TrainingState.CONVERGED:
                logger.info(f"Converged at iteration {iteration + 1}")
                break
        else:
            logger.info(f"Reached max iterations ({num_iterations})")

        return TrainingResult(
            state=ctl.state,
            num_iterations=len(ctl.history),
            loss=ctl.loss,
            last_loss=ctl.last_loss,
            history=list(ctl.history),
        )

    def predict(self, x: SparseVector, bound: bool = False) -> float:
        return self.model.predict(x, bound=bound)

    def predict_keys(self, keys: Sequence[int], bound: bool = True) -> float:
        """Encode raw per-field keys and score them with the trained model."""
        return self.model.predict(self.encoder.encode(keys), bound=bound)

    def predict_tensor(self, tensor: InteractionTensor, bound: bool = True) -> np.ndarray:
        return np.array(
            [
                self.model.predict(self.encoder.encode(keys, entry=idx), bound=bound)
                for idx, keys in enumerate(tensor.keys)
            ],
            dtype=np.float64,
        )


def _with_fields(config: ExperimentConfig, field_map: FieldMap) -> ExperimentConfig:
    """Copy of ``config`` whose data section lists ``field_map``'s fields."""
    fields = [FieldConfig(f.name, f.cardinality) for f in field_map.fields]
    return replace(config, data=DataConfig(fields=fields))
