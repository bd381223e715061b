"""Per-example update rules for the factorization models.

Both strategies consume one encoded entry at a time and mutate the model's
ParameterStore in place. Features are visited in index order and each one's
factor gradient is taken on the parameters as they stand at that moment,
so later features in the same entry see factors already moved by earlier
ones. Both the order and the in-place reads affect the numerical result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from fmrec.config import FTRLConfig, SGDConfig
from fmrec.data.encoder import SparseVector
from fmrec.errors import ConfigurationError
from fmrec.models.base import BaseFactorizationMachine


class BaseOptimizer(ABC):
    """Applies one example's gradient to the model parameters."""

    name: str = ""

    def __init__(self, model: BaseFactorizationMachine):
        self.model = model
        self.params = model.params

    @abstractmethod
    def step(self, x: SparseVector, label: float) -> float:
        """Update parameters for one example.

        Returns:
            The example's contribution to the epoch loss (before the
            trainer's final 0.5 scaling).
        """


class SGDOptimizer(BaseOptimizer):
    """Plain stochastic gradient descent on squared loss with L2 penalties.

    The loss contribution adds the penalty only for the coordinates this
    example touched, using their values before the update. This is not
    the full regularized objective over all parameters.
    """

    name = "sgd"

    def __init__(self, model: BaseFactorizationMachine, config: SGDConfig):
        super().__init__(model)
        self.learning_rate = config.learning_rate
        self.reg_w0 = config.reg_w0
        self.reg_w = config.reg_w
        self.reg_v = config.reg_v

    def step(self, x: SparseVector, label: float) -> float:
        p = self.params
        lr = self.learning_rate

        err = self.model.predict(x) - label
        loss = err * err

        # global bias
        loss += self.reg_w0 * p.w0 * p.w0
        p.w0 -= lr * (err + self.reg_w0 * p.w0)

        for pos in range(len(x)):
            i = x.indices[pos]
            xi = x.values[pos]

            # 1-way
            old_wi = p.W[i]
            p.W[i] = old_wi - lr * (err * xi + self.reg_w * old_wi)
            loss += self.reg_w * old_wi * old_wi

            # 2-way
            columns, h = self.model.factor_gradient(x, pos)
            old_v = p.V[i, columns]
            p.V[i, columns] = old_v - lr * (err * h + self.reg_v * old_v)
            loss += self.reg_v * float(np.dot(old_v, old_v))

        return float(loss)


class FTRLState:
    """Per-coordinate FTRL accumulators, shaped like w0, W and V.

    ``n`` sums squared gradients and never decreases; ``z`` sums gradients
    corrected by ``sigma * theta`` and may take either sign.
    """

    def __init__(self, num_features: int, v_shape):
        self.z_w0 = 0.0
        self.n_w0 = 0.0
        self.z_W = np.zeros(num_features, dtype=np.float64)
        self.n_W = np.zeros(num_features, dtype=np.float64)
        self.z_V = np.zeros(v_shape, dtype=np.float64)
        self.n_V = np.zeros(v_shape, dtype=np.float64)


class FTRLOptimizer(BaseOptimizer):
    """FTRL-Proximal with combined L1/L2 regularization.

    For every touched coordinate theta with gradient g:

        sigma = (sqrt(n + g^2) - sqrt(n)) / alpha
        z    += g - sigma * theta        # theta before this update
        n    += g^2
        theta = 0                                          if |z| <= lambda1
              = -(z - sign(z) * lambda1) / ((beta + sqrt(n)) / alpha + lambda2)

    Regularization enters only through the closed-form update; gradients
    carry no penalty term, and neither does the reported loss.
    """

    name = "ftrl"

    def __init__(self, model: BaseFactorizationMachine, config: FTRLConfig):
        super().__init__(model)
        self.alpha = config.alpha
        self.beta = config.beta
        self.lambda1 = config.lambda1
        self.lambda2 = config.lambda2
        self.state = FTRLState(self.params.num_features, self.params.V.shape)

    def proximal_update(self, theta, g, z, n):
        """Apply one FTRL-Proximal step to coordinates (scalar or array).

        Returns:
            (theta, z, n) after the update.
        """
        theta = np.asarray(theta, dtype=np.float64)
        g = np.asarray(g, dtype=np.float64)
        g2 = g * g
        sigma = (np.sqrt(n + g2) - np.sqrt(n)) / self.alpha
        z = z + g - sigma * theta
        n = n + g2

        # Both branches are evaluated; the zero-denominator branch is discarded.
        with np.errstate(divide="ignore", invalid="ignore"):
            shrunk = -(z - np.sign(z) * self.lambda1) / (
                (self.beta + np.sqrt(n)) / self.alpha + self.lambda2
            )
        theta = np.where(np.abs(z) <= self.lambda1, 0.0, shrunk)
        return theta, z, n

    def step(self, x: SparseVector, label: float) -> float:
        p = self.params
        s = self.state

        err = self.model.predict(x) - label
        loss = err * err

        w0, z, n = self.proximal_update(p.w0, err, s.z_w0, s.n_w0)
        p.w0, s.z_w0, s.n_w0 = float(w0), float(z), float(n)

        for pos in range(len(x)):
            i = x.indices[pos]
            xi = x.values[pos]

            wi, z, n = self.proximal_update(p.W[i], err * xi, s.z_W[i], s.n_W[i])
            p.W[i], s.z_W[i], s.n_W[i] = wi, z, n

            columns, h = self.model.factor_gradient(x, pos)
            v, z, n = self.proximal_update(
                p.V[i, columns], err * h, s.z_V[i, columns], s.n_V[i, columns]
            )
            p.V[i, columns] = v
            s.z_V[i, columns] = z
            s.n_V[i, columns] = n

        return float(loss)


OPTIMIZER_REGISTRY = {
    "sgd": SGDOptimizer,
    "ftrl": FTRLOptimizer,
}


def build_optimizer(
    name: str, model: BaseFactorizationMachine, config: SGDConfig | FTRLConfig
) -> BaseOptimizer:
    """Build an optimizer by name, bound to ``model``."""
    if name not in OPTIMIZER_REGISTRY:
        raise ConfigurationError(
            f"Unknown optimizer: {name}. Available: {list(OPTIMIZER_REGISTRY)}"
        )
    return OPTIMIZER_REGISTRY[name](model, config)
