from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from fmrec.data.encoder import SparseVector
from fmrec.data.schema import FieldMap
from fmrec.models.params import ParameterStore


class BaseFactorizationMachine(ABC):
    """Abstract base class for the second-order factorization models.

    Holds the parameter store and field map, computes the bias and linear
    part of the score, and defines the two hooks a variant must supply:
    the pairwise interaction term and its gradient with respect to the
    factors of one active feature.
    """

    field_aware: bool = False

    def __init__(
        self,
        params: ParameterStore,
        field_map: FieldMap,
        min_rating: Optional[float] = None,
        max_rating: Optional[float] = None,
    ):
        if params.num_features != field_map.num_features:
            raise ValueError(
                f"ParameterStore has {params.num_features} features, "
                f"field map has {field_map.num_features}"
            )
        self.params = params
        self.field_map = field_map
        self.min_rating = min_rating
        self.max_rating = max_rating

    @property
    def num_factors(self) -> int:
        return self.params.num_factors

    def linear_term(self, x: SparseVector) -> float:
        return float(np.dot(self.params.W[x.indices], x.values))

    @abstractmethod
    def interaction(self, x: SparseVector) -> float:
        """Second-order term summed over unordered pairs of active features."""

    @abstractmethod
    def factor_gradient(
        self, x: SparseVector, position: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Partial derivatives of the interaction term for one active feature.

        Args:
            x: Encoded entry.
            position: Position of the feature inside ``x``.

        Returns:
            (columns, h): the columns of ``V[x.indices[position]]`` the
            feature touches and the derivative for each, evaluated on the
            current parameters.
        """

    def predict(self, x: SparseVector, bound: bool = False) -> float:
        """Score one entry: ``w0 + <W, x> + interaction(x)``.

        With ``bound=True`` the score is clamped to the configured rating
        range; training always uses the raw score.
        """
        score = self.params.w0 + self.linear_term(x) + self.interaction(x)
        if bound:
            if self.max_rating is not None and score > self.max_rating:
                score = self.max_rating
            elif self.min_rating is not None and score < self.min_rating:
                score = self.min_rating
        return score

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.params!r})"
