from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from fmrec.data.encoder import SparseVector
from fmrec.data.schema import FieldMap
from fmrec.models.base import BaseFactorizationMachine
from fmrec.models.params import ParameterStore

INTERACTION_METHODS = ("identity", "pairwise")


class FactorizationMachine(BaseFactorizationMachine):
    """Field-agnostic FM: one k-dim factor vector per feature.

    Since every feature uses the same factor against all partners, the
    pairwise term can be computed in O(k*n) with

        sum_{i<j} <v_i, v_j> x_i x_j
            = 0.5 * sum_f [(sum_i v_if x_i)^2 - sum_i (v_if x_i)^2]

    The explicit O(k*n^2) enumeration is kept for cross-checking.
    """

    field_aware = False

    def __init__(
        self,
        params: ParameterStore,
        field_map: FieldMap,
        interaction_method: str = "identity",
        min_rating: Optional[float] = None,
        max_rating: Optional[float] = None,
    ):
        if params.field_aware:
            raise ValueError("FactorizationMachine needs a field-agnostic ParameterStore")
        if interaction_method not in INTERACTION_METHODS:
            raise ValueError(
                f"Unknown interaction method: {interaction_method}. "
                f"Available: {list(INTERACTION_METHODS)}"
            )
        super().__init__(params, field_map, min_rating, max_rating)
        self.interaction_method = interaction_method
        self._columns = np.arange(params.num_factors)

    def interaction(self, x: SparseVector) -> float:
        if self.interaction_method == "identity":
            return self.interaction_identity(x)
        return self.interaction_pairwise(x)

    def interaction_identity(self, x: SparseVector) -> float:
        weighted = self.params.V[x.indices] * x.values[:, None]  # (n, k)
        square_of_sum = weighted.sum(axis=0) ** 2  # (k,)
        sum_of_squares = (weighted**2).sum(axis=0)  # (k,)
        return float(0.5 * (square_of_sum - sum_of_squares).sum())

    def interaction_pairwise(self, x: SparseVector) -> float:
        V = self.params.V
        total = 0.0
        n = len(x)
        for a in range(n):
            i, xi = x.indices[a], x.values[a]
            for b in range(a + 1, n):
                j, xj = x.indices[b], x.values[b]
                total += float(np.dot(V[i], V[j])) * xi * xj
        return total

    def factor_gradient(
        self, x: SparseVector, position: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        V = self.params.V
        i = x.indices[position]
        xi = x.values[position]
        # sum over j != i of v_jf x_j, all k columns at once
        others = x.values @ V[x.indices] - xi * V[i]
        return self._columns, xi * others
