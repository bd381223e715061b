from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from fmrec.data.encoder import SparseVector
from fmrec.data.schema import FieldMap
from fmrec.models.base import BaseFactorizationMachine
from fmrec.models.params import ParameterStore


class FieldAwareFactorizationMachine(BaseFactorizationMachine):
    """Field-aware FM (FFM).

    Feature ``i`` keeps a separate k-dim factor for every field it may meet.
    For a pair (i, j) the score uses ``i``'s factor for ``j``'s field and
    ``j``'s factor for ``i``'s field:

        sum_{i<j} <V[i, field(j)], V[j, field(i)]> x_i x_j

    The factor choice depends on the partner, so there is no O(k*n)
    shortcut; every pair is enumerated.
    """

    field_aware = True

    def __init__(
        self,
        params: ParameterStore,
        field_map: FieldMap,
        min_rating: Optional[float] = None,
        max_rating: Optional[float] = None,
    ):
        if not params.field_aware:
            raise ValueError("FieldAwareFactorizationMachine needs a field-aware ParameterStore")
        if params.num_fields != field_map.num_fields:
            raise ValueError(
                f"ParameterStore has {params.num_fields} field blocks, "
                f"field map has {field_map.num_fields} fields"
            )
        super().__init__(params, field_map, min_rating, max_rating)

    def _fields(self, x: SparseVector) -> np.ndarray:
        return self.field_map.feature_to_field[x.indices]

    def interaction(self, x: SparseVector) -> float:
        V = self.params.V
        block = self.params.factor_block
        fields = self._fields(x)
        total = 0.0
        n = len(x)
        for a in range(n):
            i, xi, fi = x.indices[a], x.values[a], fields[a]
            for b in range(a + 1, n):
                j, xj, fj = x.indices[b], x.values[b], fields[b]
                total += float(np.dot(V[i, block(fj)], V[j, block(fi)])) * xi * xj
        return total

    def factor_gradient(
        self, x: SparseVector, position: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        V = self.params.V
        block = self.params.factor_block
        fields = self._fields(x)
        xi, fi = x.values[position], fields[position]

        columns = []
        grads = []
        for b in range(len(x)):
            if b == position:
                continue
            j, xj, fj = x.indices[b], x.values[b], fields[b]
            partner = block(fj)
            columns.append(np.arange(partner.start, partner.stop))
            grads.append(xi * xj * V[j, block(fi)])
        if not columns:
            return np.zeros(0, dtype=np.int64), np.zeros(0)
        return np.concatenate(columns), np.concatenate(grads)
