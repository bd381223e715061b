from __future__ import annotations

from typing import Optional

import numpy as np


class ParameterStore:
    """Owns the trainable arrays shared by every FM variant.

    Attributes:
        w0: Global bias.
        W:  (p,) linear weight per feature.
        V:  (p, k) latent factors, or (p, k * num_fields) when field-aware.
            In the field-aware layout the factor of feature ``i`` used
            against a partner from field ``f`` lives in columns
            ``[k * f, k * f + k)``.

    The arrays are mutated in place by the optimizer, one example at a time.
    """

    def __init__(
        self,
        num_features: int,
        num_factors: int,
        num_fields: int = 1,
        field_aware: bool = False,
    ):
        self.num_features = num_features
        self.num_factors = num_factors
        self.num_fields = num_fields
        self.field_aware = field_aware

        self.w0 = 0.0
        self.W = np.zeros(num_features, dtype=np.float64)
        num_columns = num_factors * num_fields if field_aware else num_factors
        self.V = np.zeros((num_features, num_columns), dtype=np.float64)

    @classmethod
    def initialize(
        cls,
        num_features: int,
        num_factors: int,
        num_fields: int = 1,
        field_aware: bool = False,
        init_mean: float = 0.0,
        init_std: float = 0.1,
        rng: Optional[np.random.Generator] = None,
    ) -> ParameterStore:
        """Zero bias and weights; factors drawn from N(init_mean, init_std)."""
        store = cls(num_features, num_factors, num_fields, field_aware)
        rng = rng if rng is not None else np.random.default_rng()
        store.V[:] = rng.normal(init_mean, init_std, size=store.V.shape)
        return store

    def factor_block(self, field: int) -> slice:
        """Columns of V holding the factor used against partners of ``field``."""
        if not self.field_aware:
            return slice(0, self.num_factors)
        start = self.num_factors * field
        return slice(start, start + self.num_factors)

    @property
    def num_parameters(self) -> int:
        return 1 + self.W.size + self.V.size

    def __repr__(self) -> str:
        return (
            f"ParameterStore(p={self.num_features}, k={self.num_factors}, "
            f"V={self.V.shape}, field_aware={self.field_aware})"
        )
