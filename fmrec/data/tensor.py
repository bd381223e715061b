from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from fmrec.data.schema import FieldMap, FieldSchema, non_integral
from fmrec.errors import ConfigurationError


class InteractionTensor:
    """In-memory interaction tensor: one integer key per field plus a label.

    Entries are stored as a dense ``(N, F)`` key matrix and an ``(N,)`` label
    vector and are always iterated in their stored order.
    """

    def __init__(
        self,
        keys: np.ndarray,
        labels: np.ndarray,
        dimensions: Optional[Sequence[int]] = None,
        field_names: Optional[Sequence[str]] = None,
    ):
        raw = np.asarray(keys)
        if raw.size and non_integral(raw).any():
            raise ConfigurationError("keys must be whole numbers")
        keys = raw.astype(np.int64)
        labels = np.asarray(labels, dtype=np.float64)
        if keys.ndim != 2:
            raise ConfigurationError(f"keys must be 2-D (entries, fields), got shape {keys.shape}")
        if labels.shape != (keys.shape[0],):
            raise ConfigurationError(
                f"labels shape {labels.shape} does not match {keys.shape[0]} entries"
            )

        if dimensions is None:
            # Infer cardinalities from the largest key seen per field
            if keys.shape[0] == 0:
                raise ConfigurationError("Cannot infer dimensions from an empty tensor")
            dimensions = (keys.max(axis=0) + 1).tolist()
        dimensions = [int(d) for d in dimensions]
        if len(dimensions) != keys.shape[1]:
            raise ConfigurationError(
                f"{len(dimensions)} dimensions declared for {keys.shape[1]} key columns"
            )
        if field_names is not None and len(field_names) != len(dimensions):
            raise ConfigurationError(
                f"{len(field_names)} field names declared for {len(dimensions)} dimensions"
            )

        self.keys = keys
        self.labels = labels
        self.dimensions: List[int] = dimensions
        self.field_names = (
            list(field_names)
            if field_names is not None
            else [f"field_{i}" for i in range(len(dimensions))]
        )

    @classmethod
    def from_records(
        cls,
        records: Iterable[Tuple[Sequence[int], float]],
        dimensions: Optional[Sequence[int]] = None,
        field_names: Optional[Sequence[str]] = None,
    ) -> InteractionTensor:
        """Build from ``(keys, label)`` pairs."""
        records = list(records)
        if not records:
            if dimensions is None:
                raise ConfigurationError("Cannot infer dimensions from an empty tensor")
            keys = np.zeros((0, len(dimensions)), dtype=np.int64)
            return cls(keys, np.zeros(0), dimensions, field_names)
        keys = np.array([r[0] for r in records], dtype=np.int64)
        labels = np.array([r[1] for r in records], dtype=np.float64)
        return cls(keys, labels, dimensions, field_names)

    @property
    def num_dimensions(self) -> int:
        return len(self.dimensions)

    def field_map(self) -> FieldMap:
        return FieldMap(
            [FieldSchema(n, d) for n, d in zip(self.field_names, self.dimensions)]
        )

    def __len__(self) -> int:
        return self.keys.shape[0]

    def __iter__(self) -> Iterator[Tuple[np.ndarray, float]]:
        for row, label in zip(self.keys, self.labels):
            yield row, float(label)

    def __getitem__(self, idx: int) -> Tuple[np.ndarray, float]:
        return self.keys[idx], float(self.labels[idx])
