"""Sparse one-hot encoding of interaction-tensor entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from fmrec.data.schema import FieldMap, non_integral
from fmrec.errors import InvalidFieldKey


@dataclass(frozen=True)
class SparseVector:
    """Active features of one entry, one per field, ordered by index.

    Attributes:
        indices: (n,) global feature indices, strictly increasing.
        values:  (n,) feature values (1.0 for one-hot keys).
        fields:  (n,) field id of each active feature.
    """

    indices: np.ndarray
    values: np.ndarray
    fields: np.ndarray

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self):
        return zip(self.indices.tolist(), self.values.tolist())


class SparseFeatureEncoder:
    """Turns per-field integer keys into a ``SparseVector``.

    Pure function of the field map: no state is touched while encoding.
    """

    def __init__(self, field_map: FieldMap):
        self.field_map = field_map
        self._cardinalities = np.asarray(field_map.cardinalities, dtype=np.int64)
        self._field_ids = np.arange(field_map.num_fields, dtype=np.int64)
        self._field_ids.setflags(write=False)

    def encode(
        self,
        keys: Sequence[int],
        values: Optional[Sequence[float]] = None,
        entry: Optional[int] = None,
    ) -> SparseVector:
        """Encode one entry.

        Args:
            keys: One integer key per field, in field order.
            values: Optional per-field feature values; defaults to 1.0.
            entry: Position of the entry in its tensor, used in error messages.

        Raises:
            InvalidFieldKey: If any key is not a whole number or falls
                outside its field's cardinality.
        """
        raw = np.asarray(keys)
        if raw.shape != (self.field_map.num_fields,):
            raise ValueError(
                f"Expected {self.field_map.num_fields} keys, got shape {raw.shape}"
            )
        fractional = np.flatnonzero(non_integral(raw))
        if fractional.size:
            f = int(fractional[0])
            raise InvalidFieldKey(
                self.field_map.fields[f].name,
                raw[f].item(),
                int(self._cardinalities[f]),
                entry=entry,
            )
        keys = raw.astype(np.int64)
        bad = np.flatnonzero((keys < 0) | (keys >= self._cardinalities))
        if bad.size:
            f = int(bad[0])
            raise InvalidFieldKey(
                self.field_map.fields[f].name,
                int(keys[f]),
                int(self._cardinalities[f]),
                entry=entry,
            )

        if values is None:
            vals = np.ones(len(keys), dtype=np.float64)
        else:
            vals = np.asarray(values, dtype=np.float64)
            if vals.shape != keys.shape:
                raise ValueError(
                    f"values shape {vals.shape} does not match keys shape {keys.shape}"
                )

        return SparseVector(
            indices=self.field_map.offsets + keys,
            values=vals,
            fields=self._field_ids,
        )
