from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from fmrec.config import FieldConfig, validate_fields
from fmrec.errors import InvalidFieldKey


@dataclass(frozen=True)
class FieldSchema:
    """Describes one dimension of the interaction tensor.

    Attributes:
        name: Unique identifier, e.g. "user" or "item".
        cardinality: Number of distinct integer keys; valid keys are
            ``0 .. cardinality - 1``.
    """

    name: str
    cardinality: int


class FieldMap:
    """Flattened one-hot feature space over an ordered list of fields.

    Each field owns the contiguous block ``[offset, offset + cardinality)``
    of global feature indices. Blocks partition ``[0, p)`` in declaration
    order, so ``(field, local key) -> global index`` is a bijection and the
    inverse lookup is a single array read.
    """

    def __init__(self, fields: Sequence[FieldSchema]):
        validate_fields([FieldConfig(f.name, f.cardinality) for f in fields])
        self.fields: Tuple[FieldSchema, ...] = tuple(fields)

        offsets = np.zeros(len(self.fields) + 1, dtype=np.int64)
        np.cumsum([f.cardinality for f in self.fields], out=offsets[1:])
        self._offsets = offsets
        self._offsets.setflags(write=False)

        feature_to_field = np.repeat(
            np.arange(len(self.fields), dtype=np.int64),
            [f.cardinality for f in self.fields],
        )
        feature_to_field.setflags(write=False)
        self._feature_to_field = feature_to_field

    @classmethod
    def from_config(cls, fields: Sequence[FieldConfig]) -> FieldMap:
        return cls([FieldSchema(f.name, f.cardinality) for f in fields])

    @classmethod
    def from_cardinalities(cls, cardinalities: Sequence[int]) -> FieldMap:
        return cls(
            [FieldSchema(f"field_{i}", int(c)) for i, c in enumerate(cardinalities)]
        )

    @property
    def num_fields(self) -> int:
        return len(self.fields)

    @property
    def num_features(self) -> int:
        """Size p of the flattened feature space."""
        return int(self._offsets[-1])

    @property
    def offsets(self) -> np.ndarray:
        """Start index of each field's block (read-only)."""
        return self._offsets[:-1]

    @property
    def cardinalities(self) -> List[int]:
        return [f.cardinality for f in self.fields]

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def feature_to_field(self) -> np.ndarray:
        """Read-only array mapping each global feature index to its field id."""
        return self._feature_to_field

    def field_of(self, index: int) -> int:
        if not 0 <= index < self.num_features:
            raise IndexError(
                f"Feature index {index} outside [0, {self.num_features})"
            )
        return int(self._feature_to_field[index])

    def global_index(self, field: int, key: int) -> int:
        """Map a per-field key to its global feature index."""
        cardinality = self.fields[field].cardinality
        if non_integral(key):
            raise InvalidFieldKey(self.fields[field].name, key, cardinality)
        if not 0 <= key < cardinality:
            raise InvalidFieldKey(self.fields[field].name, int(key), cardinality)
        return int(self._offsets[field]) + int(key)

    def local_key(self, index: int) -> Tuple[int, int]:
        """Inverse of ``global_index``: return ``(field, key)``."""
        field = self.field_of(index)
        return field, index - int(self._offsets[field])

    def feature_range(self, field: int) -> range:
        return range(int(self._offsets[field]), int(self._offsets[field + 1]))

    def __len__(self) -> int:
        return self.num_features

    def __repr__(self) -> str:
        desc = ", ".join(f"{f.name}={f.cardinality}" for f in self.fields)
        return f"FieldMap({desc}; p={self.num_features})"


def non_integral(keys) -> np.ndarray:
    """Boolean mask of keys that are not finite whole numbers."""
    keys = np.asarray(keys)
    if keys.dtype.kind in "iub":
        return np.zeros(keys.shape, dtype=bool)
    keys = keys.astype(np.float64)
    return ~np.isfinite(keys) | (keys != np.floor(keys))
