"""Exception types raised by the FM training engine."""

from __future__ import annotations

import numbers
from typing import Optional


class FMError(Exception):
    """Base class for all fmrec errors."""


class ConfigurationError(FMError, ValueError):
    """A hyperparameter or data declaration is missing or invalid."""


class InvalidFieldKey(FMError, ValueError):
    """A raw per-field key is not a whole number or lies outside its field's cardinality."""

    def __init__(
        self,
        field: str,
        key: float,
        cardinality: int,
        entry: Optional[int] = None,
    ):
        self.field = field
        self.key = key
        self.cardinality = cardinality
        self.entry = entry
        where = f" (entry {entry})" if entry is not None else ""
        if isinstance(key, numbers.Integral):
            problem = "out of range"
        else:
            problem = "is not an integer key"
        super().__init__(
            f"Key {key} {problem} for field '{field}' "
            f"with cardinality {cardinality}{where}"
        )


class NumericDivergence(FMError, ArithmeticError):
    """Training loss became NaN or infinite."""

    def __init__(
        self,
        loss: float,
        iteration: int,
        entry: Optional[int] = None,
    ):
        self.loss = loss
        self.iteration = iteration
        self.entry = entry
        where = f", entry {entry}" if entry is not None else ""
        super().__init__(
            f"Loss = {loss} at iteration {iteration}{where}: "
            "current settings do not fit the model"
        )
