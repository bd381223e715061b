"""Synthetic interaction tensors with known generating parameters.

Used for smoke tests and for checking that training actually reduces loss:
labels are produced by a ground-truth model of the same family that is
being trained, so a well-configured run should recover them closely.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from fmrec.data.tensor import InteractionTensor


def _random_keys(
    rng: np.random.Generator, cardinalities: Sequence[int], num_entries: int
) -> np.ndarray:
    return np.stack(
        [rng.integers(0, c, size=num_entries) for c in cardinalities], axis=1
    ).astype(np.int64)


def make_linear_tensor(
    cardinalities: Sequence[int],
    num_entries: int = 200,
    bias: float = 3.0,
    weight_scale: float = 0.5,
    noise: float = 0.0,
    random_state: Optional[int] = None,
) -> InteractionTensor:
    """Labels from ``bias + sum of one weight per active key`` (+ noise)."""
    if num_entries < 1:
        raise ValueError(f"num_entries must be positive, got {num_entries}")
    rng = np.random.default_rng(random_state)
    keys = _random_keys(rng, cardinalities, num_entries)
    weights = [rng.normal(0.0, weight_scale, size=c) for c in cardinalities]

    labels = np.full(num_entries, bias, dtype=np.float64)
    for f, w in enumerate(weights):
        labels += w[keys[:, f]]
    if noise > 0:
        labels += rng.normal(0.0, noise, size=num_entries)
    return InteractionTensor(keys, labels, dimensions=cardinalities)


def make_synthetic_tensor(
    cardinalities: Sequence[int],
    num_entries: int = 200,
    num_factors: int = 4,
    bias: float = 3.0,
    weight_scale: float = 0.3,
    factor_scale: float = 0.3,
    noise: float = 0.0,
    random_state: Optional[int] = None,
) -> InteractionTensor:
    """Labels from a ground-truth factorization machine.

    For one-hot entries the pairwise term reduces to the sum over field
    pairs of ``<v_a, v_b>`` for the two active keys.
    """
    if num_entries < 1:
        raise ValueError(f"num_entries must be positive, got {num_entries}")
    rng = np.random.default_rng(random_state)
    keys = _random_keys(rng, cardinalities, num_entries)

    offsets = np.concatenate([[0], np.cumsum(cardinalities)[:-1]]).astype(np.int64)
    p = int(np.sum(cardinalities))
    w = rng.normal(0.0, weight_scale, size=p)
    v = rng.normal(0.0, factor_scale, size=(p, num_factors))

    active = keys + offsets[None, :]  # (N, F) global indices
    linear = w[active].sum(axis=1)
    emb = v[active]  # (N, F, k)
    square_of_sum = emb.sum(axis=1) ** 2
    sum_of_squares = (emb**2).sum(axis=1)
    pairwise = 0.5 * (square_of_sum - sum_of_squares).sum(axis=1)

    labels = bias + linear + pairwise
    if noise > 0:
        labels = labels + rng.normal(0.0, noise, size=num_entries)
    return InteractionTensor(keys, labels, dimensions=cardinalities)
