"""Reproducibility utilities."""

import random

import numpy as np


def seed_everything(seed: int) -> np.random.Generator:
    """Seed random and numpy, and return a Generator for parameter init."""
    random.seed(seed)
    np.random.seed(seed)
    return np.random.default_rng(seed)
