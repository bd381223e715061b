"""Integration test: end-to-end training from the shipped YAML configs.

Runs a few hundred examples for tens of passes; mark with slow so it can be
skipped in CI: pytest -m "not slow"
"""

from pathlib import Path

import numpy as np
import pytest

from fmrec.config import load_config
from fmrec.data.synthetic import make_synthetic_tensor
from fmrec.training.trainer import Trainer, TrainingState

pytestmark = pytest.mark.slow

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs"


@pytest.fixture(scope="module")
def synthetic_ratings():
    return make_synthetic_tensor(
        [30, 40, 6], num_entries=600, num_factors=3, noise=0.05, random_state=11
    )


@pytest.mark.parametrize(
    "config_name,overrides",
    [
        ("fm_sgd.yaml", ["sgd.learning_rate=0.02"]),
        ("fm_ftrl.yaml", ["ftrl.lambda1=0.01", "ftrl.alpha=0.5"]),
        ("ffm_sgd.yaml", ["sgd.learning_rate=0.02"]),
    ],
)
def test_training_reduces_loss(synthetic_ratings, config_name, overrides, tmp_path):
    config = load_config(
        CONFIG_DIR / config_name,
        overrides
        + [
            "training.num_iterations=30",
            "data.fields=[]",
            f"log_file={tmp_path / 'train.log'}",
        ],
    )
    trainer = Trainer.from_config(config, synthetic_ratings)
    result = trainer.fit()

    assert result.state in (TrainingState.CONVERGED, TrainingState.MAX_ITER_REACHED)
    assert result.history[-1] < 0.5 * result.history[0]
    assert (tmp_path / "train.log").exists()

    scores = trainer.predict_tensor(synthetic_ratings)
    assert np.all(np.isfinite(scores))
    assert scores.min() >= config.model.min_rating
    assert scores.max() <= config.model.max_rating


def test_ftrl_l1_yields_sparse_weights(synthetic_ratings):
    config = load_config(
        CONFIG_DIR / "fm_ftrl.yaml",
        ["training.num_iterations=10", "ftrl.lambda1=5.0", "data.fields=[]"],
    )
    trainer = Trainer.from_config(config, synthetic_ratings)
    trainer.fit()
    params = trainer.model.params
    assert np.count_nonzero(params.V == 0.0) > 0
