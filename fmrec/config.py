"""Dataclass-based configuration with YAML loading via dacite."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dacite import Config, DaciteError, from_dict

from fmrec.errors import ConfigurationError

MODEL_NAMES = ("fm", "ffm")
INTERACTION_METHODS = ("auto", "identity", "pairwise")
OPTIMIZER_NAMES = ("sgd", "ftrl")


@dataclass
class FieldConfig:
    name: str
    cardinality: int


@dataclass
class DataConfig:
    fields: list[FieldConfig] = field(default_factory=list)


@dataclass
class ModelConfig:
    num_factors: int = 10
    init_mean: float = 0.0
    init_std: float = 0.1
    # "auto", "identity" (O(kn), fm only) or "pairwise" (O(kn^2))
    interaction: str = "auto"
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None


@dataclass
class SGDConfig:
    learning_rate: float = 0.01
    reg_w0: float = 0.01
    reg_w: float = 0.01
    reg_v: float = 0.01


@dataclass
class FTRLConfig:
    alpha: float = 0.1
    beta: float = 1.0
    lambda1: float = 0.1
    lambda2: float = 0.1


@dataclass
class TrainingConfig:
    optimizer: str = "sgd"
    num_iterations: int = 100
    early_stop: bool = False
    tolerance: float = 1e-5
    relative_tolerance: bool = False
    # False keeps lastLoss at its initial value for the whole run.
    snapshot_last_loss: bool = True


@dataclass
class ExperimentConfig:
    model_name: str = "fm"
    seed: int = 42
    log_file: Optional[str] = None
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    sgd: SGDConfig = field(default_factory=SGDConfig)
    ftrl: FTRLConfig = field(default_factory=FTRLConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)


def load_config(
    yaml_path: str | Path, overrides: list[str] | None = None
) -> ExperimentConfig:
    """Load config from YAML file with optional dot-notation overrides.

    Args:
        yaml_path: Path to YAML config file.
        overrides: List of "key.subkey=value" strings, e.g. ["sgd.learning_rate=0.005"].

    Raises:
        ConfigurationError: If the file does not describe a valid experiment.
    """
    with open(yaml_path) as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    if overrides:
        for override in overrides:
            if "=" not in override:
                raise ConfigurationError(f"Malformed override (expected key=value): {override}")
            key, value = override.split("=", 1)
            parts = key.strip().split(".")
            target = raw
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = _parse_value(value.strip())

    try:
        config = from_dict(
            data_class=ExperimentConfig,
            data=raw,
            # YAML 1.1 reads "1e-5" as a string and "1" as an int
            config=Config(type_hooks={float: float}),
        )
    except (DaciteError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config {yaml_path}: {e}") from e
    validate_config(config)
    return config


def validate_config(config: ExperimentConfig) -> ExperimentConfig:
    """Check hyperparameters up front so nothing blows up mid-training."""
    if config.model_name not in MODEL_NAMES:
        raise ConfigurationError(
            f"Unknown model: {config.model_name}. Available: {list(MODEL_NAMES)}"
        )
    tcfg = config.training
    if tcfg.optimizer not in OPTIMIZER_NAMES:
        raise ConfigurationError(
            f"Unknown optimizer: {tcfg.optimizer}. Available: {list(OPTIMIZER_NAMES)}"
        )
    if tcfg.num_iterations < 1:
        raise ConfigurationError(f"num_iterations must be >= 1, got {tcfg.num_iterations}")
    _require_finite_nonneg("training.tolerance", tcfg.tolerance)

    mcfg = config.model
    if mcfg.num_factors < 1:
        raise ConfigurationError(f"num_factors must be >= 1, got {mcfg.num_factors}")
    if mcfg.interaction not in INTERACTION_METHODS:
        raise ConfigurationError(
            f"Unknown interaction: {mcfg.interaction}. Available: {list(INTERACTION_METHODS)}"
        )
    if config.model_name == "ffm" and mcfg.interaction == "identity":
        raise ConfigurationError("ffm only supports pairwise interaction")
    _require_finite_nonneg("model.init_std", mcfg.init_std)
    if not math.isfinite(mcfg.init_mean):
        raise ConfigurationError(f"model.init_mean must be finite, got {mcfg.init_mean}")
    if (
        mcfg.min_rating is not None
        and mcfg.max_rating is not None
        and mcfg.min_rating > mcfg.max_rating
    ):
        raise ConfigurationError(
            f"min_rating {mcfg.min_rating} exceeds max_rating {mcfg.max_rating}"
        )

    if tcfg.optimizer == "sgd":
        scfg = config.sgd
        if not (math.isfinite(scfg.learning_rate) and scfg.learning_rate > 0):
            raise ConfigurationError(
                f"sgd.learning_rate must be positive, got {scfg.learning_rate}"
            )
        for name in ("reg_w0", "reg_w", "reg_v"):
            _require_finite_nonneg(f"sgd.{name}", getattr(scfg, name))
    else:
        fcfg = config.ftrl
        # alpha divides the per-coordinate rate term
        if not (math.isfinite(fcfg.alpha) and fcfg.alpha > 0):
            raise ConfigurationError(f"ftrl.alpha must be positive, got {fcfg.alpha}")
        for name in ("beta", "lambda1", "lambda2"):
            _require_finite_nonneg(f"ftrl.{name}", getattr(fcfg, name))

    # Empty means "take the fields from the interaction tensor"
    if config.data.fields:
        validate_fields(config.data.fields)
    return config


def validate_fields(fields: list[FieldConfig]) -> None:
    if not fields:
        raise ConfigurationError("At least one field must be declared")
    seen = set()
    for f in fields:
        if f.name in seen:
            raise ConfigurationError(f"Duplicate field name: {f.name}")
        seen.add(f.name)
        if f.cardinality < 1:
            raise ConfigurationError(
                f"Field '{f.name}' must have cardinality >= 1, got {f.cardinality}"
            )


def _require_finite_nonneg(name: str, value: float) -> None:
    if not (math.isfinite(value) and value >= 0):
        raise ConfigurationError(f"{name} must be a finite non-negative number, got {value}")


def _parse_value(value: str) -> Any:
    """Parse a string value into the appropriate Python type."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.lower() in ("null", "none"):
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.startswith("[") and value.endswith("]"):
        import ast
        try:
            return ast.literal_eval(value)
        except (ValueError, SyntaxError):
            pass
    return value
