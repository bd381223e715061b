from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np

from fmrec.errors import ConfigurationError
from fmrec.models.base import BaseFactorizationMachine
from fmrec.models.ffm import FieldAwareFactorizationMachine
from fmrec.models.fm import FactorizationMachine
from fmrec.models.params import ParameterStore

if TYPE_CHECKING:
    from fmrec.config import ModelConfig
    from fmrec.data.schema import FieldMap


MODEL_REGISTRY = {
    "fm": FactorizationMachine,
    "ffm": FieldAwareFactorizationMachine,
}


def resolve_interaction_method(model_name: str, method: str) -> str:
    """Pick the interaction evaluation for a model; "auto" means fastest valid."""
    if method == "auto":
        return "identity" if model_name == "fm" else "pairwise"
    if model_name == "ffm" and method != "pairwise":
        raise ConfigurationError(
            "ffm picks factors per partner field and only supports "
            f"pairwise interaction, got '{method}'"
        )
    return method


def build_model(
    model_name: str,
    field_map: FieldMap,
    config: ModelConfig,
    rng: Optional[np.random.Generator] = None,
) -> BaseFactorizationMachine:
    """Factory: fresh parameters initialized from ``config`` plus the model."""
    if model_name not in MODEL_REGISTRY:
        raise ConfigurationError(
            f"Unknown model: {model_name}. Available: {list(MODEL_REGISTRY.keys())}"
        )
    method = resolve_interaction_method(model_name, config.interaction)
    model_cls = MODEL_REGISTRY[model_name]

    params = ParameterStore.initialize(
        num_features=field_map.num_features,
        num_factors=config.num_factors,
        num_fields=field_map.num_fields,
        field_aware=model_cls.field_aware,
        init_mean=config.init_mean,
        init_std=config.init_std,
        rng=rng,
    )
    kwargs = {"min_rating": config.min_rating, "max_rating": config.max_rating}
    if model_name == "fm":
        kwargs["interaction_method"] = method
    return model_cls(params, field_map, **kwargs)


__all__ = [
    "BaseFactorizationMachine",
    "FactorizationMachine",
    "FieldAwareFactorizationMachine",
    "ParameterStore",
    "MODEL_REGISTRY",
    "build_model",
    "resolve_interaction_method",
]
