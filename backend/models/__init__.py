"""
Model Schema Registry.

Static configuration: the list below is the source of truth for which
generation models the backend accepts and what parameters each exposes.
"""
from __future__ import annotations

from typing import Optional

from schemas import ModelCategory, ModelConfig

from models.bria_remove_bg import bria_remove_bg
from models.hailuo_02 import hailuo_02
from models.ideogram_v3_turbo import ideogram_v3_turbo
from models.nano_banana import nano_banana
from models.recraft_vectorize import recraft_vectorize
from models.seedream_4 import seedream_4
from models.sora_2 import sora_2


class UnknownModelError(LookupError):
    """Raised when a model id is not present in the registry."""


MODELS: list[ModelConfig] = [
    ideogram_v3_turbo,
    seedream_4,
    nano_banana,
    hailuo_02,
    bria_remove_bg,
    sora_2,
    recraft_vectorize,
]

_BY_ID: dict[str, ModelConfig] = {m.id: m for m in MODELS}
if len(_BY_ID) != len(MODELS):
    raise RuntimeError("Duplicate model id in registry")


def get_model_by_id(model_id: str) -> Optional[ModelConfig]:
    return _BY_ID.get(model_id)


def require_model(model_id: str) -> ModelConfig:
    model = _BY_ID.get(model_id)
    if model is None:
        raise UnknownModelError(f"Unknown model: {model_id}")
    return model


def list_models() -> list[ModelConfig]:
    return list(MODELS)


def models_by_category(category: ModelCategory | str) -> list[ModelConfig]:
    wanted = ModelCategory(category)
    return [m for m in MODELS if m.category == wanted]
