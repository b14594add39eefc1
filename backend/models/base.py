"""
Shared building blocks for registry entries.

Each module under models/ declares one generation model as plain data in the
vendor's JSON-schema style and passes it through `define_model()`, which
validates it into a `ModelConfig` once at import time.
"""
from __future__ import annotations

from typing import Any

from schemas import ModelConfig

URI_OUTPUT: dict[str, Any] = {"type": "string", "format": "uri", "title": "Output"}
URI_LIST_OUTPUT: dict[str, Any] = {
    "type": "array",
    "items": {"type": "string", "format": "uri"},
    "title": "Output",
}


def prompt_param(description: str, order: int = 0, **extra: Any) -> dict[str, Any]:
    """Textarea prompt field shared by every text-conditioned model."""
    spec = {
        "type": "string",
        "title": "Prompt",
        "description": description,
        "x-order": order,
    }
    spec.update(extra)
    return spec


def seed_param(order: int, **extra: Any) -> dict[str, Any]:
    spec = {
        "type": "integer",
        "title": "Seed",
        "description": "Random seed for reproducible generation",
        "x-order": order,
        "x-component": "number-input",
        "x-grid-column": 2,
        "x-ui-field": "seed",
        "x-api-field": "seed",
    }
    spec.update(extra)
    return spec


def define_model(spec: dict[str, Any]) -> ModelConfig:
    """Validate a raw registry entry; raises pydantic.ValidationError on bad data."""
    return ModelConfig.model_validate(spec)
