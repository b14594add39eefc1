"""
Pure helpers over a registry entry's input schema.

Nothing here performs I/O. Callers never branch on model ids; they ask the
schema whether it exposes a capability (`supports_*`) and render, validate
and map fields from the declared properties.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from schemas import (
    FieldValidation,
    ModelCategory,
    ModelConfig,
    ModelSchema,
    ParameterDescriptor,
    ParameterKind,
    ValidationReport,
)

_VIDEO_CATEGORIES = {ModelCategory.text_to_video, ModelCategory.image_to_video}
_IMAGE_CATEGORIES = {ModelCategory.text_to_image, ModelCategory.image_to_image}


def _schema(target: ModelConfig | ModelSchema) -> ModelSchema:
    return target.input_schema if isinstance(target, ModelConfig) else target


def is_empty(value: Any) -> bool:
    """None, empty string and empty lists count as "not provided"."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ─── Lookups ──────────────────────────────────────────────────────────────────

def is_required(target: ModelConfig | ModelSchema, name: str) -> bool:
    return name in _schema(target).required


def parameter_descriptor(target: ModelConfig | ModelSchema, name: str) -> Optional[ParameterDescriptor]:
    return _schema(target).properties.get(name)


def parameter_default(target: ModelConfig | ModelSchema, name: str) -> Any:
    desc = parameter_descriptor(target, name)
    if desc is None or isinstance(desc.default, list):
        return None
    return desc.default


def parameter_enum(target: ModelConfig | ModelSchema, name: str) -> Optional[list[Any]]:
    desc = parameter_descriptor(target, name)
    return list(desc.enum_values) if desc and desc.enum_values is not None else None


def property_for_ui_field(target: ModelConfig | ModelSchema, ui_field: str) -> Optional[str]:
    for name, desc in _schema(target).properties.items():
        if desc.ui_field_name == ui_field:
            return name
    return None


def ordered_properties(target: ModelConfig | ModelSchema) -> list[tuple[str, ParameterDescriptor]]:
    """
    Properties sorted by `display_order`; ties keep declaration order and
    properties without an order go last.
    """
    items = list(_schema(target).properties.items())
    return sorted(
        items,
        key=lambda kv: (kv[1].display_order is None, kv[1].display_order or 0),
    )


# ─── Validation ───────────────────────────────────────────────────────────────

def validate_one(target: ModelConfig | ModelSchema, name: str, value: Any) -> FieldValidation:
    desc = parameter_descriptor(target, name)
    if desc is None:
        return FieldValidation(valid=False, error=f"Unknown parameter: {name}")

    if is_empty(value):
        if is_required(target, name):
            return FieldValidation(valid=False, error=f"{desc.title} is required")
        return FieldValidation(valid=True)

    if desc.kind in (ParameterKind.integer, ParameterKind.number):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return FieldValidation(valid=False, error=f"{desc.title} must be a number")
        if math.isnan(number):
            return FieldValidation(valid=False, error=f"{desc.title} must be a number")
        if desc.minimum is not None and number < desc.minimum:
            return FieldValidation(valid=False, error=f"{desc.title} must be at least {_fmt_number(desc.minimum)}")
        if desc.maximum is not None and number > desc.maximum:
            return FieldValidation(valid=False, error=f"{desc.title} must be at most {_fmt_number(desc.maximum)}")

    if desc.enum_values and not isinstance(value, bool) and value not in desc.enum_values:
        allowed = ", ".join(str(v) for v in desc.enum_values)
        return FieldValidation(valid=False, error=f"{desc.title} must be one of: {allowed}")

    return FieldValidation(valid=True)


def validate_all(
    target: ModelConfig | ModelSchema,
    store: Mapping[str, Any],
    *,
    skip: Iterable[str] = (),
) -> ValidationReport:
    """
    Required fields first (schema order), then every other store entry that
    maps onto a known property. Identical messages are reported once.
    `skip` names properties to leave out, e.g. ones hidden by a dependency.
    """
    schema = _schema(target)
    skipped = set(skip)
    errors: list[str] = []

    for name in schema.required:
        if name in skipped:
            continue
        desc = schema.properties[name]
        result = validate_one(schema, name, store.get(desc.ui_field_name))
        if not result.valid and result.error not in errors:
            errors.append(result.error)

    for ui_field, value in store.items():
        name = property_for_ui_field(schema, ui_field)
        if name is None or name in skipped or is_empty(value):
            continue
        result = validate_one(schema, name, value)
        if not result.valid and result.error not in errors:
            errors.append(result.error)

    return ValidationReport(valid=not errors, errors=errors)


# ─── UI → API mapping ─────────────────────────────────────────────────────────

def map_store_to_payload(target: ModelConfig | ModelSchema, store: Mapping[str, Any]) -> dict[str, Any]:
    """Rename store entries from UI field names to API field names, dropping empties."""
    payload: dict[str, Any] = {}
    for desc in _schema(target).properties.values():
        value = store.get(desc.ui_field_name)
        if not is_empty(value):
            payload[desc.api_field_name] = value
    return payload


# ─── Capability discovery ─────────────────────────────────────────────────────

def _has(target: ModelConfig | ModelSchema, name: str) -> bool:
    return name in _schema(target).properties


def supports_character_image(target) -> bool:
    return _has(target, "image_file")


def requires_character_image(target) -> bool:
    return is_required(target, "image_file")


def supports_inpainting(target) -> bool:
    return _has(target, "mask")


def supports_image_to_image(target) -> bool:
    return _has(target, "image")


def supports_image_input(target) -> bool:
    return _has(target, "image_input")


def supports_first_frame(target) -> bool:
    return _has(target, "first_frame_image")


def supports_last_frame(target) -> bool:
    return _has(target, "last_frame_image")


def supports_input_reference(target) -> bool:
    return _has(target, "input_reference")


def supports_duration(target) -> bool:
    return _has(target, "duration")


def supports_resolution(target) -> bool:
    return _has(target, "resolution")


def supports_prompt_optimizer(target) -> bool:
    return _has(target, "prompt_optimizer")


def accepts_image_input(target) -> bool:
    """True when the model takes an image in any of the known slots."""
    return (
        supports_image_input(target)
        or supports_character_image(target)
        or supports_first_frame(target)
        or supports_input_reference(target)
        or supports_image_to_image(target)
    )


def supported_aspect_ratios(target) -> list[str]:
    return parameter_enum(target, "aspect_ratio") or []


def supported_styles(target) -> Optional[list[str]]:
    for name in ("style_type", "style_preset", "style"):
        desc = parameter_descriptor(target, name)
        if desc is not None:
            return list(desc.enum_values) if desc.enum_values else None
    return None


# ─── Model type ───────────────────────────────────────────────────────────────

def is_video_model(model: ModelConfig) -> bool:
    return model.category in _VIDEO_CATEGORIES


def is_image_model(model: ModelConfig) -> bool:
    return model.category in _IMAGE_CATEGORIES


def default_resolutions(model: ModelConfig) -> list[str]:
    declared = parameter_enum(model, "resolution")
    if declared:
        return declared
    if is_video_model(model):
        return ["512p", "768p", "1080p"]
    if is_image_model(model):
        return ["1024x1024", "512x1536", "768x1344", "1536x512"]
    return []
