"""
Multipart payload for generation requests.

`serialize()` runs on the sending side and flattens the parameter store into
text fields and file parts. `reconstruct()` runs on the receiving side and
rebuilds the model's API input from that flat body. Both walk the schema's
properties, never the incoming keys, so anything undeclared is dropped.

Wire convention for arrays of images (consumers depend on it):
    {field}_count          number of items
    {field}_{i}_dataUrl    data URI of item i, for i in 0..count-1
    {field}_{i}_name       original filename
    {field}_{i}_type       mime type
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from images import decode_data_url, to_data_url
from schema_helpers import is_empty
from schemas import ImageReference, ModelConfig, ModelSchema, ParameterKind

logger = logging.getLogger("payload")


class PayloadError(ValueError):
    """Raised when a received multipart body cannot be coerced to the schema."""


@dataclass(frozen=True)
class FilePart:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MultipartPayload:
    data: dict[str, str] = field(default_factory=dict)
    files: dict[str, FilePart] = field(default_factory=dict)

    def keys(self) -> list[str]:
        return list(self.data) + list(self.files)

    def to_httpx(self) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
        return (
            dict(self.data),
            {k: (p.filename, p.content, p.content_type) for k, p in self.files.items()},
        )


def _as_image(value: Any) -> ImageReference:
    if isinstance(value, ImageReference):
        return value
    return ImageReference.model_validate(value)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _schema(target: ModelConfig | ModelSchema) -> ModelSchema:
    return target.input_schema if isinstance(target, ModelConfig) else target


# ─── Sending side ─────────────────────────────────────────────────────────────

def serialize(target: ModelConfig | ModelSchema, store: Mapping[str, Any]) -> MultipartPayload:
    """
    Flatten `store` into a multipart payload.

    Precondition: the store already passed `validate_all`. Missing or invalid
    required values are not reported here; they are simply omitted.
    """
    payload = MultipartPayload()
    for desc in _schema(target).properties.values():
        value = store.get(desc.ui_field_name)
        if is_empty(value):
            continue
        key = desc.api_field_name

        if desc.kind == ParameterKind.array and desc.is_uri_formatted:
            items = [_as_image(v) for v in value]
            payload.data[f"{key}_count"] = str(len(items))
            for i, item in enumerate(items):
                payload.data[f"{key}_{i}_dataUrl"] = item.data_url
                payload.data[f"{key}_{i}_name"] = item.name
                payload.data[f"{key}_{i}_type"] = item.mime_type
            continue

        if desc.is_uri_formatted:
            if isinstance(value, str) and not value.startswith("data:"):
                # already a hosted URL
                payload.data[key] = value
                continue
            if isinstance(value, str):
                raw, mime = decode_data_url(value)
                payload.files[key] = FilePart(f"{key}.{mime.rsplit('/', 1)[-1]}", raw, mime)
                continue
            image = _as_image(value)
            raw, mime = decode_data_url(image.data_url)
            payload.files[key] = FilePart(image.name, raw, image.mime_type or mime)
            continue

        payload.data[key] = _stringify(value)
    return payload


# ─── Receiving side ───────────────────────────────────────────────────────────

def _coerce(kind: ParameterKind, name: str, raw: str) -> Any:
    try:
        if kind == ParameterKind.integer:
            return int(float(raw))
        if kind == ParameterKind.number:
            return float(raw)
    except ValueError as exc:
        raise PayloadError(f"Field '{name}' expects a {kind.value}, got {raw!r}") from exc
    if kind == ParameterKind.boolean:
        return raw == "true"
    if kind in (ParameterKind.array, ParameterKind.object):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"Field '{name}' is not valid JSON") from exc
    return raw


def reconstruct(model: ModelConfig, fields: Mapping[str, Union[str, FilePart]]) -> dict[str, Any]:
    """Rebuild the provider input from a flat multipart body."""
    api_input: dict[str, Any] = {}
    for desc in model.input_schema.properties.values():
        key = desc.api_field_name

        if desc.kind == ParameterKind.array and desc.is_uri_formatted:
            count_raw = fields.get(f"{key}_count")
            if not isinstance(count_raw, str) or not count_raw:
                continue
            try:
                count = int(count_raw)
            except ValueError as exc:
                raise PayloadError(f"Field '{key}_count' must be an integer") from exc
            # every item needs its own dataUrl field, so the body bounds the count
            if count < 0 or count > len(fields):
                raise PayloadError(f"Field '{key}_count' is out of range: {count}")
            items = []
            for i in range(count):
                data_url = fields.get(f"{key}_{i}_dataUrl")
                if isinstance(data_url, str) and data_url:
                    items.append(data_url)
            if items:
                api_input[key] = items
            continue

        value = fields.get(key)
        if value is None or value == "":
            continue

        if desc.is_uri_formatted:
            if isinstance(value, FilePart):
                mime = value.content_type if value.content_type.startswith("image/") else None
                api_input[key] = to_data_url(value.content, mime)
            else:
                api_input[key] = value
            continue

        if isinstance(value, FilePart):
            logger.warning("ignoring file part for non-image field %s", key)
            continue
        api_input[key] = _coerce(desc.kind, key, value)

    if api_input.get("aspect_ratio") == "match_input_image" and not api_input.get("image_input"):
        api_input["aspect_ratio"] = "1:1"
    return api_input
