"""
Unit tests for backend/schemas.py.
"""
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

BACKEND = str(Path(__file__).parent.parent)
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

from schemas import (  # noqa: E402
    ChatMessage,
    GenerationResult,
    ImageReference,
    MessageContent,
    ModelSchema,
    ParameterDescriptor,
    ParameterKind,
    SessionsState,
    UIComponent,
)

SAMPLE_IMAGE = "data:image/png;base64,AAAA"


def make_schema(**properties):
    base = {
        "prompt": {"type": "string", "title": "Prompt", "x-order": 0},
    }
    base.update(properties)
    return ModelSchema.model_validate({"required": ["prompt"], "properties": base})


class TestParameterDescriptor:
    def test_vendor_keys_are_accepted_as_aliases(self):
        desc = ParameterDescriptor.model_validate({
            "type": "string",
            "title": "Aspect Ratio",
            "enum": ["1:1", "16:9"],
            "x-order": 3,
            "x-component": "button-group",
            "x-grid-column": 2,
            "x-ui-field": "aspectRatio",
            "x-api-field": "aspect_ratio",
        })
        assert desc.kind == ParameterKind.string
        assert desc.enum_values == ["1:1", "16:9"]
        assert desc.display_order == 3
        assert desc.ui_component_hint == UIComponent.button_group
        assert desc.grid_column == 2
        assert desc.ui_field_name == "aspectRatio"
        assert desc.api_field_name == "aspect_ratio"

    def test_field_names_default_to_property_name(self):
        schema = make_schema(seed={"type": "integer", "title": "Seed"})
        desc = schema.properties["seed"]
        assert desc.name == "seed"
        assert desc.ui_field_name == "seed"
        assert desc.api_field_name == "seed"

    def test_uri_detection_for_single_and_array(self):
        schema = make_schema(
            image={"type": "string", "title": "Image", "format": "uri"},
            image_input={"type": "array", "title": "Images", "items": {"type": "string", "format": "uri"}},
            tags={"type": "array", "title": "Tags", "items": {"type": "string"}},
        )
        assert schema.properties["image"].is_uri_formatted
        assert schema.properties["image_input"].is_uri_formatted
        assert schema.properties["image_input"].items_format == "uri"
        assert not schema.properties["tags"].is_uri_formatted
        assert not schema.properties["prompt"].is_uri_formatted

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            ParameterDescriptor.model_validate({"type": "date", "title": "When"})

    def test_grid_column_limited_to_two(self):
        with pytest.raises(ValidationError):
            ParameterDescriptor.model_validate({"type": "string", "title": "X", "x-grid-column": 3})

    def test_unknown_vendor_key_rejected(self):
        with pytest.raises(ValidationError):
            ParameterDescriptor.model_validate({"type": "string", "title": "X", "x-colour": "red"})


class TestModelSchemaInvariants:
    def test_required_name_must_exist(self):
        with pytest.raises(ValidationError, match="negative_prompt"):
            ModelSchema.model_validate({
                "required": ["prompt", "negative_prompt"],
                "properties": {"prompt": {"type": "string", "title": "Prompt"}},
            })

    def test_ui_fields_must_be_unique(self):
        with pytest.raises(ValidationError, match="aspectRatio"):
            make_schema(
                aspect_ratio={"type": "string", "title": "AR", "x-ui-field": "aspectRatio"},
                ratio={"type": "string", "title": "Ratio", "x-ui-field": "aspectRatio"},
            )

    def test_valid_schema_keeps_declaration_order(self):
        schema = make_schema(b={"type": "string", "title": "B"}, a={"type": "string", "title": "A"})
        assert list(schema.properties) == ["prompt", "b", "a"]


class TestImageReference:
    def test_accepts_wire_names(self):
        ref = ImageReference.model_validate({"dataUrl": SAMPLE_IMAGE, "name": "a.png", "type": "image/png"})
        assert ref.data_url == SAMPLE_IMAGE
        assert ref.mime_type == "image/png"

    def test_is_frozen(self):
        ref = ImageReference(data_url=SAMPLE_IMAGE, name="a.png")
        with pytest.raises(ValidationError):
            ref.name = "b.png"


class TestChatState:
    def test_round_trips_through_json(self):
        message = ChatMessage(
            id="m1",
            role="user",
            created_at=1.0,
            content=MessageContent(
                prompt="a cat",
                auto_attached_image=ImageReference(data_url=SAMPLE_IMAGE, name="a.png"),
            ),
        )
        state = SessionsState.model_validate({
            "sessions": [{"id": "s1", "name": "New Chat", "created_at": 1.0, "updated_at": 1.0, "messages": [message.model_dump(mode="json")]}],
            "current_session_id": "s1",
        })
        restored = state.sessions[0].messages[0]
        assert restored.content.auto_attached_image.name == "a.png"
        assert restored.content.prompt == "a cat"

    def test_generation_result_accepts_single_or_many_outputs(self):
        assert GenerationResult(id="x", status="succeeded", output="https://a/1.png").output == "https://a/1.png"
        many = GenerationResult(id="x", status="succeeded", output=["https://a/1.png", "https://a/2.png"])
        assert len(many.output) == 2

    def test_generation_result_rejects_non_terminal_status(self):
        with pytest.raises(ValidationError):
            GenerationResult(id="x", status="processing")
