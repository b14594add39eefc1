"""
Tests for the framework-agnostic form renderer (backend/form.py).
"""
import sys
from pathlib import Path

import pytest

BACKEND = str(Path(__file__).parent.parent)
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

import form  # noqa: E402
from models import get_model_by_id  # noqa: E402
from parameter_store import ParameterStore  # noqa: E402
from schemas import ParameterDescriptor, UIComponent  # noqa: E402


def desc(**spec):
    spec.setdefault("title", "Field")
    return ParameterDescriptor.model_validate(spec)


# ─── Component inference ─────────────────────────────────────────────────────

class TestInferComponent:
    @pytest.mark.parametrize("spec,expected", [
        ({"type": "array", "items": {"type": "string", "format": "uri"}}, UIComponent.multi_image_upload),
        ({"type": "string", "format": "uri"}, UIComponent.image_upload),
        ({"type": "boolean"}, UIComponent.toggle),
        ({"type": "integer", "enum": [6, 10]}, UIComponent.button_group),
        ({"type": "number"}, UIComponent.number_input),
        ({"type": "integer", "minimum": 1}, UIComponent.number_input),
        ({"type": "string", "enum": ["a", "b", "c", "d", "e"]}, UIComponent.button_group),
        ({"type": "string", "enum": ["a", "b", "c", "d", "e", "f"]}, UIComponent.select),
        ({"type": "string"}, UIComponent.text_input),
        ({"type": "array", "items": {"type": "string"}}, UIComponent.text_input),
    ])
    def test_fallback_rules(self, spec, expected):
        assert form.infer_component(desc(**spec)) == expected

    def test_explicit_hint_wins(self):
        d = desc(type="string", **{"x-component": "textarea"})
        assert form.component_for(d) == UIComponent.textarea

    def test_every_component_has_a_renderer(self):
        assert set(form.RENDERERS) == set(UIComponent)


# ─── Visibility ──────────────────────────────────────────────────────────────

class TestVisibleFields:
    def test_seedream_default_hides_custom_dimensions_and_max_images(self):
        model = get_model_by_id("seedream-4")
        names = [f.name for f in form.visible_fields(model, {})]
        assert names == ["prompt", "image_input", "size", "aspect_ratio", "sequential_image_generation"]

    def test_custom_size_swaps_aspect_ratio_for_dimensions(self):
        model = get_model_by_id("seedream-4")
        names = [f.name for f in form.visible_fields(model, {"size": "custom"})]
        assert "width" in names and "height" in names
        assert "aspect_ratio" not in names

    def test_list_membership_dependency(self):
        model = get_model_by_id("seedream-4")
        names = [f.name for f in form.visible_fields(model, {"size": "4K"})]
        assert "aspect_ratio" in names

    def test_sequential_auto_shows_slider(self):
        model = get_model_by_id("seedream-4")
        fields = {f.name: f for f in form.visible_fields(model, {"sequential_image_generation": "auto"})}
        slider = fields["max_images"]
        assert slider.component == UIComponent.slider
        assert slider.control == "range"
        assert (slider.minimum, slider.maximum) == (1, 15)

    def test_hidden_field_keeps_its_stored_value(self):
        model = get_model_by_id("seedream-4")
        store = ParameterStore()
        form.apply_change(model, store, "size", "custom")
        form.apply_change(model, store, "width", 3000)
        form.apply_change(model, store, "size", "2K")
        assert store["width"] == 3000
        assert "width" not in [f.name for f in form.visible_fields(model, store)]


class TestRenderedValues:
    def test_initial_values(self):
        model = get_model_by_id("hailuo-02")
        fields = {f.name: f for f in form.visible_fields(model, {"resolution": "768p"})}
        assert fields["resolution"].value == "768p"
        assert fields["duration"].value == 6
        assert fields["prompt_optimizer"].value is True
        assert fields["first_frame_image"].value is None
        assert fields["prompt"].required is True
        assert fields["duration"].options == [6, 10]

    def test_first_enum_entry_without_default(self):
        d = desc(type="string", enum=["x", "y"])
        assert form.initial_value(d, {}) == "x"

    def test_empty_array_initial_value(self):
        model = get_model_by_id("nano-banana")
        fields = {f.name: f for f in form.visible_fields(model, {})}
        assert fields["image_input"].value == []
        assert fields["image_input"].ui_field == "imageInputs"

    def test_column_split(self):
        model = get_model_by_id("ideogram-v3-turbo")
        left, right = form.column_split(form.visible_fields(model, {}))
        assert [f.name for f in left] == ["prompt", "image_file", "mask"]
        assert [f.name for f in right] == ["aspect_ratio", "resolution", "style_type", "seed"]

    def test_to_response(self):
        model = get_model_by_id("ideogram-v3-turbo")
        field = form.visible_fields(model, {})[1]
        response = field.to_response()
        assert response.name == "aspect_ratio"
        assert response.ui_field == "aspectRatio"
        assert response.control == "buttons"
        assert response.grid_column == 2


class TestValidateVisible:
    def test_hidden_out_of_range_value_is_not_validated(self):
        model = get_model_by_id("seedream-4")
        store = {"prompt": "a fox", "size": "2K", "width": 99999}
        assert form.validate_visible(model, store).valid is True

    def test_visible_out_of_range_value_fails(self):
        model = get_model_by_id("seedream-4")
        store = {"prompt": "a fox", "size": "custom", "width": 99999}
        report = form.validate_visible(model, store)
        assert report.errors == ["Width must be at most 4096"]


class TestApplyChange:
    def test_writes_only_the_ui_field(self):
        model = get_model_by_id("ideogram-v3-turbo")
        store = {}
        form.apply_change(model, store, "aspect_ratio", "16:9")
        assert store == {"aspectRatio": "16:9"}

    def test_unknown_property(self):
        with pytest.raises(form.UnknownParameterError):
            form.apply_change(get_model_by_id("ideogram-v3-turbo"), {}, "nope", 1)
