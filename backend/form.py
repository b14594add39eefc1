"""
Dynamic form renderer (framework agnostic).

Turns a model's input schema plus the current parameter store into the ordered
list of controls a client should draw. Conditional fields (`x-depends-on`) are
resolved here at render time; a hidden field keeps whatever value it has in
the store, it is simply not rendered and not validated.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Optional

from schema_helpers import is_empty, is_required, ordered_properties, validate_all
from schemas import (
    FormFieldResponse,
    ModelConfig,
    ParameterDescriptor,
    ParameterKind,
    UIComponent,
    ValidationReport,
)

# String enums up to this size render as buttons, larger ones as a dropdown
BUTTON_GROUP_MAX_OPTIONS = 5


class UnknownParameterError(KeyError):
    """Raised when a change targets a property the schema does not declare."""


@dataclass(frozen=True)
class FormField:
    name: str
    descriptor: ParameterDescriptor
    component: UIComponent
    control: str
    required: bool
    value: Any
    options: Optional[list[Any]] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def ui_field(self) -> str:
        return self.descriptor.ui_field_name

    @property
    def grid_column(self) -> int:
        return self.descriptor.grid_column or 1

    def to_response(self) -> FormFieldResponse:
        return FormFieldResponse(
            name=self.name,
            ui_field=self.ui_field,
            title=self.descriptor.title,
            description=self.descriptor.description,
            component=self.component,
            control=self.control,
            required=self.required,
            value=self.value,
            options=self.options,
            minimum=self.minimum,
            maximum=self.maximum,
            grid_column=self.grid_column,
        )


# ─── Component selection ──────────────────────────────────────────────────────

def infer_component(desc: ParameterDescriptor) -> UIComponent:
    """Deterministic fallback when a property carries no explicit `x-component`."""
    if desc.kind == ParameterKind.array and desc.is_uri_formatted:
        return UIComponent.multi_image_upload
    if desc.is_uri_formatted:
        return UIComponent.image_upload
    if desc.kind == ParameterKind.boolean:
        return UIComponent.toggle
    if desc.kind in (ParameterKind.integer, ParameterKind.number):
        return UIComponent.button_group if desc.enum_values else UIComponent.number_input
    if desc.kind == ParameterKind.string and desc.enum_values:
        if len(desc.enum_values) <= BUTTON_GROUP_MAX_OPTIONS:
            return UIComponent.button_group
        return UIComponent.select
    return UIComponent.text_input


def component_for(desc: ParameterDescriptor) -> UIComponent:
    return desc.ui_component_hint or infer_component(desc)


# ─── Render strategies ────────────────────────────────────────────────────────

_Renderer = Callable[[str, ParameterDescriptor, Any, bool], FormField]


def _plain(control: str) -> _Renderer:
    def render(name: str, desc: ParameterDescriptor, value: Any, required: bool) -> FormField:
        return FormField(name, desc, component_for(desc), control, required, value)
    return render


def _choice(control: str) -> _Renderer:
    def render(name: str, desc: ParameterDescriptor, value: Any, required: bool) -> FormField:
        return FormField(
            name, desc, component_for(desc), control, required, value,
            options=list(desc.enum_values or []),
        )
    return render


def _bounded(control: str) -> _Renderer:
    def render(name: str, desc: ParameterDescriptor, value: Any, required: bool) -> FormField:
        return FormField(
            name, desc, component_for(desc), control, required, value,
            minimum=desc.minimum, maximum=desc.maximum,
        )
    return render


RENDERERS: dict[UIComponent, _Renderer] = {
    UIComponent.text_input: _plain("text"),
    UIComponent.textarea: _plain("textarea"),
    UIComponent.select: _choice("select"),
    UIComponent.button_group: _choice("buttons"),
    UIComponent.image_upload: _plain("file"),
    UIComponent.multi_image_upload: _plain("file-multiple"),
    UIComponent.toggle: _plain("checkbox"),
    UIComponent.slider: _bounded("range"),
    UIComponent.number_input: _bounded("number"),
}
if set(RENDERERS) != set(UIComponent):
    raise RuntimeError("Every UIComponent needs a renderer")


# ─── Values & visibility ──────────────────────────────────────────────────────

def initial_value(desc: ParameterDescriptor, store: Mapping[str, Any]) -> Any:
    """Store value, else schema default, else first enum option, else empty."""
    stored = store.get(desc.ui_field_name)
    if not is_empty(stored):
        return stored
    if desc.default is not None:
        return desc.default
    if desc.enum_values:
        return desc.enum_values[0]
    return [] if desc.kind == ParameterKind.array else None


def is_visible(model: ModelConfig, desc: ParameterDescriptor, store: Mapping[str, Any]) -> bool:
    """
    A dependent field is shown when its controller's value matches.

    An untouched controller is compared by the value it displays (default or
    first option), not by the raw store entry, so an empty store still shows
    the fields that belong to the controller's default.
    """
    if not desc.depends_on_field:
        return True
    controller = model.input_schema.properties.get(desc.depends_on_field)
    if controller is None:
        current = store.get(desc.depends_on_field)
    else:
        # the controller shows its default until the user touches it
        current = initial_value(controller, store)
    expected = desc.depends_on_value
    if isinstance(expected, list):
        return current in expected
    return current == expected


def hidden_properties(model: ModelConfig, store: Mapping[str, Any]) -> list[str]:
    return [
        name for name, desc in ordered_properties(model)
        if not is_visible(model, desc, store)
    ]


def visible_fields(model: ModelConfig, store: Mapping[str, Any]) -> list[FormField]:
    fields: list[FormField] = []
    for name, desc in ordered_properties(model):
        if not is_visible(model, desc, store):
            continue
        render = RENDERERS[component_for(desc)]
        fields.append(render(name, desc, initial_value(desc, store), is_required(model, name)))
    return fields


def column_split(fields: list[FormField]) -> tuple[list[FormField], list[FormField]]:
    left = [f for f in fields if f.grid_column == 1]
    right = [f for f in fields if f.grid_column == 2]
    return left, right


def validate_visible(model: ModelConfig, store: Mapping[str, Any]) -> ValidationReport:
    return validate_all(model, store, skip=hidden_properties(model, store))


def apply_change(model: ModelConfig, store: MutableMapping[str, Any], name: str, value: Any) -> None:
    """Write one field. Dependent fields are left alone; visibility is recomputed on render."""
    desc = model.input_schema.properties.get(name)
    if desc is None:
        raise UnknownParameterError(name)
    store[desc.ui_field_name] = value
