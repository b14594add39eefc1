"""
Pydantic schemas for model descriptions, chat state and HTTP payloads.
Registry entries are authored with the vendor-style keys (`type`, `enum`,
`x-order`, `x-ui-field`, ...) and exposed under Python attribute names.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ─── Enums ────────────────────────────────────────────────────────────────────

class ParameterKind(str, Enum):
    string = "string"
    integer = "integer"
    number = "number"
    boolean = "boolean"
    array = "array"
    object = "object"


class UIComponent(str, Enum):
    text_input = "text-input"
    textarea = "textarea"
    select = "select"
    button_group = "button-group"
    image_upload = "image-upload"
    multi_image_upload = "multi-image-upload"
    toggle = "toggle"
    slider = "slider"
    number_input = "number-input"


class ModelCategory(str, Enum):
    text_to_image = "text-to-image"
    image_to_image = "image-to-image"
    character = "character"
    style_transfer = "style-transfer"
    image_to_video = "image-to-video"
    text_to_video = "text-to-video"


class Quality(str, Enum):
    fast = "fast"
    balanced = "balanced"
    high = "high"


class MessageRole(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class GenerationStatus(str, Enum):
    idle = "idle"
    processing = "processing"
    succeeded = "succeeded"
    failed = "failed"


# ─── Model schema ─────────────────────────────────────────────────────────────

class ItemsSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    format: Optional[str] = None


class ParameterDescriptor(BaseModel):
    """One input field's contract."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    name: str = ""  # bound by ModelSchema
    kind: ParameterKind = Field(alias="type")
    title: str
    description: str = ""
    default: Any = None
    enum_values: Optional[List[Any]] = Field(default=None, alias="enum")
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    items: Optional[ItemsSpec] = None
    format: Optional[str] = None
    display_order: Optional[int] = Field(default=None, alias="x-order")
    ui_component_hint: Optional[UIComponent] = Field(default=None, alias="x-component")
    grid_column: Optional[Literal[1, 2]] = Field(default=None, alias="x-grid-column")
    depends_on_field: Optional[str] = Field(default=None, alias="x-depends-on")
    depends_on_value: Any = Field(default=None, alias="x-depends-value")
    ui_field: Optional[str] = Field(default=None, alias="x-ui-field")
    api_field: Optional[str] = Field(default=None, alias="x-api-field")

    @property
    def items_format(self) -> Optional[str]:
        return self.items.format if self.items else None

    @property
    def is_uri_formatted(self) -> bool:
        if self.kind == ParameterKind.array:
            return self.items_format == "uri"
        return self.format == "uri"

    @property
    def ui_field_name(self) -> str:
        return self.ui_field or self.name

    @property
    def api_field_name(self) -> str:
        return self.api_field or self.name


class ModelSchema(BaseModel):
    required: List[str] = Field(default_factory=list)
    properties: dict[str, ParameterDescriptor]

    @model_validator(mode="after")
    def bind_and_check(self) -> "ModelSchema":
        missing = [name for name in self.required if name not in self.properties]
        if missing:
            raise ValueError(f"required names missing from properties: {', '.join(missing)}")

        self.properties = {
            name: desc if desc.name == name else desc.model_copy(update={"name": name})
            for name, desc in self.properties.items()
        }

        seen: dict[str, str] = {}
        for name, desc in self.properties.items():
            ui = desc.ui_field_name
            if ui in seen:
                raise ValueError(f"ui field '{ui}' is shared by '{seen[ui]}' and '{name}'")
            seen[ui] = name
        return self


class OutputSchema(BaseModel):
    type: Literal["string", "array", "object"]
    items: Optional[ItemsSpec] = None
    format: Optional[str] = None
    title: Optional[str] = None


class ModelConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    owner: str
    model: str
    description: str
    category: ModelCategory
    estimated_time: str = Field(alias="estimatedTime")
    quality: Quality
    input_schema: ModelSchema = Field(alias="schema")
    output: OutputSchema

    @property
    def replicate_ref(self) -> str:
        return f"{self.owner}/{self.model}"


# ─── Images & chat ────────────────────────────────────────────────────────────

class ImageReference(BaseModel):
    """An image carried by value as a data URI plus filename/mime metadata."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    data_url: str = Field(alias="dataUrl")
    name: str
    mime_type: str = Field(default="image/png", alias="type")


class MessageContent(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    # user
    prompt: Optional[str] = None
    image_attachments: List[ImageReference] = Field(default_factory=list)
    auto_attached_image: Optional[ImageReference] = None
    parameters: dict[str, Any] = Field(default_factory=dict)

    # assistant
    status: Optional[GenerationStatus] = None
    generated_images: List[str] = Field(default_factory=list)
    is_video: bool = False
    seed: Optional[int] = None
    error: Optional[str] = None

    # system
    text: Optional[str] = None

    # common
    model_id: Optional[str] = None
    model_name: Optional[str] = None


class ChatMessage(BaseModel):
    id: str
    role: MessageRole
    created_at: float
    content: MessageContent = Field(default_factory=MessageContent)


class ChatSession(BaseModel):
    id: str
    name: str
    created_at: float
    updated_at: float
    messages: List[ChatMessage] = Field(default_factory=list)


class CurrentInput(BaseModel):
    prompt: str = ""
    image_attachments: List[ImageReference] = Field(default_factory=list)
    auto_attached_image: Optional[ImageReference] = None
    auto_attach_disabled: bool = False


class SessionsState(BaseModel):
    sessions: List[ChatSession] = Field(default_factory=list)
    current_session_id: Optional[str] = None


# ─── Validation results ───────────────────────────────────────────────────────

class FieldValidation(BaseModel):
    valid: bool
    error: Optional[str] = None


class ValidationReport(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


# ─── HTTP responses ───────────────────────────────────────────────────────────

class GenerationResult(BaseModel):
    id: str
    status: Literal["succeeded", "failed"]
    output: Optional[Union[str, List[str]]] = None
    error: Optional[str] = None
    seed: Optional[int] = None


class ModelsResponse(BaseModel):
    models: List[ModelConfig]


class FormFieldResponse(BaseModel):
    name: str
    ui_field: str
    title: str
    description: str = ""
    component: UIComponent
    control: str
    required: bool = False
    value: Any = None
    options: Optional[List[Any]] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    grid_column: Optional[int] = None


class FormResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    fields: List[FormFieldResponse]


class HealthResponse(BaseModel):
    ok: Literal[True] = True
    version: str


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: str
    user_action: str
