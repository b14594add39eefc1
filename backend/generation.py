"""
Generation lifecycle: idle -> processing -> succeeded | failed.

The processing placeholder is appended to the timeline synchronously, before
the request to the generation service is awaited, so a slow or failing call
is always visible. The placeholder is then mutated in place by its id.
Terminal states are never left.

There is no cancellation and no deadline: a dispatched request runs until it
resolves or rejects.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol, Union

import httpx

from config import GENERATE_API_URL, HTTP_CONNECT_TIMEOUT, HTTP_POOL_TIMEOUT
from form import validate_visible
from images import url_to_image_reference
from payload import MultipartPayload, serialize
from schema_helpers import (
    is_video_model,
    parameter_descriptor,
    supports_character_image,
    supports_first_frame,
    supports_image_input,
    supports_image_to_image,
    supports_input_reference,
    supports_last_frame,
)
from schemas import (
    CurrentInput,
    GenerationResult,
    GenerationStatus,
    ImageReference,
    MessageContent,
    ModelConfig,
)
from sessions import ImageConverter, SessionStore

logger = logging.getLogger("generation")

FALLBACK_ERROR_MESSAGE = "Failed to generate image"

_TRANSITIONS: dict[GenerationStatus, frozenset[GenerationStatus]] = {
    GenerationStatus.idle: frozenset({GenerationStatus.processing}),
    GenerationStatus.processing: frozenset({GenerationStatus.succeeded, GenerationStatus.failed}),
    GenerationStatus.succeeded: frozenset(),
    GenerationStatus.failed: frozenset(),
}


class InvalidTransition(RuntimeError):
    """Raised on an attempt to move a generation out of a terminal state."""


class ParameterValidationError(ValueError):
    """Local validation failed; nothing was dispatched."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class GenerationError(RuntimeError):
    """The generation service rejected a request. `data` holds its JSON body."""

    def __init__(self, message: str, data: Optional[Mapping[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.data = dict(data) if data else {}
        self.status_code = status_code


def can_transition(current: GenerationStatus, target: GenerationStatus) -> bool:
    return target in _TRANSITIONS[current]


def is_terminal(status: GenerationStatus) -> bool:
    return not _TRANSITIONS[status]


def to_user_message(error: Any) -> str:
    """
    Single place that turns any failure shape into display text.

    Priority: the structured `data["error"]` field from the service, then the
    error's own message, then a generic fallback.
    """
    if isinstance(error, Mapping):
        data = error.get("data")
        message = error.get("message")
    else:
        data = getattr(error, "data", None)
        message = str(error) if isinstance(error, BaseException) else getattr(error, "message", None)

    if isinstance(data, Mapping) and data.get("error"):
        return str(data["error"])
    if isinstance(message, str) and message.strip():
        return message
    return FALLBACK_ERROR_MESSAGE


def output_urls(output: Union[str, list, None]) -> list[str]:
    items = output if isinstance(output, list) else [output]
    return [item for item in items if isinstance(item, str)]


# ─── Generation service boundary ──────────────────────────────────────────────

class GenerationClient(Protocol):
    async def generate(self, model_id: str, payload: MultipartPayload) -> GenerationResult:
        ...


class HttpGenerationClient:
    """Posts a serialized payload to the `/generate` endpoint."""

    def __init__(self, url: str = GENERATE_API_URL):
        self.url = url

    async def generate(self, model_id: str, payload: MultipartPayload) -> GenerationResult:
        data, files = payload.to_httpx()
        data["model_id"] = model_id
        timeout = httpx.Timeout(connect=HTTP_CONNECT_TIMEOUT, read=None, write=None, pool=HTTP_POOL_TIMEOUT)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(self.url, data=data, files=files or None)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation service unreachable: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            raise GenerationError(
                f"Generation failed with HTTP {resp.status_code}",
                data=body if isinstance(body, dict) else None,
                status_code=resp.status_code,
            )
        result = GenerationResult.model_validate(body)
        if result.status == "failed":
            raise GenerationError(result.error or FALLBACK_ERROR_MESSAGE, data={"error": result.error})
        return result


# ─── State machine ────────────────────────────────────────────────────────────

class GenerationTracker:
    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    def status_of(self, message_id: str) -> Optional[GenerationStatus]:
        """None once the message is gone (deleted, cleared or evicted)."""
        message = self.sessions.find_message(message_id)
        if message is None:
            return None
        return message.content.status or GenerationStatus.idle

    def _move(self, message_id: str, target: GenerationStatus, **updates: Any) -> None:
        current = self.status_of(message_id)
        if current is None:
            logger.warning("generation %s settled as %s after its message was removed", message_id, target.value)
            return
        if not can_transition(current, target):
            raise InvalidTransition(f"generation {message_id}: {current.value} -> {target.value}")
        self.sessions.update_message(message_id, status=target, **updates)

    def dispatch(self, model: ModelConfig) -> str:
        """Append the processing placeholder and return its id."""
        message = self.sessions.add_assistant_message(
            MessageContent(
                status=GenerationStatus.processing,
                model_id=model.id,
                model_name=model.name,
            )
        )
        logger.info("generation %s dispatched for model=%s", message.id, model.id)
        return message.id

    def succeed(self, message_id: str, output: list[str], *, is_video: bool, seed: Optional[int] = None) -> None:
        self._move(message_id, GenerationStatus.succeeded, generated_images=output, is_video=is_video, seed=seed)
        logger.info("generation %s succeeded with %d output(s)", message_id, len(output))

    def fail(self, message_id: str, error: str) -> None:
        self._move(message_id, GenerationStatus.failed, error=error)
        logger.warning("generation %s failed: %s", message_id, error)


# ─── Chat turn ────────────────────────────────────────────────────────────────

def _ui(model: ModelConfig, name: str) -> str:
    desc = parameter_descriptor(model, name)
    return desc.ui_field_name if desc is not None else name


def compose_parameters(
    model: ModelConfig,
    store: Mapping[str, Any],
    current_input: CurrentInput,
) -> dict[str, Any]:
    """Merge the form values with the chat input, routing images to the model's image slot."""
    params = dict(store)
    if parameter_descriptor(model, "prompt") is not None:
        params[_ui(model, "prompt")] = current_input.prompt

    auto = current_input.auto_attached_image
    attachments = current_input.image_attachments
    first = auto or (attachments[0] if attachments else None)

    if supports_image_input(model):
        images = ([auto] if auto else []) + list(attachments)
        if images:
            params[_ui(model, "image_input")] = images
    elif supports_character_image(model):
        if first:
            params[_ui(model, "image_file")] = first
    elif supports_first_frame(model):
        if first:
            params[_ui(model, "first_frame_image")] = first
        if supports_last_frame(model) and len(attachments) > 1:
            params[_ui(model, "last_frame_image")] = attachments[1]
    elif supports_input_reference(model):
        if first:
            params[_ui(model, "input_reference")] = first
    elif supports_image_to_image(model):
        if first:
            params[_ui(model, "image")] = first
    return params


class ChatGenerator:
    """One chat turn: validate, append user + placeholder, generate, settle."""

    def __init__(
        self,
        sessions: SessionStore,
        client: GenerationClient,
        converter: ImageConverter = url_to_image_reference,
    ):
        self.sessions = sessions
        self.client = client
        self.converter = converter
        self.tracker = GenerationTracker(sessions)

    async def send(self, model: Optional[ModelConfig], store: Mapping[str, Any]) -> str:
        """
        Run one generation and return the assistant message id.

        Raises ParameterValidationError before anything is appended when no
        model is selected, the prompt is blank, or the form does not validate.
        Service failures never raise; they land on the placeholder.
        """
        if model is None:
            raise ParameterValidationError(["Please select a model"])
        current = self.sessions.current_input
        if parameter_descriptor(model, "prompt") is not None and not current.prompt.strip():
            raise ParameterValidationError(["Please enter a prompt"])

        params = compose_parameters(model, store, current)
        report = validate_visible(model, params)
        if not report.valid:
            raise ParameterValidationError(report.errors)

        self.sessions.add_user_message(
            MessageContent(
                prompt=current.prompt,
                image_attachments=list(current.image_attachments),
                auto_attached_image=current.auto_attached_image,
                model_id=model.id,
                model_name=model.name,
                parameters=_loggable(params),
            )
        )
        message_id = self.tracker.dispatch(model)
        self.sessions.clear_current_input()

        try:
            result = await self.client.generate(model.id, serialize(model, params))
        except Exception as exc:  # any rejection settles the placeholder
            logger.exception("generation %s raised", message_id)
            self.tracker.fail(message_id, to_user_message(exc))
            return message_id

        self.tracker.succeed(message_id, output_urls(result.output), is_video=is_video_model(model), seed=result.seed)
        self.sessions.set_auto_attach_disabled(False)
        await self.sessions.refresh_auto_attach(model, self.converter)
        return message_id


def _loggable(params: Mapping[str, Any]) -> dict[str, Any]:
    """Parameters as recorded on the user message; image data stays on the attachments."""
    recorded: dict[str, Any] = {}
    for key, value in params.items():
        if isinstance(value, ImageReference):
            recorded[key] = value.name
        elif isinstance(value, list) and any(isinstance(v, ImageReference) for v in value):
            recorded[key] = [v.name if isinstance(v, ImageReference) else v for v in value]
        else:
            recorded[key] = value
    return recorded
