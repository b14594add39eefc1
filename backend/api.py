"""
api.py
──────
FastAPI application factory.

app.py only builds the app and runs uvicorn; this module owns the HTTP layer:
the model registry, form rendering for a parameter store, and the multipart
`/generate` endpoint that forwards to Replicate.

Usage:
    from api import create_app
    app = create_app()
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from config import APP_VERSION, DEFAULT_FRONTEND_ORIGINS, ENABLE_DOCS, FRONTEND_ORIGINS
from form import visible_fields
from models import get_model_by_id, list_models
from payload import FilePart, PayloadError, reconstruct
from replicate_client import ReplicateClient, ReplicateConfigError, ReplicateError, normalize_output, resolve_seed
from schemas import (
    ErrorResponse,
    FormResponse,
    GenerationResult,
    HealthResponse,
    ModelConfig,
    ModelsResponse,
)

logger = logging.getLogger("api")


# ─── Error helpers ────────────────────────────────────────────────────────────

_ERROR_CODE_BY_STATUS = {
    400: "bad_request", 404: "not_found",
    422: "validation_error",
    500: "internal_error", 502: "upstream_error",
}
_USER_ACTION_BY_STATUS = {
    400: "Check request parameters and retry.",
    404: "Verify the identifier and retry.",
    422: "Fix request fields and retry.",
    500: "Retry later.", 502: "Retry shortly.",
}


def _error_payload(code: str, detail: str, user_action: str) -> dict:
    # `error` duplicates `detail` for clients that read the structured field
    return ErrorResponse(error=detail, code=code, detail=detail, user_action=user_action).model_dump()


def _as_api_error(status_code: int, detail: object) -> dict:
    if isinstance(detail, dict):
        code = str(detail.get("code") or _ERROR_CODE_BY_STATUS.get(status_code, "request_failed"))
        message = str(detail.get("detail") or "Request failed.")
        action = str(detail.get("user_action") or _USER_ACTION_BY_STATUS.get(status_code, "Retry later."))
        return _error_payload(code=code, detail=message, user_action=action)
    if isinstance(detail, str):
        return _error_payload(
            code=_ERROR_CODE_BY_STATUS.get(status_code, "request_failed"),
            detail=detail,
            user_action=_USER_ACTION_BY_STATUS.get(status_code, "Retry later."),
        )
    return _error_payload(
        code=_ERROR_CODE_BY_STATUS.get(status_code, "request_failed"),
        detail="Request failed.",
        user_action=_USER_ACTION_BY_STATUS.get(status_code, "Retry later."),
    )


# ─── Request helpers ──────────────────────────────────────────────────────────

async def _read_form(request: Request) -> dict[str, Union[str, FilePart]]:
    """Flatten a multipart body; uploads become FileParts, last value wins."""
    form = await request.form()
    fields: dict[str, Union[str, FilePart]] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            content = await value.read()
            fields[key] = FilePart(
                filename=value.filename or key,
                content=content,
                content_type=value.content_type or "application/octet-stream",
            )
        else:
            fields[key] = value
    return fields


def _model_or_404(model_id: str) -> ModelConfig:
    model = get_model_by_id(model_id)
    if model is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "unknown_model", "detail": f"Unknown model: {model_id}", "user_action": "Pick a model from /models."},
        )
    return model


def create_app(replicate_client: Optional[ReplicateClient] = None) -> FastAPI:
    """
    Build and return the configured FastAPI application.
    Pass `replicate_client` to swap the upstream client (tests).
    """
    client = replicate_client or ReplicateClient()

    api = FastAPI(
        title="PromptDeck Backend",
        description="Schema-driven image & video generation through Replicate",
        version=APP_VERSION,
        docs_url="/docs" if ENABLE_DOCS else None,
        redoc_url="/redoc" if ENABLE_DOCS else None,
    )

    # CORS
    api.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(DEFAULT_FRONTEND_ORIGINS + FRONTEND_ORIGINS)),
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ────────────────────────────────────────────────────

    @api.exception_handler(HTTPException)
    async def _http_exception_handler(_: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_as_api_error(exc.status_code, exc.detail),
            headers=exc.headers,
        )

    @api.exception_handler(RequestValidationError)
    async def _validation_exception_handler(_: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                **_error_payload("validation_error", "Request validation failed.", "Fix request fields and retry."),
                "metadata": {"errors": exc.errors()},
            },
        )

    # ─────────────────────────────────────────────────────────────────────────
    # ROUTES
    # ─────────────────────────────────────────────────────────────────────────

    # ── Info ──────────────────────────────────────────────────────────────────
    @api.get("/health", response_model=HealthResponse, tags=["Info"])
    async def health_check():
        return HealthResponse(version=APP_VERSION)

    @api.get("/models", response_model=ModelsResponse, tags=["Info"])
    async def get_models():
        return ModelsResponse(models=list_models())

    @api.get("/models/{model_id}", response_model=ModelConfig, tags=["Info"])
    async def get_model(model_id: str):
        return _model_or_404(model_id)

    @api.post("/models/{model_id}/form", response_model=FormResponse, tags=["Info"])
    async def render_form(model_id: str, store: Optional[dict[str, Any]] = Body(default=None)):
        """Visible fields for the given parameter store, in display order."""
        model = _model_or_404(model_id)
        fields = [f.to_response() for f in visible_fields(model, store or {})]
        return FormResponse(model_id=model.id, fields=fields)

    # ── Generation ────────────────────────────────────────────────────────────
    @api.post("/generate", response_model=GenerationResult, tags=["Generation"])
    async def generate(request: Request):
        fields = await _read_form(request)

        model_id = fields.get("model_id")
        if not isinstance(model_id, str) or not model_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "model_missing", "detail": "No model selected", "user_action": "Select a model and retry."},
            )
        model = get_model_by_id(model_id)
        if model is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "unknown_model", "detail": f"Unknown model: {model_id}", "user_action": "Pick a model from /models."},
            )
        if not client.token:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"code": "token_missing", "detail": "REPLICATE_API_TOKEN is not configured", "user_action": "Contact the administrator."},
            )

        try:
            api_input = reconstruct(model, fields)
        except PayloadError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "invalid_payload", "detail": str(exc), "user_action": "Fix request fields and retry."},
            )

        try:
            prediction = await client.run(model.replicate_ref, api_input)
        except ReplicateConfigError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"code": "token_missing", "detail": str(exc), "user_action": "Contact the administrator."},
            )
        except ReplicateError as exc:
            logger.error("generation failed model=%s: %s", model.id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"code": "generation_failed", "detail": f"Generation failed: {exc}", "user_action": "Retry later."},
            )

        output = normalize_output(prediction.get("output"))
        if isinstance(output, list):
            urls = [item for item in output if isinstance(item, str)]
            if len(urls) != len(output):
                logger.warning("dropped %d non-url output item(s) model=%s", len(output) - len(urls), model.id)
            output = urls
        if output == [] or (output is not None and not isinstance(output, (str, list))):
            logger.error("unexpected output shape model=%s: %r", model.id, prediction.get("output"))
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"code": "unexpected_output", "detail": "Generation returned no usable output", "user_action": "Retry shortly."},
            )

        seed_field = fields.get("seed")
        seed = resolve_seed(seed_field if isinstance(seed_field, str) else None)
        return GenerationResult(
            id=str(prediction.get("id") or "prediction"),
            status="succeeded",
            output=output,
            seed=seed,
        )

    return api
