"""
Minimal async client for Replicate's HTTP predictions API.

Creates a prediction for an official model with `Prefer: wait`, then polls
`urls.get` until the prediction reaches a terminal state. There is no
deadline on the overall run.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional, Union

import httpx

from config import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    RANDOM_SEED_MAX,
    REPLICATE_API_TOKEN,
    REPLICATE_BASE_URL,
    REPLICATE_POLL_INTERVAL,
    REPLICATE_PREFER_WAIT,
)
from images import detect_mime, to_data_url

logger = logging.getLogger("replicate")

_TERMINAL = {"succeeded", "failed", "canceled"}


class ReplicateError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, prediction_id: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.prediction_id = prediction_id


class ReplicateConfigError(ReplicateError):
    """Raised when no API token is configured."""


def _redacted(api_input: dict[str, Any]) -> dict[str, str]:
    """Loggable view of a prediction input; image payloads are elided."""
    view: dict[str, str] = {}
    for key, value in api_input.items():
        if "image" in key or key in ("mask", "input_reference"):
            view[key] = "[IMAGE_DATA]"
        elif isinstance(value, list):
            view[key] = f"[{len(value)} items]"
        else:
            view[key] = str(value)
    return view


class ReplicateClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = REPLICATE_BASE_URL,
        *,
        poll_interval: float = REPLICATE_POLL_INTERVAL,
        prefer_wait: int = REPLICATE_PREFER_WAIT,
    ):
        self.token = REPLICATE_API_TOKEN if token is None else token
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.prefer_wait = prefer_wait

    def _check(self, resp: httpx.Response) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            detail = body.get("detail") if isinstance(body, dict) else None
            raise ReplicateError(
                f"Replicate API error {resp.status_code}: {detail or resp.text[:300]}",
                status_code=resp.status_code,
            )
        if not isinstance(body, dict):
            raise ReplicateError("Replicate API returned an unexpected body", status_code=resp.status_code)
        return body

    async def run(self, ref: str, api_input: dict[str, Any]) -> dict[str, Any]:
        """Run `owner/model` to completion and return the final prediction object."""
        if not self.token:
            raise ReplicateConfigError("REPLICATE_API_TOKEN is not configured")

        logger.info("replicate run model=%s input=%s", ref, _redacted(api_input))
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        timeout = httpx.Timeout(connect=HTTP_CONNECT_TIMEOUT, read=None, write=None, pool=HTTP_POOL_TIMEOUT)
        try:
            async with httpx.AsyncClient(timeout=timeout, headers=headers) as client:
                resp = await client.post(
                    f"{self.base_url}/v1/models/{ref}/predictions",
                    json={"input": api_input},
                    headers={"Prefer": f"wait={self.prefer_wait}"},
                )
                prediction = self._check(resp)
                while prediction.get("status") not in _TERMINAL:
                    await asyncio.sleep(self.poll_interval)
                    poll_url = (prediction.get("urls") or {}).get("get") or (
                        f"{self.base_url}/v1/predictions/{prediction.get('id')}"
                    )
                    prediction = self._check(await client.get(poll_url))
        except httpx.HTTPError as exc:
            raise ReplicateError(f"Replicate request failed: {exc}") from exc

        status = prediction.get("status")
        if status != "succeeded":
            raise ReplicateError(
                str(prediction.get("error") or f"Prediction {status}"),
                prediction_id=prediction.get("id"),
            )
        logger.info("replicate prediction %s succeeded", prediction.get("id"))
        return prediction


# ─── Output & seed ────────────────────────────────────────────────────────────

def _normalize_item(item: Any) -> Any:
    if isinstance(item, bytes):
        return to_data_url(item, detect_mime(item))
    if isinstance(item, str):
        if item.startswith("\x89PNG"):
            return to_data_url(item.encode("latin-1"), "image/png")
        return item
    if isinstance(item, dict):
        url = item.get("url") or item.get("href")
        if isinstance(url, str):
            return url
    return item


def normalize_output(output: Any) -> Union[str, list[Any], None]:
    """
    URLs and data URIs pass through, binary image data becomes a data URI.
    A single-item list is unwrapped.
    """
    if isinstance(output, list):
        processed = [_normalize_item(item) for item in output]
        return processed[0] if len(processed) == 1 else processed
    return _normalize_item(output)


def resolve_seed(seed_param: Optional[str]) -> int:
    """Use the caller's seed when it parses as a number, otherwise draw one."""
    if seed_param is not None and seed_param.strip():
        try:
            return int(float(seed_param))
        except (ValueError, OverflowError):
            pass
    return random.randrange(RANDOM_SEED_MAX)
