"""
Image reference helpers: uploads, data URIs and result-URL conversion.
"""
from __future__ import annotations

import base64
import io
import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

import httpx
from PIL import Image

from config import (
    AUTO_ATTACH_FALLBACK_NAME,
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    UPLOAD_JPEG_QUALITY,
    UPLOAD_MAX_SIDE,
)
from schemas import ImageReference

logger = logging.getLogger("images")

_PIL_FORMAT_BY_MIME = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class ImageFetchError(RuntimeError):
    """Raised when a result URL cannot be turned into an image reference."""


def detect_mime(raw: bytes) -> str:
    """Sniff the mime type from magic bytes; unknown data is reported as PNG."""
    if raw[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if raw[:4] == b"\x89PNG":
        return "image/png"
    if len(raw) >= 12 and raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def to_data_url(raw: bytes, mime: Optional[str] = None) -> str:
    mime = mime or detect_mime(raw)
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    """Return (bytes, mime). Bare base64 without the `data:` prefix is accepted."""
    mime = ""
    payload = data_url
    if data_url.startswith("data:") and "," in data_url:
        header, payload = data_url.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0]
    raw = base64.b64decode(payload)
    return raw, mime or detect_mime(raw)


def image_from_bytes(raw: bytes, name: str, mime: Optional[str] = None) -> ImageReference:
    mime = mime or detect_mime(raw)
    return ImageReference(data_url=to_data_url(raw, mime), name=name, mime_type=mime)


def _compress(raw: bytes, mime: str, max_side: int) -> tuple[bytes, str]:
    with Image.open(io.BytesIO(raw)) as img:
        if max(img.size) <= max_side:
            return raw, mime
        fmt = _PIL_FORMAT_BY_MIME.get(mime, "PNG")
        resized = img.copy()
        resized.thumbnail((max_side, max_side), Image.LANCZOS)
        if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        buf = io.BytesIO()
        if fmt == "JPEG":
            resized.save(buf, fmt, quality=UPLOAD_JPEG_QUALITY)
        else:
            resized.save(buf, fmt)
        logger.info("upload downscaled from %sx%s to %sx%s", img.size[0], img.size[1], *resized.size)
        return buf.getvalue(), f"image/{fmt.lower()}"


def read_upload(
    source: Union[bytes, str, Path],
    name: Optional[str] = None,
    *,
    max_side: int = UPLOAD_MAX_SIDE,
) -> ImageReference:
    """
    Read an uploaded image and downscale it so its longest side fits `max_side`.
    Raises PIL.UnidentifiedImageError for data that is not an image.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        raw = path.read_bytes()
        name = name or path.name
    else:
        raw = source
    raw, mime = _compress(raw, detect_mime(raw), max_side)
    return image_from_bytes(raw, name or "upload.png", mime)


def filename_from_url(url: str) -> str:
    tail = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    return tail or AUTO_ATTACH_FALLBACK_NAME


async def url_to_image_reference(url: str, client: Optional[httpx.AsyncClient] = None) -> ImageReference:
    """Fetch a generated result and embed it as a data URI."""
    if url.startswith("data:"):
        raw, mime = decode_data_url(url)
        return image_from_bytes(raw, AUTO_ATTACH_FALLBACK_NAME, mime)

    timeout = httpx.Timeout(connect=HTTP_CONNECT_TIMEOUT, read=60.0, write=30.0, pool=HTTP_POOL_TIMEOUT)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                response = await owned.get(url)
        else:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        raise ImageFetchError(f"Failed to fetch image from {url}: {exc}") from exc

    if response.status_code >= 400:
        raise ImageFetchError(f"Failed to fetch image from {url}: {response.reason_phrase}")

    raw = response.content
    mime = (response.headers.get("content-type") or "").split(";", 1)[0].strip() or detect_mime(raw)
    return image_from_bytes(raw, filename_from_url(url), mime)
