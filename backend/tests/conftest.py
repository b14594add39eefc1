"""
Shared pytest options and fixtures for backend tests.
"""
import io
import os
import sys
from pathlib import Path

import httpx
import pytest
from PIL import Image

BACKEND = str(Path(__file__).parent.parent)
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)


def pytest_addoption(parser):
    parser.addoption(
        "--base-url",
        action="store",
        default=os.environ.get("BACKEND_URL", ""),
        help="Base URL for live API tests.",
    )
    parser.addoption(
        "--request-timeout",
        action="store",
        type=float,
        default=float(os.environ.get("TEST_REQUEST_TIMEOUT", "20")),
        help="HTTP timeout (seconds) for live API tests.",
    )


# ─── Live server ──────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def base_url(request):
    value = (request.config.getoption("base_url") or "").strip()
    if not value:
        pytest.skip(
            "Live API tests require --base-url or BACKEND_URL. "
            "Skipping integration tests."
        )
    return value.rstrip("/")


@pytest.fixture(scope="session")
def request_timeout(request):
    return float(request.config.getoption("request_timeout"))


@pytest.fixture(scope="session")
def live_client(base_url, request_timeout):
    timeout = httpx.Timeout(connect=5.0, read=request_timeout, write=request_timeout, pool=5.0)
    with httpx.Client(base_url=base_url, timeout=timeout) as c:
        yield c


# ─── Local fixtures ───────────────────────────────────────────────────────────

def make_png(size=(8, 8), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def image_ref(png_bytes):
    from images import image_from_bytes

    return image_from_bytes(png_bytes, "cat.png", "image/png")


@pytest.fixture
def kv(tmp_path):
    from storage import KeyValueStore

    return KeyValueStore(str(tmp_path / "store.db"), quota_bytes=5 * 1024 * 1024)


@pytest.fixture
def session_store(kv):
    from sessions import SessionStore

    return SessionStore(kv)
