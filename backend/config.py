"""
Configuration for the PromptDeck generation backend.
All sensitive values come from environment variables.
"""
import os

# ─── App identity ──────────────────────────────────────────────────────────────
APP_NAME = "promptdeck-backend"
APP_VERSION = "1.0.0"

# ─── Replicate ─────────────────────────────────────────────────────────────────
REPLICATE_API_TOKEN: str = os.environ.get("REPLICATE_API_TOKEN", "")
REPLICATE_BASE_URL = os.environ.get("REPLICATE_BASE_URL", "https://api.replicate.com").rstrip("/")

# Seconds between prediction polls once Prefer: wait returns a non-terminal state
REPLICATE_POLL_INTERVAL = float(os.environ.get("REPLICATE_POLL_INTERVAL", "1.0"))
# How long Replicate may hold the create request open (Prefer: wait=N, max 60)
REPLICATE_PREFER_WAIT = int(os.environ.get("REPLICATE_PREFER_WAIT", "60"))

# Generation requests run to completion; there is no read deadline.
HTTP_CONNECT_TIMEOUT = float(os.environ.get("HTTP_CONNECT_TIMEOUT", "5"))
HTTP_POOL_TIMEOUT = float(os.environ.get("HTTP_POOL_TIMEOUT", "5"))

# Where the HTTP generation client posts multipart payloads
GENERATE_API_URL = os.environ.get("GENERATE_API_URL", "http://localhost:8000/generate")

# ─── Local persistence ─────────────────────────────────────────────────────────
STORE_PATH = os.environ.get("STORE_PATH", os.path.expanduser("~/.promptdeck/store.db"))
# Byte budget for all persisted values (mirrors browser storage quota)
STORE_QUOTA_BYTES = int(os.environ.get("STORE_QUOTA_BYTES", str(5 * 1024 * 1024)))

SESSIONS_STORAGE_KEY = "chat-sessions"

# ─── Chat history limits ───────────────────────────────────────────────────────
CHAT_MAX_MESSAGES = int(os.environ.get("CHAT_MAX_MESSAGES", "50"))
CHAT_REDUCED_MESSAGES = int(os.environ.get("CHAT_REDUCED_MESSAGES", "20"))
CHAT_MAX_SESSIONS = int(os.environ.get("CHAT_MAX_SESSIONS", "20"))
DEFAULT_SESSION_NAME = "New Chat"

# ─── Uploads ───────────────────────────────────────────────────────────────────
UPLOAD_MAX_SIDE = int(os.environ.get("UPLOAD_MAX_SIDE", "2048"))
UPLOAD_JPEG_QUALITY = int(os.environ.get("UPLOAD_JPEG_QUALITY", "90"))
AUTO_ATTACH_FALLBACK_NAME = "auto-attached-image.png"

# ─── HTTP layer ────────────────────────────────────────────────────────────────
ENABLE_DOCS = os.environ.get("ENABLE_DOCS", "0").strip().lower() in {"1", "true", "yes", "on"}
FRONTEND_ORIGINS = [o.strip() for o in os.environ.get("FRONTEND_ORIGINS", "").split(",") if o.strip()]
DEFAULT_FRONTEND_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

# Seed range used when the caller does not pin one
RANDOM_SEED_MAX = 1_000_000_000
