"""
PromptDeck Backend — ASGI entry point
=====================================
Serves the FastAPI app built by api.create_app().

Local serve:
    uvicorn app:app --app-dir backend --reload

or:
    python backend/app.py
"""

import logging
import os

from api import create_app

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
