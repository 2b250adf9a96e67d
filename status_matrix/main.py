"""Entrypoint for running the Status Matrix API via `python -m status_matrix.main`."""

from __future__ import annotations

import os

import uvicorn

from .api import create_app
from .config import configure_logging, load_settings


def run() -> None:
    env_file = os.getenv("STATUS_MATRIX_ENV")
    settings = load_settings(env_file)
    configure_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level,
    )


if __name__ == "__main__":  # pragma: no cover
    run()
