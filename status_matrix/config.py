"""Configuration helpers for Status Matrix."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    api_url: str
    api_token: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: float = 15.0
    teams_per_page: int = 4
    log_level: str = "info"


def _env_number(name: str, default: str, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    api_url = os.getenv("STATUS_API_URL", "http://localhost:5000").rstrip("/")
    if not api_url:
        raise RuntimeError("STATUS_API_URL must be configured")

    teams_per_page = _env_number("TEAMS_PER_PAGE", "4", int)
    if teams_per_page < 1:
        raise RuntimeError("TEAMS_PER_PAGE must be at least 1")

    return Settings(
        api_url=api_url,
        api_token=os.getenv("STATUS_API_TOKEN") or None,
        api_key=os.getenv("API_KEY") or None,
        request_timeout=_env_number("REQUEST_TIMEOUT", "15", float),
        teams_per_page=teams_per_page,
        log_level=os.getenv("LOG_LEVEL", "info"),
    )


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )


__all__ = ["Settings", "configure_logging", "load_settings"]
