"""Environment driven settings and logging set-up."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORE = "users.json"
DEFAULT_SERVER_URL = "http://127.0.0.1:8000"
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Process settings, read from ``CPAUTH_*`` environment variables.

    ``CPAUTH_STORE`` selects the backend (``memory://`` or a JSON file path),
    ``CPAUTH_SERVER_URL`` the server the CLI talks to with ``--remote``, and
    ``CPAUTH_HOST``/``CPAUTH_PORT`` where ``serve`` listens.
    """

    model_config = SettingsConfigDict(env_prefix="CPAUTH_", frozen=True, extra="ignore")

    store: str = DEFAULT_STORE
    server_url: str = DEFAULT_SERVER_URL
    log_level: str = DEFAULT_LOG_LEVEL
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Attach one stream handler to the ``cpauth`` logger."""

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")

    root = logging.getLogger("cpauth")
    root.setLevel(numeric)
    if not any(getattr(handler, "_cpauth", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._cpauth = True  # type: ignore[attr-defined]
        root.addHandler(handler)


__all__ = ["Settings", "configure_logging"]
