"""Application configuration utilities for the ledger_book backend.

This module centralises environment-driven configuration so the rest of the
code base does not need to read environment variables directly.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load any variables defined in a local .env file. The call is idempotent, so
# running it at import time keeps the API ergonomic.
load_dotenv()

DEFAULT_RELAY_MAX_BYTES = 100 * 1024 * 1024


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed container for runtime configuration.

    Attributes:
        project_root: Root directory of the project. Used to derive default
            paths so the app works out of the box after cloning the repo.
        database_file: Absolute path to the SQLite database holding the four
            ledger collections.
        google_api_key: Optional API key for the Gemini text-generation API.
            Without it the performance analysis returns a fallback message.
        gemini_model: Model name used for the performance analysis.
        gemini_endpoint: Base URL of the Gemini REST API.
        api_token: Bearer token callers must present to use the FTP relay.
            When unset every relay call is rejected as unauthenticated.
        relay_max_bytes: Largest blob the FTP relay agrees to download.
        log_level: Name of the root logging level.
    """

    project_root: Path
    database_file: Path
    google_api_key: Optional[str]
    gemini_model: str
    gemini_endpoint: str
    api_token: Optional[str]
    relay_max_bytes: int
    log_level: str


def load_config() -> AppConfig:
    """Create a new :class:`AppConfig` instance based on environment settings.

    Environment variables override the default values, allowing users to
    customise the runtime without touching the source code.
    """

    project_root = Path(__file__).resolve().parent.parent
    database_file = Path(
        getenv_with_default(
            "LEDGER_BOOK_DB_FILE",
            project_root / "ledger_book.db",
        )
    )

    google_api_key = getenv_with_default("GOOGLE_API_KEY")
    gemini_model = getenv_with_default("GEMINI_MODEL", "gemini-1.5-flash")
    gemini_endpoint = getenv_with_default(
        "GEMINI_ENDPOINT",
        "https://generativelanguage.googleapis.com/v1beta",
    )
    api_token = getenv_with_default("LEDGER_BOOK_API_TOKEN")
    relay_max_bytes = int(
        getenv_with_default("LEDGER_BOOK_RELAY_MAX_BYTES", str(DEFAULT_RELAY_MAX_BYTES))
    )
    log_level = getenv_with_default("LEDGER_BOOK_LOG_LEVEL", "INFO").upper()

    # Ensure the directories exist so later code can safely create files.
    database_file.parent.mkdir(parents=True, exist_ok=True)

    return AppConfig(
        project_root=project_root,
        database_file=database_file,
        google_api_key=google_api_key,
        gemini_model=gemini_model,
        gemini_endpoint=gemini_endpoint.rstrip("/"),
        api_token=api_token,
        relay_max_bytes=relay_max_bytes,
        log_level=log_level,
    )


def getenv_with_default(name: str, default: Optional[Path | str] = None) -> Optional[str]:
    """Return the value of an environment variable or a sensible default.

    ``None`` values are propagated so callers can make explicit decisions about
    optional configuration values. Paths are converted to strings, keeping the
    return type uniform and easy to serialise.
    """

    from os import getenv

    value = getenv(name)
    if value is not None and value != "":
        return value
    if default is None:
        return None
    return str(default)
