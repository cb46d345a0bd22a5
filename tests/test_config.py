"""Tests for environment-driven configuration."""

from pathlib import Path

from ledger_book.config import DEFAULT_RELAY_MAX_BYTES, getenv_with_default, load_config

ENV_VARS = (
    "LEDGER_BOOK_DB_FILE",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_ENDPOINT",
    "LEDGER_BOOK_API_TOKEN",
    "LEDGER_BOOK_RELAY_MAX_BYTES",
    "LEDGER_BOOK_LOG_LEVEL",
)


def test_defaults(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LEDGER_BOOK_DB_FILE", str(tmp_path / "data" / "ledger.db"))

    config = load_config()

    assert config.database_file == tmp_path / "data" / "ledger.db"
    assert config.database_file.parent.is_dir()
    assert config.google_api_key is None
    assert config.api_token is None
    assert config.gemini_model == "gemini-1.5-flash"
    assert config.relay_max_bytes == DEFAULT_RELAY_MAX_BYTES
    assert config.log_level == "INFO"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LEDGER_BOOK_DB_FILE", str(tmp_path / "ledger.db"))
    monkeypatch.setenv("GEMINI_ENDPOINT", "https://proxy.example/v1/")
    monkeypatch.setenv("LEDGER_BOOK_RELAY_MAX_BYTES", "2048")
    monkeypatch.setenv("LEDGER_BOOK_LOG_LEVEL", "debug")

    config = load_config()

    assert config.gemini_endpoint == "https://proxy.example/v1"
    assert config.relay_max_bytes == 2048
    assert config.log_level == "DEBUG"


def test_empty_value_uses_default(monkeypatch):
    monkeypatch.setenv("GEMINI_MODEL", "")
    assert getenv_with_default("GEMINI_MODEL", "fallback") == "fallback"
    assert getenv_with_default("LEDGER_BOOK_UNSET_VARIABLE") is None
    assert getenv_with_default("LEDGER_BOOK_UNSET_VARIABLE", Path("/tmp/x")) == "/tmp/x"
