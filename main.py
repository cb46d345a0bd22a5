"""Entrypoint for running the ledger_book FastAPI backend locally."""
from __future__ import annotations

import logging

import uvicorn

from ledger_book import app
from ledger_book.config import load_config


if __name__ == "__main__":
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "ledger_book.api:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
