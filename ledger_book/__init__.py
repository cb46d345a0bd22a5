"""ledger_book: supplier ledger backend for a commodity-trading operation."""
from .api import app

__all__ = ["app"]
