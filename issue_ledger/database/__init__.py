"""Database configuration, models, and session management."""

from issue_ledger.database.config import engine, Base, AsyncSessionLocal
from issue_ledger.database import models

__all__ = ["engine", "Base", "AsyncSessionLocal", "models"]
