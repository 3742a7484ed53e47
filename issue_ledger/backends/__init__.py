"""Key/value backends implementing the ledger contract's storage surface."""

import logging

from issue_ledger import config
from issue_ledger.backends.base import KeyValueBackend
from issue_ledger.backends.memory import InMemoryBackend

logger = logging.getLogger(__name__)

_memory_backend = None


def get_backend(read_only: bool = False) -> KeyValueBackend:
    """
    Factory function to get the configured backend client.

    Reads LEDGER_BACKEND ("sql" or "memory"). The read-only client serves
    queries; the writable client is the one bound to a signer.
    """
    global _memory_backend

    if config.LEDGER_BACKEND == "memory":
        if _memory_backend is None:
            logger.info("Using in-memory ledger backend")
            _memory_backend = InMemoryBackend()
        return _memory_backend.read_only_view() if read_only else _memory_backend

    if config.LEDGER_BACKEND != "sql":
        logger.warning(f"Unknown LEDGER_BACKEND: {config.LEDGER_BACKEND}, using sql")

    from issue_ledger.backends.sql import SqlKeyValueBackend
    from issue_ledger.database.config import AsyncSessionLocal

    return SqlKeyValueBackend(AsyncSessionLocal, read_only=read_only)


__all__ = ["KeyValueBackend", "InMemoryBackend", "get_backend"]
