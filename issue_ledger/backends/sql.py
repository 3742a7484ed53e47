"""Durable key/value backend over a single SQL table."""

import logging

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issue_ledger.backends.base import KeyValueBackend
from issue_ledger.database import models
from issue_ledger.errors import BackendUnavailable, WriteRejected

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_statement(dialect_name: str, key: str, value: bytes):
    """INSERT or overwrite one key in a single statement."""
    try:
        insert = _UPSERT_INSERTS[dialect_name]
    except KeyError:
        raise WriteRejected(f"Unsupported ledger database dialect: {dialect_name}")

    statement = insert(models.LedgerEntry).values(key=key, value=value)
    return statement.on_conflict_do_update(
        index_elements=[models.LedgerEntry.key],
        set_={"value": statement.excluded.value},
    )


class SqlKeyValueBackend(KeyValueBackend):
    """
    Ledger storage stand-in backed by the ``ledger_entries`` table.

    Each get/set runs in its own session and commit, mirroring the
    contract's per-call atomicity. Writes are one upsert statement
    (PostgreSQL or SQLite), never a read followed by an insert.
    ``read_only=True`` gives the query client; writes through it are
    rejected.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession], read_only: bool = False):
        self._sessions = sessions
        self.read_only = read_only

    async def get_data(self, key: str) -> bytes:
        try:
            async with self._sessions() as session:
                entry = await session.get(models.LedgerEntry, key)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Ledger read failed for {key}: {str(e)}")
            raise BackendUnavailable(f"Ledger read failed: {str(e)}") from e

        return entry.value if entry else b""

    async def set_data(self, key: str, value: bytes) -> None:
        if self.read_only:
            raise WriteRejected("Read-only client cannot write")

        try:
            async with self._sessions() as session:
                dialect_name = session.get_bind().dialect.name
                await session.execute(_upsert_statement(dialect_name, key, bytes(value)))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Ledger write failed for {key}: {str(e)}")
            raise WriteRejected(f"Ledger write failed: {str(e)}") from e

    async def is_available(self) -> bool:
        try:
            async with self._sessions() as session:
                await session.execute(select(1))
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Ledger availability probe failed: {str(e)}")
            return False
        return True
