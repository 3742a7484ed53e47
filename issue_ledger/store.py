"""
Record store over an append-only key/value backend.

Issues live under ``issue_{id}``; the set of known ids lives in one JSON
array under ``issue_keys``. The backend has no listing and no cross-key
transaction, so the store writes the record before touching the index:
a crash between the two writes leaves an invisible orphan record, never
an index entry that points at nothing.
"""

import asyncio
import logging
import re
from enum import Enum
from typing import Callable, Optional

import pydantic
from pydantic import TypeAdapter

from issue_ledger.backends.base import KeyValueBackend
from issue_ledger.errors import (
    BackendUnavailable,
    IndexWriteError,
    RecordNotFound,
    ValidationError,
    WriteRejected,
)
from issue_ledger.schemas import Issue, IssueRecord

logger = logging.getLogger(__name__)

INDEX_KEY = "issue_keys"
RECORD_PREFIX = "issue_"

# Generated ids always contain a dash, so no id can derive INDEX_KEY
ISSUE_ID_PATTERN = re.compile(r"^[0-9]+-[0-9a-z]+$")

_index_adapter = TypeAdapter(list)


class IndexWriteMode(str, Enum):
    LAST_WRITER_WINS = "last-writer-wins"
    VERIFIED_RETRY = "verified-retry"


def is_valid_issue_id(issue_id) -> bool:
    return isinstance(issue_id, str) and bool(ISSUE_ID_PATTERN.match(issue_id))


def derive_key(issue_id: str) -> str:
    return f"{RECORD_PREFIX}{issue_id}"


class RecordStore:
    """
    Create, read and mutate issue records stored under derived keys.

    Args:
        backend: Key/value client; a read-only client is enough for reads
        index_write_mode: LAST_WRITER_WINS performs one read-modify-write on
            the index and can lose an append to a concurrent writer.
            VERIFIED_RETRY re-reads after writing and re-merges when its id
            was overwritten, up to ``index_retry_limit`` attempts.
        index_settle_seconds: Pause before the verification read, giving
            racing writers time to land
        read_concurrency: Most record reads in flight at once during
            read_all, kept below the backend's connection pool
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        index_write_mode: IndexWriteMode = IndexWriteMode.LAST_WRITER_WINS,
        index_retry_limit: int = 3,
        index_settle_seconds: float = 0.0,
        read_concurrency: int = 10,
    ):
        self.backend = backend
        self.index_write_mode = IndexWriteMode(index_write_mode)
        self.index_retry_limit = max(1, index_retry_limit)
        self.index_settle_seconds = index_settle_seconds
        self.read_concurrency = max(1, read_concurrency)

    async def list_ids(self) -> list[str]:
        """Ids in the index, in append order. Corruption reads as empty."""
        raw = await self.backend.get_data(INDEX_KEY)
        if not raw:
            return []

        try:
            entries = _index_adapter.validate_json(raw)
        except (pydantic.ValidationError, UnicodeDecodeError) as e:
            logger.warning(f"Issue index is malformed, treating as empty: {str(e)}")
            return []

        ids = []
        for entry in entries:
            if not is_valid_issue_id(entry):
                logger.warning(f"Skipping invalid index entry {entry!r}")
                continue
            ids.append(entry)
        return list(dict.fromkeys(ids))

    async def read_record(self, issue_id: str) -> Optional[Issue]:
        if not is_valid_issue_id(issue_id):
            return None

        raw = await self.backend.get_data(derive_key(issue_id))
        if not raw:
            return None

        try:
            record = IssueRecord.model_validate_json(raw)
        except (pydantic.ValidationError, UnicodeDecodeError) as e:
            logger.warning(
                f"Dropping malformed issue record {issue_id}: {str(e)}",
                extra={"issue_id": issue_id},
            )
            return None

        return Issue(id=issue_id, **record.model_dump())

    async def _read_listed(self, issue_id: str, slots: asyncio.Semaphore) -> Optional[Issue]:
        try:
            async with slots:
                issue = await self.read_record(issue_id)
        except BackendUnavailable as e:
            logger.warning(
                f"Error loading issue {issue_id}: {str(e)}",
                extra={"issue_id": issue_id},
            )
            return None

        if issue is None:
            logger.info(f"Indexed issue {issue_id} has no readable record", extra={"issue_id": issue_id})
        return issue

    async def read_all(self) -> list[Issue]:
        """Every readable indexed issue, newest timestamp first."""
        ids = await self.list_ids()
        slots = asyncio.Semaphore(self.read_concurrency)
        results = await asyncio.gather(*(self._read_listed(issue_id, slots) for issue_id in ids))

        issues = [issue for issue in results if issue is not None]
        issues.sort(key=lambda issue: issue.timestamp, reverse=True)
        return issues

    async def create_record(self, issue: Issue) -> None:
        """
        Write the record, then append its id to the index.

        Raises:
            ValidationError: If the id is outside the generated id format
            WriteRejected: If the record write failed (nothing was written)
            IndexWriteError: If the record was written but the index was not
        """
        if not is_valid_issue_id(issue.id):
            raise ValidationError(f"Invalid issue id: {issue.id!r}")

        await self._write_record(issue)
        await self._append_to_index(issue.id)

        logger.info("Issue record created", extra={"issue_id": issue.id})

    async def ensure_indexed(self, issue_id: str) -> None:
        """Append an existing record's id to the index if it is missing."""
        if await self.read_record(issue_id) is None:
            raise RecordNotFound(issue_id)
        await self._append_to_index(issue_id)

    async def update_record(self, issue_id: str, mutate: Callable[[Issue], Issue]) -> Issue:
        """
        Read-modify-write one record through a pure transformation.

        Two concurrent updates of the same id can both read the same
        version and the later write wins.

        Raises:
            RecordNotFound: If no record is stored under issue_id
            ValidationError: If mutate changed id or timestamp, or lowered votes
        """
        current = await self.read_record(issue_id)
        if current is None:
            raise RecordNotFound(issue_id)

        updated = mutate(current)
        if updated.id != current.id or updated.timestamp != current.timestamp:
            raise ValidationError(f"Issue {issue_id}: id and timestamp are immutable")
        if updated.votes < current.votes:
            raise ValidationError(f"Issue {issue_id}: votes cannot decrease")

        await self._write_record(updated)
        return updated

    async def _write_record(self, issue: Issue) -> None:
        await self.backend.set_data(derive_key(issue.id), issue.to_record().model_dump_json().encode("utf-8"))

    async def _append_to_index(self, issue_id: str) -> None:
        attempts = 1 if self.index_write_mode == IndexWriteMode.LAST_WRITER_WINS else self.index_retry_limit

        for attempt in range(1, attempts + 1):
            ids = await self.list_ids()
            if issue_id not in ids:
                ids.append(issue_id)
                try:
                    await self.backend.set_data(INDEX_KEY, _index_adapter.dump_json(ids))
                except WriteRejected as e:
                    raise IndexWriteError(issue_id, str(e)) from e

            if self.index_write_mode == IndexWriteMode.LAST_WRITER_WINS:
                return

            await asyncio.sleep(self.index_settle_seconds)
            if issue_id in await self.list_ids():
                return

            logger.warning(
                f"Index append for {issue_id} was overwritten, retrying (attempt {attempt})",
                extra={"issue_id": issue_id},
            )

        raise IndexWriteError(issue_id, f"Index append for {issue_id} lost after {attempts} attempts")
