import logging
import secrets
import string
import time
from collections import Counter
from functools import lru_cache
from typing import Any, Callable, Iterable, Optional

from issue_ledger import config
from issue_ledger.backends import get_backend
from issue_ledger.backends.base import KeyValueBackend
from issue_ledger.codec import Codec, get_codec
from issue_ledger.errors import BackendUnavailable, RecordNotFound, ValidationError
from issue_ledger.schemas import Issue, IssueStatus, StatusCounts
from issue_ledger.store import IndexWriteMode, RecordStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def generate_issue_id(now: float) -> str:
    """Creation time in milliseconds plus a 7 character random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{int(now * 1000)}-{suffix}"


def aggregate_by_status(issues: Iterable[Issue]) -> StatusCounts:
    counts = Counter(IssueStatus(issue.status).value for issue in issues)
    return StatusCounts(**{status.value: counts[status.value] for status in IssueStatus})


def filter_issues(issues: Iterable[Issue], term: str) -> list[Issue]:
    """
    Case-insensitive substring match on category and the ciphertext field.

    Matching against ciphertext is close to useless since it is opaque;
    it mirrors what the search box has always done.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return list(issues)
    return [
        issue for issue in issues
        if needle in issue.category.lower() or needle in issue.data.lower()
    ]


class IssueService:
    """
    Domain operations over the record store.

    Reads go through the read-only client. Writes need a signer-bound
    client, injected with ``connect_signer`` whenever the connected
    account changes. Nothing is cached: every listing re-reads the backend.
    """

    def __init__(
        self,
        reader: KeyValueBackend,
        writer: Optional[KeyValueBackend] = None,
        codec: Optional[Codec] = None,
        clock: Callable[[], float] = time.time,
        index_write_mode: IndexWriteMode = IndexWriteMode.LAST_WRITER_WINS,
        index_retry_limit: int = 3,
        index_settle_seconds: float = 0.0,
        read_concurrency: int = 10,
    ):
        self.codec = codec or get_codec()
        self.clock = clock
        self._store_options = {
            "index_write_mode": index_write_mode,
            "index_retry_limit": index_retry_limit,
            "index_settle_seconds": index_settle_seconds,
            "read_concurrency": read_concurrency,
        }
        self.reader = RecordStore(reader, **self._store_options)
        self.writer: Optional[RecordStore] = None
        if writer is not None:
            self.connect_signer(writer)

    def connect_signer(self, backend: KeyValueBackend) -> None:
        self.writer = RecordStore(backend, **self._store_options)
        logger.info("Signer connected, writes enabled")

    def disconnect_signer(self) -> None:
        self.writer = None
        logger.info("Signer disconnected, writes disabled")

    def _require_writer(self) -> RecordStore:
        if self.writer is None:
            raise BackendUnavailable("No signer connected; connect a wallet before writing")
        return self.writer

    async def submit(self, category: str, payload: dict[str, Any]) -> str:
        """Store a new pending issue and return its id."""
        issue = await self.submit_issue(category, payload)
        return issue.id

    async def submit_issue(self, category: str, payload: dict[str, Any]) -> Issue:
        """
        Encode the payload and store a new pending issue.

        Args:
            category: Public category label
            payload: Private fields, encoded before they leave the service

        Returns:
            The issue as written

        Raises:
            ValidationError: If category or payload is empty (before any I/O)
            BackendUnavailable: If no signer is connected or a write failed
        """
        if not category or not category.strip():
            raise ValidationError("Category is required")
        if not payload or all(_is_blank(value) for value in payload.values()):
            raise ValidationError("Payload is required")

        store = self._require_writer()
        now = self.clock()
        issue = Issue(
            id=generate_issue_id(now),
            data=self.codec.encode(payload),
            timestamp=int(now),
            category=category.strip(),
            votes=0,
            status=IssueStatus.PENDING,
        )

        await store.create_record(issue)
        logger.info(
            f"Issue {issue.id} submitted",
            extra={"issue_id": issue.id, "category": issue.category},
        )
        return issue

    async def vote(self, issue_id: str) -> Issue:
        store = self._require_writer()
        issue = await store.update_record(
            issue_id, lambda current: current.model_copy(update={"votes": current.votes + 1})
        )
        logger.info(f"Vote recorded for issue {issue_id}", extra={"issue_id": issue_id, "votes": issue.votes})
        return issue

    async def get(self, issue_id: str) -> Issue:
        issue = await self.reader.read_record(issue_id)
        if issue is None:
            raise RecordNotFound(issue_id)
        return issue

    async def list_sorted(self) -> list[Issue]:
        if not await self.reader.backend.is_available():
            raise BackendUnavailable("Ledger is not available")
        return await self.reader.read_all()

    async def check_availability(self) -> bool:
        return await self.reader.backend.is_available()

    aggregate_by_status = staticmethod(aggregate_by_status)
    filter = staticmethod(filter_issues)


@lru_cache
def get_issue_service() -> IssueService:
    """FastAPI dependency returning the process-wide service."""
    return IssueService(
        reader=get_backend(read_only=True),
        writer=get_backend(),
        index_write_mode=IndexWriteMode(config.INDEX_WRITE_MODE),
        index_retry_limit=config.INDEX_RETRY_LIMIT,
        index_settle_seconds=config.INDEX_SETTLE_SECONDS,
        read_concurrency=config.READ_CONCURRENCY,
    )
