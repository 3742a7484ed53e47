"""Celery background tasks for asynchronous, long-running operations."""

import logging
import asyncio

from issue_ledger.backends.sql import SqlKeyValueBackend
from issue_ledger.celery_app import app
from issue_ledger.database.config import create_worker_sessionmaker
from issue_ledger.errors import RecordNotFound
from issue_ledger.store import RecordStore

logger = logging.getLogger(__name__)


async def _repair_index(issue_id: str, store: RecordStore) -> bool:
    """
    Make an orphaned record visible by appending its id to the index.

    Returns:
        True if the issue is indexed afterwards, False if no record exists
    """
    try:
        await store.ensure_indexed(issue_id)
    except RecordNotFound:
        logger.warning(
            f"Issue {issue_id} has no record, nothing to repair",
            extra={"issue_id": issue_id},
        )
        return False

    logger.info(f"Issue {issue_id} is indexed", extra={"issue_id": issue_id})
    return True


async def _repair_with_worker_engine(issue_id: str) -> bool:
    engine, sessions = create_worker_sessionmaker()
    try:
        return await _repair_index(issue_id, RecordStore(SqlKeyValueBackend(sessions)))
    finally:
        await engine.dispose()


@app.task(bind=True, max_retries=3, default_retry_delay=60)
def repair_index(self, issue_id: str):
    """
    Re-append an issue id whose index write failed after its record was stored.

    The append is idempotent, so the task may run any number of times
    for the same id. Workers always open the SQL ledger, so the route
    only queues this task when LEDGER_BACKEND is "sql".

    Args:
        issue_id: Id of the orphaned issue record

    Raises:
        self.retry(): Retries up to 3 times with increasing delay
    """
    logger.info(f"Starting index repair for issue {issue_id}", extra={"issue_id": issue_id})

    try:
        return asyncio.run(_repair_with_worker_engine(issue_id))

    except Exception as exc:
        logger.error(
            f"Error repairing index for issue {issue_id}: {str(exc)}",
            extra={"issue_id": issue_id},
            exc_info=True
        )

        # Delay: 60s, 120s, 180s for retries 1, 2, 3
        countdown = 60 * (self.request.retries + 1)
        raise self.retry(exc=exc, countdown=countdown)
