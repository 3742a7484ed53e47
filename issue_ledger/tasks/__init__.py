"""Background tasks module.

Celery tasks (worker process, retried): index repair after a failed
index append.

BackgroundTasks (in-process, fire-and-forget): submission notifications.

IMPORTANT: Import notifications directly here, but import celery_tasks
explicitly when needed to avoid circular imports with Celery initialization.
"""

from issue_ledger.tasks.notifications import notify_issue_submitted

# Use: from issue_ledger.tasks.celery_tasks import repair_index

__all__ = ["notify_issue_submitted"]
