"""
Celery application initialization and configuration.
This module sets up Celery to use Redis as the message broker.
"""

import os
from celery import Celery
from kombu import Exchange, Queue

# Get configuration from environment variables
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# Initialize Celery app
app = Celery(
    "issue_ledger",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# Configure task settings
app.conf.update(
    # Task serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,

    # Repairs are idempotent, so a redelivered task is harmless
    task_acks_late=True,
    worker_prefetch_multiplier=1,

    # Task routes and queues
    task_routes={
        "issue_ledger.tasks.celery_tasks.repair_index": {"queue": "ledger"},
    },
    task_queues=[
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("ledger", Exchange("ledger"), routing_key="ledger"),
    ],
)

# Explicitly import task modules to ensure they're registered
from issue_ledger.tasks import celery_tasks  # noqa: E402, F401
