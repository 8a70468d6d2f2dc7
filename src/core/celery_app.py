"""Celery application configuration for the scheduled reminder sweep.

Usage:
    # Start worker with beat scheduler (for development):
    celery -A src.core.celery_app worker -B -l info

    # Production (separate worker and beat):
    celery -A src.core.celery_app worker -l info
    celery -A src.core.celery_app beat -l info
"""
import os

from celery import Celery
from celery.schedules import crontab

# Load environment variables
from dotenv import load_dotenv

load_dotenv()

# Redis URL for broker and backend
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Create Celery app
celery_app = Celery(
    "progress_syncer",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=[
        "src.tasks.reminders",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completes
    task_reject_on_worker_lost=True,  # Reject task if worker dies
    task_time_limit=55,  # A sweep must finish before the next one starts
    task_soft_time_limit=50,

    # Worker settings
    worker_prefetch_multiplier=1,  # One task at a time per worker
    worker_max_tasks_per_child=100,  # Restart worker after 100 tasks

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Beat scheduler settings
    beat_scheduler="celery.beat:PersistentScheduler",
    beat_schedule_filename="celerybeat-schedule",
)

# Scheduled tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    # Reminder sweep - every minute
    "process-reminders-every-minute": {
        "task": "src.tasks.reminders.process_reminders",
        "schedule": crontab(),
    },
}
