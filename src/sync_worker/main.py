"""Celery application for sync worker."""

from celery import Celery
from celery.schedules import crontab

from catalog_service.config import get_settings

settings = get_settings()

app = Celery(
    "sync_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=[
        "sync_worker.tasks.sync_catalog",
    ],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # a full catalog walk at ~120 ms/item
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_queue="sync",
    task_routes={
        "sync_worker.tasks.*": {"queue": "sync"},
    },
)

app.conf.beat_schedule = {
    "sync-catalog": {
        "task": "sync_worker.tasks.sync_catalog.sync_catalog_from_vendor",
        "schedule": crontab(minute=f"*/{settings.sync_products_interval_minutes}")
        if settings.sync_products_interval_minutes < 60
        else crontab(minute=0, hour=f"*/{max(1, settings.sync_products_interval_minutes // 60)}"),
    },
    "sync-options": {
        "task": "sync_worker.tasks.sync_catalog.sync_option_lookup",
        "schedule": crontab(minute=15, hour=f"*/{settings.sync_options_interval_hours}"),
    },
    "ingest-products": {
        "task": "sync_worker.tasks.sync_catalog.ingest_all_products",
        "schedule": crontab(minute=45, hour=3),
    },
}


def run() -> None:
    """Run the Celery worker."""
    app.worker_main(["worker", "--loglevel=info", "-Q", "sync"])


if __name__ == "__main__":
    run()
