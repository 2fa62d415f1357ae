"""Unit tests for the Celery sync worker wiring."""

from sync_worker.main import app
from sync_worker.tasks import sync_catalog


def test_beat_schedule_targets_registered_tasks() -> None:
    scheduled = {entry["task"] for entry in app.conf.beat_schedule.values()}

    assert scheduled == {
        "sync_worker.tasks.sync_catalog.sync_catalog_from_vendor",
        "sync_worker.tasks.sync_catalog.sync_option_lookup",
        "sync_worker.tasks.sync_catalog.ingest_all_products",
    }
    assert scheduled <= set(app.tasks.keys())


def test_tasks_routed_to_sync_queue() -> None:
    assert app.conf.task_default_queue == "sync"


def test_option_sync_skipped_without_collection(monkeypatch, test_settings) -> None:
    test_settings.webflow_collection_id = ""
    monkeypatch.setattr(sync_catalog, "get_settings", lambda: test_settings)

    assert sync_catalog.sync_option_lookup() == {"synced": 0, "fields": []}
