from datetime import datetime

import pytest

from cleanops.models import Frequency
from scheduling.catalog import ScheduleCatalog
from scheduling.scheduler import AssignmentEngine
from storage.json_store import JsonFileStore


def test_store_roundtrip(tmp_path):
    path = tmp_path / "cleanops.json"
    store = JsonFileStore(path=str(path))
    schedule = ScheduleCatalog(store).create_schedule(
        "Kitchen", detected_frequency="daily", tasks=[{"description": "Wipe counters"}]
    )
    AssignmentEngine(store, clock=lambda: datetime(2024, 5, 1, 7, 0)).assign(schedule.id, "kitchen-1")

    loaded = JsonFileStore(path=str(path))
    s = ScheduleCatalog(loaded).get_schedule(schedule.id)
    assert s.title == "Kitchen"
    assert s.suggested_frequency == Frequency.DAILY
    assert [t.description for t in s.tasks] == ["Wipe counters"]
    a = loaded.list_assignments(target_id="kitchen-1")[0]
    assert a.next_due == datetime(2024, 5, 1, 7, 0)
    assert a.version == 1


def test_store_corrupted_file(tmp_path):
    p = tmp_path / "cleanops.json"
    p.write_text("{not valid json")
    store = JsonFileStore(path=str(p))
    assert store.list_schedules() == []


def test_failed_transaction_is_not_written(tmp_path):
    path = tmp_path / "cleanops.json"
    store = JsonFileStore(path=str(path))
    catalog = ScheduleCatalog(store)

    with pytest.raises(RuntimeError):
        with store.atomic():
            catalog.create_schedule("Half written", tasks=[{"description": "Dust"}])
            raise RuntimeError("boom")

    assert store.list_schedules() == []
    assert not path.exists()
