from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta

from conftest import NOW, FakeRepo
from planner.domain.enums import TaskStatus
from planner.services.locks import NullLockProvider
from planner.services.materializer import InstanceMaterializer


def make_template(repo: FakeRepo, **overrides):
    data = {
        "user_id": 1,
        "name": "Water plants",
        "recurrence_type": "daily",
        "recurrence_interval": 1,
        "due_date": datetime(2024, 1, 1),
    }
    data.update(overrides)
    return repo.create_task(data)


def due_dates(repo: FakeRepo, template_id: int) -> list[datetime]:
    return sorted(task.due_date for task in repo.list_occurrences(template_id))


def test_fills_horizon_and_is_idempotent(repo: FakeRepo) -> None:
    template = make_template(repo)
    materializer = InstanceMaterializer(repo)

    created = materializer.materialize(1, horizon_days=7, now=NOW)
    assert [task.due_date for task in created] == [datetime(2024, 1, day) for day in range(1, 9)]
    assert repo.get_task(template.id).last_generated_date == datetime(2024, 1, 8)

    assert materializer.materialize(1, horizon_days=7, now=NOW) == []
    assert len(repo.list_occurrences(template.id)) == 8


def test_occurrence_copies_template_fields(repo: FakeRepo) -> None:
    template = make_template(repo, priority=2, note="balcony too", project_id=4, tags=["home"])
    InstanceMaterializer(repo).materialize(1, horizon_days=0, now=NOW)

    [occurrence] = repo.list_occurrences(template.id)
    assert occurrence.name == "Water plants"
    assert occurrence.priority == 2
    assert occurrence.note == "balcony too"
    assert occurrence.project_id == 4
    assert occurrence.tags == ("home",)
    assert occurrence.status == TaskStatus.NOT_STARTED
    assert occurrence.recurring_parent_id == template.id
    assert not occurrence.is_template


def test_template_without_due_date_starts_today(repo: FakeRepo) -> None:
    template = make_template(repo, due_date=None)
    InstanceMaterializer(repo).materialize(1, horizon_days=2, now=NOW)
    assert due_dates(repo, template.id) == [
        datetime(2024, 1, 1),
        datetime(2024, 1, 2),
        datetime(2024, 1, 3),
    ]


def run_daily_passes(repo: FakeRepo, first: datetime, days: int) -> None:
    materializer = InstanceMaterializer(repo)
    for offset in range(days):
        materializer.materialize(1, horizon_days=0, now=first + timedelta(days=offset))


def test_undated_template_keeps_interval_across_passes(repo: FakeRepo) -> None:
    template = make_template(repo, due_date=None, recurrence_interval=3)
    run_daily_passes(repo, NOW, 4)

    assert due_dates(repo, template.id) == [datetime(2024, 1, 1), datetime(2024, 1, 4)]
    assert repo.get_task(template.id).due_date == datetime(2024, 1, 1)


def test_undated_monthly_template_fires_once_a_month(repo: FakeRepo) -> None:
    template = make_template(repo, due_date=None, recurrence_type="monthly")
    run_daily_passes(repo, NOW, 4)

    assert due_dates(repo, template.id) == [datetime(2024, 1, 1)]


def test_undated_biweekly_template_keeps_phase(repo: FakeRepo) -> None:
    template = make_template(
        repo, due_date=None, recurrence_type="weekly", recurrence_interval=2, recurrence_weekday=1
    )
    run_daily_passes(repo, NOW, 15)

    assert due_dates(repo, template.id) == [datetime(2024, 1, 1), datetime(2024, 1, 15)]


def test_past_anchor_only_fills_from_today(repo: FakeRepo) -> None:
    template = make_template(repo, recurrence_interval=3, due_date=datetime(2023, 12, 1))
    InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)
    assert due_dates(repo, template.id) == [datetime(2024, 1, 3), datetime(2024, 1, 6)]


def test_weekly_template_uses_listed_weekdays(repo: FakeRepo) -> None:
    template = make_template(repo, recurrence_type="weekly", recurrence_weekdays=[1, 3, 5])
    InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)
    assert due_dates(repo, template.id) == [
        datetime(2024, 1, 1),
        datetime(2024, 1, 3),
        datetime(2024, 1, 5),
        datetime(2024, 1, 8),
    ]


def test_end_date_limits_generation(repo: FakeRepo) -> None:
    template = make_template(repo, recurrence_end_date=datetime(2024, 1, 3))
    InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)
    assert len(repo.list_occurrences(template.id)) == 3


def test_expired_template_is_skipped(repo: FakeRepo) -> None:
    template = make_template(repo, recurrence_end_date=datetime(2023, 12, 20))
    assert InstanceMaterializer(repo).materialize(1, now=NOW) == []
    assert repo.get_task(template.id).last_generated_date is None


def test_archived_template_is_skipped(repo: FakeRepo) -> None:
    make_template(repo, status=TaskStatus.ARCHIVED)
    assert InstanceMaterializer(repo).materialize(1, now=NOW) == []


def test_only_requested_user_is_processed(repo: FakeRepo) -> None:
    other = make_template(repo, user_id=2)
    InstanceMaterializer(repo).materialize(1, now=NOW)
    assert repo.list_occurrences(other.id) == []


def test_existing_occurrence_is_not_duplicated(repo: FakeRepo) -> None:
    template = make_template(repo)
    repo.create_task({"name": "Water plants", "recurring_parent_id": template.id, "due_date": datetime(2024, 1, 3)})

    created = InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)
    assert len(created) == 7
    assert len(repo.list_occurrences(template.id)) == 8


def test_rechecks_storage_before_insert(repo: FakeRepo, monkeypatch, caplog) -> None:
    template = make_template(repo)
    repo.create_task({"name": "Water plants", "recurring_parent_id": template.id, "due_date": datetime(2024, 1, 3)})
    monkeypatch.setattr(repo, "list_occurrences", lambda template_id: [])

    with caplog.at_level(logging.WARNING):
        created = InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)

    assert len(created) == 7
    assert "already stored" not in caplog.text


def test_duplicate_rejected_by_storage_is_skipped(repo: FakeRepo, monkeypatch, caplog) -> None:
    template = make_template(repo)
    repo.create_task({"name": "Water plants", "recurring_parent_id": template.id, "due_date": datetime(2024, 1, 3)})
    monkeypatch.setattr(repo, "list_occurrences", lambda template_id: [])
    monkeypatch.setattr(repo, "occurrence_exists", lambda template_id, start, end: False)

    with caplog.at_level(logging.WARNING):
        created = InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)

    assert len(created) == 7
    assert "already stored" in caplog.text
    assert repo.get_task(template.id).last_generated_date == datetime(2024, 1, 8)


def test_failing_template_keeps_partial_progress(repo: FakeRepo, caplog) -> None:
    broken = make_template(repo, name="Broken")
    healthy = make_template(repo, name="Healthy")

    def fail_on_fourth(data: dict) -> None:
        if data.get("recurring_parent_id") == broken.id and data["due_date"] == datetime(2024, 1, 4):
            raise RuntimeError("storage hiccup")

    repo.create_hook = fail_on_fourth
    materializer = InstanceMaterializer(repo)
    with caplog.at_level(logging.ERROR):
        materializer.materialize(1, horizon_days=7, now=NOW)

    assert "Failed to generate occurrences" in caplog.text
    assert len(repo.list_occurrences(broken.id)) == 3
    assert len(repo.list_occurrences(healthy.id)) == 8
    assert repo.get_task(broken.id).last_generated_date == datetime(2024, 1, 3)

    repo.create_hook = None
    created = materializer.materialize(1, horizon_days=7, now=NOW)
    assert [task.due_date for task in created] == [datetime(2024, 1, day) for day in range(4, 9)]


def test_deleted_occurrences_before_last_generated_stay_deleted(repo: FakeRepo) -> None:
    template = make_template(repo, last_generated_date=datetime(2024, 1, 4))
    InstanceMaterializer(repo).materialize(1, horizon_days=7, now=NOW)
    assert due_dates(repo, template.id) == [datetime(2024, 1, day) for day in range(5, 9)]


def test_completion_based_keeps_single_open_occurrence(repo: FakeRepo) -> None:
    template = make_template(repo, recurrence_interval=2, completion_based=True)
    materializer = InstanceMaterializer(repo)

    created = materializer.materialize(1, horizon_days=7, now=NOW)
    assert [task.due_date for task in created] == [datetime(2024, 1, 1)]
    assert materializer.materialize(1, horizon_days=7, now=NOW) == []

    repo.update_task(created[0].id, {"status": "done", "completed_at": datetime(2024, 1, 3, 10, 0)})
    created = materializer.materialize(1, horizon_days=7, now=datetime(2024, 1, 3, 11, 0))
    assert [task.due_date for task in created] == [datetime(2024, 1, 5)]
    assert len(repo.list_occurrences(template.id)) == 2


def complete_and_pass(repo: FakeRepo, occurrence, completed_at: datetime, horizon_days: int):
    repo.update_task(occurrence.id, {"status": "done", "completed_at": completed_at})
    return InstanceMaterializer(repo).materialize(
        1, horizon_days=horizon_days, now=completed_at + timedelta(hours=1)
    )


def test_monthly_completion_counts_from_completion_date_with_clamp(repo: FakeRepo) -> None:
    make_template(repo, recurrence_type="monthly", due_date=datetime(2024, 1, 31), completion_based=True)
    [january] = InstanceMaterializer(repo).materialize(1, horizon_days=7, now=datetime(2024, 1, 31, 9, 0))
    assert january.due_date == datetime(2024, 1, 31)

    [february] = complete_and_pass(repo, january, datetime(2024, 2, 3, 10, 0), horizon_days=30)
    assert february.due_date == datetime(2024, 2, 29)

    # completed after the clamped date; the pinned day comes back
    [march] = complete_and_pass(repo, february, datetime(2024, 3, 2, 10, 0), horizon_days=30)
    assert march.due_date == datetime(2024, 3, 31)


def test_early_completion_does_not_repeat_covered_date(repo: FakeRepo) -> None:
    template = make_template(
        repo, recurrence_type="monthly", due_date=datetime(2024, 3, 31), completion_based=True
    )
    [march] = InstanceMaterializer(repo).materialize(1, horizon_days=30, now=datetime(2024, 3, 10, 9, 0))

    [april] = complete_and_pass(repo, march, datetime(2024, 3, 20, 10, 0), horizon_days=60)

    assert april.due_date == datetime(2024, 4, 30)
    assert due_dates(repo, template.id) == [datetime(2024, 3, 31), datetime(2024, 4, 30)]


def test_dates_follow_user_timezone(repo: FakeRepo) -> None:
    template = make_template(repo, due_date=datetime(2024, 1, 1, 5, 0))
    InstanceMaterializer(repo).materialize(
        1, horizon_days=2, timezone="America/New_York", now=datetime(2024, 1, 1, 14, 0)
    )
    assert due_dates(repo, template.id) == [
        datetime(2024, 1, 1, 5, 0),
        datetime(2024, 1, 2, 5, 0),
        datetime(2024, 1, 3, 5, 0),
    ]


def test_pass_runs_under_user_lock(repo: FakeRepo) -> None:
    events = []

    class RecordingLocks:
        def acquire(self, user_id: int):
            events.append(("acquire", user_id))
            return lambda: events.append(("release", user_id))

    make_template(repo)
    InstanceMaterializer(repo, locks=RecordingLocks()).materialize(1, now=NOW)
    assert events == [("acquire", 1), ("release", 1)]


def _run_concurrently(materializer: InstanceMaterializer, workers: int = 4) -> None:
    threads = [
        threading.Thread(target=materializer.materialize, args=(1,), kwargs={"horizon_days": 7, "now": NOW})
        for _ in range(workers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def test_concurrent_passes_insert_each_date_once(repo: FakeRepo) -> None:
    template = make_template(repo)
    attempts = []

    def slow_insert(data: dict) -> None:
        if data.get("recurring_parent_id") is not None:
            attempts.append(data["due_date"])
            time.sleep(0.002)

    repo.create_hook = slow_insert
    _run_concurrently(InstanceMaterializer(repo))

    assert len(attempts) == 8
    assert len(repo.list_occurrences(template.id)) == 8


def test_storage_constraint_backs_up_missing_lock(repo: FakeRepo) -> None:
    template = make_template(repo)

    def slow_insert(data: dict) -> None:
        time.sleep(0.002)

    repo.create_hook = slow_insert
    _run_concurrently(InstanceMaterializer(repo, locks=NullLockProvider()))

    assert due_dates(repo, template.id) == [datetime(2024, 1, day) for day in range(1, 9)]
