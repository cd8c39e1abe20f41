from datetime import datetime, timedelta, timezone

import pytest

from fdfsmigrate.models.common import ValidationError
from fdfsmigrate.models.migration import MigrationConfig
from fdfsmigrate.models.scheduled_task import (
    ScheduledTask,
    ScheduleResult,
    ScheduleStatus,
)


def test_is_active():
    task = ScheduledTask(status=ScheduleStatus.ACTIVE)
    assert task.is_active() is True
    task.status = ScheduleStatus.INACTIVE
    assert task.is_active() is False


_NOW = datetime.now()


@pytest.mark.parametrize(
    "task, expected",
    [
        (ScheduledTask(status=ScheduleStatus.ACTIVE, next_run=_NOW - timedelta(hours=1)), True),
        (ScheduledTask(status=ScheduleStatus.ACTIVE, next_run=_NOW + timedelta(hours=1)), False),
        (ScheduledTask(status=ScheduleStatus.INACTIVE, next_run=_NOW - timedelta(hours=1)), False),
        (ScheduledTask(status=ScheduleStatus.ACTIVE, next_run=None), False),
    ],
)
def test_should_run(task, expected):
    assert task.should_run() is expected


def test_should_run_with_aware_time():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    assert ScheduledTask(next_run=past).should_run() is True


def test_last_run_status():
    task = ScheduledTask()
    assert task.last_run_status() == "Never run"

    task.last_run = datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    task.last_result = ScheduleResult.SUCCESS
    assert task.last_run_status() == "Last run: 2023-01-01 12:00:00, Result: success"


def test_validate_ok():
    task = ScheduledTask(name="nightly", cron_expr="0 0 * * *")
    task.validate()
    assert task.cron_expr == "0 0 * * *"


@pytest.mark.parametrize(
    "task, message",
    [
        (ScheduledTask(cron_expr="0 0 * * *"), "scheduled task name is required"),
        (ScheduledTask(name="nightly"), "cron expression is required"),
    ],
)
def test_validate_errors(task, message):
    with pytest.raises(ValidationError) as excinfo:
        task.validate()
    assert str(excinfo.value) == message


def test_dict_round_trip():
    task = ScheduledTask(
        id="1_ff",
        name="Test Scheduled Task",
        cron_expr="0 0 * * *",
        status=ScheduleStatus.ACTIVE,
        description="Test description",
        task_config=MigrationConfig(concurrent_workers=3, incremental_sync=False),
        last_run=datetime(2023, 1, 1, 12, 0, 0),
        last_result="success",
    )
    data = task.to_dict()
    assert data["task_config"]["concurrent_workers"] == 3
    assert "next_run" not in data
    assert ScheduledTask.from_dict(data) == task