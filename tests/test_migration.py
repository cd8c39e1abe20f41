import json
from datetime import datetime, timedelta, timezone

import pytest

from fdfsmigrate.models.common import ValidationError
from fdfsmigrate.models.migration import (
    FileTypeFilter,
    Migration,
    MigrationConfig,
    MigrationStatus,
    RetryConfig,
    TimeFilter,
)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _full_config():
    return MigrationConfig(
        concurrent_workers=5,
        incremental_sync=True,
        verification_enabled=True,
        time_filter=TimeFilter(start_time=ZERO_TIME, end_time=ZERO_TIME),
        retry_config=RetryConfig(
            max_retries=3, retry_interval=timedelta(minutes=1), backoff_factor=2.0
        ),
    )


def test_config_json_round_trip():
    config = _full_config()
    restored = MigrationConfig.from_json(config.to_json())
    assert restored.concurrent_workers == 5
    assert restored.incremental_sync is True
    assert restored == config


def test_config_from_bytes():
    config = _full_config()
    assert MigrationConfig.from_json(config.to_json().encode()) == config


def test_config_from_none_gives_defaults():
    assert MigrationConfig.from_json(None) == MigrationConfig()


def test_config_from_wrong_type():
    with pytest.raises(TypeError):
        MigrationConfig.from_json(42)


def test_retry_interval_stored_as_nanoseconds():
    decoded = json.loads(_full_config().to_json())
    assert decoded["retry_config"]["retry_interval"] == 60_000_000_000
    assert decoded["retry_config"]["backoff_factor"] == 2.0


def test_config_json_omits_absent_filters():
    decoded = json.loads(MigrationConfig(concurrent_workers=2).to_json())
    assert "time_filter" not in decoded
    assert "file_type_filter" not in decoded
    assert decoded["retry_config"] is None
    assert decoded["concurrent_workers"] == 2


def test_file_type_filter_round_trip():
    config = MigrationConfig(
        file_type_filter=FileTypeFilter(include_extensions=["jpg"], exclude_mime_types=["text/plain"])
    )
    decoded = json.loads(config.to_json())
    assert decoded["file_type_filter"] == {
        "include_extensions": ["jpg"],
        "exclude_mime_types": ["text/plain"],
    }
    assert MigrationConfig.from_json(decoded) == config


def test_status_checks():
    migration = Migration()
    assert migration.status == "pending"

    migration.status = MigrationStatus.RUNNING
    assert migration.is_running()
    assert migration.can_pause()
    assert not migration.can_start()

    migration.status = MigrationStatus.COMPLETED
    assert migration.is_completed()

    migration.status = MigrationStatus.FAILED
    assert migration.is_failed()

    migration.status = MigrationStatus.PENDING
    assert migration.can_start()

    migration.status = MigrationStatus.PAUSED
    assert migration.can_start()
    assert migration.can_resume()


def test_progress_percentage():
    assert Migration(progress=75.5).progress_percentage() == "75.50%"


def test_processed_ratios():
    migration = Migration(
        total_files=1000,
        processed_files=250,
        total_size=1024 * 1024,
        processed_size=256 * 1024,
    )
    assert migration.processed_files_ratio() == 0.25
    assert migration.processed_size_ratio() == 0.25

    migration.total_files = 0
    migration.total_size = 0
    assert migration.processed_files_ratio() == 0
    assert migration.processed_size_ratio() == 0


def test_validate_ok():
    migration = Migration(name="Test Migration", source_cluster_id="source-1", target_cluster_id="target-1")
    migration.validate()
    assert migration.name == "Test Migration"


@pytest.mark.parametrize(
    "migration, message",
    [
        (Migration(), "migration name is required"),
        (Migration(name="Test", target_cluster_id="target-1"), "source cluster ID is required"),
        (Migration(name="Test", source_cluster_id="source-1"), "target cluster ID is required"),
        (
            Migration(name="Test", source_cluster_id="same-id", target_cluster_id="same-id"),
            "source and target cluster cannot be the same",
        ),
    ],
)
def test_validate_errors(migration, message):
    with pytest.raises(ValidationError) as excinfo:
        migration.validate()
    assert str(excinfo.value) == message


def test_to_dict_omits_optional_fields():
    data = Migration(name="m").to_dict()
    assert "error_message" not in data
    assert "completed_at" not in data
    assert data["status"] == "pending"


def test_dict_round_trip():
    migration = Migration(
        id="1_abcd",
        name="m",
        source_cluster_id="a",
        target_cluster_id="b",
        config=_full_config(),
        status=MigrationStatus.RUNNING,
        progress=12.5,
        total_files=10,
        processed_files=3,
        error_message="oops",
        completed_at=datetime(2024, 1, 2, 3, 4, 5),
    )
    assert Migration.from_dict(migration.to_dict()) == migration