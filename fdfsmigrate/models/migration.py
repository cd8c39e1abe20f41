"""Migration task model and its JSON-stored configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping

from .common import ValidationError, _dump_time, _load_time, _TextEnum

_MICROSECOND = timedelta(microseconds=1)


class MigrationStatus(_TextEnum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TimeFilter:
    start_time: datetime | None = None
    end_time: datetime | None = None

    def _as_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.start_time is not None:
            result["start_time"] = _dump_time(self.start_time)
        if self.end_time is not None:
            result["end_time"] = _dump_time(self.end_time)
        return result

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "TimeFilter":
        return cls(
            start_time=_load_time(data.get("start_time")),
            end_time=_load_time(data.get("end_time")),
        )


@dataclass
class FileTypeFilter:
    include_extensions: list[str] = field(default_factory=list)
    exclude_extensions: list[str] = field(default_factory=list)
    include_mime_types: list[str] = field(default_factory=list)
    exclude_mime_types: list[str] = field(default_factory=list)

    _KEYS = (
        "include_extensions",
        "exclude_extensions",
        "include_mime_types",
        "exclude_mime_types",
    )

    def _as_dict(self) -> dict[str, Any]:
        return {key: list(getattr(self, key)) for key in self._KEYS if getattr(self, key)}

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "FileTypeFilter":
        return cls(**{key: list(data.get(key) or []) for key in cls._KEYS})


@dataclass
class RetryConfig:
    max_retries: int = 0
    retry_interval: timedelta = timedelta(0)
    backoff_factor: float = 0.0

    def _as_dict(self) -> dict[str, Any]:
        # The interval is stored as nanoseconds.
        return {
            "max_retries": self.max_retries,
            "retry_interval": (self.retry_interval // _MICROSECOND) * 1000,
            "backoff_factor": self.backoff_factor,
        }

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "RetryConfig":
        return cls(
            max_retries=int(data.get("max_retries", 0)),
            retry_interval=timedelta(microseconds=int(data.get("retry_interval", 0)) // 1000),
            backoff_factor=float(data.get("backoff_factor", 0.0)),
        )


@dataclass
class MigrationConfig:
    """Filters, concurrency and retry settings of a migration."""

    time_filter: TimeFilter | None = None
    file_type_filter: FileTypeFilter | None = None
    incremental_sync: bool = False
    concurrent_workers: int = 0
    retry_config: RetryConfig | None = None
    verification_enabled: bool = False

    def _as_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.time_filter is not None:
            result["time_filter"] = self.time_filter._as_dict()
        if self.file_type_filter is not None:
            result["file_type_filter"] = self.file_type_filter._as_dict()
        result["incremental_sync"] = self.incremental_sync
        result["concurrent_workers"] = self.concurrent_workers
        result["retry_config"] = (
            self.retry_config._as_dict() if self.retry_config is not None else None
        )
        result["verification_enabled"] = self.verification_enabled
        return result

    def to_json(self) -> str:
        """Serialise to the JSON text stored in the database."""
        return json.dumps(self._as_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str | bytes | Mapping[str, Any] | None) -> "MigrationConfig":
        """Build from JSON text, bytes or an already decoded mapping; None gives defaults."""
        if data is None:
            return cls()
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        if isinstance(data, str):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise TypeError(f"cannot read migration config from {type(data).__name__}")
        time_filter = data.get("time_filter")
        file_type_filter = data.get("file_type_filter")
        retry_config = data.get("retry_config")
        return cls(
            time_filter=TimeFilter._from_dict(time_filter) if time_filter is not None else None,
            file_type_filter=(
                FileTypeFilter._from_dict(file_type_filter)
                if file_type_filter is not None
                else None
            ),
            incremental_sync=bool(data.get("incremental_sync", False)),
            concurrent_workers=int(data.get("concurrent_workers", 0)),
            retry_config=RetryConfig._from_dict(retry_config) if retry_config is not None else None,
            verification_enabled=bool(data.get("verification_enabled", False)),
        )


@dataclass
class Migration:
    """A migration job between two clusters."""

    id: str = ""
    name: str = ""
    source_cluster_id: str = ""
    target_cluster_id: str = ""
    config: MigrationConfig = field(default_factory=MigrationConfig)
    status: str = MigrationStatus.PENDING.value
    progress: float = 0.0
    total_files: int = 0
    processed_files: int = 0
    total_size: int = 0
    processed_size: int = 0
    error_message: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    def is_running(self) -> bool:
        return self.status == MigrationStatus.RUNNING

    def is_completed(self) -> bool:
        return self.status == MigrationStatus.COMPLETED

    def is_failed(self) -> bool:
        return self.status == MigrationStatus.FAILED

    def can_start(self) -> bool:
        return self.status in (MigrationStatus.PENDING, MigrationStatus.PAUSED)

    def can_pause(self) -> bool:
        return self.status == MigrationStatus.RUNNING

    def can_resume(self) -> bool:
        return self.status == MigrationStatus.PAUSED

    def progress_percentage(self) -> str:
        return f"{self.progress:.2f}%"

    def processed_files_ratio(self) -> float:
        if self.total_files == 0:
            return 0.0
        return self.processed_files / self.total_files

    def processed_size_ratio(self) -> float:
        if self.total_size == 0:
            return 0.0
        return self.processed_size / self.total_size

    def validate(self) -> None:
        """Raise ValidationError if the migration is not well formed."""
        if not self.name:
            raise ValidationError("migration name is required")
        if not self.source_cluster_id:
            raise ValidationError("source cluster ID is required")
        if not self.target_cluster_id:
            raise ValidationError("target cluster ID is required")
        if self.source_cluster_id == self.target_cluster_id:
            raise ValidationError("source and target cluster cannot be the same")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "source_cluster_id": self.source_cluster_id,
            "target_cluster_id": self.target_cluster_id,
            "config": self.config._as_dict(),
            "status": str(self.status),
            "progress": self.progress,
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "total_size": self.total_size,
            "processed_size": self.processed_size,
        }
        if self.error_message:
            result["error_message"] = self.error_message
        result["created_at"] = _dump_time(self.created_at)
        result["updated_at"] = _dump_time(self.updated_at)
        if self.completed_at is not None:
            result["completed_at"] = _dump_time(self.completed_at)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Migration":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            source_cluster_id=data.get("source_cluster_id", ""),
            target_cluster_id=data.get("target_cluster_id", ""),
            config=MigrationConfig.from_json(data.get("config")),
            status=data.get("status") or MigrationStatus.PENDING.value,
            progress=float(data.get("progress", 0.0)),
            total_files=int(data.get("total_files", 0)),
            processed_files=int(data.get("processed_files", 0)),
            total_size=int(data.get("total_size", 0)),
            processed_size=int(data.get("processed_size", 0)),
            error_message=data.get("error_message", ""),
            created_at=_load_time(data.get("created_at")),
            updated_at=_load_time(data.get("updated_at")),
            completed_at=_load_time(data.get("completed_at")),
        )