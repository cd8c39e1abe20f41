"""Scheduled (cron) migration task model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from .common import (
    ValidationError,
    _dump_time,
    _format_time,
    _load_time,
    _now_like,
    _TextEnum,
)
from .migration import MigrationConfig


class ScheduleStatus(_TextEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class ScheduleResult(_TextEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ScheduledTask:
    """A migration run on a cron schedule."""

    id: str = ""
    name: str = ""
    cron_expr: str = ""
    task_config: MigrationConfig = field(default_factory=MigrationConfig)
    status: str = ScheduleStatus.ACTIVE.value
    next_run: datetime | None = None
    last_run: datetime | None = None
    last_result: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_active(self) -> bool:
        return self.status == ScheduleStatus.ACTIVE

    def should_run(self) -> bool:
        """True when active and the next run time has passed."""
        if not self.is_active() or self.next_run is None:
            return False
        return _now_like(self.next_run) > self.next_run

    def last_run_status(self) -> str:
        if self.last_run is None:
            return "Never run"
        return f"Last run: {_format_time(self.last_run)}, Result: {self.last_result}"

    def validate(self) -> None:
        """Raise ValidationError if name or cron expression is missing."""
        if not self.name:
            raise ValidationError("scheduled task name is required")
        if not self.cron_expr:
            raise ValidationError("cron expression is required")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "cron_expr": self.cron_expr,
            "task_config": json.loads(self.task_config.to_json()),
            "status": str(self.status),
        }
        if self.next_run is not None:
            result["next_run"] = _dump_time(self.next_run)
        if self.last_run is not None:
            result["last_run"] = _dump_time(self.last_run)
        if self.last_result:
            result["last_result"] = str(self.last_result)
        if self.description:
            result["description"] = self.description
        result["created_at"] = _dump_time(self.created_at)
        result["updated_at"] = _dump_time(self.updated_at)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScheduledTask":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            cron_expr=data.get("cron_expr", ""),
            task_config=MigrationConfig.from_json(data.get("task_config")),
            status=data.get("status") or ScheduleStatus.ACTIVE.value,
            next_run=_load_time(data.get("next_run")),
            last_run=_load_time(data.get("last_run")),
            last_result=data.get("last_result", ""),
            description=data.get("description", ""),
            created_at=_load_time(data.get("created_at")),
            updated_at=_load_time(data.get("updated_at")),
        )