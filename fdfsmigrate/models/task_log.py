"""Task log entry model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from .common import _dump_time, _format_time, _load_time, _TextEnum


class LogLevel(_TextEnum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class TaskType(_TextEnum):
    MIGRATION = "migration"
    SCHEDULE = "schedule"
    SYSTEM = "system"


_LEVEL_COLORS = {
    LogLevel.ERROR.value: "red",
    LogLevel.FATAL.value: "red",
    LogLevel.WARN.value: "orange",
    LogLevel.INFO.value: "blue",
    LogLevel.DEBUG.value: "gray",
}

_ZERO_TIME = datetime(1, 1, 1)


@dataclass
class TaskLog:
    """One log line attached to a task."""

    id: str = ""
    task_id: str = ""
    task_type: str = ""
    level: str = ""
    message: str = ""
    details: dict[str, Any] | None = None
    created_at: datetime | None = None

    def is_error(self) -> bool:
        return self.level in (LogLevel.ERROR, LogLevel.FATAL)

    def is_warning(self) -> bool:
        return self.level == LogLevel.WARN

    def formatted_time(self) -> str:
        return _format_time(self.created_at or _ZERO_TIME)

    def level_color(self) -> str:
        """Display colour for the level; black for unknown levels."""
        return _LEVEL_COLORS.get(str(self.level), "black")

    def add_detail(self, key: str, value: Any) -> None:
        if self.details is None:
            self.details = {}
        self.details[key] = value

    def get_detail(self, key: str, default: Any = None) -> Any:
        if self.details is None:
            return default
        return self.details.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "task_id": self.task_id,
            "task_type": str(self.task_type),
            "level": str(self.level),
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        result["created_at"] = _dump_time(self.created_at)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskLog":
        details = data.get("details")
        return cls(
            id=data.get("id", ""),
            task_id=data.get("task_id", ""),
            task_type=data.get("task_type", ""),
            level=data.get("level", ""),
            message=data.get("message", ""),
            details=dict(details) if details is not None else None,
            created_at=_load_time(data.get("created_at")),
        )