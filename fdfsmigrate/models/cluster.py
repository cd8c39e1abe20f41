"""FastDFS cluster configuration model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from .common import ValidationError, _dump_time, _load_time, _TextEnum


class ClusterStatus(_TextEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


@dataclass
class Cluster:
    """Connection settings for one FastDFS cluster."""

    id: str = ""
    name: str = ""
    version: str = ""
    tracker_addr: str = ""
    tracker_port: int = 0
    username: str = ""
    password: str = ""
    status: str = ClusterStatus.ACTIVE.value
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def connection_string(self) -> str:
        return f"{self.tracker_addr}:{self.tracker_port}"

    def is_active(self) -> bool:
        return self.status == ClusterStatus.ACTIVE

    def validate(self) -> None:
        """Raise ValidationError if the configuration is incomplete."""
        if not self.name:
            raise ValidationError("cluster name is required")
        if not self.tracker_addr:
            raise ValidationError("tracker address is required")
        if self.tracker_port <= 0 or self.tracker_port > 65535:
            raise ValidationError("tracker port must be between 1 and 65535")
        if not self.version:
            raise ValidationError("cluster version is required")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "tracker_addr": self.tracker_addr,
            "tracker_port": self.tracker_port,
        }
        if self.username:
            result["username"] = self.username
        if self.password:
            result["password"] = self.password
        result["status"] = str(self.status)
        if self.description:
            result["description"] = self.description
        result["created_at"] = _dump_time(self.created_at)
        result["updated_at"] = _dump_time(self.updated_at)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Cluster":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            version=data.get("version", ""),
            tracker_addr=data.get("tracker_addr", ""),
            tracker_port=int(data.get("tracker_port", 0)),
            username=data.get("username", ""),
            password=data.get("password", ""),
            status=data.get("status") or ClusterStatus.ACTIVE.value,
            description=data.get("description", ""),
            created_at=_load_time(data.get("created_at")),
            updated_at=_load_time(data.get("updated_at")),
        )