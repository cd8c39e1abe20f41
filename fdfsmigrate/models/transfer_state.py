"""Resumable transfer state: per-file progress split into chunks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping

from .common import _dump_time, _load_time, _now_like, _TextEnum


class TransferStatus(_TextEnum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ChunkState:
    index: int = 0
    offset: int = 0
    size: int = 0
    completed: bool = False
    checksum: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "index": self.index,
            "offset": self.offset,
            "size": self.size,
            "completed": self.completed,
        }
        if self.checksum:
            result["checksum"] = self.checksum
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChunkState":
        return cls(
            index=int(data.get("index", 0)),
            offset=int(data.get("offset", 0)),
            size=int(data.get("size", 0)),
            completed=bool(data.get("completed", False)),
            checksum=data.get("checksum", ""),
        )


@dataclass
class TransferState:
    """Progress of one file transfer, used to resume interrupted copies."""

    id: str = ""
    task_id: str = ""
    file_id: str = ""
    file_path: str = ""
    total_size: int = 0
    transferred_size: int = 0
    chunk_size: int = 0
    chunk_states: list[ChunkState] = field(default_factory=list)
    status: str = TransferStatus.PENDING.value
    checksum: str = ""
    last_update: datetime | None = None
    created_at: datetime | None = None

    def progress(self) -> float:
        """Percentage of bytes transferred."""
        if self.total_size == 0:
            return 0.0
        return self.transferred_size / self.total_size * 100

    def completed_chunks(self) -> int:
        return sum(1 for chunk in self.chunk_states if chunk.completed)

    def total_chunks(self) -> int:
        return len(self.chunk_states)

    def remaining_size(self) -> int:
        return self.total_size - self.transferred_size

    def is_completed(self) -> bool:
        return self.status == TransferStatus.COMPLETED

    def is_failed(self) -> bool:
        return self.status == TransferStatus.FAILED

    def is_running(self) -> bool:
        return self.status == TransferStatus.RUNNING

    def can_resume(self) -> bool:
        return self.status in (TransferStatus.PAUSED, TransferStatus.FAILED)

    def next_incomplete_chunk(self) -> ChunkState | None:
        """The first chunk not yet completed (the stored object), or None."""
        return next((chunk for chunk in self.chunk_states if not chunk.completed), None)

    def update_chunk_state(self, index: int, completed: bool, checksum: str = "") -> None:
        """Mark a chunk; out-of-range indexes are ignored, empty checksums kept."""
        if 0 <= index < len(self.chunk_states):
            chunk = self.chunk_states[index]
            chunk.completed = completed
            if checksum:
                chunk.checksum = checksum

    def progress_string(self) -> str:
        return (
            f"{self.progress():.2f}% "
            f"({self.completed_chunks()}/{self.total_chunks()} chunks)"
        )

    def transfer_speed(self) -> float:
        """Average bytes per second since creation."""
        if self.created_at is None:
            return 0.0
        duration = (_now_like(self.created_at) - self.created_at).total_seconds()
        if duration <= 0:
            return 0.0
        return self.transferred_size / duration

    def estimated_time_remaining(self) -> timedelta:
        """Remaining time at the average speed, in whole seconds."""
        speed = self.transfer_speed()
        if speed <= 0:
            return timedelta(0)
        return timedelta(seconds=int(self.remaining_size() / speed))

    def touch(self) -> None:
        """Record that the state is being updated now."""
        self.last_update = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "task_id": self.task_id,
            "file_id": self.file_id,
            "file_path": self.file_path,
            "total_size": self.total_size,
            "transferred_size": self.transferred_size,
            "chunk_size": self.chunk_size,
            "chunk_states": [chunk.to_dict() for chunk in self.chunk_states],
            "status": str(self.status),
        }
        if self.checksum:
            result["checksum"] = self.checksum
        result["last_update"] = _dump_time(self.last_update)
        result["created_at"] = _dump_time(self.created_at)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransferState":
        return cls(
            id=data.get("id", ""),
            task_id=data.get("task_id", ""),
            file_id=data.get("file_id", ""),
            file_path=data.get("file_path", ""),
            total_size=int(data.get("total_size", 0)),
            transferred_size=int(data.get("transferred_size", 0)),
            chunk_size=int(data.get("chunk_size", 0)),
            chunk_states=[ChunkState.from_dict(c) for c in data.get("chunk_states") or []],
            status=data.get("status") or TransferStatus.PENDING.value,
            checksum=data.get("checksum", ""),
            last_update=_load_time(data.get("last_update")),
            created_at=_load_time(data.get("created_at")),
        )