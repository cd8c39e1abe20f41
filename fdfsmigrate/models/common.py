"""Shared model helpers: identifiers, pagination and API responses."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class ValidationError(ValueError):
    """Raised when a model fails validation."""


class _TextEnum(str, Enum):
    """String enum whose text form is its value."""

    def __str__(self) -> str:
        return str(self.value)


def generate_id() -> str:
    """Return a unique identifier: unix timestamp, underscore, 8 hex digits."""
    return f"{int(time.time())}_{secrets.token_hex(4)}"


@dataclass
class Pagination:
    """Page request; ``total`` is filled in by the query that uses it."""

    page: int = 0
    page_size: int = 0
    total: int = 0

    def offset(self) -> int:
        """Return the row offset, normalising page and page size first."""
        if self.page <= 0:
            self.page = 1
        if self.page_size <= 0:
            self.page_size = DEFAULT_PAGE_SIZE
        return (self.page - 1) * self.page_size

    def limit(self) -> int:
        """Return the row limit, clamped to 1..MAX_PAGE_SIZE (default 10)."""
        if self.page_size <= 0:
            self.page_size = DEFAULT_PAGE_SIZE
        if self.page_size > MAX_PAGE_SIZE:
            self.page_size = MAX_PAGE_SIZE
        return self.page_size


@dataclass
class Response:
    """Generic API response envelope."""

    code: int
    message: str
    data: Any = None


def new_success_response(data: Any) -> Response:
    """Build a 200 response carrying ``data``."""
    return Response(code=200, message="success", data=data)


def new_error_response(code: int, message: str) -> Response:
    """Build an error response with no data."""
    return Response(code=code, message=message)


def _now_like(reference: datetime | None) -> datetime:
    """Current time, aware or naive to match ``reference``."""
    return datetime.now(reference.tzinfo if reference is not None else None)


def _dump_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _load_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _format_time(value: datetime) -> str:
    """Format as ``YYYY-MM-DD HH:MM:SS`` without zone or fraction."""
    return value.replace(tzinfo=None, microsecond=0).isoformat(sep=" ")