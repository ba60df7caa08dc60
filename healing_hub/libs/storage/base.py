"""Storage abstractions shared by the Airtable, Sheets and in-memory backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence


class StorageError(RuntimeError):
    """Raised when a storage backend request fails."""


@dataclass(slots=True)
class Record:
    """A single row: backend id plus its named fields."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    created_time: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


def utc_now_iso() -> str:
    """ISO-8601 timestamp in UTC with millisecond precision and a Z suffix."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO timestamps as written by Airtable, Sheets or ``utc_now_iso``."""

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def matches(fields: Mapping[str, Any], match: Mapping[str, Any] | None) -> bool:
    """Equality filter used by backends that filter client-side."""

    if not match:
        return True
    for key, expected in match.items():
        actual = fields.get(key)
        if isinstance(actual, list) and not isinstance(expected, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def sort_records(records: list[Record], sort: str | None) -> list[Record]:
    """Sort by a field name; a leading ``-`` means descending. Missing values sort last."""

    if not sort:
        return records
    descending = sort.startswith("-")
    key = sort.lstrip("-")
    present = [record for record in records if record.fields.get(key) not in (None, "")]
    missing = [record for record in records if record.fields.get(key) in (None, "")]
    present.sort(key=lambda record: str(record.fields[key]), reverse=descending)
    return present + missing


class BaseTable(ABC):
    """Async CRUD interface over one named table."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> Record:
        """Insert a row and return it with its backend id."""

    @abstractmethod
    async def get(self, record_id: str) -> Record | None:
        """Fetch a row by id, or ``None`` when it does not exist."""

    @abstractmethod
    async def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Merge ``fields`` into an existing row."""

    @abstractmethod
    async def all(
        self,
        *,
        match: Mapping[str, Any] | None = None,
        sort: str | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        """Return rows equal to ``match``, optionally sorted and truncated."""

    async def first(self, match: Mapping[str, Any]) -> Record | None:
        rows = await self.all(match=match, max_records=1)
        return rows[0] if rows else None

    async def create_many(self, rows: Sequence[Mapping[str, Any]]) -> list[Record]:
        return [await self.create(row) for row in rows]


__all__ = [
    "BaseTable",
    "Record",
    "StorageError",
    "matches",
    "parse_timestamp",
    "sort_records",
    "utc_now_iso",
]
