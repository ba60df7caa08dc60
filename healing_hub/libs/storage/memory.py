"""In-process table used for local demos and tests."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Mapping

from .base import BaseTable, Record, StorageError, matches, sort_records, utc_now_iso


class MemoryTable(BaseTable):
    """Dict-backed table. Nothing survives a restart."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._rows: dict[str, Record] = {}

    async def create(self, fields: Mapping[str, Any]) -> Record:
        record = Record(id=f"rec{uuid.uuid4().hex[:14]}", fields=dict(fields), created_time=utc_now_iso())
        self._rows[record.id] = record
        return copy.deepcopy(record)

    async def get(self, record_id: str) -> Record | None:
        record = self._rows.get(record_id)
        return copy.deepcopy(record) if record else None

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        record = self._rows.get(record_id)
        if record is None:
            raise StorageError(f"{self.name}: record {record_id} not found")
        record.fields.update(fields)
        return copy.deepcopy(record)

    async def all(
        self,
        *,
        match: Mapping[str, Any] | None = None,
        sort: str | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        rows = [copy.deepcopy(record) for record in self._rows.values() if matches(record.fields, match)]
        rows = sort_records(rows, sort)
        if max_records is not None:
            rows = rows[:max_records]
        return rows

    def clear(self) -> None:
        self._rows.clear()


__all__ = ["MemoryTable"]
