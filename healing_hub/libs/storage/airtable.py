"""Airtable-backed tables built on pyairtable."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Mapping, TypeVar

from pyairtable import Api
from pyairtable.formulas import match as match_formula
from requests import HTTPError

from .base import BaseTable, Record, StorageError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _to_record(payload: Mapping[str, Any]) -> Record:
    return Record(
        id=payload["id"],
        fields=dict(payload.get("fields") or {}),
        created_time=payload.get("createdTime"),
    )


class AirtableTable(BaseTable):
    """One Airtable table. The SDK is synchronous, so calls run in the default executor."""

    def __init__(self, api: Api, base_id: str, name: str) -> None:
        super().__init__(name)
        self._table = api.table(base_id, name)

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
        except HTTPError as exc:
            raise StorageError(f"Airtable {self.name} request failed: {exc}") from exc

    async def create(self, fields: Mapping[str, Any]) -> Record:
        payload = await self._call(self._table.create, dict(fields), typecast=True)
        return _to_record(payload)

    async def get(self, record_id: str) -> Record | None:
        loop = asyncio.get_running_loop()
        try:
            payload = await loop.run_in_executor(None, partial(self._table.get, record_id))
        except HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            if status == 404:
                return None
            raise StorageError(f"Airtable {self.name} request failed: {exc}") from exc
        return _to_record(payload)

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        payload = await self._call(self._table.update, record_id, dict(fields), typecast=True)
        return _to_record(payload)

    async def all(
        self,
        *,
        match: Mapping[str, Any] | None = None,
        sort: str | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        options: dict[str, Any] = {}
        if match:
            options["formula"] = match_formula(dict(match))
        if sort:
            options["sort"] = [sort]
        if max_records is not None:
            options["max_records"] = max_records
        rows = await self._call(self._table.all, **options)
        LOGGER.debug("airtable_fetch table=%s rows=%d", self.name, len(rows))
        return [_to_record(row) for row in rows]


def make_airtable_api(api_key: str) -> Api:
    return Api(api_key)


__all__ = ["AirtableTable", "make_airtable_api"]
