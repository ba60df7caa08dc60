"""Google Sheets-backed tables built on gspread.

Each table is a worksheet whose first row holds the field names. The ``ID``
column stores the record id; missing columns are appended on first write.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from functools import partial
from typing import Any, Callable, Mapping, TypeVar

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import ValueInputOption, ValueRenderOption, rowcol_to_a1

from .base import BaseTable, Record, StorageError, matches, sort_records

LOGGER = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
]
ID_COLUMN = "ID"
# User text is stored verbatim; never parsed as a formula or coerced to a number.
WRITE_OPTION = ValueInputOption.raw
READ_OPTION = ValueRenderOption.unformatted

T = TypeVar("T")


def _new_id() -> str:
    return f"gs_{int(time.time() * 1000)}_{random.randint(0, 99999):05d}"


def _encode(value: Any) -> Any:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    if value is None:
        return ""
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, str):
        upper = value.upper()
        if upper == "TRUE":
            return True
        if upper == "FALSE":
            return False
    return value


def make_sheets_client(
    *,
    credentials_file: str | None = None,
    client_email: str | None = None,
    private_key: str | None = None,
    project_id: str | None = None,
) -> gspread.Client:
    """Authorise a service account from a key file or from inline env credentials."""

    if credentials_file:
        creds = Credentials.from_service_account_file(credentials_file, scopes=SCOPES)
    else:
        info = {
            "type": "service_account",
            "project_id": project_id or "",
            "client_email": client_email,
            # Keys pasted into env files carry literal "\n" sequences.
            "private_key": (private_key or "").replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
    return gspread.authorize(creds)


class SheetsTable(BaseTable):
    """One worksheet of the configured spreadsheet."""

    def __init__(self, spreadsheet: gspread.Spreadsheet, name: str) -> None:
        super().__init__(name)
        self._spreadsheet = spreadsheet
        self._worksheet: gspread.Worksheet | None = None

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
        except gspread.exceptions.GSpreadException as exc:
            raise StorageError(f"Google Sheets {self.name} request failed: {exc}") from exc

    def _sheet(self) -> gspread.Worksheet:
        if self._worksheet is None:
            try:
                self._worksheet = self._spreadsheet.worksheet(self.name)
            except gspread.exceptions.WorksheetNotFound:
                LOGGER.info("sheets_create_worksheet name=%s", self.name)
                self._worksheet = self._spreadsheet.add_worksheet(title=self.name, rows=1000, cols=26)
                self._worksheet.update_cell(1, 1, ID_COLUMN)
        return self._worksheet

    def _header(self) -> list[str]:
        return [cell for cell in self._sheet().row_values(1) if cell]

    def _ensure_columns(self, header: list[str], keys: list[str]) -> list[str]:
        sheet = self._sheet()
        missing = [key for key in keys if key not in header]
        if not missing:
            return header
        needed = len(header) + len(missing) - sheet.col_count
        if needed > 0:
            sheet.add_cols(needed)
        for offset, key in enumerate(missing, start=len(header) + 1):
            sheet.update_cell(1, offset, key)
        return header + missing

    def _rows_sync(self) -> list[Record]:
        rows = self._sheet().get_all_records(
            default_blank="", numericise_ignore=["all"], value_render_option=READ_OPTION
        )
        records: list[Record] = []
        for index, row in enumerate(rows, start=2):
            record_id = str(row.get(ID_COLUMN) or f"row{index}")
            fields = {key: _decode(value) for key, value in row.items() if key != ID_COLUMN}
            records.append(Record(id=record_id, fields=fields, created_time=fields.get("Timestamp")))
        return records

    def _create_sync(self, fields: Mapping[str, Any]) -> Record:
        header = self._ensure_columns(self._header() or [ID_COLUMN], [ID_COLUMN, *fields.keys()])
        record_id = _new_id()
        values = {ID_COLUMN: record_id, **fields}
        row = [_encode(values.get(column)) for column in header]
        self._sheet().append_row(row, value_input_option=WRITE_OPTION)
        return Record(id=record_id, fields=dict(fields))

    def _update_sync(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        header = self._ensure_columns(self._header(), list(fields.keys()))
        for index, record in enumerate(self._rows_sync(), start=2):
            if record.id != record_id:
                continue
            updates = [
                {"range": rowcol_to_a1(index, header.index(key) + 1), "values": [[_encode(value)]]}
                for key, value in fields.items()
            ]
            if updates:
                self._sheet().batch_update(updates, value_input_option=WRITE_OPTION)
            record.fields.update(fields)
            return record
        raise StorageError(f"{self.name}: record {record_id} not found")

    async def create(self, fields: Mapping[str, Any]) -> Record:
        return await self._call(self._create_sync, dict(fields))

    async def get(self, record_id: str) -> Record | None:
        rows = await self._call(self._rows_sync)
        return next((record for record in rows if record.id == record_id), None)

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        return await self._call(self._update_sync, record_id, dict(fields))

    async def all(
        self,
        *,
        match: Mapping[str, Any] | None = None,
        sort: str | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        rows = await self._call(self._rows_sync)
        rows = sort_records([record for record in rows if matches(record.fields, match)], sort)
        if max_records is not None:
            rows = rows[:max_records]
        return rows


__all__ = ["SheetsTable", "make_sheets_client"]
