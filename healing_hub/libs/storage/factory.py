"""Backend selection and the process-wide table registry."""

from __future__ import annotations

import logging
from typing import Callable

from healing_hub.libs.schemas.settings import AppSettings, get_settings

from .base import BaseTable
from .memory import MemoryTable

LOGGER = logging.getLogger(__name__)

BACKENDS = ("airtable", "sheets", "memory")


def resolve_backend(settings: AppSettings) -> str:
    """Pick the storage backend; ``auto`` prefers Airtable, then Sheets, then memory."""

    requested = (settings.storage_backend or "auto").lower()
    if requested in BACKENDS:
        return requested
    if requested != "auto":
        raise ValueError(f"Unknown storage backend '{settings.storage_backend}'")
    if settings.airtable_configured:
        return "airtable"
    if settings.sheets_configured:
        return "sheets"
    return "memory"


class Storage:
    """Hands out one cached table object per table name."""

    def __init__(self, backend: str, factory: Callable[[str], BaseTable]) -> None:
        self.backend = backend
        self._factory = factory
        self._tables: dict[str, BaseTable] = {}

    def table(self, name: str) -> BaseTable:
        table = self._tables.get(name)
        if table is None:
            table = self._factory(name)
            self._tables[name] = table
        return table

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Storage":
        backend = resolve_backend(settings)
        if backend == "airtable":
            from .airtable import AirtableTable, make_airtable_api

            api = make_airtable_api(settings.airtable_api_key or "")
            base_id = settings.airtable_base_id or ""
            return cls(backend, lambda name: AirtableTable(api, base_id, name))
        if backend == "sheets":
            from .sheets import SheetsTable, make_sheets_client

            client = make_sheets_client(
                credentials_file=settings.google_credentials_file,
                client_email=settings.google_client_email,
                private_key=settings.google_private_key,
                project_id=settings.google_project_id,
            )
            spreadsheet = client.open_by_key(settings.google_sheets_spreadsheet_id)
            return cls(backend, lambda name: SheetsTable(spreadsheet, name))
        LOGGER.warning(
            "No Airtable or Google Sheets credentials configured; using in-memory storage (data is not persisted)"
        )
        return cls(backend, MemoryTable)


_STORAGE: Storage | None = None


def get_storage() -> Storage:
    global _STORAGE
    if _STORAGE is None:
        _STORAGE = Storage.from_settings(get_settings())
        LOGGER.info("storage_backend=%s", _STORAGE.backend)
    return _STORAGE


def set_storage(storage: Storage | None) -> None:
    global _STORAGE
    _STORAGE = storage


def get_table(name: str) -> BaseTable:
    return get_storage().table(name)


__all__ = ["BACKENDS", "Storage", "get_storage", "get_table", "resolve_backend", "set_storage"]
