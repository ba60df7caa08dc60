"""Copy Airtable tables into the Google Sheets backend.

Usage: python scripts/migrate_to_sheets.py [--dry-run] [--table users|reflections|conversations|feedback]
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Dict, Mapping

from healing_hub.libs.logging_utils import configure_logging
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.storage import (
    CONVERSATION_MESSAGES,
    CONVERSATIONS,
    FEEDBACK,
    REFLECTIONS,
    USERS,
    BaseTable,
    StorageError,
)
from healing_hub.libs.storage.airtable import AirtableTable, make_airtable_api
from healing_hub.libs.storage.sheets import SheetsTable, make_sheets_client

TABLES = {
    "users": (USERS,),
    "reflections": (REFLECTIONS,),
    "conversations": (CONVERSATIONS, CONVERSATION_MESSAGES),
    "feedback": (FEEDBACK,),
}

# Columns holding ids of rows in another table; remapped to the new Sheets ids.
REFERENCES = {
    REFLECTIONS: ("User ID", USERS),
    CONVERSATIONS: ("User ID", USERS),
    CONVERSATION_MESSAGES: ("Conversation ID", CONVERSATIONS),
}


def _remap(table: str, fields: Mapping[str, Any], id_maps: Dict[str, Dict[str, str]]) -> Dict[str, Any]:
    row = dict(fields)
    reference = REFERENCES.get(table)
    if reference:
        column, target = reference
        value = row.get(column)
        if isinstance(value, list):
            value = value[0] if value else None
        if value:
            row[column] = id_maps.get(target, {}).get(value, value)
    return row


async def migrate_table(
    name: str,
    source: BaseTable,
    target: BaseTable,
    *,
    id_maps: Dict[str, Dict[str, str]],
    dry_run: bool,
) -> tuple[int, int]:
    records = await source.all()
    print(f"{name}: {len(records)} record(s)")
    mapping = id_maps.setdefault(name, {})
    migrated = errors = 0
    for record in records:
        row = _remap(name, record.fields, id_maps)
        if dry_run:
            print(f"  [dry-run] would migrate {record.id}")
            migrated += 1
            continue
        try:
            created = await target.create(row)
        except StorageError as exc:
            print(f"  failed {record.id}: {exc}")
            errors += 1
            continue
        mapping[record.id] = created.id
        migrated += 1
    return migrated, errors


async def amain() -> int:
    parser = argparse.ArgumentParser(description="Migrate Airtable data into Google Sheets.")
    parser.add_argument("--dry-run", action="store_true", help="List what would be copied without writing.")
    parser.add_argument("--table", choices=sorted(TABLES), default=None, help="Only migrate one table.")
    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    if not settings.airtable_configured:
        raise SystemExit("AIRTABLE_API_KEY and AIRTABLE_BASE_ID are required.")
    if not settings.sheets_configured:
        raise SystemExit("GOOGLE_SHEETS_ID and Google service-account credentials are required.")

    api = make_airtable_api(settings.airtable_api_key or "")
    client = make_sheets_client(
        credentials_file=settings.google_credentials_file,
        client_email=settings.google_client_email,
        private_key=settings.google_private_key,
        project_id=settings.google_project_id,
    )
    spreadsheet = client.open_by_key(settings.google_sheets_spreadsheet_id)

    selected = [args.table] if args.table else list(TABLES)
    print(f"Mode: {'DRY RUN' if args.dry_run else 'LIVE'}; tables: {', '.join(selected)}")

    id_maps: Dict[str, Dict[str, str]] = {}
    failures = 0
    for key in selected:
        for name in TABLES[key]:
            migrated, errors = await migrate_table(
                name,
                AirtableTable(api, settings.airtable_base_id or "", name),
                SheetsTable(spreadsheet, name),
                id_maps=id_maps,
                dry_run=args.dry_run,
            )
            failures += errors
            print(f"  migrated={migrated} errors={errors}")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(amain()))
