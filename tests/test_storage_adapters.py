import gspread
import pytest
from gspread.utils import a1_to_rowcol

from healing_hub.libs.storage import StorageError
from healing_hub.libs.storage.airtable import AirtableTable
from healing_hub.libs.storage.sheets import SheetsTable


class _Worksheet:
    def __init__(self):
        self.grid = []
        self.col_count = 2
        self.input_options = []
        self.read_options = []

    def _cell(self, row, col, value):
        while len(self.grid) < row:
            self.grid.append([])
        line = self.grid[row - 1]
        while len(line) < col:
            line.append("")
        line[col - 1] = value

    def update_cell(self, row, col, value):
        self._cell(row, col, value)

    def row_values(self, row):
        return list(self.grid[row - 1]) if len(self.grid) >= row else []

    def add_cols(self, count):
        self.col_count += count

    def append_row(self, values, value_input_option=None):
        self.input_options.append(value_input_option)
        self.grid.append(list(values))

    def batch_update(self, updates, value_input_option=None):
        self.input_options.append(value_input_option)
        for update in updates:
            row, col = a1_to_rowcol(update["range"])
            self._cell(row, col, update["values"][0][0])

    def get_all_records(self, default_blank="", numericise_ignore=None, value_render_option=None):
        self.read_options.append((numericise_ignore, value_render_option))
        header = self.grid[0]
        return [
            {key: (line[index] if index < len(line) else default_blank) for index, key in enumerate(header)}
            for line in self.grid[1:]
        ]


class _Spreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, name):
        if name not in self.sheets:
            raise gspread.exceptions.WorksheetNotFound(name)
        return self.sheets[name]

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = _Worksheet()
        return self.sheets[title]


@pytest.mark.asyncio
async def test_sheets_table_creates_worksheet_and_round_trips_fields():
    spreadsheet = _Spreadsheet()
    table = SheetsTable(spreadsheet, "Feedback")

    created = await table.create({"Title": "Hello", "Status": "New", "Archived": False})
    assert created.id.startswith("gs_")
    assert spreadsheet.sheets["Feedback"].grid[0] == ["ID", "Title", "Status", "Archived"]

    await table.create({"Title": "Second", "Status": "Closed", "Email": "a@example.com"})
    assert spreadsheet.sheets["Feedback"].grid[0][-1] == "Email"

    fetched = await table.get(created.id)
    assert fetched.get("Archived") is False
    assert fetched.get("Email") == ""

    updated = await table.update(created.id, {"Status": "Resolved"})
    assert updated.get("Status") == "Resolved"
    rows = await table.all(match={"Status": "Resolved"})
    assert [row.id for row in rows] == [created.id]

    with pytest.raises(StorageError):
        await table.update("gs_missing", {"Status": "Closed"})


@pytest.mark.asyncio
async def test_sheets_table_stores_user_text_verbatim():
    spreadsheet = _Spreadsheet()
    table = SheetsTable(spreadsheet, "Users")

    created = await table.create({"Healing Name": "007", "Reflection": "=IMPORTXML(\"http://x\", \"//a\")"})
    await table.update(created.id, {"Reflection": "=1+1"})

    worksheet = spreadsheet.sheets["Users"]
    assert worksheet.input_options == ["RAW", "RAW"]
    assert all(option == (["all"], "UNFORMATTED_VALUE") for option in worksheet.read_options)

    [row] = await table.all(match={"Healing Name": "007"})
    assert row.id == created.id
    assert row.get("Reflection") == "=1+1"


class _AirtableTableApi:
    def __init__(self):
        self.options = None

    def all(self, **options):
        self.options = options
        return [{"id": "rec1", "createdTime": "2024-01-01T00:00:00.000Z", "fields": {"Healing Name": "Luna"}}]

    def create(self, fields, typecast=False):
        return {"id": "rec2", "fields": fields}


class _Api:
    def __init__(self):
        self.table_api = _AirtableTableApi()

    def table(self, base_id, name):
        return self.table_api


@pytest.mark.asyncio
async def test_airtable_table_translates_queries():
    api = _Api()
    table = AirtableTable(api, "appBase", "Reflections")

    rows = await table.all(match={"Healing Name": "Luna"}, sort="-Timestamp", max_records=5)

    assert rows[0].id == "rec1"
    assert rows[0].created_time == "2024-01-01T00:00:00.000Z"
    assert "Healing Name" in str(api.table_api.options["formula"])
    assert api.table_api.options["sort"] == ["-Timestamp"]
    assert api.table_api.options["max_records"] == 5

    created = await table.create({"Healing Name": "Sol"})
    assert created.id == "rec2"
