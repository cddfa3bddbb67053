import asyncio

import gspread
import pytest
from gspread.exceptions import APIError, SpreadsheetNotFound, WorksheetNotFound

from scrapekit import seeds, sheets
from scrapekit.errors import SpreadsheetImportError


def _api_error(code=429):
    err = APIError.__new__(APIError)
    Exception.__init__(err, "rate limited")
    err.response = None
    err.code = code
    err.error = {"code": code, "message": "rate limited", "status": "RESOURCE_EXHAUSTED"}
    return err


class FakeWorksheet:
    def __init__(self, title, records):
        self.title = title
        self._records = records

    def get_all_records(self, **kwargs):
        return list(self._records)


class FakeBook:
    def __init__(self, tabs):
        self._tabs = tabs

    def get_worksheet(self, index):
        return list(self._tabs.values())[index]

    def worksheet(self, title):
        return self._tabs[title]


class FakeClient:
    def __init__(self, book):
        self.book = book
        self.opened = []

    def open_by_key(self, key):
        self.opened.append(key)
        return self.book


@pytest.fixture
def client():
    return FakeClient(
        FakeBook(
            {
                "Terms": FakeWorksheet("Terms", [{"Term": "a"}, {"Term": "b"}, {"Term": "a"}]),
                "Other": FakeWorksheet("Other", [{"Date": "2020"}]),
            }
        )
    )


def test_import_reads_first_worksheet(client):
    run = asyncio.run(sheets.import_spreadsheet(mode="read", spreadsheet_id="sid", client=client))
    assert run == {"output": {"body": [{"Term": "a"}, {"Term": "b"}, {"Term": "a"}]}}
    assert client.opened == ["sid"]


def test_import_named_worksheet(client):
    run = asyncio.run(sheets.import_spreadsheet(mode="read", spreadsheet_id="sid", worksheet="Other", client=client))
    assert run["output"]["body"] == [{"Date": "2020"}]


def test_import_deduplicates_when_asked(client):
    run = asyncio.run(
        sheets.import_spreadsheet(mode="read", spreadsheet_id="sid", deduplicate_by_equality=True, client=client)
    )
    assert run["output"]["body"] == [{"Term": "a"}, {"Term": "b"}]


def test_import_rejects_other_modes(client):
    with pytest.raises(ValueError):
        asyncio.run(sheets.import_spreadsheet(mode="write", spreadsheet_id="sid", client=client))


def test_missing_credentials(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOGLE_SHEETS_CRED", str(tmp_path / "nope.json"))
    with pytest.raises(SpreadsheetImportError):
        sheets.read_rows("sid")


def test_backoff_retries_then_succeeds(monkeypatch):
    monkeypatch.setattr(sheets.time, "sleep", lambda s: None)
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise _api_error()
        return "ok"

    assert sheets._with_backoff(flaky, retries=4, label="read") == "ok"
    assert len(attempts) == 3


def test_backoff_gives_up(monkeypatch):
    monkeypatch.setattr(sheets.time, "sleep", lambda s: None)

    def always_fails():
        raise _api_error()

    with pytest.raises(SpreadsheetImportError):
        sheets._with_backoff(always_fails, retries=2, label="read")


class GridWorksheet(gspread.Worksheet):
    """gspread Worksheet whose cell grid is served from memory instead of the API."""

    def __init__(self, title, values):
        self._properties = {"title": title, "sheetId": 0, "index": 0}
        self._values = values

    def get(self, range_name=None, **kwargs):
        return [list(row) for row in self._values]


def test_cells_are_not_numericised():
    grid = GridWorksheet("Term", [["Term"], ["007"], ["1e3"], ["cats"]])
    client = FakeClient(FakeBook({"Term": grid}))

    async def importer(**kwargs):
        return await sheets.import_spreadsheet(client=client, **kwargs)

    result = asyncio.run(seeds.build_sources([], "s" * 44, importer=importer))
    assert [s.url.split("?q=", 1)[1] for s in result.sources] == ["007", "1e3", "cats"]
    assert result.sheet_title == "Term"


class RaisingClient:
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def open_by_key(self, key):
        self.calls += 1
        raise self.exc


@pytest.mark.parametrize("exc", [SpreadsheetNotFound("not found"), PermissionError(), WorksheetNotFound("Terms")])
def test_gspread_failures_become_import_errors(monkeypatch, exc):
    monkeypatch.setattr(sheets.time, "sleep", lambda s: pytest.fail("must not retry"))
    client = RaisingClient(exc)
    with pytest.raises(SpreadsheetImportError):
        sheets.read_rows("sid", client=client)
    assert client.calls == 1


@pytest.mark.parametrize("code", [400, 403, 404])
def test_client_errors_are_not_retried(monkeypatch, code):
    monkeypatch.setattr(sheets.time, "sleep", lambda s: pytest.fail("must not retry"))
    client = RaisingClient(_api_error(code))
    with pytest.raises(SpreadsheetImportError):
        sheets.read_rows("sid", client=client)
    assert client.calls == 1


def test_server_errors_are_retried_without_trailing_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(sheets.time, "sleep", sleeps.append)
    client = RaisingClient(_api_error(503))
    with pytest.raises(SpreadsheetImportError):
        sheets._with_backoff(lambda: client.open_by_key("sid"), retries=3, base=2.0, label="open")
    assert client.calls == 3
    assert sleeps == [1.0, 2.0]
