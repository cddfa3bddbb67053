"""
Spreadsheet import for seed sources.

Default importer used by build_sources(): reads a Google Sheet through gspread
with a service account and hands back the rows as a list of dicts keyed by the
header row.

Return shape (what build_sources expects from any importer):
    {"output": {"body": [ {<header>: <value>}, ... ]}}
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

import gspread
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError, GSpreadException

from .errors import SpreadsheetImportError
from .settings import SHEETS_MAX_RETRIES, SHEETS_RETRY_BACKOFF

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


def _client() -> gspread.Client:
    cred_path = os.getenv("GOOGLE_SHEETS_CRED", "").strip()
    if not cred_path or not os.path.isfile(cred_path):
        raise SpreadsheetImportError(f"Service account JSON not found: {cred_path!r} (set GOOGLE_SHEETS_CRED)")
    creds = Credentials.from_service_account_file(cred_path, scopes=SCOPES)
    return gspread.authorize(creds)


def _retryable(err: APIError) -> bool:
    # rate limits and server-side failures only; other 4xx will not get better
    code = getattr(err, "code", None)
    return code == 429 or (isinstance(code, int) and code >= 500)


def _with_backoff(fn: Callable[[], Any], *, retries: int = SHEETS_MAX_RETRIES, base: float = SHEETS_RETRY_BACKOFF, label: str = "op"):
    last_err: Optional[Exception] = None
    for attempt in range(retries):
        try:
            return fn()
        except APIError as e:
            if not _retryable(e):
                raise SpreadsheetImportError(f"Sheets {label} failed: {e}") from e
            last_err = e
            if attempt == retries - 1:
                break
            wait = base ** attempt
            logger.warning("Sheets %s failed (%s/%s): %s. Retrying in %.1fs", label, attempt + 1, retries, e, wait)
            time.sleep(wait)
        except (GSpreadException, PermissionError) as e:
            # SpreadsheetNotFound (404), PermissionError (403), WorksheetNotFound, bad headers
            raise SpreadsheetImportError(f"Sheets {label} failed: {type(e).__name__}: {e}") from e
    raise SpreadsheetImportError(f"Sheets {label} failed after {retries} retries: {last_err}") from last_err


def _dedupe_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    out: List[Dict[str, Any]] = []
    for row in rows:
        key = tuple(sorted((k, str(v)) for k, v in row.items()))
        if key in seen:
            continue
        seen.add(key)
        out.append(row)
    return out


def read_rows(
    spreadsheet_id: str,
    *,
    worksheet: Optional[str] = None,
    client: Optional[gspread.Client] = None,
) -> List[Dict[str, Any]]:
    """Blocking read of one worksheet (first one unless `worksheet` is given)."""
    gc = client or _client()
    book = _with_backoff(lambda: gc.open_by_key(spreadsheet_id), label="open")
    ws = _with_backoff(
        lambda: book.worksheet(worksheet) if worksheet else book.get_worksheet(0),
        label="worksheet",
    )
    logger.debug("Reading worksheet '%s' of %s", ws.title, spreadsheet_id)
    # cells stay strings: "007" must not turn into 7
    return _with_backoff(lambda: ws.get_all_records(numericise_ignore=["all"]), label="read")


async def import_spreadsheet(
    *,
    mode: str,
    spreadsheet_id: str,
    deduplicate_by_equality: bool = False,
    create_backup: bool = False,
    worksheet: Optional[str] = None,
    client: Optional[gspread.Client] = None,
) -> Dict[str, Any]:
    if mode != "read":
        raise ValueError(f"Unsupported spreadsheet import mode: {mode!r}")
    if create_backup:
        logger.info("create_backup requested; read mode never writes, skipping backup.")

    rows = await asyncio.to_thread(read_rows, spreadsheet_id, worksheet=worksheet, client=client)
    if deduplicate_by_equality:
        rows = _dedupe_rows(rows)

    return {"output": {"body": rows}}
