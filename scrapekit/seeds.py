from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from .errors import ImportFormatError
from .models import SeedRequest, SourceSet
from .settings import BASE_URL, SHEET_TITLE_FALLBACK, START_LABEL
from .sheets import import_spreadsheet

logger = logging.getLogger(__name__)

Importer = Callable[..., Awaitable[Dict[str, Any]]]

# Characters encodeURIComponent leaves alone (besides alphanumerics and "_.-~")
_URI_COMPONENT_SAFE = "!*'()"


def search_url(term: Any) -> str:
    return f"{BASE_URL}?q={urllib.parse.quote(str(term), safe=_URI_COMPONENT_SAFE)}"


def _seed(term: Any) -> SeedRequest:
    return SeedRequest(url=search_url(term), label=START_LABEL)


def _imported_rows(run: Any) -> List[Dict[str, Any]]:
    try:
        rows = run["output"]["body"]
    except (KeyError, TypeError) as e:
        raise ImportFormatError("Spreadsheet import returned no output body.") from e
    if not isinstance(rows, list):
        raise ImportFormatError(f"Spreadsheet import body must be a list of rows, got {type(rows).__name__}")
    return rows


async def build_sources(
    search_terms: Optional[Iterable[Any]],
    spreadsheet_id: Optional[str],
    importer: Optional[Importer] = None,
) -> SourceSet:
    """
    Build the initial seed requests.

    - One seed per search term, in input order.
    - One seed per imported sheet row, in sheet order. The sheet must be a
      non-empty single-column table, otherwise ImportFormatError.

    sheet_title is the sheet's column header, or SHEET_TITLE_FALLBACK when no
    sheet was imported.
    """
    sources: List[SeedRequest] = []

    for term in search_terms or []:
        sources.append(_seed(term))

    sheet_title = SHEET_TITLE_FALLBACK

    if spreadsheet_id:
        logger.info("Importing spreadsheet...")
        run = await (importer or import_spreadsheet)(
            mode="read",
            spreadsheet_id=spreadsheet_id,
            deduplicate_by_equality=False,
            create_backup=False,
        )
        rows = _imported_rows(run)

        if not rows:
            raise ImportFormatError("Spreadsheet is empty. It must have one column with at least one row.")
        if any(not isinstance(row, Mapping) or len(row) != 1 for row in rows):
            raise ImportFormatError("Spreadsheet must have only one column. Check the actor documentation for more info.")

        logger.info("Spreadsheet successfully imported (%s rows).", len(rows))

        for row in rows:
            sources.append(_seed(next(iter(row.values()))))

        sheet_title = next(iter(rows[0]))

    return SourceSet(sources=sources, sheet_title=sheet_title)
