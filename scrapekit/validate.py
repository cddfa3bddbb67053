from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Optional

from .errors import (
    ConfigMissingError,
    InvalidFormatError,
    RequiredFieldMissingError,
    TypeMismatchError,
)
from .settings import SPREADSHEET_ID_LENGTH


def _is_number(value: Any) -> bool:
    # bool is an int subclass; a flag is never a valid count
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS = {
    "array": lambda v: isinstance(v, (list, tuple)),
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "object": lambda v: isinstance(v, Mapping),
}


def _check_type(run_input: Mapping[str, Any], key: str, expected: str) -> None:
    value = run_input.get(key)
    if value is None:
        return
    if not _TYPE_CHECKS[expected](value):
        raise TypeMismatchError(key, expected)


def validate_input(run_input: Optional[Dict[str, Any]]) -> None:
    """
    Reject a run input that cannot start a run.

    The only mutation is normalizing a missing `searchTerms` to [].
    Raises an InputError subclass on the first violation found.
    """
    if run_input is None:
        raise ConfigMissingError("INPUT is missing.")
    if not isinstance(run_input, Mapping):
        raise TypeMismatchError("INPUT", "object")

    if run_input.get("searchTerms") is None:
        run_input["searchTerms"] = []

    # a str is iterable but is not a list of terms
    _check_type(run_input, "searchTerms", "array")

    if len(run_input["searchTerms"]) == 0 and not run_input.get("spreadsheetId"):
        raise RequiredFieldMissingError('At least "searchTerms" or "spreadsheetId" must be provided as INPUT.')

    if run_input.get("spreadsheetId") is not None:
        _check_type(run_input, "spreadsheetId", "string")
        if len(run_input["spreadsheetId"]) != SPREADSHEET_ID_LENGTH:
            raise InvalidFormatError(
                "The spreadsheet ID looks wrong - spreadsheetId field needs to be "
                f"a string with {SPREADSHEET_ID_LENGTH} characters!"
            )

    _check_type(run_input, "maxItems", "number")
    _check_type(run_input, "extendOutputFunction", "string")
    _check_type(run_input, "proxyConfiguration", "object")
