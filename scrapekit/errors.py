"""
Error taxonomy for scrapekit.

Input and compile errors are fatal: the caller must fix the run input before
anything proceeds. LimitReached is a control signal for the orchestrator,
not a ScrapeKitError.
"""

from __future__ import annotations

from typing import Optional


class ScrapeKitError(Exception):
    """Base class for every failure raised by scrapekit."""
    pass


# === Run input ===

class InputError(ScrapeKitError):
    """Raised when the run input is rejected before any work begins."""
    pass


class ConfigMissingError(InputError):
    pass


class RequiredFieldMissingError(InputError):
    pass


class TypeMismatchError(InputError):
    """A field is present but has the wrong type."""

    def __init__(self, field: str, expected: str):
        self.field = field
        self.expected = expected
        super().__init__(f"Value of {field} should be {expected}")


class InvalidFormatError(InputError):
    pass


# === Seed sources ===

class ImportFormatError(ScrapeKitError):
    """The imported spreadsheet is not a non-empty single-column table."""
    pass


class SpreadsheetImportError(ScrapeKitError):
    """The spreadsheet could not be read at all (auth, API, network)."""
    pass


# === extendOutputFunction ===

class ExtendOutputError(ScrapeKitError):
    pass


class CompileError(ExtendOutputError):
    pass


class NotAFunctionError(ExtendOutputError):
    pass


class InvalidTransformResultError(ExtendOutputError):
    """The user function returned something other than a mapping. Fatal for the run."""

    def __init__(self, result_type: str):
        self.result_type = result_type
        super().__init__(f"extendOutputFunction must return an object! Got: {result_type}")


# === Proxy ===

class ProxyConfigError(ScrapeKitError):
    pass


# === Control signals ===

class LimitReached(Exception):
    """
    Raised when the stored item count hits maxItems.

    The orchestrator catches this and stops queuing / storing; the host
    process keeps running.
    """

    def __init__(self, max_items: float, item_count: int, message: Optional[str] = None):
        self.max_items = max_items
        self.item_count = item_count
        super().__init__(message or f"Reached the max items limit ({item_count}/{max_items})")
