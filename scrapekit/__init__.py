"""
scrapekit package.

Responsible for:
- Validating the run input of a scrape task before any work starts.
- Building the initial seed requests (search terms and/or an imported sheet).
- Enforcing the maxItems ceiling while items are stored.
- Compiling and applying the optional extendOutputFunction per page.
"""

from __future__ import annotations

from .errors import (  # re-export
    CompileError,
    ConfigMissingError,
    ImportFormatError,
    InvalidFormatError,
    InvalidTransformResultError,
    LimitReached,
    NotAFunctionError,
    ProxyConfigError,
    RequiredFieldMissingError,
    ScrapeKitError,
    SpreadsheetImportError,
    TypeMismatchError,
)
from .extend_output import apply_function, compile_function
from .limits import check_limit
from .models import ProxyConfiguration, RunConfiguration, SeedRequest, SourceSet
from .pipeline import ItemPipeline, RunContext, prepare_run
from .proxy import get_proxy_url
from .seeds import build_sources
from .validate import validate_input

SCRAPEKIT_VERSION = "1.0.0"
