"""
Configuration for scrapekit.

This module controls:
- The search endpoint seeds are built against.
- Proxy defaults (country, managed proxy host/port).
- Where the run input (INPUT) is loaded from.

NOTE:
Fixed values live here as module constants. Anything that changes per
deployment is env-driven and read through the _env_* helpers.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# -----------------------------
# Env helpers
# -----------------------------
def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)) or str(default))
    except ValueError:
        return default


# -----------------------------
# Fixed values
# -----------------------------
BASE_URL = _env_str("SCRAPEKIT_BASE_URL", "https://trends.google.com/trends/explore")
START_LABEL = "START"

# Column header used when no spreadsheet was imported
SHEET_TITLE_FALLBACK = "Term / Date"

# Google spreadsheet keys are always this long
SPREADSHEET_ID_LENGTH = 44

PROXY_DEFAULT_COUNTRY = _env_str("SCRAPEKIT_PROXY_COUNTRY", "US")
PROXY_HOSTNAME = _env_str("APIFY_PROXY_HOSTNAME", "proxy.apify.com")
PROXY_PORT = _env_int("APIFY_PROXY_PORT", 8000)

SHEETS_MAX_RETRIES = _env_int("SCRAPEKIT_SHEETS_MAX_RETRIES", 4)
SHEETS_RETRY_BACKOFF = 1.5


def _parse_input_text(text: str, origin: str) -> Dict[str, Any]:
    # YAML is a superset of JSON, so one loader covers both INPUT.json and INPUT.yaml
    data = yaml.safe_load(text)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Run input from {origin} must be a mapping, got {type(data).__name__}")
    return data


def load_run_input(path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Load the run input mapping.

    Lookup order:
      1) explicit `path`
      2) SCRAPEKIT_INPUT (path to a JSON/YAML file)
      3) SCRAPEKIT_INPUT_JSON (inline JSON)

    Returns None when nothing is configured; validate_input() then rejects it.
    """
    src = path or os.environ.get("SCRAPEKIT_INPUT", "").strip()
    if src:
        p = Path(src)
        logger.info("Loading run input from %s", p)
        return _parse_input_text(p.read_text(encoding="utf-8"), str(p))

    inline = os.environ.get("SCRAPEKIT_INPUT_JSON", "").strip()
    if inline:
        data = json.loads(inline)
        if not isinstance(data, dict):
            raise ValueError("SCRAPEKIT_INPUT_JSON must hold a JSON object")
        return data

    logger.warning("No run input configured (SCRAPEKIT_INPUT / SCRAPEKIT_INPUT_JSON unset)")
    return None
