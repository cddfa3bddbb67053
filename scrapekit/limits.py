from __future__ import annotations

import logging
from typing import Optional

from .errors import LimitReached

logger = logging.getLogger(__name__)


def check_limit(max_items: Optional[float], item_count: int) -> None:
    """
    Raise LimitReached once item_count has reached max_items.

    No limit when max_items is None. The counter belongs to the caller.
    """
    if max_items is None:
        return
    if item_count >= max_items:
        logger.info("Reached the max items limit (%s). Stopping the run...", max_items)
        raise LimitReached(max_items, item_count)
