"""
Run preparation + per-page item handling.

prepare_run() does the once-per-run work (validate, seed, compile, proxy).
ItemPipeline is what a crawler calls for every processed page; it owns the
item counter and turns "limit reached" / "invalid transform result" into
exceptions the orchestrator observes instead of exiting the process.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import InvalidTransformResultError, LimitReached
from .extend_output import TransformFunction, apply_function, compile_function
from .limits import check_limit
from .models import RunConfiguration, SeedRequest
from .proxy import get_proxy_url
from .seeds import Importer, build_sources
from .validate import validate_input

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    config: RunConfiguration
    sources: List[SeedRequest]
    sheet_title: str
    transform: Optional[TransformFunction] = None
    proxy_url: Optional[str] = None

    def pipeline(self, sink: Optional[Callable[[Dict[str, Any]], Any]] = None) -> "ItemPipeline":
        return ItemPipeline(max_items=self.config.max_items, transform=self.transform, sink=sink)


async def prepare_run(
    run_input: Optional[Dict[str, Any]],
    importer: Optional[Importer] = None,
    add_proxy_session: bool = False,
) -> RunContext:
    """
    Everything that must succeed before the first request is queued.

    Any InputError / ImportFormatError / CompileError / NotAFunctionError /
    ProxyConfigError propagates; the run must not start.
    """
    validate_input(run_input)
    config = RunConfiguration.from_input(run_input)

    source_set = await build_sources(config.search_terms, config.spreadsheet_id, importer=importer)
    logger.info("Prepared %s seed request(s); sheet title: %s", len(source_set.sources), source_set.sheet_title)

    transform = None
    if config.extend_output_function:
        transform = compile_function(config.extend_output_function)

    proxy_url = None
    if config.proxy_configuration is not None:
        proxy_url = get_proxy_url(config.proxy_configuration, add_session=add_proxy_session)

    return RunContext(
        config=config,
        sources=source_set.sources,
        sheet_title=source_set.sheet_title,
        transform=transform,
        proxy_url=proxy_url,
    )


class ItemPipeline:
    """
    Per-page output handling for one run.

    process_page() applies the transform (if any), stores every item through
    `sink` and consults the maxItems limit after each stored item. Once the
    pipeline stopped, every further page raises LimitReached.
    """

    def __init__(
        self,
        max_items: Optional[float] = None,
        transform: Optional[TransformFunction] = None,
        sink: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        self.max_items = max_items
        self.transform = transform
        self.items: List[Dict[str, Any]] = []
        self._sink = sink or self.items.append
        self.item_count = 0
        self.stopped = False

    async def _store(self, item: Dict[str, Any]) -> None:
        res = self._sink(item)
        if inspect.isawaitable(res):
            await res
        self.item_count += 1

    async def process_page(self, page: Any, items: List[Dict[str, Any]]) -> int:
        """Returns how many items from this page were stored."""
        if self.stopped:
            raise LimitReached(self.max_items, self.item_count, "Pipeline already stopped")

        try:
            check_limit(self.max_items, self.item_count)
            if self.transform is not None:
                items = await apply_function(page, self.transform, items)

            stored = 0
            for item in items:
                await self._store(item)
                stored += 1
                check_limit(self.max_items, self.item_count)
        except (LimitReached, InvalidTransformResultError):
            self.stopped = True
            raise

        return stored
