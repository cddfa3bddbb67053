from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from prefect import flow, get_run_logger
from prefect.runtime import flow_run  # type: ignore

from scrapekit.errors import InputError, InvalidTransformResultError, LimitReached, ScrapeKitError
from scrapekit.pipeline import prepare_run
from scrapekit.settings import load_run_input


def _load_pages(pages_path: Optional[str]) -> List[Dict[str, Any]]:
    """
    Pre-scraped pages as written by the crawler:
      [{"page": <opaque context>, "items": [{...}, ...]}, ...]
    """
    if not pages_path:
        return []
    data = json.loads(Path(pages_path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{pages_path} must hold a JSON list of pages")
    return data


@flow(name="scrape-run", persist_result=False)
async def scrape_run(input_path: Optional[str] = None, pages_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Prefect flow wrapper for one scrape run.

    Prepares the run (validate input, build seeds, compile extendOutputFunction,
    resolve proxy) and, when `pages_path` is given, feeds the scraped pages
    through the item pipeline until they run out or maxItems is reached.
    """
    logger = get_run_logger()
    logger.info("Scrape run flow started.")

    try:
        ctx = await prepare_run(load_run_input(input_path))
    except ScrapeKitError as e:
        logger.error(
            json.dumps(
                {
                    "event": "scrape_run_rejected",
                    "error_type": type(e).__name__,
                    "error": str(e)[:500],
                    "input_error": isinstance(e, InputError),
                },
                sort_keys=True,
            )
        )
        raise

    logger.info(
        json.dumps(
            {
                "event": "scrape_run_seeded",
                "sources": len(ctx.sources),
                "sheet_title": ctx.sheet_title,
                "proxy_enabled": bool(ctx.proxy_url),
                "has_extend_output": ctx.transform is not None,
            },
            sort_keys=True,
        )
    )

    pipeline = ctx.pipeline()
    stop_reason = None
    pages_done = 0

    for entry in _load_pages(pages_path):
        try:
            stored = await pipeline.process_page(entry.get("page"), list(entry.get("items") or []))
        except LimitReached as e:
            stop_reason = "max_items_reached"
            logger.info(f"Reached the max items limit ({e.item_count}/{e.max_items}). Crawler is going to halt...")
            break
        except InvalidTransformResultError as e:
            # fatal: the flow run must end as failed, like a non-zero exit
            logger.error(
                json.dumps(
                    {"event": "scrape_run_halted", "error": str(e), "item_count": pipeline.item_count},
                    sort_keys=True,
                )
            )
            raise
        pages_done += 1
        logger.info(f"[page {pages_done}] stored={stored} total={pipeline.item_count}")

    run_id = getattr(flow_run, "id", None)
    summary = {
        "run_id": str(run_id) if run_id else None,
        "sheet_title": ctx.sheet_title,
        "sources": [s.to_request() for s in ctx.sources],
        "proxy_enabled": bool(ctx.proxy_url),
        "has_extend_output": ctx.transform is not None,
        "pages_processed": pages_done,
        "item_count": pipeline.item_count,
        "stop_reason": stop_reason,
    }
    logger.info(
        json.dumps(
            {"event": "scrape_run_complete", **{k: v for k, v in summary.items() if k != "sources"}},
            sort_keys=True,
        )
    )
    logger.info("Crawler Finished.")
    return summary


if __name__ == "__main__":
    import asyncio

    asyncio.run(scrape_run())
