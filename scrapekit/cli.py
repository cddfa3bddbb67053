# scrapekit/cli.py
import argparse
import asyncio
import json
import logging
import sys

from .errors import ScrapeKitError
from .pipeline import prepare_run
from .settings import load_run_input


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Validate a scrape run input and print its seed requests")
    p.add_argument("--input", default=None, help="Path to INPUT (JSON or YAML); defaults to $SCRAPEKIT_INPUT")
    p.add_argument("--proxy-session", action="store_true", help="Pin the managed proxy to a time-based session")
    p.add_argument("--json", action="store_true", help="Print seeds as JSON request objects")
    p.add_argument("--debug", action="store_true")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    log = logging.getLogger("scrapekit")

    try:
        ctx = asyncio.run(prepare_run(load_run_input(args.input), add_proxy_session=args.proxy_session))
    except ScrapeKitError as e:
        log.error("Run input rejected: %s: %s", type(e).__name__, e)
        return 1

    if args.json:
        json.dump(
            {
                "sheetTitle": ctx.sheet_title,
                "sources": [s.to_request() for s in ctx.sources],
                "proxyEnabled": bool(ctx.proxy_url),
                "hasExtendOutputFunction": ctx.transform is not None,
            },
            sys.stdout,
            indent=2,
        )
        sys.stdout.write("\n")
    else:
        for s in ctx.sources:
            print(f"[{s.label}] {s.url}")
        log.info("%s seed(s), sheet title %r", len(ctx.sources), ctx.sheet_title)
    return 0
