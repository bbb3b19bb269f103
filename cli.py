"""
Google Search command line tool
Usage: google-search "query" ["another query" ...] [options]
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from loguru import logger

from config import SEARCH_DEFAULTS, get_state_file_path, load_config, setup_logging
from exporter import export_responses
from google_search import google_search
from models import SearchOptions
from multi_search import multi_google_search
from session_store import get_session_info


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="google-search",
        description="Search Google with a persistent, human-looking browser session",
    )
    parser.add_argument("queries", nargs="*", metavar="QUERY", help="search query (several run in parallel)")
    parser.add_argument("-l", "--limit", type=int, default=SEARCH_DEFAULTS["limit"], help="maximum results per query")
    parser.add_argument("-t", "--timeout", type=int, default=SEARCH_DEFAULTS["timeout"], help="page timeout in milliseconds")
    parser.add_argument("--state-file", help="browser state file (default: <storage dir>/browser-state.json)")
    parser.add_argument("--no-save-state", action="store_true", help="do not persist browser state")
    parser.add_argument("--locale", default=SEARCH_DEFAULTS["locale"], help="fingerprint locale for new sessions")
    parser.add_argument("--debug", action="store_true", help="visible browser, kept open after the search")
    parser.add_argument("-o", "--output", help="also write results to a .json, .csv or .xlsx file")
    parser.add_argument("--session-info", action="store_true", help="show the saved session for --state-file and exit")
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config, level="DEBUG" if args.debug else None)

    if args.session_info:
        state_file = args.state_file or get_state_file_path(config)
        info = get_session_info(state_file)
        if info is None:
            logger.error(f"❌ No saved session at {state_file}")
            return 1
        print(json.dumps(info, indent=2))
        return 0

    if not args.queries:
        logger.error("❌ Please provide at least one search query")
        return 2

    options = SearchOptions(
        limit=args.limit,
        timeout=args.timeout,
        state_file=args.state_file,
        no_save_state=args.no_save_state,
        locale=args.locale,
        debug=args.debug,
    )

    if len(args.queries) == 1:
        responses = [await google_search(args.queries[0], options, config=config)]
        print(responses[0].model_dump_json(indent=2))
    else:
        responses = await multi_google_search(args.queries, options, config=config)
        print(json.dumps([r.model_dump() for r in responses], indent=2, ensure_ascii=False))

    if args.output:
        export_responses(responses, args.output)

    if args.debug and sys.stdin.isatty():
        await asyncio.to_thread(input, "\nPress Enter to close browser...")

    return 1 if all(r.failed for r in responses) else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
