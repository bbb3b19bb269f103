"""
Multi-Query Google Search
Runs several searches concurrently over one shared browser, each in its own
isolated context with its own state file
"""

import asyncio
from pathlib import Path
from typing import List, Optional

from loguru import logger
from playwright.async_api import async_playwright

from browser_launcher import launch_browser
from config import AppConfig, get_state_file_path
from google_search import google_search
from models import SearchOptions, SearchResponse


def get_query_state_file(config: AppConfig, options: SearchOptions, index: int) -> Path:
    """
    Per-query state file: the index is appended to the base name

    browser-state.json -> browser-state-0.json
    """
    if options.state_file:
        base = Path(options.state_file)
        return base.with_name(f"{base.stem}-{index}{base.suffix}")
    return get_state_file_path(config, f"browser-state-{index}.json")


async def multi_google_search(
    queries: List[str],
    options: Optional[SearchOptions] = None,
    config: Optional[AppConfig] = None
) -> List[SearchResponse]:
    """
    Perform multiple Google searches in parallel

    Args:
        queries: Search queries
        options: Options applied to every query (state file is made per-query)
        config: Application configuration (default: AppConfig())

    Returns:
        One SearchResponse per query, in input order. A failed query yields
        its own diagnostic response and never aborts the others.
    """
    if not queries:
        raise ValueError("At least one search query is required")

    options = options or SearchOptions()
    config = config or AppConfig()

    logger.info(f"🔍 Starting {len(queries)} searches with a shared browser...")

    playwright = await async_playwright().start()
    browser = None
    try:
        browser = await launch_browser(playwright, config, headless=not options.debug)

        tasks = []
        for index, query in enumerate(queries):
            query_options = options.model_copy(update={"state_file": get_query_state_file(config, options, index)})
            logger.info(f"Starting search #{index + 1}: '{query}'")
            tasks.append(google_search(query, query_options, browser, playwright=playwright, config=config))

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        responses = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"❌ Search for '{query}' raised: {str(outcome)}")
                responses.append(SearchResponse.failure(query, outcome))
            else:
                responses.append(outcome)

        failed = sum(1 for r in responses if r.failed)
        logger.info(f"✅ All searches completed ({len(responses) - failed} succeeded, {failed} failed)")
        return responses

    finally:
        if options.debug:
            logger.info("🔎 Debug mode, keeping shared browser open")
        else:
            if browser is not None:
                logger.info("Closing shared browser")
                await browser.close()
            await playwright.stop()
