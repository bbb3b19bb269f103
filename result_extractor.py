"""
Search Result Extractor Module
Extracts organic results from a Google results page using an ordered list of
selector strategies, with a generic link scan as the last resort
"""

from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from loguru import logger
from playwright.async_api import Page
from pydantic import BaseModel

from config import GOOGLE_DOMAINS
from models import SearchResult


class ResultStrategy(BaseModel):
    """One known layout of the results list"""
    container: str
    title: str
    snippet: str


# Tried in order; the first strategy yielding any result wins
RESULT_STRATEGIES = [
    ResultStrategy(container="#search .g", title="h3", snippet=".VwiC3b"),
    ResultStrategy(container="#rso .g", title="h3", snippet=".VwiC3b"),
    ResultStrategy(container=".g", title="h3", snippet=".VwiC3b"),
    ResultStrategy(container="[data-sokoban-container] > div", title="h3", snippet="[data-sncf='1']"),
    ResultStrategy(container="div[role='main'] .g", title="h3", snippet="[data-sncf='1']"),
]

FALLBACK_LINK_SELECTOR = "a[href^='http']"

# Registrable Google hosts (google.<tld>); links to them or any subdomain are never results
GOOGLE_HOSTS = sorted({
    urlparse(domain).hostname.removeprefix("www.") for domain in GOOGLE_DOMAINS
})

# Google service links on any country domain
EXCLUDED_LINK_PATTERNS = [
    "accounts.google",
    "support.google",
]

# How many ancestors the fallback scan climbs looking for a snippet
SNIPPET_ANCESTOR_DEPTH = 3


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return " ".join(element.get_text(" ").split())


def _absolute_href(anchor: Optional[Tag], base_url: str) -> str:
    if anchor is None:
        return ""
    href = (anchor.get("href") or "").strip()
    if not href:
        return ""
    return urljoin(base_url, href)


def is_google_link(href: str) -> bool:
    """True for links pointing back to Google's own pages"""
    if any(pattern in href for pattern in EXCLUDED_LINK_PATTERNS):
        return True
    host = (urlparse(href).hostname or "").lower()
    return any(host == g or host.endswith("." + g) for g in GOOGLE_HOSTS)


def _keep_valid(results: List[SearchResult], limit: int) -> List[SearchResult]:
    return [r for r in results if r.title and r.link][:limit]


def extract_with_strategy(soup: BeautifulSoup, strategy: ResultStrategy, base_url: str, limit: int) -> List[SearchResult]:
    """Map every container matched by a strategy to a result"""
    results = []
    for container in soup.select(strategy.container):
        results.append(SearchResult(
            title=_text(container.select_one(strategy.title)),
            link=_absolute_href(container.find("a"), base_url),
            snippet=_text(container.select_one(strategy.snippet)),
        ))
    return _keep_valid(results, limit)


def _nearest_snippet(anchor: Tag, title: str) -> str:
    parent = anchor.parent
    for _ in range(SNIPPET_ANCESTOR_DEPTH):
        if parent is None or parent.name == "[document]":
            break
        text = _text(parent)
        if len(text) > len(title) and text != title:
            return text
        parent = parent.parent
    return ""


def extract_fallback(soup: BeautifulSoup, base_url: str, limit: int) -> List[SearchResult]:
    """
    Scan every absolute link on the page, skipping Google's own pages

    The snippet is taken from the nearest ancestor whose text is longer
    than the link title.
    """
    results = []
    for anchor in soup.select(FALLBACK_LINK_SELECTOR):
        href = anchor.get("href") or ""
        if is_google_link(href):
            continue

        title = _text(anchor)
        results.append(SearchResult(
            title=title,
            link=_absolute_href(anchor, base_url),
            snippet=_nearest_snippet(anchor, title),
        ))
    return _keep_valid(results, limit)


def extract_results_from_html(html: str, base_url: str = "", limit: int = 10) -> List[SearchResult]:
    """
    Extract search results from results page HTML

    Args:
        html: Page HTML
        base_url: URL of the page, used to make links absolute
        limit: Maximum number of results

    Returns:
        Results in document order, each with a non-empty title and link
    """
    soup = BeautifulSoup(html, "html.parser")

    for strategy in RESULT_STRATEGIES:
        results = extract_with_strategy(soup, strategy, base_url, limit)
        if results:
            logger.info(f"✅ Extracted results with selector: {strategy.container}")
            return results

    logger.warning("⚠️ No known result layout matched, using fallback link scan...")
    return extract_fallback(soup, base_url, limit)


async def extract_results(page: Page, limit: int = 10) -> List[SearchResult]:
    """Extract search results from the live results page"""
    logger.info("📄 Extracting search results...")
    html = await page.content()
    return extract_results_from_html(html, page.url, limit)
