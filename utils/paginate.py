"""Drain paginated listings into complete lists.

Two schemes are supported: cursor feeds, where the server hands back an opaque
continuation token, and page-number listings, where the client asks for page
N and the server reports how many pages exist.
"""
from typing import Any, Callable, List, Optional

import requests

from errors import InventoryPageError, ThreatFeedFetchError
from schemas import CursorPage, NumberedPage
from utils.logger import get_logger

logger = get_logger(__name__)

# transport failures, bad statuses, undecodable or invalid payloads (threat feed)
PAGE_ERRORS = (requests.RequestException, ValueError)


def drain_cursor(fetch: Callable[[Optional[Any]], CursorPage]) -> List[Any]:
    """Concatenate every page of a cursor feed, in feed order.

    Any falsy cursor (None, 0, "") ends the feed. A page failure aborts the
    whole drain with ThreatFeedFetchError; nothing partial is returned.
    """
    items: List[Any] = []
    cursor = None
    page_index = 0
    while True:
        try:
            page = fetch(cursor)
        except PAGE_ERRORS as exc:
            logger.error("Error fetching threat packages (request %d): %s", page_index + 1, exc)
            raise ThreatFeedFetchError(page_index, exc) from exc
        items.extend(page.items)
        logger.info("Fetched %d packages (total: %d)", len(page.items), len(items))
        page_index += 1
        if not page.next_cursor:
            logger.debug("No more pages available")
            break
        cursor = page.next_cursor
        logger.debug("Continuing with cursor: %s", cursor)
    logger.info("Total threat packages fetched: %d in %d requests", len(items), page_index)
    return items


def drain_pages(fetch: Callable[[int], NumberedPage], stage: str, strict: bool = False) -> List[Any]:
    """Concatenate pages 0..totalPages-1 of a page-number listing.

    Any failure on page 0 yields an empty list, a failure on a later page keeps
    what was already fetched. With strict=True a page 0 failure raises
    InventoryPageError instead.
    """
    items: List[Any] = []
    page_index = 0
    while True:
        try:
            page = fetch(page_index)
        except Exception as exc:
            err = InventoryPageError(stage, page_index, exc)
            logger.error("%s", err)
            if page_index == 0:
                if strict:
                    raise err from exc
                return []
            break
        items.extend(page.items)
        total_pages = page.total_pages or 0
        logger.debug("%s page %d/%d (server page %d): %d items", stage, page_index + 1, max(total_pages, 1), page.page_index, len(page.items))
        if page_index < total_pages - 1:
            page_index += 1
        else:
            break
    return items
