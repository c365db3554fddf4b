"""
Sequential multi-page fetching for ESI listings.

Pages are requested one at a time starting at page 1 and appended in
order. The run stops successfully on an empty page, on an end-of-pages
error, or at the page cap. Any other error aborts the run and the pages
collected so far are dropped.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Sequence

from esi.exceptions import PageOutOfRangeError, TransportError
from esi.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_PAGES = 100

PageFetch = Callable[[int], Awaitable[Sequence[Any]]]


def is_end_of_pages(error: Exception, end_signatures: Sequence[str]) -> bool:
    """Whether an error marks the end of a listing rather than a failure."""
    if isinstance(error, PageOutOfRangeError):
        return True
    if isinstance(error, TransportError):
        text = str(error)
        return any(signature in text for signature in end_signatures)
    return False


class PaginatedFetcher:
    """Accumulates pages from a page-fetch function."""

    def __init__(self, max_pages: int = DEFAULT_MAX_PAGES) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.max_pages = max_pages

    async def fetch_all(
        self,
        page_fetch: PageFetch,
        end_signatures: Sequence[str] = (),
    ) -> list[Any]:
        """Fetch every page and return the concatenated items.

        Args:
            page_fetch: Coroutine function returning the items of one page.
            end_signatures: Error message fragments meaning "no more pages".

        Returns:
            All items in page order.

        Raises:
            Exception: Whatever page_fetch raised, unless it marks the end
                of the listing.
        """
        items: list[Any] = []

        for page in range(1, self.max_pages + 1):
            try:
                page_items = await page_fetch(page)
            except Exception as e:
                if is_end_of_pages(e, end_signatures):
                    logger.debug("Page does not exist, stopping", page=page)
                    return items
                logger.error("Page fetch failed, dropping partial result", page=page, error=str(e))
                raise

            if not page_items:
                logger.debug("Empty page, stopping", page=page)
                return items

            items.extend(page_items)
            logger.debug("Fetched page", page=page, count=len(page_items), total=len(items))

        logger.warning(
            "Page cap reached, stopping",
            max_pages=self.max_pages,
            total=len(items),
        )
        return items
