"""Collector for free vaccination dates per centre (countee counter page)."""

from __future__ import annotations

import asyncio
import re

import structlog
from playwright.async_api import Browser, ElementHandle
from playwright.async_api import Error as PlaywrightError

from ..monitor.errors import CollectionError
from ..monitor.snapshot import CountValue

logger = structlog.get_logger(__name__)

FREE_DATES_URL = "https://www.countee.ch/app/de/counter/impfee/_iz_sachsen"
FREE_DATES_HEADING = 'h1:has-text("Freie Impftermine in Sachsen")'
CENTRE_SELECTOR = ".container .rows > div"

_FREE_DATES_PATTERN = re.compile(r"^\s*(\d+)\s*freie Termine")


def parse_free_dates(name: str, text: str) -> int:
    """
    Parse the free date count out of a centre column's text.

    The column text starts with the centre name followed by
    "<N> freie Termine".

    Raises:
        CollectionError: If the count can't be found
    """
    match = _FREE_DATES_PATTERN.match(text.replace(name, "", 1))
    if match is None:
        raise CollectionError(
            code="free_dates_unparsable",
            message=f"Unable to parse free dates in '{text}'.",
            details={"centre": name},
        )
    return int(match.group(1))


class FreeDatesCollector:
    """Scrape free dates for every centre into CountValue entries."""

    def __init__(self, browser: Browser, url: str = FREE_DATES_URL, timeout_seconds: float = 30):
        self.browser = browser
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def collect(self) -> dict[str, CountValue]:
        context = await self.browser.new_context()
        try:
            page = await context.new_page()
            page.set_default_timeout(self.timeout_seconds * 1000)
            await page.goto(self.url)
            await page.wait_for_selector(FREE_DATES_HEADING)

            centres = await page.query_selector_all(CENTRE_SELECTOR)
            results = await asyncio.gather(*(self._read_centre(centre) for centre in centres))
        except PlaywrightError as exc:
            raise CollectionError(
                code="free_dates_navigation_failed",
                message=f"Unable to load free dates from {self.url}: {exc}",
                details={"url": self.url},
                retryable=True,
            ) from exc
        finally:
            await context.close()

        dates = dict(results)
        logger.info("free_dates_collected", centre_count=len(dates))
        return dates

    async def _read_centre(self, centre: ElementHandle) -> tuple[str, CountValue]:
        name_element = await centre.query_selector("h1")
        if name_element is None:
            raise CollectionError(code="free_dates_layout_changed", message="Expected an <h1> inside a column.")

        name = await name_element.text_content()
        if name is None:
            raise CollectionError(code="free_dates_layout_changed", message="Expected <h1> to have text.")

        text = await centre.text_content()
        if text is None:
            raise CollectionError(code="free_dates_layout_changed", message="Expected column to have text.")

        return name, CountValue(parse_free_dates(name, text))
