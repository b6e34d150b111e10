"""Collector for eligibility groups offered by the registration site."""

from __future__ import annotations

import asyncio
import json
import re

import structlog
from playwright.async_api import Browser, Locator, Page
from playwright.async_api import Error as PlaywrightError

from ..monitor.errors import CollectionError
from ..monitor.snapshot import LabelValue

logger = structlog.get_logger(__name__)

REGISTRATION_URL = "https://sachsen.impfterminvergabe.de/"
CONTINUE_SELECTOR = "text='Weiter'"
ELIGIBILITY_HEADING = 'h2:has-text("Berechtigungsprüfung")'
CHECKBOX_SELECTOR = 'input[type="checkbox"]'

# Playwright renders the computed accessible name as `- checkbox "<name>" [checked]`
_ARIA_CHECKBOX_NAME = re.compile(r'^-\s+checkbox\s+("(?:[^"\\]|\\.)*")')


class EligibleGroupsCollector:
    """Map every eligibility checkbox id to its label."""

    def __init__(self, browser: Browser, url: str = REGISTRATION_URL, timeout_seconds: float = 30):
        self.browser = browser
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def collect(self) -> dict[str, LabelValue]:
        context = await self.browser.new_context()
        context.set_default_timeout(self.timeout_seconds * 1000)
        try:
            landing_page = await context.new_page()
            await landing_page.goto(self.url)

            # "Weiter" opens the eligibility check in a new page.
            async with context.expect_page() as page_info:
                button = await landing_page.wait_for_selector(CONTINUE_SELECTOR)
                await button.click()
            eligibility_page = await page_info.value
            await eligibility_page.wait_for_selector(ELIGIBILITY_HEADING)

            checkboxes = eligibility_page.locator(CHECKBOX_SELECTOR)
            count = await checkboxes.count()
            results = await asyncio.gather(
                *(self._read_group(eligibility_page, checkboxes.nth(index)) for index in range(count))
            )
        except PlaywrightError as exc:
            raise CollectionError(
                code="eligible_groups_navigation_failed",
                message=f"Unable to load eligibility groups from {self.url}: {exc}",
                details={"url": self.url},
                retryable=True,
            ) from exc
        finally:
            await context.close()

        groups = dict(results)
        logger.info("eligible_groups_collected", group_count=len(groups))
        return groups

    async def _read_group(self, page: Page, checkbox: Locator) -> tuple[str, LabelValue]:
        group_id = await checkbox.get_attribute("id")
        if group_id is None:
            raise CollectionError(
                code="eligible_groups_layout_changed",
                message="Unable to determine an ID for this group.",
                details={"url": page.url},
            )

        label = accessible_name(await checkbox.aria_snapshot())
        if not label:
            raise CollectionError(
                code="eligible_groups_layout_changed",
                message=f"Unable to compute an accessible name for checkbox '{group_id}'.",
                details={"url": page.url, "group_id": group_id},
            )

        return group_id, LabelValue(label)


def accessible_name(aria_snapshot: str) -> str | None:
    """Checkbox name from Playwright's ARIA snapshot, None when it has none."""
    match = _ARIA_CHECKBOX_NAME.match(aria_snapshot.strip())
    if match is None:
        return None
    return json.loads(match.group(1)).strip() or None
