"""Issue-tracker sinks: summary body updater and changelog commenter."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import structlog

from ..monitor.errors import SinkError
from ..monitor.snapshot import NotificationEvent
from .formatters import format_changelog, format_summary

logger = structlog.get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _IssueSink:
    """Shared plumbing for sinks writing to one GitHub issue."""

    name = "issue"

    def __init__(
        self,
        client: httpx.AsyncClient,
        repository: str,
        issue_number: int,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            client: httpx client carrying auth headers and base URL
            repository: "owner/repo"
            issue_number: Issue to update or comment on
            clock: Timestamp source for the rendered markdown
        """
        self.client = client
        self.repository = repository
        self.issue_number = issue_number
        self.clock = clock

    @property
    def issue_path(self) -> str:
        return f"/repos/{self.repository}/issues/{self.issue_number}"

    async def _request(self, method: str, path: str, payload: dict[str, Any]) -> None:
        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise SinkError(
                code="github_transport_error",
                message=f"GitHub request {method} {path} failed: {exc}",
                details={"sink": self.name},
                retryable=True,
            ) from exc

        if response.is_error:
            raise SinkError(
                code="github_http_error",
                message=f"GitHub request {method} {path} failed. {response.status_code}: {response.reason_phrase}",
                details={"sink": self.name, "status_code": response.status_code},
                retryable=response.status_code >= 500,
            )


class IssueSummarySink(_IssueSink):
    """Replace the issue body with the full current state."""

    name = "issue_summary"

    def render(self, event: NotificationEvent) -> str:
        return format_summary(event, self.clock())

    async def notify(self, event: NotificationEvent) -> None:
        await self._request("PATCH", self.issue_path, {"body": self.render(event)})
        logger.info(
            "issue_summary_updated",
            repository=self.repository,
            issue_number=self.issue_number,
            entry_count=len(event.current),
        )


class IssueChangelogSink(_IssueSink):
    """Comment on the issue with what changed. No-op for an empty change set."""

    name = "issue_changelog"

    def render(self, event: NotificationEvent) -> str | None:
        return format_changelog(event, self.clock())

    async def notify(self, event: NotificationEvent) -> None:
        markdown = self.render(event)
        if markdown is None:
            logger.debug("issue_changelog_skipped", reason="no_changes")
            return

        await self._request("POST", f"{self.issue_path}/comments", {"body": markdown})
        logger.info(
            "issue_changelog_posted",
            repository=self.repository,
            issue_number=self.issue_number,
            **event.changes.summary(),
        )


def create_github_client(token: str | None, timeout_seconds: float = 30) -> httpx.AsyncClient:
    """httpx client for the GitHub REST API. The token is passed through as-is."""
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=GITHUB_API_URL,
        headers=headers,
        timeout=httpx.Timeout(timeout_seconds),
    )
