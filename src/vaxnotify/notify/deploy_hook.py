"""Deploy hook trigger, fired when the observed state changed."""

from __future__ import annotations

import httpx
import structlog

from ..monitor.errors import ConfigurationError, SinkError
from ..monitor.snapshot import NotificationEvent

logger = structlog.get_logger(__name__)


class DeployHookSink:
    """GET the deploy hook URL so the published snapshot gets redeployed."""

    name = "deploy_hook"

    def __init__(self, client: httpx.AsyncClient, hook_url: str | None):
        self.client = client
        self.hook_url = hook_url

    def render(self, event: NotificationEvent) -> str | None:
        if event.changes.is_empty:
            return None
        # The hook URL is a secret; never render it.
        return "trigger deploy hook"

    async def notify(self, event: NotificationEvent) -> None:
        if event.changes.is_empty:
            logger.debug("deploy_hook_skipped", reason="no_changes")
            return

        if not self.hook_url:
            raise ConfigurationError(
                code="deploy_hook_missing",
                message="Either run with --dry or configure the deploy hook URL for this domain.",
            )

        try:
            response = await self.client.get(self.hook_url)
        except httpx.HTTPError as exc:
            raise SinkError(
                code="deploy_hook_transport_error",
                message=f"Failed to trigger deploy hook: {exc}",
                retryable=True,
            ) from exc

        if response.is_error:
            raise SinkError(
                code="deploy_hook_http_error",
                message=f"Failed to trigger deploy hook. {response.status_code}: {response.reason_phrase}",
                details={"status_code": response.status_code},
                retryable=response.status_code >= 500,
            )

        logger.info("deploy_hook_triggered", status_code=response.status_code)
