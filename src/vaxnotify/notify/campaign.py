"""Outbound email campaign sender.

Creates one single-send per target centre through the SendGrid marketing
API and schedules it immediately. Contact list ids and suppression group ids
are injected per centre; the pipeline never sees them.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
import structlog

from ..monitor.errors import ConfigurationError, SinkError
from ..monitor.snapshot import CountValue, NotificationEvent, Value

logger = structlog.get_logger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com"


class CampaignSink:
    """Email every target centre's subscriber list."""

    name = "email_campaign"

    def __init__(
        self,
        client: httpx.AsyncClient,
        list_ids: Mapping[str, str],
        suppression_group_ids: Mapping[str, int],
        sender_id: int | None,
        subject_template: str = "Freie Impftermine: {entity_id}",
    ):
        """
        Args:
            client: httpx client carrying auth headers and base URL
            list_ids: Centre -> contact list id
            suppression_group_ids: Centre -> unsubscribe group id
            sender_id: Verified sender id
            subject_template: Subject line, formatted with entity_id and value
        """
        self.client = client
        self.list_ids = dict(list_ids)
        self.suppression_group_ids = dict(suppression_group_ids)
        self.sender_id = sender_id
        self.subject_template = subject_template

    def _recipients(self, event: NotificationEvent) -> dict[str, Value]:
        recipients = {}
        for entity_id, value in event.target_values().items():
            if isinstance(value, CountValue) and value.count == 0:
                continue
            if entity_id not in self.list_ids:
                logger.warning("campaign_list_missing", entity_id=entity_id)
                continue
            recipients[entity_id] = value
        return recipients

    def _build_single_send(self, entity_id: str, value: Value) -> dict[str, Any]:
        subject = self.subject_template.format(entity_id=entity_id, value=value)
        email_config: dict[str, Any] = {
            "subject": subject,
            "plain_content": f"{entity_id}: {value} freie Termine. {{{{{{unsubscribe}}}}}}",
            "sender_id": self.sender_id,
        }
        if entity_id in self.suppression_group_ids:
            email_config["suppression_group_id"] = self.suppression_group_ids[entity_id]

        return {
            "name": subject,
            "send_to": {"list_ids": [self.list_ids[entity_id]]},
            "email_config": email_config,
        }

    def render(self, event: NotificationEvent) -> str | None:
        recipients = self._recipients(event)
        if not recipients:
            return None
        return "\n".join(
            f"{self._build_single_send(entity_id, value)['name']} -> list {self.list_ids[entity_id]}"
            for entity_id, value in recipients.items()
        )

    async def notify(self, event: NotificationEvent) -> None:
        recipients = self._recipients(event)
        if not recipients:
            logger.debug("campaign_skipped", reason="no_targets")
            return

        if self.sender_id is None:
            raise ConfigurationError(
                code="campaign_sender_missing",
                message="Either run with --dry or set campaign.sender_id.",
            )

        failed: dict[str, str] = {}
        for entity_id, value in recipients.items():
            try:
                await self._send(entity_id, value)
            except SinkError as exc:
                failed[entity_id] = exc.message

        if failed:
            raise SinkError(
                code="campaign_send_failed",
                message=f"Campaign failed for {len(failed)} of {len(recipients)} centres: {', '.join(sorted(failed))}",
                details={"failed": failed},
                retryable=True,
            )

    async def _send(self, entity_id: str, value: Value) -> None:
        created = await self._request("POST", "/v3/marketing/singlesends", self._build_single_send(entity_id, value))
        single_send_id = created.get("id")
        if not single_send_id:
            raise SinkError(
                code="campaign_invalid_response",
                message=f"Single send for {entity_id} was created without an id",
            )

        await self._request("PUT", f"/v3/marketing/singlesends/{single_send_id}/schedule", {"send_at": "now"})
        logger.info("campaign_scheduled", entity_id=entity_id, single_send_id=single_send_id)

    async def _request(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise SinkError(
                code="campaign_transport_error",
                message=f"{method} {path} failed: {exc}",
                retryable=True,
            ) from exc

        if response.is_error:
            raise SinkError(
                code="campaign_http_error",
                message=f"{method} {path} failed. {response.status_code}: {response.reason_phrase}",
                details={"status_code": response.status_code},
            )

        if not response.content:
            return {}
        return response.json()


def create_sendgrid_client(api_key: str | None, timeout_seconds: float = 30) -> httpx.AsyncClient:
    headers = {}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return httpx.AsyncClient(
        base_url=SENDGRID_API_URL,
        headers=headers,
        timeout=httpx.Timeout(timeout_seconds),
    )
