"""
Application wiring.

Builds the snapshot store, sinks, collector and run log of one monitored
domain from configuration and runs the pipeline once. Configuration is read
only here; the pipeline core and the sinks receive plain values.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from pathlib import Path
from typing import Optional

import httpx
import structlog
from playwright.async_api import Browser
from telegram import Bot

from .collectors import BrowserSession, EligibleGroupsCollector, FreeDatesCollector
from .config import ConfigManager
from .monitor import Collector, Pipeline, PipelineResult, SignificancePolicy
from .notify import (
    CampaignSink,
    DeployHookSink,
    DrySink,
    FanoutDispatcher,
    IssueChangelogSink,
    IssueSummarySink,
    Sink,
    TelegramSink,
    sink_id,
)
from .notify.campaign import create_sendgrid_client
from .notify.github import create_github_client
from .persistence import (
    DatabaseManager,
    FileSnapshotStore,
    HttpSnapshotStore,
    RunLog,
    SnapshotStore,
    SqliteSnapshotStore,
)
from .persistence.migrate import apply_migrations

logger = structlog.get_logger(__name__)

FREE_DATES = "free_dates"
ELIGIBLE_GROUPS = "eligible_groups"
DOMAINS = (FREE_DATES, ELIGIBLE_GROUPS)


def build_store(
    config: ConfigManager,
    domain: str,
    http_client: httpx.AsyncClient,
    db_manager: Optional[DatabaseManager],
) -> SnapshotStore:
    """Snapshot store selected by snapshot.backend."""
    backend = config.get("snapshot.backend")
    local = FileSnapshotStore(Path(config.get(f"snapshot.{domain}_path")))

    if backend == "file":
        return local
    if backend == "http":
        return HttpSnapshotStore(http_client, config.get(f"snapshot.{domain}_url"), write_to=local)
    if db_manager is None:
        raise ValueError("snapshot.backend 'sqlite' requires a database manager")
    return SqliteSnapshotStore(db_manager, domain)


def build_sinks(
    config: ConfigManager,
    domain: str,
    http_client: httpx.AsyncClient,
    github_client: httpx.AsyncClient,
    sendgrid_client: httpx.AsyncClient,
) -> list[Sink]:
    """
    Sinks of a domain.

    Free dates: issue summary (when an issue is configured), email campaign
    (when contact lists are configured), Telegram, deploy hook.
    Eligible groups: issue summary, issue changelog, Telegram, deploy hook.

    The deploy hook is always included; a missing URL fails that sink at
    notify time unless the run is dry.
    """
    repository = config.get("github.repository")
    issue_number = config.get(f"github.{domain}_issue")
    sinks: list[Sink] = []

    if issue_number > 0:
        sinks.append(IssueSummarySink(github_client, repository, issue_number))
        if domain == ELIGIBLE_GROUPS:
            sinks.append(IssueChangelogSink(github_client, repository, issue_number))

    if domain == FREE_DATES and config.get("campaign.list_ids"):
        sinks.append(
            CampaignSink(
                sendgrid_client,
                list_ids=config.get("campaign.list_ids"),
                suppression_group_ids=config.get("campaign.suppression_group_ids"),
                sender_id=config.get("campaign.sender_id") or None,
            )
        )

    bot_token = config.get("telegram.bot_token")
    chat_ids = config.get("telegram.chat_ids")
    if bot_token and chat_ids:
        sinks.append(TelegramSink(Bot(bot_token), chat_ids))

    sinks.append(DeployHookSink(http_client, config.get(f"deploy_hook.{domain}_url") or None))
    return sinks


def build_collector(config: ConfigManager, domain: str, browser: Browser) -> Collector:
    timeout_seconds = config.get("collector.timeout_seconds")
    if domain == FREE_DATES:
        return FreeDatesCollector(browser, timeout_seconds=timeout_seconds)
    return EligibleGroupsCollector(browser, timeout_seconds=timeout_seconds)


async def run_domain(
    config: ConfigManager,
    domain: str,
    dry: bool = False,
    notify_all: bool = False,
) -> PipelineResult:
    """
    Run the pipeline once for a domain.

    Args:
        config: Loaded configuration
        domain: free_dates or eligible_groups
        dry: Log what every sink would send instead of sending it
        notify_all: Treat every current entry as a notification target

    Returns:
        PipelineResult of a fully successful run

    Raises:
        ValueError: Unknown domain
        AcquisitionError, PersistenceError, DispatchError: See Pipeline.run
    """
    if domain not in DOMAINS:
        raise ValueError(f"Unknown domain '{domain}', expected one of {', '.join(DOMAINS)}")

    timeout_seconds = config.get("collector.timeout_seconds")

    async with AsyncExitStack() as stack:
        db_manager = None
        if config.get("snapshot.backend") == "sqlite" or config.get("database.run_log_enabled"):
            db_path = Path(config.get("database.path"))
            apply_migrations(db_path)
            db_manager = DatabaseManager(db_path, busy_timeout_ms=config.get("database.busy_timeout_ms"))
            stack.push_async_callback(db_manager.close)

        http_client = await stack.enter_async_context(
            httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        )
        github_client = await stack.enter_async_context(
            create_github_client(config.get("github.token"), timeout_seconds)
        )
        sendgrid_client = await stack.enter_async_context(
            create_sendgrid_client(config.get("campaign.api_key"), timeout_seconds)
        )

        store = build_store(config, domain, http_client, db_manager)
        sinks = build_sinks(config, domain, http_client, github_client, sendgrid_client)
        if dry:
            sinks = [DrySink(sink) for sink in sinks]

        run_log = None
        if config.get("database.run_log_enabled"):
            run_log = RunLog(db_manager)

        browser = await stack.enter_async_context(BrowserSession(headless=config.get("collector.headless")))

        pipeline = Pipeline(
            domain=domain,
            collector=build_collector(config, domain, browser),
            store=store,
            sinks=sinks,
            dispatcher=FanoutDispatcher(sink_timeout_seconds=config.get("dispatch.sink_timeout_seconds")),
            policy=SignificancePolicy(
                capacity_threshold=config.get("significance.capacity_threshold"),
                min_increase=config.get("significance.min_increase"),
            ),
            notify_all=notify_all,
            bootstrap=config.get("snapshot.bootstrap"),
            run_log=run_log,
            dry=dry,
        )

        logger.info(
            "pipeline_wired",
            domain=domain,
            backend=config.get("snapshot.backend"),
            sinks=[sink_id(sink) for sink in sinks],
            dry=dry,
        )
        return await pipeline.run()
