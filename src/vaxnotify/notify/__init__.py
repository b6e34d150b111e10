"""
Notification fan-out.

Delivers one notification event to every configured sink concurrently and
aggregates partial failures into a single DispatchError.
"""

from .campaign import CampaignSink
from .deploy_hook import DeployHookSink
from .dispatcher import DispatchError, DispatchOutcome, FanoutDispatcher, SinkFailure
from .github import IssueChangelogSink, IssueSummarySink
from .sinks import DrySink, Sink, sink_id
from .telegram import TelegramSink

__all__ = [
    "CampaignSink",
    "DeployHookSink",
    "DispatchError",
    "DispatchOutcome",
    "DrySink",
    "FanoutDispatcher",
    "IssueChangelogSink",
    "IssueSummarySink",
    "Sink",
    "SinkFailure",
    "TelegramSink",
    "sink_id",
]
