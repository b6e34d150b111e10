"""Browser-automation collectors producing the current state of a domain."""

from .browser import BrowserSession
from .eligible_groups import EligibleGroupsCollector, accessible_name
from .free_dates import FreeDatesCollector, parse_free_dates

__all__ = [
    "BrowserSession",
    "EligibleGroupsCollector",
    "FreeDatesCollector",
    "accessible_name",
    "parse_free_dates",
]
