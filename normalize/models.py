"""
Unified data models for organization members, repositories, the time window and raw activity events.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


class Member:
    """
    Organization member; the login is the identity key used for correlation.
    """
    def __init__(self, login: str):
        self.login = login

    def __repr__(self):
        return f"Member({self.login!r})"

    def __eq__(self, other):
        return isinstance(other, Member) and other.login == self.login

    def __hash__(self):
        return hash(self.login)


class Repository:
    """
    Repository owned by the organization.
    """
    def __init__(self, name: str, owner: str):
        self.name = name
        self.owner = owner

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __repr__(self):
        return f"Repository({self.full_name!r})"


class Window:
    """
    Time boundary of the report: events at or after `since` count, `days` is the divisor for averages.
    """
    def __init__(self, since: datetime, days: int):
        self.since = since
        self.days = days

    @classmethod
    def ending_at(cls, now: Optional[datetime], days: int) -> 'Window':
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return cls(now - timedelta(days=days), days)

    def since_param(self) -> str:
        """ISO-8601 `since` value accepted by the GitHub REST API."""
        return self.since.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')

    def contains(self, ts: Optional[datetime]) -> bool:
        return ts is not None and ts >= self.since

    def __repr__(self):
        return f"Window(since={self.since_param()}, days={self.days})"


class RawEvent:
    """
    A single attributable activity unit. `counter` names the ActivityRecord field it increments.
    """
    counter = ''

    def __init__(self, actor: Optional[str], timestamp: Optional[datetime], repo: str):
        self.actor = actor  # login, or None when the provider could not resolve a user
        self.timestamp = timestamp
        self.repo = repo

    def __repr__(self):
        return f"{type(self).__name__}(actor={self.actor!r}, repo={self.repo!r}, timestamp={self.timestamp!r})"


class CommitEvent(RawEvent):
    counter = 'commits'


class PullRequestEvent(RawEvent):
    counter = 'pull_requests'

    def __init__(self, actor: Optional[str], timestamp: Optional[datetime], repo: str, number: int):
        super().__init__(actor, timestamp, repo)
        self.number = number


class ReviewEvent(RawEvent):
    counter = 'reviews'

    def __init__(self, actor: Optional[str], timestamp: datetime, repo: str, pull_number: int):
        super().__init__(actor, timestamp, repo)
        self.pull_number = pull_number


class IssueEvent(RawEvent):
    counter = 'issues'

    def __init__(self, actor: Optional[str], timestamp: Optional[datetime], repo: str, is_pull_request_shadow: bool = False):
        super().__init__(actor, timestamp, repo)
        self.is_pull_request_shadow = is_pull_request_shadow
