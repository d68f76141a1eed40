"""
Per-repository event collection.

Each unit of work (commits, pull requests, issues, and the reviews of one pull request) yields a
FetchOutcome carrying either its events or the failure that prevented them. A failed unit never
stops the others; a list holding a malformed item fails that unit like an API error would.
"""
import logging
from typing import List, Optional
from normalize.models import Repository, Window, RawEvent
from normalize.util import commit_from_raw, pull_request_from_raw, review_from_raw, issue_from_raw
from errors import GitHubAPIError, PartialFetchError

logger = logging.getLogger(__name__)

# what converting a malformed list item raises (bad timestamp, non-object entry, missing field)
MALFORMED_ITEM_ERRORS = (ValueError, TypeError, AttributeError, KeyError)


class FetchOutcome:
    def __init__(self, repo: str, resource: str, events: Optional[List[RawEvent]] = None, error: Optional[PartialFetchError] = None):
        self.repo = repo
        self.resource = resource
        self.events = events or []
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None


class RepositoryCollection:
    """Everything one repository contributed to the run."""

    def __init__(self, repo: Repository, outcomes: List[FetchOutcome]):
        self.repo = repo
        self.outcomes = outcomes

    @property
    def events(self) -> List[RawEvent]:
        return [e for o in self.outcomes if o.ok for e in o.events]

    @property
    def failures(self) -> List[PartialFetchError]:
        return [o.error for o in self.outcomes if not o.ok]


class EventCollector:
    def __init__(self, client, org: str):
        self.client = client
        self.org = org

    def _failed(self, repo: str, resource: str, ex: Exception, pull_number: Optional[int] = None) -> FetchOutcome:
        err = PartialFetchError(repo, resource, ex, pull_number=pull_number)
        logger.warning("Skipping %s", err)
        return FetchOutcome(repo, resource, error=err)

    def _commits(self, repo: str, window: Window) -> FetchOutcome:
        try:
            raw = self.client.list_commits(self.org, repo, window.since_param())
            # server-side `since` filter; commits without a linked account are still events, the Aggregator drops them
            events = [commit_from_raw(c, repo) for c in raw]
        except (GitHubAPIError,) + MALFORMED_ITEM_ERRORS as ex:
            return self._failed(repo, 'commits', ex)
        return FetchOutcome(repo, 'commits', events)

    def _pull_requests(self, repo: str, window: Window):
        """Returns (outcome, pull numbers); every listed PR gets a review fetch, in window or not."""
        try:
            raw = self.client.list_pull_requests(self.org, repo, state='all')
            events = [pull_request_from_raw(p, repo) for p in raw]
            in_window = [e for e in events if window.contains(e.timestamp)]
        except (GitHubAPIError,) + MALFORMED_ITEM_ERRORS as ex:
            return self._failed(repo, 'pull_requests', ex), []
        numbers = [e.number for e in events if e.number is not None]
        return FetchOutcome(repo, 'pull_requests', in_window), numbers

    def _reviews(self, repo: str, pull_number: int, window: Window) -> FetchOutcome:
        try:
            raw = self.client.list_reviews(self.org, repo, pull_number)
            converted = [review_from_raw(r, repo, pull_number) for r in raw]
        except (GitHubAPIError,) + MALFORMED_ITEM_ERRORS as ex:
            return self._failed(repo, 'reviews', ex, pull_number=pull_number)
        events = [ev for ev in converted if ev is not None and window.contains(ev.timestamp)]
        return FetchOutcome(repo, 'reviews', events)

    def _issues(self, repo: str, window: Window) -> FetchOutcome:
        try:
            raw = self.client.list_issues(self.org, repo, window.since_param(), state='all')
            events = [issue_from_raw(i, repo) for i in raw]
        except (GitHubAPIError,) + MALFORMED_ITEM_ERRORS as ex:
            return self._failed(repo, 'issues', ex)
        return FetchOutcome(repo, 'issues', [e for e in events if not e.is_pull_request_shadow])

    def collect(self, repo: Repository, window: Window) -> RepositoryCollection:
        name = repo.name
        outcomes = [self._commits(name, window)]
        pr_outcome, pull_numbers = self._pull_requests(name, window)
        outcomes.append(pr_outcome)
        for number in pull_numbers:
            outcomes.append(self._reviews(name, number, window))
        outcomes.append(self._issues(name, window))
        collection = RepositoryCollection(repo, outcomes)
        logger.debug("Collected %d events from %s (%d failures)", len(collection.events), repo.full_name, len(collection.failures))
        return collection
