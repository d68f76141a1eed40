"""
Error taxonomy for the activity aggregation run.
Only ConfigurationError and FatalFetchError are allowed to escape engine.aggregate().
"""
from typing import Optional


class ActivityError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ActivityError):
    """Missing credential/organization or an invalid window; the run never starts."""


class GitHubAPIError(ActivityError):
    """
    Raised by the hosting API client for any non-200 outcome.
    A status of 0 means the request never produced an HTTP response (transport failure).
    """

    def __init__(self, status: int, url: str, detail: Optional[str] = None):
        self.status = status
        self.url = url
        self.detail = detail
        super().__init__(f"GitHub API request failed ({status}) for {url}: {detail or 'no detail'}")


class FatalFetchError(ActivityError):
    """The roster or repository catalog could not be retrieved; aborts the run."""

    def __init__(self, resource: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.resource = resource
        self.cause = cause
        super().__init__(message or f"Failed to fetch {resource}: {cause}")


class AggregationTimeout(FatalFetchError):
    """The caller-supplied timeout expired before every repository was collected."""

    def __init__(self, timeout: float, completed: int, total: int):
        self.timeout = timeout
        self.completed = completed
        self.total = total
        super().__init__(
            'repositories',
            message=f"Aggregation timed out after {timeout}s ({completed}/{total} repositories collected)",
        )


class PartialFetchError(ActivityError):
    """
    One repository resource (commits, pull_requests, issues) or one pull request's reviews
    could not be fetched. Recorded for diagnostics, never raised to the caller.
    """

    def __init__(self, repo: str, resource: str, cause: Optional[BaseException] = None, pull_number: Optional[int] = None):
        self.repo = repo
        self.resource = resource
        self.cause = cause
        self.pull_number = pull_number
        super().__init__(str(self))

    @property
    def scope(self) -> str:
        return 'pull_request' if self.pull_number is not None else 'repository'

    def __str__(self):
        where = f"{self.repo}#{self.pull_number}" if self.pull_number is not None else self.repo
        return f"{self.resource} unavailable for {where}: {self.cause}"

    def to_dict(self) -> dict:
        return {
            'repo': self.repo,
            'resource': self.resource,
            'scope': self.scope,
            'pull_number': self.pull_number,
            'error': str(self.cause) if self.cause else '',
        }
