"""
Per-member activity accumulator and its derived metrics.
"""
from typing import Optional

COUNTERS = ('commits', 'pull_requests', 'reviews', 'issues')


class ActivityRecord:
    """
    Represents one member's activity over the window.
    Counters are only incremented by correlate.aggregator.Aggregator; derived fields are filled once by
    scoring.metrics.finalize_record.
    """

    def __init__(self, username: str):
        self.username = username
        self.commits = 0
        self.pull_requests = 0
        self.reviews = 0
        self.issues = 0
        self.total_activity: Optional[int] = None
        self.avg_commits_per_day: Optional[float] = None
        self.avg_activity: Optional[float] = None
        self.status: Optional[str] = None

    @property
    def finalized(self) -> bool:
        return self.status is not None

    def counts(self) -> dict:
        return {name: getattr(self, name) for name in COUNTERS}

    def to_dict(self) -> dict:
        """Serialize with the camelCase field names of the dashboard JSON payload."""
        return {
            'username': self.username,
            'commits': self.commits,
            'prs': self.pull_requests,
            'reviews': self.reviews,
            'issues': self.issues,
            'totalActivity': self.total_activity,
            'avgCommitsPerDay': self.avg_commits_per_day,
            'status': self.status,
        }

    def __repr__(self):
        return f"ActivityRecord({self.username!r}, total={self.total_activity}, status={self.status})"

    def __str__(self):
        return (
            f"{self.username}: commits={self.commits} prs={self.pull_requests} reviews={self.reviews} "
            f"issues={self.issues} total={self.total_activity} avg_commits/day={self.avg_commits_per_day or 0:.2f} "
            f"status={self.status}"
        )
