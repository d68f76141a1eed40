"""
Ingest package: GitHub REST client, roster/catalog fetchers and the per-repository event collector.
"""

from .github import GitHubClient
from .collector import EventCollector, RepositoryCollection
from .roster import fetch_roster, fetch_repository_catalog

__all__ = ["GitHubClient", "EventCollector", "RepositoryCollection", "fetch_roster", "fetch_repository_catalog"]
