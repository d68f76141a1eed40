"""
Roster and repository catalog: fetched once per run, and fatal when unavailable.
"""
import logging
from typing import List
from normalize.models import Member, Repository
from normalize.util import normalize_member, normalize_repository
from errors import FatalFetchError, GitHubAPIError

logger = logging.getLogger(__name__)


def fetch_roster(client, org: str) -> List[Member]:
    """Return the organization's members in the order the provider lists them."""
    try:
        raw = client.list_org_members(org)
    except GitHubAPIError as ex:
        raise FatalFetchError('members', ex) from ex
    members = [m for m in (normalize_member(r) for r in raw) if m is not None]
    logger.info("Loaded %d members of %s", len(members), org)
    return members


def fetch_repository_catalog(client, org: str) -> List[Repository]:
    try:
        raw = client.list_org_repositories(org)
    except GitHubAPIError as ex:
        raise FatalFetchError('repositories', ex) from ex
    repos = [r for r in (normalize_repository(item, org) for item in raw) if r is not None]
    logger.info("Loaded %d repositories of %s", len(repos), org)
    return repos
