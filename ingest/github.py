"""
GitHub REST client for the organization activity report.
Each list call fetches a single page of PAGE_SIZE items; a full page is logged as possibly truncated.
"""
import logging
import threading
from typing import List, Dict, Any, Optional
from storage.cache import rate_limited_get, Cache
from errors import GitHubAPIError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
PAGE_SIZE = 100


class GitHubClient:
    """Hosting API client: members, repositories, commits, pull requests, reviews and issues of one organization."""

    def __init__(self, token: str, base_url: str = None, cache: Optional[Cache] = None, cache_max_age: Optional[float] = None,
                 cache_scope: Optional[str] = None):
        self.token = token
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.cache = cache
        self.cache_max_age = cache_max_age
        # prefixed onto every cache key; resources without a time filter are otherwise cached across windows
        self.cache_scope = cache_scope
        self.truncated: List[str] = []
        self._truncated_lock = threading.Lock()

    def _cache_key(self, key: str) -> Optional[str]:
        if not self.cache:
            return None
        if self.cache_scope:
            return f"github:{self.cache_scope}:{key}"
        return f"github:{key}"

    def _get_list(self, path: str, params: Dict[str, Any], cache_key: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        params = dict(params, per_page=PAGE_SIZE)
        res = rate_limited_get(
            url, headers=self.headers, params=params, cache=self.cache, cache_key=self._cache_key(cache_key), max_age=self.cache_max_age
        )
        status = res.get('status', 0)
        data = res.get('response')
        if status != 200:
            detail = data.get('message') if isinstance(data, dict) else data
            raise GitHubAPIError(status, url, str(detail) if detail is not None else None)
        if not isinstance(data, list):
            raise GitHubAPIError(status, url, f"expected a JSON array, got {type(data).__name__}")
        if len(data) >= PAGE_SIZE:
            logger.warning("%s returned a full page of %d items; results beyond it are not fetched", path, PAGE_SIZE)
            with self._truncated_lock:
                self.truncated.append(path)
        return data

    def list_org_members(self, org: str) -> List[Dict[str, Any]]:
        return self._get_list(f"/orgs/{org}/members", {}, f"members:{org}")

    def list_org_repositories(self, org: str) -> List[Dict[str, Any]]:
        return self._get_list(f"/orgs/{org}/repos", {}, f"repos:{org}")

    def list_commits(self, org: str, repo: str, since: str) -> List[Dict[str, Any]]:
        return self._get_list(f"/repos/{org}/{repo}/commits", {"since": since}, f"commits:{org}:{repo}:{since}")

    def list_pull_requests(self, org: str, repo: str, state: str = "all") -> List[Dict[str, Any]]:
        """The pulls endpoint has no time filter; callers filter on created_at."""
        return self._get_list(f"/repos/{org}/{repo}/pulls", {"state": state}, f"pulls:{org}:{repo}:{state}")

    def list_reviews(self, org: str, repo: str, pull_number: int) -> List[Dict[str, Any]]:
        return self._get_list(f"/repos/{org}/{repo}/pulls/{pull_number}/reviews", {}, f"reviews:{org}:{repo}:{pull_number}")

    def list_issues(self, org: str, repo: str, since: str, state: str = "all") -> List[Dict[str, Any]]:
        """Note: the issues endpoint also returns pull requests (items carrying a 'pull_request' key)."""
        return self._get_list(f"/repos/{org}/{repo}/issues", {"since": since, "state": state}, f"issues:{org}:{repo}:{since}:{state}")
