"""
Normalization utility helpers.
Small helpers to convert raw GitHub REST payloads into normalize.models entities.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from normalize.models import Member, Repository, CommitEvent, PullRequestEvent, ReviewEvent, IssueEvent


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp ('2025-01-10T12:00:00Z'). Returns None for empty values."""
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _login(user: Any) -> Optional[str]:
    if not isinstance(user, dict):
        return None
    return user.get('login') or None


def normalize_member(raw: Dict[str, Any]) -> Optional[Member]:
    login = _login(raw)
    return Member(login) if login else None


def normalize_repository(raw: Dict[str, Any], org: str) -> Optional[Repository]:
    name = raw.get('name') if isinstance(raw, dict) else None
    if not name:
        return None
    owner = _login(raw.get('owner')) or org
    return Repository(name, owner)


def commit_from_raw(raw: Dict[str, Any], repo: str) -> CommitEvent:
    """The actor is the linked GitHub account; the git author name/email is not an identity."""
    git_author = (raw.get('commit') or {}).get('author') or {}
    return CommitEvent(_login(raw.get('author')), parse_timestamp(git_author.get('date')), repo)


def pull_request_from_raw(raw: Dict[str, Any], repo: str) -> PullRequestEvent:
    return PullRequestEvent(_login(raw.get('user')), parse_timestamp(raw.get('created_at')), repo, raw.get('number'))


def review_from_raw(raw: Dict[str, Any], repo: str, pull_number: int) -> Optional[ReviewEvent]:
    """Pending reviews carry no submitted_at and are not events."""
    submitted = parse_timestamp(raw.get('submitted_at'))
    if submitted is None:
        return None
    return ReviewEvent(_login(raw.get('user')), submitted, repo, pull_number)


def issue_from_raw(raw: Dict[str, Any], repo: str) -> IssueEvent:
    return IssueEvent(
        _login(raw.get('user')),
        parse_timestamp(raw.get('created_at')),
        repo,
        is_pull_request_shadow='pull_request' in raw,
    )
