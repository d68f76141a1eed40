"""
Activity aggregation engine.
Wires the run: roster + catalog -> per-repository collection -> aggregation -> classification -> ranking.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeout
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from correlate.aggregator import Aggregator
from correlate.models import ActivityRecord
from errors import ConfigurationError, AggregationTimeout, PartialFetchError
from ingest.collector import EventCollector, RepositoryCollection
from ingest.github import GitHubClient
from ingest.roster import fetch_roster, fetch_repository_catalog
from normalize.models import Repository, Window
from scoring.metrics import classify_records, rank_records, status_distribution
from scoring.utils import load_config

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


class ActivityReport:
    """
    Outcome of a complete run: ranked records plus diagnostics (partial failures, truncated resources).
    """

    def __init__(self, org: str, window: Window, records: List[ActivityRecord], failures: List[PartialFetchError],
                 truncated: List[str], dropped_events: int, repositories: int, generated_at: Optional[str] = None):
        self.org = org
        self.window = window
        self.records = records
        self.failures = failures
        self.truncated = truncated
        self.dropped_events = dropped_events
        self.repositories = repositories
        self.distribution = status_distribution(records)
        self.generated_at = generated_at or datetime.now(timezone.utc).isoformat()

    def summary(self) -> Dict[str, object]:
        return {
            'org': self.org,
            'days': self.window.days,
            'since': self.window.since_param(),
            'members': len(self.records),
            'repositories': self.repositories,
            'distribution': dict(self.distribution),
            'failures': len(self.failures),
            'truncated': list(self.truncated),
            'dropped_events': self.dropped_events,
            'generated_at': self.generated_at,
        }


def validate_inputs(credential: Optional[str], org: Optional[str], window_days) -> int:
    """Raise ConfigurationError for anything that must stop the run before it starts."""
    missing = []
    if not credential:
        missing.append('credential')
    if not org:
        missing.append('organization')
    if missing:
        raise ConfigurationError('Missing required input: ' + ', '.join(missing))
    if window_days is None:
        return DEFAULT_WINDOW_DAYS
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        raise ConfigurationError(f"window_days must be an integer, got {window_days!r}")
    # zero days would make every per-day average a division by zero
    if window_days <= 0:
        raise ConfigurationError(f"window_days must be a positive integer, got {window_days}")
    return window_days


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def _past(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _collect_sequential(collector: EventCollector, repos: List[Repository], window: Window, deadline: Optional[float], timeout: Optional[float]) -> Iterator[RepositoryCollection]:
    for done, repo in enumerate(repos):
        if _past(deadline):
            raise AggregationTimeout(timeout, done, len(repos))
        collection = collector.collect(repo, window)
        # a repository that finished after the deadline does not count as collected in time
        if _past(deadline):
            raise AggregationTimeout(timeout, done, len(repos))
        yield collection


def _collect_parallel(collector: EventCollector, repos: List[Repository], window: Window, workers: int, deadline: Optional[float], timeout: Optional[float]) -> Iterator[RepositoryCollection]:
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='collect')
    futures = {executor.submit(collector.collect, repo, window): repo for repo in repos}
    done = 0
    try:
        for future in as_completed(futures, timeout=_remaining(deadline)):
            done += 1
            yield future.result()
    except FuturesTimeout:
        raise AggregationTimeout(timeout, done, len(repos)) from None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def build_report(
    credential: Optional[str],
    org: Optional[str],
    window_days: Optional[int] = DEFAULT_WINDOW_DAYS,
    *,
    client=None,
    workers: int = 1,
    timeout: Optional[float] = None,
    now: Optional[datetime] = None,
    base_url: Optional[str] = None,
    cache=None,
    config_path: Optional[str] = None,
) -> ActivityReport:
    """
    Run a full aggregation and return the ranked report with diagnostics.

    Parameters:
        credential: GitHub token.
        org: organization login.
        window_days: size of the window in days (positive integer, default 30).
        client: hosting API client; defaults to a GitHubClient built from credential/base_url/cache.
        workers: repositories collected concurrently (1 = sequential).
        timeout: seconds allowed for the collection phase; AggregationTimeout when exceeded.
        now: end of the window (defaults to the current UTC time).

    Raises:
        ConfigurationError, FatalFetchError (including AggregationTimeout).
    """
    days = validate_inputs(credential, org, window_days)
    if int(workers) < 1:
        raise ConfigurationError(f"workers must be at least 1, got {workers}")
    if timeout is not None and timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout}")
    try:
        weights, thresholds = load_config(config_path)
    except ValueError as ex:
        raise ConfigurationError(str(ex)) from ex

    window = Window.ending_at(now, days)
    # cached responses are only reused by runs over the same window
    client = client or GitHubClient(credential, base_url=base_url, cache=cache, cache_scope=window.since_param())
    deadline = time.monotonic() + timeout if timeout else None
    logger.info("Aggregating activity for %s since %s (%d days)", org, window.since_param(), days)

    members = fetch_roster(client, org)
    repos = fetch_repository_catalog(client, org)
    aggregator = Aggregator(members)
    collector = EventCollector(client, org)

    if workers > 1 and len(repos) > 1:
        collections = _collect_parallel(collector, repos, window, int(workers), deadline, timeout)
    else:
        collections = _collect_sequential(collector, repos, window, deadline, timeout)

    failures: List[PartialFetchError] = []
    # this loop is the only writer into the aggregator, whichever mode produced the collections
    for n, collection in enumerate(collections, start=1):
        accepted = aggregator.accumulate_all(collection.events)
        failures.extend(collection.failures)
        logger.info("[%d/%d] %s: %d member events", n, len(repos), collection.repo.name, accepted)

    records = rank_records(classify_records(aggregator.records(), days, weights, thresholds))
    if failures:
        logger.warning("%d fetches failed; their resources contributed no events", len(failures))
    return ActivityReport(
        org, window, records, failures,
        truncated=list(getattr(client, 'truncated', []) or []),
        dropped_events=aggregator.dropped,
        repositories=len(repos),
    )


def aggregate(credential: Optional[str], org: Optional[str], window_days: Optional[int] = DEFAULT_WINDOW_DAYS, **kwargs) -> List[ActivityRecord]:
    """Return every member's ActivityRecord ordered by total activity, descending."""
    return build_report(credential, org, window_days, **kwargs).records
