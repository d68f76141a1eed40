"""
Derived metrics, activity tiers and ranking over fully aggregated ActivityRecords.
"""
from typing import Dict, Iterable, List, Optional
from correlate.models import ActivityRecord
from .utils import DEFAULT_WEIGHTS, DEFAULT_THRESHOLDS, compute_weighted_score

LOW = 'low'
NORMAL = 'normal'
HIGH = 'high'
TIERS = (LOW, NORMAL, HIGH)


def total_activity(record: ActivityRecord, weights: Optional[Dict[str, float]] = None) -> float:
    """commits + 2 * pull_requests + reviews + issues with the default weights."""
    score = compute_weighted_score(record.counts(), weights or DEFAULT_WEIGHTS)
    return int(score) if score.is_integer() else score


def classify(avg_activity: float, thresholds: Optional[Dict[str, float]] = None) -> str:
    """Exactly `low_below` and exactly `high_above` are both normal."""
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if avg_activity < thresholds['low_below']:
        return LOW
    if avg_activity > thresholds['high_above']:
        return HIGH
    return NORMAL


def finalize_record(record: ActivityRecord, days: int, weights: Optional[Dict[str, float]] = None, thresholds: Optional[Dict[str, float]] = None) -> ActivityRecord:
    if record.finalized:
        raise RuntimeError(f"ActivityRecord for {record.username} is already finalized")
    if not isinstance(days, int) or days <= 0:
        raise ValueError(f"days must be a positive integer, got {days!r}")
    record.total_activity = total_activity(record, weights)
    record.avg_commits_per_day = record.commits / days
    record.avg_activity = record.total_activity / days
    record.status = classify(record.avg_activity, thresholds)
    return record


def classify_records(records: Iterable[ActivityRecord], days: int, weights: Optional[Dict[str, float]] = None, thresholds: Optional[Dict[str, float]] = None) -> List[ActivityRecord]:
    """Finalize every record; must only run once collection for all repositories has finished."""
    return [finalize_record(r, days, weights, thresholds) for r in records]


def rank_records(records: Iterable[ActivityRecord]) -> List[ActivityRecord]:
    """Sort by total activity, descending. sorted() is stable, so ties keep roster order."""
    return sorted(records, key=lambda r: r.total_activity, reverse=True)


def status_distribution(records: Iterable[ActivityRecord]) -> Dict[str, int]:
    dist = {t: 0 for t in TIERS}
    for r in records:
        dist[r.status] += 1
    return dist
