"""
Aggregator: the single owner of every ActivityRecord during a run.
Records live in roster order in a list; a login -> index dict resolves event authors.
"""
import logging
from typing import Dict, Iterable, List
from normalize.models import Member, RawEvent, IssueEvent
from .models import ActivityRecord

logger = logging.getLogger(__name__)


class Aggregator:
    def __init__(self, members: Iterable[Member]):
        self._records: List[ActivityRecord] = []
        self._index: Dict[str, int] = {}
        for m in members:
            # a login listed twice on the roster still owns a single record
            if m.login in self._index:
                continue
            self._index[m.login] = len(self._records)
            self._records.append(ActivityRecord(m.login))
        self.accepted = 0
        self.dropped = 0

    def __len__(self):
        return len(self._records)

    def __contains__(self, login: str):
        return login in self._index

    def accumulate(self, event: RawEvent) -> bool:
        """Increment exactly one counter of the author's record. Returns False when the event is dropped."""
        if isinstance(event, IssueEvent) and event.is_pull_request_shadow:
            return False
        idx = self._index.get(event.actor) if event.actor else None
        if idx is None:
            self.dropped += 1
            logger.debug("Dropping %r: author is not an organization member", event)
            return False
        record = self._records[idx]
        setattr(record, event.counter, getattr(record, event.counter) + 1)
        self.accepted += 1
        return True

    def accumulate_all(self, events: Iterable[RawEvent]) -> int:
        return sum(1 for e in events if self.accumulate(e))

    def records(self) -> List[ActivityRecord]:
        return list(self._records)
