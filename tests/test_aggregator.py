import unittest
from datetime import datetime, timezone
from correlate.aggregator import Aggregator
from normalize.models import Member, CommitEvent, PullRequestEvent, ReviewEvent, IssueEvent

T = datetime(2025, 6, 1, tzinfo=timezone.utc)


class TestAggregator(unittest.TestCase):
    def setUp(self):
        self.agg = Aggregator([Member('alice'), Member('bob')])

    def test_records_created_eagerly_in_roster_order(self):
        records = self.agg.records()
        self.assertEqual([r.username for r in records], ['alice', 'bob'])
        for r in records:
            self.assertEqual(r.counts(), {'commits': 0, 'pull_requests': 0, 'reviews': 0, 'issues': 0})

    def test_each_event_increments_one_counter(self):
        self.assertTrue(self.agg.accumulate(CommitEvent('alice', T, 'api')))
        self.assertTrue(self.agg.accumulate(PullRequestEvent('alice', T, 'api', 1)))
        self.assertTrue(self.agg.accumulate(ReviewEvent('bob', T, 'api', 1)))
        self.assertTrue(self.agg.accumulate(IssueEvent('bob', T, 'api')))
        alice, bob = self.agg.records()
        self.assertEqual(alice.counts(), {'commits': 1, 'pull_requests': 1, 'reviews': 0, 'issues': 0})
        self.assertEqual(bob.counts(), {'commits': 0, 'pull_requests': 0, 'reviews': 1, 'issues': 1})
        self.assertEqual(self.agg.accepted, 4)

    def test_unknown_and_missing_authors_are_dropped(self):
        self.assertFalse(self.agg.accumulate(CommitEvent('outsider', T, 'api')))
        self.assertFalse(self.agg.accumulate(CommitEvent(None, T, 'api')))
        self.assertEqual(len(self.agg), 2)
        self.assertNotIn('outsider', self.agg)
        self.assertEqual(self.agg.dropped, 2)
        self.assertTrue(all(sum(r.counts().values()) == 0 for r in self.agg.records()))

    def test_pull_request_shadow_never_counts_as_issue(self):
        self.assertFalse(self.agg.accumulate(IssueEvent('alice', T, 'api', is_pull_request_shadow=True)))
        self.assertEqual(self.agg.records()[0].issues, 0)

    def test_duplicate_roster_entries_share_a_record(self):
        agg = Aggregator([Member('alice'), Member('alice')])
        self.assertEqual(len(agg), 1)

    def test_accumulate_all_counts_accepted(self):
        events = [CommitEvent('alice', T, 'r')] * 3 + [CommitEvent('eve', T, 'r')]
        self.assertEqual(self.agg.accumulate_all(events), 3)
        self.assertEqual(self.agg.records()[0].commits, 3)


if __name__ == '__main__':
    unittest.main()
