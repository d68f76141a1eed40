import unittest
import time
from datetime import timedelta
from unittest.mock import patch, Mock
import pytest
from engine import aggregate, build_report, validate_inputs
from errors import ConfigurationError, FatalFetchError, AggregationTimeout
from fake_client import FakeGitHubClient, NOW, commit, pull, review, issue
from storage.cache import Cache


def _run(client, days=30, **kwargs):
    return aggregate('token', 'acme', days, client=client, now=NOW, **kwargs)


def _by_name(records):
    return {r.username: r for r in records}


class TestEngineScenarios(unittest.TestCase):
    def test_alice_and_bob(self):
        client = FakeGitHubClient(['alice', 'bob'], {
            'api': {
                'commits': [commit('alice', d % 20 + 1) for d in range(10)],
                'pulls': [pull(1, 'alice'), pull(2, 'alice')],
                'reviews': {1: [review('alice')]},
            },
        })
        records = _run(client)
        self.assertEqual([r.username for r in records], ['alice', 'bob'])
        alice, bob = records
        self.assertEqual(alice.total_activity, 15)
        self.assertEqual(alice.status, 'normal')
        self.assertAlmostEqual(alice.avg_commits_per_day, 10 / 30)
        self.assertEqual(bob.total_activity, 0)
        self.assertEqual(bob.status, 'low')

    def test_non_member_commit_ignored(self):
        client = FakeGitHubClient(['alice'], {'api': {'commits': [commit('mallory'), commit('alice')]}})
        records = _run(client)
        self.assertEqual([r.username for r in records], ['alice'])
        self.assertEqual(records[0].commits, 1)

    def test_old_pull_request_recent_review(self):
        client = FakeGitHubClient(['alice', 'bob'], {
            'api': {'pulls': [pull(5, 'alice', days_ago=40)], 'reviews': {5: [review('bob', days_ago=2)]}},
        })
        recs = _by_name(_run(client))
        self.assertEqual(recs['alice'].pull_requests, 0)
        self.assertEqual(recs['bob'].reviews, 1)

    def test_repository_failure_does_not_abort(self):
        client = FakeGitHubClient(['alice'], {
            'broken': {'commits': [commit('alice')] * 5},
            'ok': {'commits': [commit('alice')] * 2},
        }, fail={('broken', 'commits')})
        report = build_report('token', 'acme', 30, client=client, now=NOW)
        self.assertEqual(report.records[0].commits, 2)
        self.assertEqual(len(report.failures), 1)
        self.assertEqual(report.failures[0].repo, 'broken')

    def test_zero_days_rejected(self):
        client = FakeGitHubClient(['alice'], {})
        with self.assertRaises(ConfigurationError):
            _run(client, days=0)
        self.assertEqual(client.calls, [])


class TestEngineErrors(unittest.TestCase):
    def test_missing_credential_or_org(self):
        with self.assertRaises(ConfigurationError):
            aggregate('', 'acme', 30, client=FakeGitHubClient([], {}))
        with self.assertRaises(ConfigurationError):
            aggregate('token', None, 30, client=FakeGitHubClient([], {}))

    def test_validate_inputs(self):
        self.assertEqual(validate_inputs('t', 'o', None), 30)
        self.assertEqual(validate_inputs('t', 'o', 7), 7)
        for bad in (-3, 0, 1.5, '30', True):
            with self.assertRaises(ConfigurationError):
                validate_inputs('t', 'o', bad)

    def test_roster_failure_is_fatal(self):
        with self.assertRaises(FatalFetchError) as ctx:
            _run(FakeGitHubClient(['alice'], {}, fail={'members'}))
        self.assertEqual(ctx.exception.resource, 'members')

    def test_catalog_failure_is_fatal(self):
        with self.assertRaises(FatalFetchError) as ctx:
            _run(FakeGitHubClient(['alice'], {}, fail={'repos'}))
        self.assertEqual(ctx.exception.resource, 'repositories')


def _org(n_repos=6):
    return {
        f'repo{i}': {
            'commits': [commit('alice')] * i + [commit('bob')] + [commit('outsider')],
            'pulls': [pull(1, 'bob', days_ago=i + 1)],
            'reviews': {1: [review('carol')]},
            'issues': [issue('carol'), issue('alice', is_pr=True)],
        }
        for i in range(n_repos)
    }


def test_parallel_matches_sequential():
    members = ['alice', 'bob', 'carol', 'dave']
    seq = _run(FakeGitHubClient(members, _org()))
    par = _run(FakeGitHubClient(members, _org()), workers=4)
    assert [(r.username, r.counts(), r.status) for r in seq] == [(r.username, r.counts(), r.status) for r in par]


def test_output_is_complete_and_non_increasing():
    members = ['alice', 'bob', 'carol', 'dave']
    records = _run(FakeGitHubClient(members, _org()))
    assert sorted(r.username for r in records) == sorted(members)
    totals = [r.total_activity for r in records]
    assert totals == sorted(totals, reverse=True)
    for r in records:
        assert r.total_activity == r.commits + 2 * r.pull_requests + r.reviews + r.issues


def test_report_diagnostics():
    report = build_report('token', 'acme', 30, client=FakeGitHubClient(['alice', 'bob', 'carol', 'dave'], _org(3)), now=NOW)
    assert report.dropped_events == 3
    assert report.repositories == 3
    assert sum(report.distribution.values()) == 4
    summary = report.summary()
    assert summary['org'] == 'acme'
    assert summary['days'] == 30


class SlowClient(FakeGitHubClient):
    def list_commits(self, org, repo, since):
        time.sleep(0.2)
        return super().list_commits(org, repo, since)


@pytest.mark.parametrize('workers', [1, 2])
def test_timeout_aborts_without_records(workers):
    client = SlowClient(['alice'], {f'r{i}': {} for i in range(6)})
    with pytest.raises(AggregationTimeout):
        _run(client, workers=workers, timeout=0.3)


class VerySlowClient(FakeGitHubClient):
    def list_commits(self, org, repo, since):
        time.sleep(0.6)
        return super().list_commits(org, repo, since)


def test_timeout_covers_single_slow_repository():
    client = VerySlowClient(['alice'], {'api': {'commits': [commit('alice')]}})
    with pytest.raises(AggregationTimeout) as ctx:
        _run(client, timeout=0.2)
    assert ctx.value.completed == 0
    assert ctx.value.total == 1


def test_invalid_workers_and_timeout():
    with pytest.raises(ConfigurationError):
        _run(FakeGitHubClient([], {}), workers=0)
    with pytest.raises(ConfigurationError):
        _run(FakeGitHubClient([], {}), timeout=-1)


def _upstream(members, pulls):
    """requests.get stand-in serving one repository 'api' of org acme."""
    def get(url, headers=None, params=None, timeout=None):
        path = url.split('api.github.com', 1)[1]
        if path == '/orgs/acme/members':
            body = [{'login': m} for m in members]
        elif path == '/orgs/acme/repos':
            body = [{'name': 'api', 'owner': {'login': 'acme'}}]
        elif path == '/repos/acme/api/pulls':
            body = list(pulls)
        else:
            body = []
        resp = Mock()
        resp.status_code = 200
        resp.json.return_value = body
        resp.headers = {}
        resp.text = str(body)
        return resp
    return get


def test_shared_cache_does_not_hide_later_activity():
    with Cache() as cache:
        with patch('storage.retry.requests.get', side_effect=_upstream(['alice'], [pull(1, 'alice')])):
            first = aggregate('token', 'acme', 30, now=NOW, cache=cache)
        later_pulls = [pull(1, 'alice'), pull(2, 'bob', days_ago=0)]
        with patch('storage.retry.requests.get', side_effect=_upstream(['alice', 'bob'], later_pulls)):
            second = aggregate('token', 'acme', 30, now=NOW + timedelta(hours=1), cache=cache)
    assert [(r.username, r.pull_requests) for r in first] == [('alice', 1)]
    assert sorted((r.username, r.pull_requests) for r in second) == [('alice', 1), ('bob', 1)]


def test_null_weight_in_config_is_a_configuration_error(tmp_path):
    path = tmp_path / 'activity.yaml'
    path.write_text('weights:\n  commits:\n', encoding='utf-8')
    with pytest.raises(ConfigurationError, match='weights.commits'):
        _run(FakeGitHubClient(['alice'], {}), config_path=str(path))


if __name__ == '__main__':
    unittest.main()
