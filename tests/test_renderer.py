import csv
import io
import json

import pytest

from engine import build_report
from errors import PartialFetchError
from report import renderer
from fake_client import FakeGitHubClient, NOW, commit, pull


@pytest.fixture
def report():
    client = FakeGitHubClient(['alice', 'bob', '<carol>'], {
        'api': {'commits': [commit('alice')] * 40, 'pulls': [pull(1, 'bob')]},
        'web': {},
    }, fail={('web', 'issues')})
    return build_report('token', 'acme', 10, client=client, now=NOW)


def test_text(report):
    out = renderer.render(report, 'text')
    assert 'Activity for acme over the last 10 days' in out
    assert 'alice: commits=40' in out
    assert 'partial fetch failure' in out


def test_csv_rows_in_rank_order(report):
    rows = list(csv.reader(io.StringIO(renderer.render(report, 'csv'))))
    assert rows[0] == renderer.CSV_HEADER
    assert [r[0] for r in rows[1:]] == ['alice', 'bob', '<carol>']
    assert rows[1][5] == '40'
    assert rows[1][7] == 'high'
    assert rows[1][6] == '4.0000'


def test_json_uses_dashboard_field_names(report):
    payload = json.loads(renderer.render(report, 'json'))
    first = payload['activities'][0]
    assert first == {
        'username': 'alice', 'commits': 40, 'prs': 0, 'reviews': 0, 'issues': 0,
        'totalActivity': 40, 'avgCommitsPerDay': 4.0, 'status': 'high',
    }
    assert payload['summary']['distribution'] == {'low': 2, 'normal': 0, 'high': 1}
    assert payload['failures'][0]['resource'] == 'issues'


def test_html_escapes_and_lists_members(report):
    html = renderer.render(report, 'html')
    assert '<html' in html.lower()
    assert 'High activity' in html
    assert '&lt;carol&gt;' in html
    assert '<carol>' not in html
    assert 'Fetch failures' in html


def test_markdown_table(report):
    md = renderer.render(report, 'md')
    assert md.startswith('# Activity report: acme')
    assert '| 1 | alice | 40 | 0 | 0 | 0 | 4.0 | 40 | High activity |' in md


def test_export_formats():
    assert renderer.export_formats(True, 'text') == ['html', 'md', 'csv', 'json']
    assert renderer.export_formats(False, 'CSV') == ['csv']


def test_failure_serialization():
    err = PartialFetchError('api', 'reviews', RuntimeError('x'), pull_number=3)
    assert err.to_dict() == {'repo': 'api', 'resource': 'reviews', 'scope': 'pull_request', 'pull_number': 3, 'error': 'x'}
    assert 'api#3' in str(err)
