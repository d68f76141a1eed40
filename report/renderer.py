"""
Report renderer: generate text/Markdown/CSV/JSON/HTML output from an ActivityReport.
HTML and Markdown use the Jinja2 templates in report/templates/.
"""

from typing import List
import os
import json
import io
import csv
from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')

CSV_HEADER = ['username', 'commits', 'prs', 'reviews', 'issues', 'totalActivity', 'avgCommitsPerDay', 'status']

STATUS_LABELS = {
    'low': 'Low activity',
    'normal': 'Normal activity',
    'high': 'High activity',
}


def _environment() -> Environment:
    env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(['html', 'xml', 'html.j2']))
    env.filters['status_label'] = lambda s: STATUS_LABELS.get(s, s or '')
    return env


def _context(report) -> dict:
    return {
        'report': report,
        'summary': report.summary(),
        'records': report.records,
        'failures': report.failures,
        'max_total': max((r.total_activity or 0 for r in report.records), default=0),
        'status_labels': STATUS_LABELS,
    }


def render_text(report) -> str:
    """Render a simple plain-text summary."""
    s = report.summary()
    lines = [
        f"Activity for {s['org']} over the last {s['days']} days (since {s['since']})",
        f"Members: {s['members']}  Repositories: {s['repositories']}  "
        + "  ".join(f"{STATUS_LABELS[k]}: {v}" for k, v in s['distribution'].items()),
        "",
    ]
    lines.extend(str(r) for r in report.records)
    if report.failures:
        lines.append("")
        lines.append(f"{len(report.failures)} partial fetch failure(s):")
        lines.extend(f"  - {f}" for f in report.failures)
    return "\n".join(lines)


def _format_csv_row(r) -> list:
    d = r.to_dict()
    row = [d[k] for k in CSV_HEADER]
    row[CSV_HEADER.index('avgCommitsPerDay')] = f"{r.avg_commits_per_day:.4f}"
    return row


def render_csv(report) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for r in report.records:
        writer.writerow(_format_csv_row(r))
    return output.getvalue()


def render_json(report) -> str:
    """The ranked records as dashboard JSON (camelCase keys), plus a summary and the failures list."""
    payload = {
        'summary': report.summary(),
        'activities': [r.to_dict() for r in report.records],
        'failures': [f.to_dict() for f in report.failures],
    }
    return json.dumps(payload, indent=2)


def render_markdown(report) -> str:
    return _environment().get_template('report.md.j2').render(**_context(report))


def render_html(report) -> str:
    return _environment().get_template('report.html.j2').render(**_context(report))


def render(report, fmt: str = 'text') -> str:
    """Main render function; unknown formats fall back to plain text."""
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(report)
    if fmt_l == 'csv':
        return render_csv(report)
    if fmt_l in ('html', 'htm'):
        return render_html(report)
    if fmt_l in ('json', 'js'):
        return render_json(report)
    return render_text(report)


def export_formats(all_formats: bool, fmt: str) -> List[str]:
    return ['html', 'md', 'csv', 'json'] if all_formats else [(fmt or 'html').lower()]
