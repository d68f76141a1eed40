"""
CLI entry point for org_activity. Wires the pipeline: roster/catalog -> collect -> aggregate -> classify -> report
"""

import argparse
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone
from engine import build_report, DEFAULT_WINDOW_DAYS
from errors import ConfigurationError, FatalFetchError
from report.renderer import render, export_formats
from storage.cache import Cache, configure_retry
import json

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = "cache.db"


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _clear_cache(cache: Cache, force: bool):
    if not force:
        confirm = input(f"Are you sure you want to clear the cache at {cache.path}? This cannot be undone. [y/N]: ")
        if confirm.strip().lower() not in ("y", "yes"):
            print("Aborted cache clear.")
            return
    cache.clear()
    print(f"Cleared cache at {cache.path}")


def _handle_cache_actions(args) -> bool:
    """Run --cache-info / --cache-clear. Returns True when one was performed and the CLI should exit."""
    if not (args.cache_info or args.cache_clear):
        return False
    with Cache(args.cache or DEFAULT_CACHE_PATH) as cache:
        if args.cache_info:
            _print_json(cache.stats())
        if args.cache_clear:
            _clear_cache(cache, args.force)
    return True


def _resolve_inputs(args, parser):
    """Resolve token/org/base URL from CLI args or environment variables and attach them to args.
    Calls parser.error() if token or org is missing.
    """
    args.token = args.token or os.getenv('GITHUB_TOKEN')
    args.org = args.org or os.getenv('GITHUB_ORG')
    args.base_url = args.base_url or os.getenv('GITHUB_API_URL') or None

    missing = []
    if not args.token:
        missing.append('token (CLI flag --token or env GITHUB_TOKEN)')
    if not args.org:
        missing.append('org (CLI flag --org or env GITHUB_ORG)')
    if missing:
        parser.error('Missing required inputs: ' + ', '.join(missing))


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def _default_base(org: str) -> str:
    return f"activity_report_{org}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"


def _write_report_file(path_base: str, ext: str, content: str, open_html: bool = False) -> str:
    """Write the rendered content to `<path_base>.<ext>` and optionally open HTML in the browser."""
    out_path = path_base if path_base.lower().endswith(f".{ext}") else f"{path_base}.{ext}"
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(out_path, 'w', encoding='utf-8', newline='') as fh:
        fh.write(content)
    print(f"Wrote report to {out_path}")
    if open_html and ext == 'html':
        try:
            _open_file_in_browser(out_path)
        except webbrowser.Error:
            print('Failed to open browser automatically; file saved at', out_path)
    return out_path


def write_output(report, args):
    """Write the report in the requested format(s); text without --out-file goes to stdout."""
    fmt = (args.output or 'text').lower()
    if fmt == 'text' and not args.export_all and not args.out_file:
        print(render(report, 'text'))
        return
    base = args.out_file.strip() or _default_base(report.org)
    for ffmt in export_formats(args.export_all, fmt):
        ext = 'txt' if ffmt == 'text' else ffmt
        _write_report_file(base, ext, render(report, ffmt), open_html=args.open)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GitHub organization activity report")
    parser.add_argument("--org", type=str, default="", help="GitHub organization (or set GITHUB_ORG env var)")
    parser.add_argument("--token", type=str, default="", help="GitHub API token (or set GITHUB_TOKEN env var)")
    parser.add_argument("--days", type=int, default=DEFAULT_WINDOW_DAYS, help=f"Window size in days (default: {DEFAULT_WINDOW_DAYS})")
    parser.add_argument("--base-url", type=str, default="", help="GitHub API base URL, e.g. for GitHub Enterprise (or set GITHUB_API_URL)")
    parser.add_argument("--output", type=str, help="Output format (text, html, md, csv, json)", default="text")
    parser.add_argument("--out-file", type=str, default="", help="Output file path without extension. If omitted a default name will be used")
    parser.add_argument("--export-all", action="store_true", help="Export HTML, MD, CSV and JSON copies of the report")
    parser.add_argument("--open", action="store_true", help="Open the generated HTML report in the default browser")
    parser.add_argument("--workers", type=int, default=1, help="Repositories collected concurrently (default: 1)")
    parser.add_argument("--timeout", type=float, default=None, help="Abort the run when collection takes longer than this many seconds")
    parser.add_argument("--weights", type=str, default=None, help="Path to a YAML file with weights/thresholds (default: config/activity.yaml)")
    parser.add_argument("--cache", type=str, default="", help="Path to SQLite cache file (optional)")
    parser.add_argument("--cache-ttl", type=float, default=None, help="Seconds a cached response stays valid")
    parser.add_argument("--cache-info", action="store_true", help="Show cache statistics (uses --cache or the default cache.db)")
    parser.add_argument("--cache-clear", action="store_true", help="Clear the persistent cache (uses --cache or the default cache.db)")
    parser.add_argument("--force", action="store_true", help="Clear the cache without confirmation")
    # retry/backoff knobs: environment variables ACTIVITY_MAX_RETRIES, ACTIVITY_BACKOFF_BASE,
    # ACTIVITY_BACKOFF_JITTER, ACTIVITY_MAX_BACKOFF set the defaults.
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts per HTTP request (overrides ACTIVITY_MAX_RETRIES env)")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds (overrides ACTIVITY_BACKOFF_BASE env)")
    parser.add_argument("--backoff-jitter", type=float, default=None, help="Jitter seconds added to backoff (overrides ACTIVITY_BACKOFF_JITTER env)")
    parser.add_argument("--max-backoff", type=float, default=None, help="Maximum backoff cap in seconds (overrides ACTIVITY_MAX_BACKOFF env)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity (default: INFO)")
    return parser


def main(argv=None, client=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if _handle_cache_actions(args):
        return 0

    configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, backoff_jitter=args.backoff_jitter, max_backoff=args.max_backoff)
    _resolve_inputs(args, parser)

    cache = Cache(args.cache, ttl_seconds=args.cache_ttl) if args.cache else None
    try:
        report = build_report(
            args.token,
            args.org,
            args.days,
            client=client,
            workers=args.workers,
            timeout=args.timeout,
            base_url=args.base_url,
            cache=cache,
            config_path=args.weights,
        )
    except ConfigurationError as ex:
        parser.error(str(ex))
    except FatalFetchError as ex:
        logger.error("Aggregation failed: %s", ex)
        return 1
    finally:
        if cache:
            cache.close()

    if report.truncated:
        print(f"Warning: results may be incomplete; {len(report.truncated)} resource(s) returned a full page.", file=sys.stderr)
    write_output(report, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
