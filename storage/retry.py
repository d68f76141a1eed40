"""
Retry/backoff and rate-limit-aware HTTP GET helper for the GitHub REST API.
storage.cache.rate_limited_get delegates here after a cache miss.
"""

import os
import time
import random
import logging
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
import requests

logger = logging.getLogger(__name__)

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("ACTIVITY_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("ACTIVITY_BACKOFF_BASE", "0.5"))
_env_jitter = os.getenv("ACTIVITY_BACKOFF_JITTER")
DEFAULT_BACKOFF_JITTER = float(_env_jitter) if _env_jitter else None
DEFAULT_MAX_BACKOFF = float(os.getenv("ACTIVITY_MAX_BACKOFF", "120.0"))
DEFAULT_TIMEOUT = float(os.getenv("ACTIVITY_REQUEST_TIMEOUT", "30"))

# a single wait (Retry-After or rate-limit reset) is never longer than this
MAX_SINGLE_WAIT = 300.0

# runtime-overrides
_runtime: Dict[str, Optional[float]] = {
    'max_retries': None,
    'backoff_base': None,
    'backoff_jitter': None,
    'max_backoff': None,
}


def configure_retry(
    max_retries: Optional[int] = None, backoff_base: Optional[float] = None, backoff_jitter: Optional[float] = None, max_backoff: Optional[float] = None
):
    """Configure retry/backoff defaults at runtime (e.g. from CLI)."""
    if max_retries is not None:
        _runtime['max_retries'] = int(max_retries)
    if backoff_base is not None:
        _runtime['backoff_base'] = float(backoff_base)
    if backoff_jitter is not None:
        _runtime['backoff_jitter'] = float(backoff_jitter)
    if max_backoff is not None:
        _runtime['max_backoff'] = float(max_backoff)


def reset_retry_config():
    for k in _runtime:
        _runtime[k] = None


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return float(raw_ra)
    except (TypeError, ValueError):
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw_ra)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _header_number(headers, key: str, cast):
    val = headers.get(key)
    if val is None:
        return None
    try:
        return cast(val)
    except (TypeError, ValueError):
        return None


def _parse_rate_headers(resp) -> Tuple[Optional[float], Optional[int], Optional[float]]:
    headers = getattr(resp, 'headers', None) or {}
    return (
        _parse_retry_after(headers.get('Retry-After')),
        _header_number(headers, 'X-RateLimit-Remaining', int),
        _header_number(headers, 'X-RateLimit-Reset', float),
    )


def _resolve_backoff_params(min_wait: float, backoff_base: Optional[float], backoff_jitter: Optional[float], max_backoff: Optional[float]):
    if backoff_base is not None:
        base = float(backoff_base)
    elif _runtime['backoff_base'] is not None:
        base = float(_runtime['backoff_base'])
    elif min_wait:
        base = float(min_wait)
    else:
        base = DEFAULT_BACKOFF_BASE

    if backoff_jitter is not None:
        jitter = float(backoff_jitter)
    elif _runtime['backoff_jitter'] is not None:
        jitter = float(_runtime['backoff_jitter'])
    elif DEFAULT_BACKOFF_JITTER is not None:
        jitter = DEFAULT_BACKOFF_JITTER
    else:
        jitter = base

    if max_backoff is not None:
        cap = float(max_backoff)
    elif _runtime['max_backoff'] is not None:
        cap = float(_runtime['max_backoff'])
    else:
        cap = DEFAULT_MAX_BACKOFF

    return base, jitter, cap


def _should_retry_response(status_code: int, retry_after: Optional[float], remaining: Optional[int]) -> bool:
    if status_code in (429, 502, 503):
        return True
    if retry_after is not None:
        return True
    # GitHub answers 403 once the primary rate limit is exhausted
    if remaining is not None and remaining <= 0:
        return True
    return False


def _compute_wait_seconds(retry_after: Optional[float], rl_reset: Optional[float], backoff: float, jitter: float) -> float:
    if retry_after is not None:
        wait = retry_after
    elif rl_reset:
        wait = max(0.0, rl_reset - time.time())
    else:
        wait = backoff
    return min(wait + random.uniform(0, jitter), MAX_SINGLE_WAIT)


def _body(resp):
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, 'text', None)


def _attempt_request_once(url: str, headers: Dict[str, str], params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    try:
        resp = requests.get(url, headers=headers or {}, params=params or {}, timeout=DEFAULT_TIMEOUT)
    except requests.RequestException as ex:
        return 'error', {'exception': str(ex)}

    status = getattr(resp, 'status_code', 0)
    if status == 200:
        return 'success', {'body': _body(resp), 'status': status}

    retry_after, remaining, reset = _parse_rate_headers(resp)
    if _should_retry_response(status, retry_after, remaining):
        return 'retry', {'status': status, 'ra': retry_after, 'rl_reset': reset, 'body': _body(resp)}
    return 'fail', {'body': _body(resp), 'status': status}


def perform_request_with_retries(
    url: str,
    headers: Dict[str, str],
    params: Dict[str, Any],
    cache,
    cache_key: str,
    min_wait: float,
    max_retries: int,
    backoff_base: Optional[float] = None,
    backoff_jitter: Optional[float] = None,
    max_backoff: Optional[float] = None,
) -> Dict[str, Any]:
    """
    GET `url` until it succeeds, fails permanently or retries run out.
    Returns {'response', 'status', 'timestamp'}; status 0 means no HTTP response was ever received.
    Successful bodies are written to `cache` under `cache_key` when both are given.
    """
    base, jitter, cap = _resolve_backoff_params(min_wait, backoff_base, backoff_jitter, max_backoff)
    attempts = int(_runtime['max_retries']) if _runtime['max_retries'] is not None else int(max_retries or DEFAULT_MAX_RETRIES)
    attempts = max(1, attempts)

    backoff = base
    last: Dict[str, Any] = {'response': None, 'status': 0, 'timestamp': time.time()}
    for attempt in range(attempts):
        outcome, data = _attempt_request_once(url, headers, params)
        logger.debug("GET %s params=%s attempt=%d outcome=%s status=%s", url, params, attempt + 1, outcome, data.get('status'))

        if outcome == 'success':
            if cache is not None and cache_key:
                cache.set(cache_key, data['body'], data['status'])
            return {'response': data['body'], 'status': data['status'], 'timestamp': time.time()}

        if outcome == 'fail':
            return {'response': data.get('body'), 'status': data.get('status', 0), 'timestamp': time.time()}

        if outcome == 'error':
            last = {'response': data.get('exception'), 'status': 0, 'timestamp': time.time()}
            wait = min(backoff + random.uniform(0, jitter), cap)
        else:
            last = {'response': data.get('body'), 'status': data.get('status', 0), 'timestamp': time.time()}
            wait = _compute_wait_seconds(data.get('ra'), data.get('rl_reset'), backoff, jitter)

        backoff = min(backoff * 2, cap)
        if attempt + 1 < attempts:
            logger.debug("Retrying %s in %.2fs (status=%s)", url, wait, last['status'])
            time.sleep(wait)

    return last


__all__ = ["configure_retry", "reset_retry_config", "perform_request_with_retries"]
