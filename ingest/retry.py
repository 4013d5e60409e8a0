"""
Retry/backoff and rate-limit-aware HTTP GET helper used by the GitHub commit source.
"""

import os
import time
import random
import logging
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import requests

logger = logging.getLogger(__name__)

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("CONTRIB_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("CONTRIB_BACKOFF_BASE", "0.5"))
_env_jitter = os.getenv("CONTRIB_BACKOFF_JITTER")
DEFAULT_BACKOFF_JITTER = float(_env_jitter) if _env_jitter else None
DEFAULT_MAX_BACKOFF = float(os.getenv("CONTRIB_MAX_BACKOFF", "120.0"))
REQUEST_TIMEOUT = 30.0

# runtime-overrides
_runtime: Dict[str, Optional[float]] = {'max_retries': None, 'backoff_base': None, 'backoff_jitter': None, 'max_backoff': None}


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


def reset_retry():
    for k in _runtime:
        _runtime[k] = None


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    """Retry-After may be delta-seconds or an HTTP date."""
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
    try:
        val = headers.get(key)
        return cast(val) if val is not None else None
    except (TypeError, ValueError):
        return None


def _should_retry_response(status_code: int, retry_after: Optional[float], remaining: Optional[int]) -> bool:
    if status_code in (429, 502, 503):
        return True
    if retry_after is not None:
        return True
    # GitHub answers 403 with X-RateLimit-Remaining: 0 on primary rate limits
    return remaining is not None and remaining <= 0


def _compute_wait_seconds(retry_after: Optional[float], reset_at: Optional[float], backoff: float, jitter: float, max_backoff: float) -> float:
    if retry_after is not None:
        wait = retry_after
    elif reset_at:
        wait = max(0.0, reset_at - time.time())
    else:
        wait = backoff
    return min(wait + random.uniform(0, jitter), max_backoff)


def _resolve(name: str, explicit, default):
    if explicit is not None:
        return explicit
    if _runtime[name] is not None:
        return _runtime[name]
    return default


def get_with_retries(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    backoff_jitter: Optional[float] = None,
    max_backoff: Optional[float] = None,
) -> Dict[str, Any]:
    """Perform a GET with retries on connection errors, 429/5xx and exhausted rate limits.

    Returns a dict with 'response' (parsed JSON or text) and 'status'. A status of 0 means every
    attempt failed before a response arrived.
    """
    attempts = int(_resolve('max_retries', max_retries, DEFAULT_MAX_RETRIES)) or 1
    backoff = float(_resolve('backoff_base', backoff_base, DEFAULT_BACKOFF_BASE))
    jitter = _resolve('backoff_jitter', backoff_jitter, DEFAULT_BACKOFF_JITTER)
    jitter = backoff if jitter is None else float(jitter)
    cap = float(_resolve('max_backoff', max_backoff, DEFAULT_MAX_BACKOFF))

    last: Dict[str, Any] = {'response': None, 'status': 0}
    for attempt in range(1, attempts + 1):
        try:
            resp = requests.get(url, headers=headers or {}, params=params or {}, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as ex:
            logger.warning("GET %s failed (attempt %d/%d): %s", url, attempt, attempts, ex)
            last = {'response': str(ex), 'status': 0}
            if attempt < attempts:
                time.sleep(_compute_wait_seconds(None, None, backoff, jitter, cap))
                backoff = min(backoff * 2, cap)
            continue

        status = resp.status_code
        resp_headers = getattr(resp, 'headers', None) or {}
        try:
            body = resp.json()
        except ValueError:
            body = getattr(resp, 'text', None)
        last = {'response': body, 'status': status}
        if status == 200:
            return last

        retry_after = _parse_retry_after(resp_headers.get('Retry-After'))
        remaining = _header_number(resp_headers, 'X-RateLimit-Remaining', int)
        if not _should_retry_response(status, retry_after, remaining):
            return last
        if attempt < attempts:
            reset_at = _header_number(resp_headers, 'X-RateLimit-Reset', float)
            wait = _compute_wait_seconds(retry_after, reset_at, backoff, jitter, cap)
            logger.info("GET %s returned %s; retrying in %.1fs (attempt %d/%d)", url, status, wait, attempt, attempts)
            time.sleep(wait)
            backoff = min(backoff * 2, cap)
    return last


__all__ = ["configure_retry", "reset_retry", "get_with_retries"]
