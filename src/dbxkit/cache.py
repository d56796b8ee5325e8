"""HTTP fetch with an in-process response cache.

Providers hand this module a fully built request and get back the decoded
JSON body plus a flag saying whether it came from the cache. Retry and
timeout policy live here and nowhere else.

Cache policy:
- key = sha256(url + body)
- only 2xx JSON bodies without an "error" member are stored
- entries are kept as JSON text; every caller gets its own decoded copy
- LRU, at most DBXKIT_CACHE_MAX_ENTRIES entries (default 1000)
- DBXKIT_CACHE_ENABLED=0 turns caching off for the whole process
"""
from __future__ import annotations

import hashlib
import json
import os
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional

import requests

from .errors import AdapterError
from .logging_util import get_logger
from .types import FetchResult

logger = get_logger(__name__)

def _env_int(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key) or default)
    except ValueError:
        return default

REQUEST_TIMEOUT_MS = _env_int("DBXKIT_REQUEST_TIMEOUT_MS", 300_000)

# Transient error retry settings
_TRANSIENT_STATUS_CODES = {429, 500, 502, 503}
_RETRY_BASE_DELAY = 1.0  # seconds, doubles each retry

_cache: "OrderedDict[str, str]" = OrderedDict()
_lock = threading.Lock()
_enabled = (os.environ.get("DBXKIT_CACHE_ENABLED") or "1").strip().lower() not in ("0", "false", "n", "no", "off")

def enable_cache() -> None:
    global _enabled
    _enabled = True

def disable_cache() -> None:
    global _enabled
    _enabled = False

def is_cache_enabled() -> bool:
    return _enabled

def clear_cache() -> None:
    with _lock:
        _cache.clear()

def cache_size() -> int:
    with _lock:
        return len(_cache)

def _max_retries() -> int:
    return _env_int("DBXKIT_REQUEST_MAX_RETRIES", 4)

def _max_entries() -> int:
    return max(_env_int("DBXKIT_CACHE_MAX_ENTRIES", 1000), 1)

def _cache_get(key: str) -> Optional[Any]:
    with _lock:
        text = _cache.get(key)
        if text is None:
            return None
        _cache.move_to_end(key)
    return json.loads(text)

def _cache_put(key: str, data: Any) -> None:
    text = json.dumps(data)
    limit = _max_entries()
    with _lock:
        _cache[key] = text
        _cache.move_to_end(key)
        while len(_cache) > limit:
            _cache.popitem(last=False)

def _cache_key(url: str, body: Optional[str]) -> str:
    return hashlib.sha256(f"{url}\n{body or ''}".encode("utf-8")).hexdigest()

def fetch_with_retries(url: str, request: Dict[str, Any], timeout_ms: int) -> requests.Response:
    """POST the request, retrying rate limits and 5xx with exponential backoff."""
    retries = _max_retries()
    timeout = timeout_ms / 1000

    for attempt in range(retries + 1):
        try:
            r = requests.post(
                url,
                headers=request.get("headers") or {},
                data=request.get("body"),
                timeout=timeout,
            )
        except requests.RequestException as e:
            if attempt >= retries:
                raise AdapterError(f"request failed: {e}")
            delay = _RETRY_BASE_DELAY * (2 ** attempt)
            logger.warning("Request to %s failed (attempt %d/%d): %s; retrying in %.1fs",
                           url, attempt + 1, retries + 1, e, delay)
            time.sleep(delay)
            continue

        if r.status_code in _TRANSIENT_STATUS_CODES and attempt < retries:
            delay = _RETRY_BASE_DELAY * (2 ** attempt)
            logger.warning("HTTP %d from %s (attempt %d/%d); retrying in %.1fs",
                           r.status_code, url, attempt + 1, retries + 1, delay)
            time.sleep(delay)
            continue
        return r

    # unreachable: the last attempt always returns or raises
    raise AdapterError(f"request failed: {url}")

def fetch_with_cache(
    url: str,
    request: Dict[str, Any],
    timeout_ms: int = REQUEST_TIMEOUT_MS,
    *,
    bust: bool = False,
) -> FetchResult:
    key = _cache_key(url, request.get("body"))

    if _enabled and not bust:
        hit = _cache_get(key)
        if hit is not None:
            logger.debug("Cache hit for %s", url)
            return FetchResult(data=hit, cached=True)

    r = fetch_with_retries(url, request, timeout_ms)

    try:
        data = r.json()
    except ValueError:
        raise AdapterError(f"HTTP {r.status_code}: {r.text[:600]}")

    if not 200 <= r.status_code < 300:
        logger.debug("HTTP %d from %s: %s", r.status_code, url, json.dumps(data)[:600])
        return FetchResult(data=data, cached=False)

    if _enabled and not (isinstance(data, dict) and data.get("error")):
        _cache_put(key, data)

    return FetchResult(data=data, cached=False)
