# registry_scout/cache/policy.py
"""
Interception policy: decides, per outgoing request, whether to abort it,
serve it from the resource cache or let it reach the network, and, per
incoming response, whether to store it.

Both decisions are plain functions of request/response metadata and cache
state; the browser route handler only carries them out.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Pattern, Tuple
from urllib.parse import urlsplit

from registry_scout.cache.store import CacheEntry, ResourceCache, cache_key
from registry_scout.logger import get_logger

__all__ = (
    "Action",
    "RequestInfo",
    "ResponseInfo",
    "Decision",
    "InterceptionRules",
    "classify_request",
    "storage_expiry",
    "InterceptionPolicy",
    "summarize",
)

log = get_logger("intercept")

#: headers that describe the transfer, not the (decoded) body we keep
_TRANSFER_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding", "connection"})
_MAX_AGE_RE = re.compile(r"(?:^|,)\s*max-age\s*=\s*\"?(\d+)\"?", re.IGNORECASE)
_NO_STORE_RE = re.compile(r"(?:^|,)\s*no-store\b", re.IGNORECASE)


class Action(enum.Enum):
    ABORT = "abort"
    SERVE = "serve"
    PASS = "pass"


@dataclass(frozen=True, slots=True)
class RequestInfo:
    url: str
    resource_type: str
    method: str = "GET"


@dataclass(frozen=True, slots=True)
class ResponseInfo:
    url: str
    resource_type: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass(frozen=True, slots=True)
class Decision:
    action: Action
    entry: Optional[CacheEntry] = None


@dataclass(frozen=True)
class InterceptionRules:
    """Exclusion and eligibility rules, usually built from ``CacheConfig``."""

    blocked_resource_types: frozenset = frozenset()
    blocked_hosts: Tuple[str, ...] = ()
    storable_resource_types: frozenset = frozenset({"script", "stylesheet", "image"})
    uncached_url_patterns: Tuple[Pattern[str], ...] = ()
    #: permanent mode stores without a Cache-Control directive
    store_always: bool = False

    @classmethod
    def from_config(cls, config) -> InterceptionRules:
        return cls(
            blocked_resource_types=frozenset(config.blocked_resource_types),
            blocked_hosts=tuple(h.lower() for h in config.blocked_hosts),
            storable_resource_types=frozenset(config.storable_resource_types),
            uncached_url_patterns=tuple(re.compile(p) for p in config.uncached_url_patterns),
            store_always=config.mode == "permanent",
        )

    def host_blocked(self, url: str) -> bool:
        host = (urlsplit(url).hostname or "").lower()
        return any(host == h or host.endswith("." + h) for h in self.blocked_hosts)

    def uncached(self, url: str) -> bool:
        return any(p.search(url) for p in self.uncached_url_patterns)


def classify_request(
    request: RequestInfo, rules: InterceptionRules, cache: ResourceCache
) -> Decision:
    """Abort excluded requests, serve cached ones, pass the rest through."""
    if request.resource_type in rules.blocked_resource_types or rules.host_blocked(request.url):
        return Decision(Action.ABORT)
    if request.method.upper() != "GET" or rules.uncached(request.url):
        return Decision(Action.PASS)
    entry = cache.lookup(cache_key(request.url))
    if entry is not None:
        return Decision(Action.SERVE, entry)
    return Decision(Action.PASS)


def storage_expiry(
    headers: Mapping[str, str], now: float, store_always: bool
) -> Tuple[bool, Optional[float]]:
    """
    Return ``(eligible, expires_at)`` for a response with *headers*.

    A ``max-age=N`` directive with ``N > 0`` gives an expiry of ``now + N``.
    Without one, the response is eligible only when *store_always* is set, and
    is then kept with no expiry.
    """
    cache_control = ""
    for name, value in headers.items():
        if name.lower() == "cache-control":
            cache_control = value
            break
    if store_always:
        return True, None
    if _NO_STORE_RE.search(cache_control):
        return False, None
    match = _MAX_AGE_RE.search(cache_control)
    if match is None:
        return False, None
    max_age = int(match.group(1))
    if max_age <= 0:
        return False, None
    return True, now + max_age


def _strip_transfer_headers(headers: Mapping[str, str]) -> dict:
    return {k: v for k, v in headers.items() if k.lower() not in _TRANSFER_HEADERS}


class InterceptionPolicy:
    """Binds :class:`InterceptionRules` to one shared :class:`ResourceCache`."""

    def __init__(self, cache: ResourceCache, rules: Optional[InterceptionRules] = None) -> None:
        self.cache = cache
        self.rules = rules or InterceptionRules(store_always=cache.permanent)
        self.stats = {"abort": 0, "serve": 0, "pass": 0, "store": 0}

    @classmethod
    def from_config(cls, cache: ResourceCache, config) -> InterceptionPolicy:
        return cls(cache, InterceptionRules.from_config(config))

    def on_request(self, request: RequestInfo) -> Decision:
        decision = classify_request(request, self.rules, self.cache)
        self.stats[decision.action.value] += 1
        log.debug("%s %s [%s]", decision.action.value, request.url, request.resource_type)
        return decision

    def should_store(self, response: ResponseInfo) -> Optional[CacheEntry]:
        """Build the entry to store for *response*, or ``None`` if it is not eligible."""
        rules = self.rules
        if response.body is None or response.status != 200:
            return None
        if response.resource_type not in rules.storable_resource_types:
            return None
        if rules.host_blocked(response.url) or rules.uncached(response.url):
            return None
        eligible, expires_at = storage_expiry(response.headers, self.cache.now(), rules.store_always)
        if not eligible:
            return None
        return CacheEntry(
            status=response.status,
            headers=_strip_transfer_headers(response.headers),
            body=response.body,
            expires_at=expires_at,
        )

    def on_response(self, response: ResponseInfo) -> bool:
        """Store *response* if eligible and not already cached; return True if stored."""
        entry = self.should_store(response)
        if entry is None:
            return False
        key = cache_key(response.url)
        if self.cache.lookup(key) is not None:
            return False
        self.cache.store(key, entry)
        self.stats["store"] += 1
        return True


def summarize(stats: Mapping[str, int], keys: Iterable[str] = ("abort", "serve", "pass", "store")) -> str:
    return ", ".join(f"{k}={stats.get(k, 0)}" for k in keys)
