# registry_scout/cache/__init__.py
"""Resource caching and request interception."""
from registry_scout.cache.policy import (
    Action,
    Decision,
    InterceptionPolicy,
    InterceptionRules,
    RequestInfo,
    ResponseInfo,
    classify_request,
)
from registry_scout.cache.store import (
    CacheEntry,
    DirectoryResourceCache,
    NullResourceCache,
    ResourceCache,
    TtlResourceCache,
    build_cache,
    cache_key,
)

__all__ = [
    "Action",
    "Decision",
    "InterceptionPolicy",
    "InterceptionRules",
    "RequestInfo",
    "ResponseInfo",
    "classify_request",
    "CacheEntry",
    "DirectoryResourceCache",
    "NullResourceCache",
    "ResourceCache",
    "TtlResourceCache",
    "build_cache",
    "cache_key",
]
