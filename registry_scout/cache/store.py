# registry_scout/cache/store.py
"""
Resource cache: storage for network resources fetched by browser sessions.

Two variants share the :class:`ResourceCache` interface:

* :class:`TtlResourceCache` – process-local map, entries expire after the
  ``max-age`` they were stored with; optional JSON snapshot on disk so the
  cache outlives the process.
* :class:`DirectoryResourceCache` – permanent cache, one blob per resource in
  a directory; an entry is written once and never overwritten.

Storage failures never reach callers: they are logged and treated as a miss.
"""
from __future__ import annotations

import base64
import hashlib
import json
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union
from urllib.parse import quote, urlsplit

from registry_scout.errors import CacheIOError
from registry_scout.logger import get_logger

__all__ = (
    "CacheEntry",
    "cache_key",
    "ResourceCache",
    "NullResourceCache",
    "TtlResourceCache",
    "DirectoryResourceCache",
    "build_cache",
)

log = get_logger("cache")

# Leaves room for the ".json" and ".body" suffixes under the usual 255-byte name limit.
_MAX_STEM_BYTES = 200

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Stored response: status, headers and raw body; ``expires_at`` is epoch seconds."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_json(self) -> dict:
        return {
            "status": self.status,
            "headers": dict(self.headers),
            "body": base64.b64encode(self.body).decode("ascii"),
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_json(cls, data: Mapping) -> CacheEntry:
        return cls(
            status=int(data["status"]),
            headers=dict(data.get("headers") or {}),
            body=base64.b64decode(data.get("body") or ""),
            expires_at=data.get("expires_at"),
        )


def cache_key(url: str) -> str:
    """Normalized resource identifier: scheme + host + path, query and fragment dropped."""
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path or '/'}"


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class ResourceCache:
    """Interface and lifecycle shared by all cache variants."""

    #: permanent caches never overwrite an existing entry
    permanent: bool = False

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock

    def open(self) -> None:
        """Prepare storage. Safe to call more than once."""

    def flush(self) -> None:
        """Persist pending state."""

    def close(self) -> None:
        self.flush()

    def lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            entry = self._read(key)
        except CacheIOError as exc:
            log.warning("Cache read failed for %s: %s", key, exc)
            return None
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            log.debug("Cache entry expired: %s", key)
            return None
        return entry

    def store(self, key: str, entry: CacheEntry) -> None:
        try:
            self._write(key, entry)
        except CacheIOError as exc:
            log.warning("Cache write failed for %s: %s", key, exc)

    def now(self) -> float:
        return self._clock()

    def __enter__(self) -> ResourceCache:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # storage hooks ---------------------------------------------------------
    def _read(self, key: str) -> Optional[CacheEntry]:
        raise NotImplementedError

    def _write(self, key: str, entry: CacheEntry) -> None:
        raise NotImplementedError


class NullResourceCache(ResourceCache):
    """Always empty; used when caching is switched off."""

    def _read(self, key: str) -> Optional[CacheEntry]:
        return None

    def _write(self, key: str, entry: CacheEntry) -> None:
        return None


class TtlResourceCache(ResourceCache):
    """In-memory map with expiry, optionally snapshotted to a JSON file."""

    def __init__(self, snapshot: Union[str, Path, None] = None, clock: Clock = time.time) -> None:
        super().__init__(clock)
        self.snapshot = Path(snapshot) if snapshot is not None else None
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._dirty = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def open(self) -> None:
        if self.snapshot is None or not self.snapshot.is_file():
            return
        try:
            raw = json.loads(self.snapshot.read_text(encoding="utf-8"))
            now = self._clock()
            loaded = {}
            for key, item in raw.items():
                entry = CacheEntry.from_json(item)
                if not entry.is_expired(now):
                    loaded[key] = entry
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            log.warning("Ignoring unreadable cache snapshot %s: %s", self.snapshot, exc)
            return
        with self._lock:
            self._entries.update(loaded)
        log.debug("Loaded %d cache entries from %s", len(loaded), self.snapshot)

    def flush(self) -> None:
        if self.snapshot is None:
            return
        with self._lock:
            if not self._dirty:
                return
            now = self._clock()
            payload = {k: e.to_json() for k, e in self._entries.items() if not e.is_expired(now)}
            self._dirty = False
        try:
            self.snapshot.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.snapshot, json.dumps(payload).encode("utf-8"))
        except OSError as exc:
            log.warning("Cache snapshot write failed for %s: %s", self.snapshot, exc)

    def _read(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def _write(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._dirty = True


class DirectoryResourceCache(ResourceCache):
    """
    Permanent cache: ``<name>.body`` holds the raw bytes and ``<name>.json``
    the status and headers. The body is written before the metadata, so a
    visible ``.json`` file always has a complete body next to it.
    """

    permanent = True

    def __init__(self, root: Union[str, Path], clock: Clock = time.time) -> None:
        super().__init__(clock)
        self.root = Path(root)

    @staticmethod
    def file_stem(key: str) -> str:
        """Deterministic file name for *key*: host and path with separators escaped.

        Names that would not fit the file system are cut and suffixed with the
        sha256 of the key, so distinct long keys never share a file.
        """
        parts = urlsplit(key)
        stem = quote(f"{parts.scheme}_{parts.netloc}{parts.path}", safe="")
        if len(stem) <= _MAX_STEM_BYTES:
            return stem
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return f"{stem[: _MAX_STEM_BYTES - len(digest) - 1]}_{digest}"

    def _paths(self, key: str) -> tuple[Path, Path]:
        stem = self.file_stem(key)
        return self.root / f"{stem}.json", self.root / f"{stem}.body"

    def open(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.warning("Cannot create cache directory %s: %s", self.root, exc)

    def _read(self, key: str) -> Optional[CacheEntry]:
        meta_path, body_path = self._paths(key)
        try:
            if not meta_path.is_file():
                return None
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            body = body_path.read_bytes()
            return CacheEntry(
                status=int(meta["status"]),
                headers=dict(meta.get("headers") or {}),
                body=body,
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise CacheIOError(str(exc)) from exc

    def _write(self, key: str, entry: CacheEntry) -> None:
        meta_path, body_path = self._paths(key)
        meta = {"url": key, "status": entry.status, "headers": dict(entry.headers)}
        try:
            if meta_path.exists():
                return
            self.root.mkdir(parents=True, exist_ok=True)
            _atomic_write(body_path, entry.body)
            _atomic_write(meta_path, json.dumps(meta).encode("utf-8"))
        except OSError as exc:
            raise CacheIOError(str(exc)) from exc


def build_cache(config, clock: Clock = time.time) -> ResourceCache:
    """Create the cache variant selected by ``CacheConfig.mode``."""
    if config.mode == "permanent":
        return DirectoryResourceCache(config.directory, clock=clock)
    if config.mode == "ttl":
        return TtlResourceCache(config.snapshot, clock=clock)
    return NullResourceCache(clock=clock)
