# File: registry_scout/errors.py
"""registry_scout.errors: Иерархия исключений краулера реестра."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "RegistryScoutError",
    "InvalidQuery",
    "ExhaustedRetries",
    "NavigationError",
    "ExtractionError",
    "CacheIOError",
]


class RegistryScoutError(Exception):
    """Base class for every error raised by registry_scout."""


class InvalidQuery(RegistryScoutError, ValueError):
    """Query is empty or malformed; raised before any navigation."""


class ExhaustedRetries(RegistryScoutError):
    """An operation failed on every attempt of its retry budget."""

    def __init__(self, cause: BaseException, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {cause!r}")
        self.cause = cause
        self.attempts = attempts


class NavigationError(RegistryScoutError):
    """A navigation, wait or interaction step exhausted its retry budget."""

    def __init__(self, action: str, cause: Optional[BaseException] = None) -> None:
        message = f"{action} failed" if cause is None else f"{action} failed: {cause}"
        super().__init__(message)
        self.action = action
        self.cause = cause


class ExtractionError(RegistryScoutError):
    """The page structure does not allow extraction to continue."""


class CacheIOError(RegistryScoutError, OSError):
    """Cache storage failure. Never leaves the cache layer."""
