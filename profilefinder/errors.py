"""
Error taxonomy for profile resolution.

Only InputError is fatal to a single resolution. The resolver catches the
others and turns them into typed ResolutionResult statuses.
"""

from typing import Any, Iterable, Optional, Sequence


class ProfileFinderError(Exception):
    """Base class for all profilefinder errors."""


class InputError(ProfileFinderError):
    """Required person fields are missing or malformed."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid person record")


class ExternalCallError(ProfileFinderError):
    """The search capability failed (quota, network, malformed response)."""

    def __init__(self, message: str, error_type: str = "ExternalCallError", query: Optional[str] = None):
        self.error_type = error_type
        self.query = query
        super().__init__(message)


class QuotaExceededError(ExternalCallError):
    """A per-minute/hour/day search quota would be exceeded."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message, error_type="QuotaExceeded", query=query)


class CircuitOpenError(ExternalCallError):
    """Search calls are blocked after repeated failures."""

    def __init__(self, message: str):
        super().__init__(message, error_type="CircuitOpen")


class NoCandidateError(ProfileFinderError):
    """No profile-domain results survived both search passes."""


class ValidationRejection(ProfileFinderError):
    """Reject rules matched every scored candidate."""

    def __init__(self, reason: str, url: Optional[str] = None, candidate: Any = None):
        self.reason = reason
        self.url = url
        self.candidate = candidate
        super().__init__(reason)


class AmbiguityError(ProfileFinderError):
    """Top candidates are too close, or below the minimum required score."""

    def __init__(self, reason: str, urls: Sequence[str] = (), candidates: Sequence[Any] = ()):
        self.reason = reason
        self.urls = tuple(urls)
        self.candidates = tuple(candidates)
        super().__init__(reason)


class ConfigError(ProfileFinderError, ValueError):
    """Unrecognized or invalid configuration option."""


class AliasCollisionError(ConfigError):
    """Two organization records claim the same alias."""

    def __init__(self, alias: str, first: str, second: str):
        self.alias = alias
        self.records = (first, second)
        super().__init__(f"Alias '{alias}' is claimed by both '{first}' and '{second}'")
