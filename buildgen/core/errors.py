"""
buildgen/core/errors.py
Exception types raised across component boundaries.
  • CacheInitError → cache root unusable at boot (fatal)
  • FetchError     → upstream document could not be retrieved
"""

from typing import Optional


class BuildGenError(Exception):
    """Base class for every error this package raises on purpose."""


class CacheInitError(BuildGenError):
    """The cache directory could not be created or is not writable."""


class FetchError(BuildGenError):
    """All fetch attempts failed, or a stop was requested between attempts."""

    def __init__(self, url: str, attempts: int, reason: Optional[str] = None):
        self.url      = url
        self.attempts = attempts
        self.reason   = reason
        msg = f"Failed to fetch {url} after {attempts} attempt(s)"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
