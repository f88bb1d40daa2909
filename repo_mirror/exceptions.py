"""
Fatal errors raised while mirroring.

Anything derived from MirrorError aborts the run; command failures are
reported as results instead and never raise.
"""

from typing import Optional


class MirrorError(Exception):
    """Base exception for errors that terminate a mirror run."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(MirrorError):
    """Raised when the config file is unusable or credentials are missing."""


class ListingError(MirrorError):
    """Raised when a repository listing cannot be fetched or decoded."""


class WorkspaceError(MirrorError):
    """Raised when the mirror root or a repository directory cannot be created."""
