"""Paginated GitHub listing retrieval."""

from .http_client import RepositoryRecord, build_session, fetch_repositories

__all__ = ["RepositoryRecord", "build_session", "fetch_repositories"]
