"""HTTP helpers that walk the paginated GitHub repository listings."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import ListingError
from .config import CLONE_URL_FIELD, PAGE_DELAY_SEC, PER_PAGE, REQUEST_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryRecord:
    """One remote repository: where it lives locally and where to clone it from."""

    full_name: str
    clone_url: str

    @classmethod
    def from_api(cls, entry: Any, clone_field: str = CLONE_URL_FIELD) -> "RepositoryRecord":
        """Build a record from one listing entry, rejecting names that escape the root."""
        if not isinstance(entry, dict):
            raise ListingError(f"listing entry is not an object: {entry!r}")
        full_name = entry.get("full_name")
        clone_url = entry.get(clone_field)
        if not full_name or not isinstance(full_name, str):
            raise ListingError("listing entry has no full_name", details={"entry": entry})
        if not clone_url or not isinstance(clone_url, str):
            raise ListingError(
                f"listing entry {full_name} has no {clone_field}",
                details={"full_name": full_name, "field": clone_field},
            )

        segments = full_name.split("/")
        if (
            len(segments) != 2
            or full_name.startswith("/")
            or any(seg in ("", ".", "..") for seg in segments)
        ):
            raise ListingError(f"unexpected repository name: {full_name!r}")
        return cls(full_name=full_name, clone_url=clone_url)

    def __str__(self) -> str:
        return f"{self.full_name}: {self.clone_url}"


def build_session(user: str, token: str) -> requests.Session:
    """Return a session that sends basic-auth credentials on every request."""
    session = requests.Session()
    session.headers.update(
        {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
    )
    session.auth = (user, token)
    return session


def log_http_error(resp: requests.Response, url: str) -> str:
    """Log a short, human-readable message when GitHub returns an error."""
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        body = {"text": str(body)[:300]}
    msg = body.get("message") or body.get("error") or body.get("text")
    logger.error(f"[error] HTTP {resp.status_code} for {url} -> {msg}")
    return str(msg)


def parse_next_link(header: Optional[str]) -> Optional[str]:
    """Return the URL tagged rel="next" in a Link header, or None when absent."""
    if not header:
        return None
    for entry in header.split(","):
        parts = [part.strip() for part in entry.split(";")]
        target = parts[0]
        if not (target.startswith("<") and target.endswith(">")):
            continue
        for param in parts[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() != "rel":
                continue
            if "next" in value.strip().strip('"').split():
                return target[1:-1]
    return None


def parse_repositories(payload: Any, clone_field: str = CLONE_URL_FIELD) -> List[RepositoryRecord]:
    """Convert one decoded listing page into records, preserving order."""
    if not isinstance(payload, list):
        raise ListingError(f"listing page is not a JSON array: {type(payload).__name__}")
    return [RepositoryRecord.from_api(entry, clone_field) for entry in payload]


def with_page_size(url: str, per_page: int = PER_PAGE) -> str:
    """Append a per_page query parameter unless the URL already carries one."""
    if not per_page or "per_page=" in url:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}per_page={per_page}"


def fetch_repositories(
    session: requests.Session,
    url: str,
    *,
    clone_field: str = CLONE_URL_FIELD,
    page_delay: float = PAGE_DELAY_SEC,
    timeout: float = REQUEST_TIMEOUT,
    per_page: int = PER_PAGE,
) -> List[RepositoryRecord]:
    """Follow rel="next" links from `url` until exhausted and return every record.

    Any transport error, non-2xx status or malformed page raises ListingError;
    nothing is returned for a partially walked listing.
    """
    records: List[RepositoryRecord] = []
    next_url: Optional[str] = with_page_size(url, per_page)
    pages = 0

    while next_url:
        logger.info(f"[fetch] GET {next_url}")
        try:
            resp = session.get(next_url, timeout=timeout)
        except requests.RequestException as exc:
            raise ListingError(f"fetch {next_url} failed: {exc}", details={"url": next_url}) from exc

        if not 200 <= resp.status_code < 300:
            msg = log_http_error(resp, next_url)
            raise ListingError(
                f"fetch {next_url} returned HTTP {resp.status_code}: {msg}",
                details={"url": next_url, "status": resp.status_code},
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ListingError(f"malformed listing body from {next_url}: {exc}") from exc

        records.extend(parse_repositories(payload, clone_field))
        pages += 1

        next_url = parse_next_link((resp.headers or {}).get("Link"))
        if next_url and page_delay > 0:
            logger.info(f"[ratelimit] sleeping {page_delay}s before next page")
            time.sleep(page_delay)

    logger.info(f"[fetch] {len(records)} repositories across {pages} page(s)")
    return records


def dedupe_records(records: List[RepositoryRecord]) -> List[RepositoryRecord]:
    """Drop repeated full names, keeping the first occurrence and the original order."""
    seen: Dict[str, RepositoryRecord] = {}
    for record in records:
        if record.full_name in seen:
            logger.info(f"[skip] duplicate listing entry {record.full_name}")
            continue
        seen[record.full_name] = record
    return list(seen.values())


__all__ = [
    "RepositoryRecord",
    "build_session",
    "log_http_error",
    "parse_next_link",
    "parse_repositories",
    "with_page_size",
    "fetch_repositories",
    "dedupe_records",
]
