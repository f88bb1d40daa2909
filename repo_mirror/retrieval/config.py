"""Central configuration constants for the GitHub listing workflow."""

from __future__ import annotations

import os

USER_AGENT = "repo-mirror/1.0"
BASE_URL = "https://api.github.com"
USER_REPOS_URI = "/user/repos"
STARRED_URI = "/user/starred"
CLONE_URL_FIELD = "ssh_url"

PER_PAGE = int(os.getenv("MIRROR_PER_PAGE", "100"))
REQUEST_TIMEOUT = int(os.getenv("MIRROR_REQUEST_TIMEOUT", "90"))
# GitHub documents 30 listing requests per minute for this flow
PAGE_DELAY_SEC = float(os.getenv("MIRROR_PAGE_DELAY_SEC", "2"))

__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "USER_REPOS_URI",
    "STARRED_URI",
    "CLONE_URL_FIELD",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "PAGE_DELAY_SEC",
]
