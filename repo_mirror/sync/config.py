"""Configuration constants and settings resolution for the mirror workflow."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ConfigError
from ..retrieval.config import (
    BASE_URL,
    CLONE_URL_FIELD,
    PAGE_DELAY_SEC,
    PER_PAGE,
    REQUEST_TIMEOUT,
)
from ..secrets import DEFAULT_CONFIG_FILENAME, load_local_config

OWNED_SUBDIR = "users"
STARRED_SUBDIR = "starred"
TAKEDOWN_MARKERS: List[str] = ["DMCA takedown"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

MAX_ATTEMPTS = int(os.getenv("MIRROR_MAX_ATTEMPTS", "20"))
RETRY_DELAY_SEC = float(os.getenv("MIRROR_RETRY_DELAY_SEC", "0.2"))
GIT_EXECUTABLE = os.getenv("MIRROR_GIT_EXECUTABLE", "git")


@dataclass(frozen=True)
class MirrorSettings:
    """Resolved runtime settings for one mirror run."""

    user: str
    token: str = field(repr=False)
    repo_root_dir: Path
    api_url: str = BASE_URL
    clone_url_field: str = CLONE_URL_FIELD
    takedown_markers: Tuple[str, ...] = tuple(TAKEDOWN_MARKERS)
    per_page: int = PER_PAGE
    request_timeout: float = REQUEST_TIMEOUT
    page_delay: float = PAGE_DELAY_SEC
    max_attempts: int = MAX_ATTEMPTS
    retry_delay: float = RETRY_DELAY_SEC
    git: str = GIT_EXECUTABLE
    dedupe: bool = True
    dry_run: bool = False


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the mirror entry point."""

    parser = argparse.ArgumentParser(
        description="Mirror your owned and starred GitHub repositories to local disk.",
    )
    parser.add_argument("-f", "--config", default=None, help=f"config file (default {DEFAULT_CONFIG_FILENAME})")
    parser.add_argument("--max-attempts", type=int, default=MAX_ATTEMPTS)
    parser.add_argument("--retry-delay", type=float, default=RETRY_DELAY_SEC, help="seconds between command retries")
    parser.add_argument("--page-delay", type=float, default=PAGE_DELAY_SEC, help="seconds between listing pages")
    parser.add_argument("--git", default=GIT_EXECUTABLE, help="git executable to invoke")
    parser.add_argument("--no-dedupe", action="store_true", help="sync repeated listing entries again")
    parser.add_argument("--dry-run", action="store_true", help="list planned actions without touching disk")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default="INFO")
    parser.add_argument("--log-file", default=None)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def _required_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"config field '{key}' is required and must be a non-empty string")
    return value


def settings_from_config(data: Dict[str, Any], args: Optional[argparse.Namespace] = None) -> MirrorSettings:
    """Validate the loaded config object and merge CLI overrides into settings."""

    user = _required_str(data, "user")
    token = _required_str(data, "token")
    repo_root_dir = _required_str(data, "repo_root_dir")

    markers = data.get("takedown_markers", TAKEDOWN_MARKERS)
    if not isinstance(markers, list) or not all(isinstance(m, str) and m for m in markers):
        raise ConfigError("config field 'takedown_markers' must be a list of non-empty strings")

    api_url = str(data.get("api_url") or BASE_URL).rstrip("/")
    clone_url_field = str(data.get("clone_url_field") or CLONE_URL_FIELD)

    if args is None:
        args = parse_args([])
    if args.max_attempts < 1:
        raise ConfigError("--max-attempts must be at least 1")

    return MirrorSettings(
        user=user,
        token=token,
        repo_root_dir=Path(repo_root_dir).expanduser(),
        api_url=api_url,
        clone_url_field=clone_url_field,
        takedown_markers=tuple(markers),
        max_attempts=int(args.max_attempts),
        retry_delay=max(0.0, float(args.retry_delay)),
        page_delay=max(0.0, float(args.page_delay)),
        git=args.git,
        dedupe=not args.no_dedupe,
        dry_run=bool(args.dry_run),
    )


def resolve_settings(args: Optional[argparse.Namespace] = None) -> MirrorSettings:
    """Load the config file named on the command line and return immutable settings."""

    args = args or parse_args()
    return settings_from_config(load_local_config(args.config), args)


__all__ = [
    "OWNED_SUBDIR",
    "STARRED_SUBDIR",
    "TAKEDOWN_MARKERS",
    "LOG_LEVELS",
    "MAX_ATTEMPTS",
    "RETRY_DELAY_SEC",
    "GIT_EXECUTABLE",
    "MirrorSettings",
    "build_arg_parser",
    "parse_args",
    "settings_from_config",
    "resolve_settings",
]
