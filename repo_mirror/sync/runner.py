"""Entry points for mirroring owned and starred repositories."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from ..exceptions import ConfigError, MirrorError
from ..logging_config import setup_logging
from ..retrieval.config import STARRED_URI, USER_REPOS_URI
from ..retrieval.http_client import build_session, dedupe_records, fetch_repositories
from .command import CommandRunner, default_classifiers
from .config import OWNED_SUBDIR, STARRED_SUBDIR, MirrorSettings, parse_args, resolve_settings
from .reconciler import ensure_directory, sync_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncTarget:
    """One category of repositories and the directory it is mirrored into."""

    name: str
    local_root: Path
    endpoint: str


@dataclass
class CategorySummary:
    name: str
    total: int = 0
    cloned: int = 0
    updated: int = 0
    failed: int = 0
    permanent: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return (
            f"{self.name}: total={self.total} cloned={self.cloned} updated={self.updated} "
            f"failed={self.failed} permanent={self.permanent} skipped={self.skipped}"
        )


def build_targets(settings: MirrorSettings) -> List[SyncTarget]:
    """Owned repositories first, then starred ones."""
    root = Path(settings.repo_root_dir)
    return [
        SyncTarget("owned", root / OWNED_SUBDIR, f"{settings.api_url}{USER_REPOS_URI}"),
        SyncTarget("starred", root / STARRED_SUBDIR, f"{settings.api_url}{STARRED_URI}"),
    ]


def build_runner(settings: MirrorSettings) -> CommandRunner:
    return CommandRunner(
        max_attempts=settings.max_attempts,
        retry_delay=settings.retry_delay,
        classifiers=default_classifiers(settings.takedown_markers),
    )


def sync_target(
    target: SyncTarget,
    settings: MirrorSettings,
    session: requests.Session,
    runner: CommandRunner,
) -> CategorySummary:
    """Fetch one listing completely, then reconcile each repository in listing order."""
    logger.info(f"[sync] category {target.name}: root={target.local_root}, api={target.endpoint}")
    records = fetch_repositories(
        session,
        target.endpoint,
        clone_field=settings.clone_url_field,
        page_delay=settings.page_delay,
        timeout=settings.request_timeout,
        per_page=settings.per_page,
    )
    summary = CategorySummary(target.name, total=len(records))
    if settings.dedupe:
        unique = dedupe_records(records)
        summary.skipped = len(records) - len(unique)
        records = unique
    logger.info(f"[sync] {target.endpoint}: repo count {len(records)}")

    for record in records:
        outcome = sync_repository(
            record,
            target.local_root,
            runner,
            git=settings.git,
            dry_run=settings.dry_run,
        )
        if outcome.failed:
            summary.failed += 1
        elif outcome.permanent:
            summary.permanent += 1
        elif outcome.succeeded and outcome.action == "clone":
            summary.cloned += 1
        elif outcome.succeeded and outcome.action == "update":
            summary.updated += 1

    logger.info(f"[summary] {summary}")
    return summary


def mirror(
    settings: MirrorSettings,
    session: Optional[requests.Session] = None,
    runner: Optional[CommandRunner] = None,
) -> List[CategorySummary]:
    """Mirror every category for the configured user; raises MirrorError on fatal problems."""
    if not settings.user or not settings.token:
        raise ConfigError("config: user and token can't be empty")

    logger.info(f"[start] mirror start work, user: {settings.user}, repo_root_dir: {settings.repo_root_dir}")
    root = Path(settings.repo_root_dir)
    if not settings.dry_run and not root.exists():
        logger.info(f"[start] repos dir does not exist, creating {root}")
        ensure_directory(root)

    session = session or build_session(settings.user, settings.token)
    runner = runner or build_runner(settings)

    summaries = [sync_target(target, settings, session, runner) for target in build_targets(settings)]
    logger.info("[finished] " + "; ".join(str(summary) for summary in summaries))
    return summaries


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point; exits with status 1 on any fatal error."""

    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    try:
        settings = resolve_settings(args)
        mirror(settings)
    except MirrorError as exc:
        logger.error(f"[fatal] {exc}")
        sys.exit(1)


__all__ = [
    "SyncTarget",
    "CategorySummary",
    "build_targets",
    "build_runner",
    "sync_target",
    "mirror",
    "main",
]
