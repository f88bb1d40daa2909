"""Bring one local working copy in line with its remote repository."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..exceptions import WorkspaceError
from ..retrieval.http_client import RepositoryRecord
from .command import CommandResult, CommandRunner, CommandStatus
from .config import GIT_EXECUTABLE

logger = logging.getLogger(__name__)

DIR_MODE = 0o700


@dataclass
class RepoSyncResult:
    record: RepositoryRecord
    action: str
    local_dir: Path
    results: List[CommandResult] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(result.failed for result in self.results)

    @property
    def permanent(self) -> bool:
        """A command stopped on a permanent failure (takedown, exit status 1)."""
        return not self.failed and any(result.status is CommandStatus.PERMANENT for result in self.results)

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and all(result.status is CommandStatus.SUCCEEDED for result in self.results)


def local_dir_for(local_root: str | Path, record: RepositoryRecord) -> Path:
    """Return `<local_root>/<owner>/<name>` for a record."""
    return Path(local_root).joinpath(*record.full_name.split("/"))


def ensure_directory(path: str | Path) -> None:
    """Create `path` and every missing parent with owner-only permissions.

    Directories that already exist keep their mode; each segment created
    here is chmod'ed to exactly DIR_MODE whatever the umask.
    """
    path = Path(path)
    missing: List[Path] = []
    current = path
    while not current.exists() and current != current.parent:
        missing.append(current)
        current = current.parent

    try:
        for segment in reversed(missing):
            try:
                os.mkdir(segment, DIR_MODE)
            except FileExistsError:
                if not segment.is_dir():
                    raise
                continue
            os.chmod(segment, DIR_MODE)
    except OSError as exc:
        raise WorkspaceError(f"create directory {path} failed: {exc}", details={"path": str(path)}) from exc


def sync_repository(
    record: RepositoryRecord,
    local_root: str | Path,
    runner: CommandRunner,
    *,
    git: str = GIT_EXECUTABLE,
    dry_run: bool = False,
) -> RepoSyncResult:
    """Clone the repository when its directory is missing, otherwise reset and pull it.

    The reset always runs before the pull so that local edits can never
    conflict with the incoming changes. Commands carry their working
    directory explicitly; the process cwd is left untouched.
    """
    local_dir = local_dir_for(local_root, record)
    logger.info(f"[sync] {record.full_name}, git url: {record.clone_url}")

    if not local_dir.exists():
        if dry_run:
            logger.info(f"[clone] would clone {record.clone_url} into {local_dir}")
            return RepoSyncResult(record, "planned-clone", local_dir)

        logger.info(f"[clone] local repo dir not found, creating {local_dir}")
        ensure_directory(local_dir)
        result = runner.run([git, "clone", record.clone_url, str(local_dir)])
        return RepoSyncResult(record, "clone", local_dir, [result])

    if dry_run:
        logger.info(f"[update] would reset and pull {local_dir}")
        return RepoSyncResult(record, "planned-update", local_dir)

    logger.info(f"[update] {record.full_name} in {local_dir}")
    results = [
        runner.run([git, "reset", "--hard"], cwd=str(local_dir)),
        runner.run([git, "pull", "--rebase"], cwd=str(local_dir)),
    ]
    return RepoSyncResult(record, "update", local_dir, results)


__all__ = ["RepoSyncResult", "local_dir_for", "ensure_directory", "sync_repository"]
