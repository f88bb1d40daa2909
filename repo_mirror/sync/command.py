"""External command execution with bounded retries and failure classification.

A command is retried until it succeeds, a classifier marks the failure as
permanent, or the attempt budget runs out. Output of the child is mirrored
to the console line by line while also being buffered for the classifiers.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import IO, Callable, List, Optional, Sequence

from .config import MAX_ATTEMPTS, RETRY_DELAY_SEC, TAKEDOWN_MARKERS

logger = logging.getLogger(__name__)

OUTPUT_INDENT = "   "


@dataclass
class CommandAttempt:
    """Captured result of a single spawn of the command."""

    attempt_index: int
    args: List[str]
    cwd: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    spawn_error: Optional[OSError] = None

    @property
    def outcome(self) -> str:
        if self.spawn_error is not None:
            return "spawn-error"
        if self.returncode == 0:
            return "success"
        if self.returncode is not None and self.returncode < 0:
            return "signal"
        return "exit-code"

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"

    def describe(self) -> str:
        if self.spawn_error is not None:
            return f"spawn error: {self.spawn_error}"
        if self.outcome == "signal":
            return f"killed by signal {-self.returncode}"
        return f"exit status {self.returncode}"


class CommandStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PERMANENT = "permanent"
    EXHAUSTED = "exhausted"


@dataclass
class CommandResult:
    status: CommandStatus
    attempts: int
    last_attempt: Optional[CommandAttempt] = None

    @property
    def failed(self) -> bool:
        return self.status is CommandStatus.EXHAUSTED


# Returns True when a failed attempt cannot be fixed by retrying.
Classifier = Callable[[CommandAttempt], bool]


def stderr_contains(marker: str) -> Classifier:
    """Classify failures whose stderr contains `marker` (case sensitive) as permanent."""

    def _classify(attempt: CommandAttempt) -> bool:
        return marker in attempt.stderr

    _classify.__name__ = f"stderr_contains({marker!r})"
    return _classify


def exit_code_is(code: int) -> Classifier:
    """Classify failures that exited with exactly `code` as permanent."""

    def _classify(attempt: CommandAttempt) -> bool:
        return attempt.spawn_error is None and attempt.returncode == code

    _classify.__name__ = f"exit_code_is({code})"
    return _classify


def default_classifiers(markers: Sequence[str] = TAKEDOWN_MARKERS) -> List[Classifier]:
    """Takedown notices and git's exit status 1 are not worth retrying."""
    classifiers: List[Classifier] = [stderr_contains(marker) for marker in markers]
    classifiers.append(exit_code_is(1))
    return classifiers


def _tee(stream: IO[str], sink: IO[str], buffer: List[str]) -> None:
    for line in iter(stream.readline, ""):
        buffer.append(line)
        text = line.strip()
        if text:
            sink.write(f"{OUTPUT_INDENT}{text}\n")
            sink.flush()


def spawn(args: Sequence[str], cwd: Optional[str] = None, attempt_index: int = 1) -> CommandAttempt:
    """Run `args` once in `cwd`, mirroring and capturing stdout and stderr."""
    attempt = CommandAttempt(attempt_index=attempt_index, args=list(args), cwd=cwd)
    try:
        proc = subprocess.Popen(
            list(args),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        attempt.spawn_error = exc
        return attempt

    out_lines: List[str] = []
    err_lines: List[str] = []
    pumps = [
        threading.Thread(target=_tee, args=(proc.stdout, sys.stdout, out_lines), daemon=True),
        threading.Thread(target=_tee, args=(proc.stderr, sys.stderr, err_lines), daemon=True),
    ]
    for pump in pumps:
        pump.start()
    attempt.returncode = proc.wait()
    for pump in pumps:
        pump.join()
    proc.stdout.close()
    proc.stderr.close()

    attempt.stdout = "".join(out_lines)
    attempt.stderr = "".join(err_lines)
    return attempt


class CommandRunner:
    """Runs external commands, retrying transient failures with a fixed delay."""

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SEC,
        classifiers: Optional[Sequence[Classifier]] = None,
        spawn_func: Callable[..., CommandAttempt] = spawn,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.classifiers: List[Classifier] = list(
            default_classifiers() if classifiers is None else classifiers
        )
        self._spawn = spawn_func

    def _permanent_by(self, attempt: CommandAttempt) -> Optional[Classifier]:
        for classifier in self.classifiers:
            if classifier(attempt):
                return classifier
        return None

    def run(self, args: Sequence[str], cwd: Optional[str] = None) -> CommandResult:
        """Run the command until success, a permanent failure, or the attempt limit."""
        command = " ".join(args)
        attempt: Optional[CommandAttempt] = None

        for index in range(1, self.max_attempts + 1):
            attempt = self._spawn(args, cwd=cwd, attempt_index=index)
            if attempt.succeeded:
                return CommandResult(CommandStatus.SUCCEEDED, index, attempt)

            classifier = self._permanent_by(attempt)
            if classifier is not None:
                logger.info(
                    f"[skip] {command} ({attempt.describe()}) matched "
                    f"{getattr(classifier, '__name__', 'classifier')}; not retrying"
                )
                return CommandResult(CommandStatus.PERMANENT, index, attempt)

            logger.error(f"[error] cmd run error cmd: {command} cwd: {cwd or '.'}, error: {attempt.describe()}")
            if index < self.max_attempts:
                logger.warning(f"[retry {index}/{self.max_attempts}] try rerun cmd: {command}")
                time.sleep(self.retry_delay)

        logger.error(f"[error] giving up on {command} after {self.max_attempts} attempts")
        return CommandResult(CommandStatus.EXHAUSTED, self.max_attempts, attempt)


__all__ = [
    "CommandAttempt",
    "CommandStatus",
    "CommandResult",
    "Classifier",
    "stderr_contains",
    "exit_code_is",
    "default_classifiers",
    "spawn",
    "CommandRunner",
]
