#!/usr/bin/env python3
"""
CrowsNest shared plumbing

Pieces used by both upsmon hooks (crowsnest_shutdown.py and crowsnest_notify.py):
1. Logging setup (stdout plus a persistent log file on the host filesystem)
2. A time-bounded external command runner
3. The error taxonomy for the shutdown procedure
"""

import subprocess
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] [{level}] {message}"
STDOUT_FORMAT = (
    "<level>[{time:YYYY-MM-DD HH:mm:ss}]</level> <level>[{level}]</level> {message}"
)

# chroot exits with 127 when the command inside the new root cannot be found
COMMAND_NOT_FOUND_EXIT = 127


# ==================== Errors ====================


class CrowsnestError(Exception):
    """Base class for shutdown procedure errors."""


class FatalPrerequisite(CrowsnestError):
    """The host filesystem is not available; nothing can be done safely."""


class DegradedPrerequisite(CrowsnestError):
    """Cluster hygiene is impossible, but the host can still be powered off."""


class ClientBinaryNotFound(DegradedPrerequisite):
    """The control-plane CLI is missing from the host filesystem."""


class CredentialNotFound(DegradedPrerequisite):
    """None of the candidate kubeconfig paths exist."""


class IdentityNotFound(DegradedPrerequisite):
    """No source produced a node name."""


class TerminalFailure(CrowsnestError):
    """The host could not be powered off."""


class AllMechanismsFailed(TerminalFailure):
    """Every available shutdown mechanism was tried and none succeeded."""

    def __init__(self, attempts: Optional[List["CommandResult"]] = None):
        self.attempts = attempts or []
        names = ", ".join(a.label for a in self.attempts) or "none available"
        super().__init__(f"All shutdown methods failed (attempted: {names})")


# ==================== Logging ====================


class LogFileSink:
    """
    Append-only loguru sink for the persistent log file.

    The file is reopened for every record so a log directory that disappears
    (or a full disk) mid-run costs only the affected lines. Records that cannot
    be written are dropped without output; stdout still carries them.
    """

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.open("a", encoding="utf-8").close()

    def write(self, message: str) -> None:
        try:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(message)
        except OSError:
            return


def configure_logging(log_file: Optional[Path], level: str = "INFO") -> bool:
    """
    Configure loguru sinks for a CrowsNest run.

    Args:
        log_file: Persistent log file, or None to log to stdout only
        level: Minimum level for both sinks

    Returns:
        True if the log file sink was added, False otherwise
    """
    logger.remove()
    logger.add(sys.stdout, level=level, format=STDOUT_FORMAT, colorize=None)

    if log_file is None:
        return False

    try:
        sink = LogFileSink(Path(log_file))
    except OSError as e:
        logger.warning(f"Cannot write log file {log_file} ({e}) - logging to stdout only")
        return False

    logger.add(sink, level=level, format=LOG_FORMAT, colorize=False)
    return True


# ==================== Command Runner ====================


class CommandOutcome(Enum):
    """How an external command finished."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"  # non-zero exit or OS error while starting it
    TIMED_OUT = "timed_out"  # killed at the deadline
    NOT_FOUND = "not_found"  # binary missing


@dataclass
class CommandResult:
    """Result of one external command."""

    command: List[str]
    outcome: CommandOutcome
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    elapsed: float = 0.0
    label: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == CommandOutcome.SUCCEEDED

    @property
    def timed_out(self) -> bool:
        return self.outcome == CommandOutcome.TIMED_OUT

    def describe(self) -> str:
        """Short operator-facing description of the outcome."""
        if self.outcome == CommandOutcome.SUCCEEDED:
            return "succeeded"
        if self.outcome == CommandOutcome.TIMED_OUT:
            return f"timed out after {self.elapsed:.0f}s"
        if self.outcome == CommandOutcome.NOT_FOUND:
            return "command not found"
        if self.returncode is not None:
            return f"exit code: {self.returncode}"
        return f"error: {self.stderr.strip() or 'unknown'}"


@dataclass
class CommandRunner:
    """
    Runs external commands under an independent wall-clock timeout.

    A command that outlives its timeout is killed and reported TIMED_OUT.
    Nothing here raises for command failures; callers get a CommandResult.
    """

    dry_run: bool = False
    history: List[CommandResult] = field(default_factory=list)

    def run(self, cmd: Sequence[str], timeout: float, label: str = "") -> CommandResult:
        """
        Run a command and classify how it finished.

        Args:
            cmd: Command and arguments
            timeout: Seconds before the command is killed
            label: Name used in log lines and results

        Returns:
            CommandResult for the command
        """
        cmd = list(cmd)
        label = label or cmd[0]
        logger.debug(f"Running command ({timeout}s timeout): {' '.join(cmd)}")

        if self.dry_run:
            logger.warning("DRY RUN: Would execute: " + " ".join(cmd))
            result = CommandResult(
                command=cmd, outcome=CommandOutcome.SUCCEEDED, returncode=0, label=label
            )
            self.history.append(result)
            return result

        start = time.monotonic()
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            result = CommandResult(
                command=cmd,
                outcome=CommandOutcome.TIMED_OUT,
                elapsed=time.monotonic() - start,
                label=label,
            )
        except FileNotFoundError as e:
            result = CommandResult(
                command=cmd,
                outcome=CommandOutcome.NOT_FOUND,
                stderr=str(e),
                elapsed=time.monotonic() - start,
                label=label,
            )
        except OSError as e:
            result = CommandResult(
                command=cmd,
                outcome=CommandOutcome.FAILED,
                stderr=str(e),
                elapsed=time.monotonic() - start,
                label=label,
            )
        else:
            if completed.returncode == 0:
                outcome = CommandOutcome.SUCCEEDED
            elif completed.returncode == COMMAND_NOT_FOUND_EXIT:
                outcome = CommandOutcome.NOT_FOUND
            else:
                outcome = CommandOutcome.FAILED
            result = CommandResult(
                command=cmd,
                outcome=outcome,
                returncode=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                elapsed=time.monotonic() - start,
                label=label,
            )

        if result.stderr.strip() and not result.succeeded:
            logger.debug(f"{label} stderr: {result.stderr.strip()}")

        self.history.append(result)
        return result
