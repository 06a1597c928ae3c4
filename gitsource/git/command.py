"""
Running the git CLI.

Commands go through GitPython's Git.execute, started as a process so the
runner can poll it: when the caller's Cancellation fires, the process is
killed together with its helpers (git-remote-https, ssh) and
Cancelled/DeadlineExceeded is raised instead of a partial result.
Failures are classified by the stderr git prints (always in the C locale),
and the stderr is carried verbatim by the raised GitError.
"""

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence

from git.cmd import Git
from git.exc import GitCommandNotFound

from gitsource.config import get_git_executable
from gitsource.errors import (
    AuthenticationFailed,
    GitError,
    HostKeyMismatch,
    RefNotFound,
    TransportError,
)
from gitsource.git.cancel import Cancellation

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1

_AUTH_MARKERS = (
    "Authentication failed",
    "could not read Username",
    "could not read Password",
    "terminal prompts disabled",
    "HTTP Basic: Access denied",
    "Invalid username or password",
    "The requested URL returned error: 401",
    "The requested URL returned error: 403",
    "Permission denied (publickey",
)
_HOST_KEY_MARKERS = (
    "Host key verification failed",
    "REMOTE HOST IDENTIFICATION HAS CHANGED",
    "No matching host key",
)
_NOT_FOUND_MARKERS = (
    "not our ref",
    "couldn't find remote ref",
    "no such remote ref",
    "unadvertised object",
    "bad object",
    "not a valid object name",
    "Needed a single revision",
    "unknown revision",
)


class GitCommandFailed(Exception):
    """A git process exited with a non-zero status."""

    def __init__(self, args: Sequence[str], status: int, stderr: str):
        self.command = list(args)
        self.status = status
        self.stderr = stderr
        super().__init__(f"git {args[0] if args else ''} exited with {status}: {stderr}")


def _git_executable() -> str:
    return get_git_executable() or Git.GIT_PYTHON_GIT_EXECUTABLE or "git"


def _kill_process_group(popen: subprocess.Popen) -> None:
    # git leaves the network work to helpers that inherit its pipes
    try:
        os.killpg(popen.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_git(
    args: Sequence[str],
    *,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[Path] = None,
    cancel: Optional[Cancellation] = None,
) -> str:
    """
    Run a git command and return its stdout.

    Args:
        args: Arguments after the git executable, e.g. ["ls-remote", url]
        env: Extra environment for the process (credentials live here)
        cwd: Working directory
        cancel: Deadline and cancel signal

    Returns:
        Decoded stdout

    Raises:
        GitCommandFailed: git exited with a non-zero status
        Cancelled / DeadlineExceeded: the operation was aborted
        TransportError: the git executable is missing
    """
    cancel = cancel or Cancellation.from_config()
    operation = f"git {args[0]}" if args else "git"
    cancel.check(operation)

    command = [_git_executable(), *args]
    logger.debug(f"Running {' '.join(command)}")
    try:
        process = Git(str(cwd) if cwd else None).execute(
            command, as_process=True, env=env, start_new_session=True
        )
    except GitCommandNotFound as e:
        raise TransportError(f"git executable not found: {e}")

    popen: subprocess.Popen = process.proc
    while True:
        try:
            stdout, stderr = popen.communicate(timeout=_POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            try:
                cancel.check(operation)
            except GitError:
                _kill_process_group(popen)
                popen.communicate()
                raise

    out = stdout.decode("utf-8", errors="replace") if stdout else ""
    err = stderr.decode("utf-8", errors="replace") if stderr else ""
    if popen.returncode != 0:
        raise GitCommandFailed(args, popen.returncode, err.strip())
    return out


def classify_failure(
    error: GitCommandFailed,
    url: str,
    selector: Optional[str] = None,
    action: str = "failed to fetch remote",
) -> GitError:
    """
    Map a failed git command to the error taxonomy.

    Args:
        error: The failure
        url: Redacted URL of the repository
        selector: When set, "object not found" diagnostics become RefNotFound
        action: Leading phrase of the message

    Returns:
        The GitError to raise, carrying git's stderr
    """
    stderr = error.stderr
    message = f"{action} {url}"
    if any(marker in stderr for marker in _HOST_KEY_MARKERS):
        return HostKeyMismatch(message, url=url, stderr=stderr)
    if any(marker in stderr for marker in _AUTH_MARKERS):
        return AuthenticationFailed(message, url=url, stderr=stderr)
    if selector is not None and any(marker in stderr for marker in _NOT_FOUND_MARKERS):
        return RefNotFound(selector, url=url, stderr=stderr)
    return TransportError(message, url=url, stderr=stderr)
