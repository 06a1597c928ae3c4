"""
Exception classes for repository resolution and checkout.

Every failure coming from git keeps the original diagnostic text (the stderr of
the git process, or the message of the underlying library) appended to the
message, so callers can match on provider-specific phrases.
"""

from typing import Optional


class GitError(Exception):
    """Base exception for all git resolution errors."""

    prefix = "git error"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        self.url = url
        self.stderr = stderr
        self.message = message
        text = f"{self.prefix}: {message}"
        if stderr:
            text = f"{text}: {stderr.strip()}"
        super().__init__(text)


class UnsupportedTransport(GitError):
    """Raised when a transport cannot be used with the configured authentication."""

    pass


class AuthenticationFailed(GitError):
    """Raised when the remote rejects (or demands) credentials."""

    pass


class HostKeyMismatch(GitError):
    """Raised when the SSH host key is not in the supplied known hosts."""

    pass


class RefNotFound(GitError):
    """Raised when a selector does not resolve to a commit."""

    def __init__(self, selector: str, url: Optional[str] = None, stderr: Optional[str] = None):
        self.selector = selector
        where = f" in {url}" if url else ""
        super().__init__(f"reference {selector} not found{where}", url=url, stderr=stderr)


class NotAGitRepository(GitError):
    """Raised when a local path has no recognizable git structure."""

    def __init__(self, path: str, stderr: Optional[str] = None):
        self.path = path
        super().__init__(f"{path}: not a git repository", url=path, stderr=stderr)


class TransportError(GitError):
    """Raised for network or process level failures. Safe for callers to retry."""

    pass


class Cancelled(GitError):
    """Raised when a git operation is cancelled by the caller."""

    prefix = "cancelled"


class DeadlineExceeded(Cancelled):
    """Raised when a git operation runs past its deadline."""

    prefix = "deadline exceeded"
