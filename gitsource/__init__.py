"""gitsource: repositories as cacheable build inputs"""

__version__ = "0.1.0"

from gitsource.errors import (  # noqa: E402
    AuthenticationFailed,
    Cancelled,
    DeadlineExceeded,
    GitError,
    HostKeyMismatch,
    NotAGitRepository,
    RefNotFound,
    TransportError,
    UnsupportedTransport,
)
from gitsource.git import (  # noqa: E402
    Cancellation,
    Directory,
    File,
    GitRef,
    GitRepository,
    TreeOptions,
    as_git,
    git,
)
from gitsource.handles import Secret, ServiceHost, UnixSocket  # noqa: E402

__all__ = [
    "__version__",
    "AuthenticationFailed",
    "Cancelled",
    "DeadlineExceeded",
    "GitError",
    "HostKeyMismatch",
    "NotAGitRepository",
    "RefNotFound",
    "TransportError",
    "UnsupportedTransport",
    "Cancellation",
    "Directory",
    "File",
    "GitRef",
    "GitRepository",
    "TreeOptions",
    "as_git",
    "git",
    "Secret",
    "ServiceHost",
    "UnixSocket",
]
