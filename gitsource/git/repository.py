"""
Repository facade.

Usage:
    repo = git("https://github.com/dagger/dagger")
    repo.tags(["v*"])
    repo.branch("main").commit()
    repo.tag("v0.9.5").tree().file("README.md").contents()

    private = git("https://github.com/org/private").with_auth_token(Secret("pat", value=token))
    local = as_git("/path/to/checkout")

GitRepository and GitRef are immutable values: with_auth_token() and
friends return new repositories, and nothing is opened until an operation
runs. Each operation opens the repository, resolves, and materializes on its
own; use GitRepository.open() to resolve several refs against one
advertisement.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Sequence, Union

from gitsource.git.auth import AuthConfig, HeaderAuth, NoAuth, SSHAuth, TokenAuth
from gitsource.git.cancel import Cancellation
from gitsource.git.checkout import Directory, effective_options, materialize
from gitsource.git.digest import fingerprint
from gitsource.git.location import RepositoryLocation
from gitsource.git.patterns import filter_tags
from gitsource.git.resolver import (
    Branch,
    Commit,
    Head,
    Ref,
    RefSelector,
    ResolvedRef,
    Tag,
    TreeOptions,
    resolve,
)
from gitsource.git.transport import RepositoryHandle, open_repository
from gitsource.handles import Secret, ServiceHost, UnixSocket


@dataclass(frozen=True)
class GitRepository:
    location: RepositoryLocation
    auth: AuthConfig = field(default_factory=NoAuth, repr=False)
    keep_git_dir: bool = True
    service_host: Optional[ServiceHost] = None
    cache_dir: Optional[Path] = field(default=None, compare=False)

    def with_auth_token(self, token: Secret) -> "GitRepository":
        """A copy of this repository authenticating with a token."""
        return replace(self, auth=TokenAuth(token))

    def with_auth_header(self, header: Secret) -> "GitRepository":
        """A copy of this repository sending a raw Authorization header."""
        return replace(self, auth=HeaderAuth(header))

    def with_ssh_auth(
        self, socket: UnixSocket, known_hosts: Optional[str] = None
    ) -> "GitRepository":
        return replace(self, auth=SSHAuth(socket=socket, known_hosts=known_hosts))

    def open(self, cancel: Optional[Cancellation] = None) -> RepositoryHandle:
        return open_repository(
            self.location,
            self.auth,
            service_host=self.service_host,
            cancel=cancel or Cancellation.from_config(),
            cache_dir=self.cache_dir,
        )

    def head(self) -> "GitRef":
        return GitRef(self, Head())

    def branch(self, name: str) -> "GitRef":
        return GitRef(self, Branch(name))

    def tag(self, name: str) -> "GitRef":
        return GitRef(self, Tag(name))

    def commit(self, sha: str) -> "GitRef":
        return GitRef(self, Commit(sha))

    def ref(self, refspec: str) -> "GitRef":
        return GitRef(self, Ref(refspec))

    def tags(
        self,
        patterns: Optional[Sequence[str]] = None,
        cancel: Optional[Cancellation] = None,
    ) -> List[str]:
        """
        List tag names, optionally filtered by patterns (see patterns.py).

        Returns:
            Sorted tag names without the refs/tags/ prefix
        """
        handle = self.open(cancel)
        return filter_tags(handle.advertisement.tag_names(), patterns)


@dataclass(frozen=True)
class GitRef:
    repository: GitRepository
    selector: RefSelector

    def resolve(
        self,
        cancel: Optional[Cancellation] = None,
        handle: Optional[RepositoryHandle] = None,
    ) -> ResolvedRef:
        """
        Resolve the selector now.

        Args:
            cancel: Deadline and cancel signal
            handle: An already opened repository to resolve against
        """
        cancel = cancel or Cancellation.from_config()
        if handle is None:
            handle = self.repository.open(cancel)
        return resolve(handle, self.selector, cancel=cancel)

    def commit(
        self,
        cancel: Optional[Cancellation] = None,
        handle: Optional[RepositoryHandle] = None,
    ) -> str:
        """The commit id the selector resolves to."""
        return self.resolve(cancel, handle).sha

    def _options(self, discard_git_dir: Optional[bool]) -> TreeOptions:
        if discard_git_dir is None:
            discard_git_dir = not self.repository.keep_git_dir
        return TreeOptions(discard_git_dir=discard_git_dir)

    def tree(
        self,
        discard_git_dir: Optional[bool] = None,
        dest: Optional[Union[str, Path]] = None,
        cancel: Optional[Cancellation] = None,
        handle: Optional[RepositoryHandle] = None,
    ) -> Directory:
        """
        Materialize the tree of the resolved commit.

        Args:
            discard_git_dir: Remove the .git directory; defaults to the
                repository's keep_git_dir setting (kept)
            dest: Directory to write to; defaults to the digest-keyed tree cache
            cancel: Deadline and cancel signal
            handle: An already opened repository to resolve against
        """
        cancel = cancel or Cancellation.from_config()
        resolved = self.resolve(cancel, handle)
        return materialize(
            resolved,
            self._options(discard_git_dir),
            dest=Path(dest) if dest is not None else None,
            cancel=cancel,
        )

    def digest(
        self,
        discard_git_dir: Optional[bool] = None,
        cancel: Optional[Cancellation] = None,
        handle: Optional[RepositoryHandle] = None,
    ) -> str:
        """Digest of the tree() this ref would produce, without materializing it."""
        resolved = self.resolve(cancel, handle)
        return fingerprint(resolved, effective_options(resolved, self._options(discard_git_dir)))


def git(
    url: str,
    *,
    keep_git_dir: bool = True,
    ssh_known_hosts: Optional[str] = None,
    ssh_auth_socket: Optional[UnixSocket] = None,
    service_host: Optional[ServiceHost] = None,
    http_auth_token: Optional[Secret] = None,
    http_auth_header: Optional[Secret] = None,
    base_dir: Optional[Path] = None,
    cache_dir: Optional[Path] = None,
) -> GitRepository:
    """
    Open a repository by location.

    Args:
        url: Repository location (see location.py for accepted forms)
        keep_git_dir: Keep the .git directory in trees unless a tree asks otherwise
        ssh_known_hosts: known_hosts entries for SSH host key verification
        ssh_auth_socket: SSH agent socket
        service_host: Endpoint to reach instead of the location's host
        http_auth_token: Token for HTTP basic auth
        http_auth_header: Raw Authorization header
        base_dir: Directory relative local paths resolve against
        cache_dir: Object cache directory (defaults to the configured one)
    """
    location = RepositoryLocation.parse(url, base_dir)
    auth: AuthConfig = NoAuth()
    if ssh_auth_socket is not None:
        auth = SSHAuth(socket=ssh_auth_socket, known_hosts=ssh_known_hosts)
    elif http_auth_header is not None:
        auth = HeaderAuth(http_auth_header)
    elif http_auth_token is not None:
        auth = TokenAuth(http_auth_token)
    return GitRepository(
        location=location,
        auth=auth,
        keep_git_dir=keep_git_dir,
        service_host=service_host,
        cache_dir=cache_dir,
    )


def as_git(directory: Union[str, Path]) -> GitRepository:
    """
    Treat a local directory as a repository.

    The directory may be a worktree, a .git directory or a bare repository;
    anything else fails with NotAGitRepository on first use.
    """
    path = Path(directory).expanduser().resolve()
    return GitRepository(location=RepositoryLocation.parse(str(path)))
