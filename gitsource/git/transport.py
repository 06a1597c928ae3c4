"""
Opening repositories and fetching objects.

open_repository() produces a RepositoryHandle holding the ref advertisement of
the repository and the local object store commits are read from:

- remote locations: the advertisement comes from ``git ls-remote --symref``,
  no objects are transferred. Objects are fetched lazily into the bare cache
  repository of the remote (cache.py).
- local paths: the repository shape is detected (worktree, .git directory,
  bare repository), refs are read with dulwich and objects are read in place.

A handle is read-only once opened; many selectors may be resolved against
it concurrently.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from dulwich.errors import NotGitRepository
from dulwich.object_store import peel_sha
from dulwich.repo import Repo

from gitsource.errors import NotAGitRepository, RefNotFound
from gitsource.git import cache
from gitsource.git.auth import AuthConfig, NoAuth, authenticate, check_transport
from gitsource.git.cancel import Cancellation
from gitsource.git.command import GitCommandFailed, classify_failure, run_git
from gitsource.git.location import RepositoryLocation
from gitsource.handles import ServiceHost

logger = logging.getLogger(__name__)

HEAD = "HEAD"
PEELED_SUFFIX = "^{}"
_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


def is_full_sha(value: str) -> bool:
    return bool(_SHA_RE.match(value.lower()))


class RepositoryShape(str, Enum):
    REMOTE = "remote"
    WORKTREE = "worktree"
    GIT_DIR = "git-dir"
    BARE = "bare"


@dataclass(frozen=True)
class RefAdvertisement:
    """
    Ref name -> object id, as a remote (or local repository) exposes them.

    Args:
        refs: Advertised object id of every ref (tag objects for annotated tags)
        peeled: Commit ids of annotated tags, keyed by the tag ref name
        symrefs: Symbolic refs, e.g. {"HEAD": "refs/heads/main"}
    """

    refs: Dict[str, str] = field(default_factory=dict)
    peeled: Dict[str, str] = field(default_factory=dict)
    symrefs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse_ls_remote(cls, output: str) -> "RefAdvertisement":
        """
        Parse the output of ``git ls-remote --symref``.

        Example:
            ref: refs/heads/main\tHEAD
            9ea5ea7c848fef2a2c47cce0716d5fcb8d6bedeb\tHEAD
            9ea5ea7c848fef2a2c47cce0716d5fcb8d6bedeb\trefs/heads/main
            1f6f0e7a1a7f7b5c3c3d2b1a0e9f8d7c6b5a4f3e\trefs/tags/v0.9.5
            9ea5ea7c848fef2a2c47cce0716d5fcb8d6bedeb\trefs/tags/v0.9.5^{}
        """
        refs: Dict[str, str] = {}
        peeled: Dict[str, str] = {}
        symrefs: Dict[str, str] = {}
        for line in output.splitlines():
            line = line.strip()
            if not line or "\t" not in line:
                continue
            value, name = line.split("\t", 1)
            if value.startswith("ref: "):
                symrefs[name] = value[len("ref: ") :]
            elif name.endswith(PEELED_SUFFIX):
                peeled[name[: -len(PEELED_SUFFIX)]] = value
            else:
                refs[name] = value
        return cls(refs=refs, peeled=peeled, symrefs=symrefs)

    def get(self, name: str) -> Optional[str]:
        """Commit id a ref points to, annotated tags peeled."""
        if name in self.peeled:
            return self.peeled[name]
        return self.refs.get(name)

    def head_target(self) -> Optional[str]:
        return self.symrefs.get(HEAD)

    def head(self) -> Optional[str]:
        target = self.head_target()
        if target is not None and self.get(target) is not None:
            return self.get(target)
        return self.refs.get(HEAD)

    def tag_names(self) -> List[str]:
        return sorted(
            name[len("refs/tags/") :]
            for name in self.refs
            if name.startswith("refs/tags/")
        )


@dataclass(frozen=True)
class RepositoryHandle:
    """An opened repository: its advertisement and where its objects live."""

    location: RepositoryLocation
    shape: RepositoryShape
    advertisement: RefAdvertisement
    object_dir: Path
    auth: AuthConfig = field(default_factory=NoAuth, repr=False, compare=False)
    service_host: Optional[ServiceHost] = field(default=None, compare=False)

    @property
    def is_remote(self) -> bool:
        return self.shape == RepositoryShape.REMOTE

    @property
    def has_worktree_metadata(self) -> bool:
        """Whether checkouts from this source may carry a .git directory."""
        return self.shape != RepositoryShape.BARE


def detect_shape(path: Path) -> RepositoryShape:
    """
    Detect how a local repository is laid out.

    Raises:
        NotAGitRepository: the path is not a worktree, a .git directory or a
            bare repository
    """
    if not path.is_dir():
        raise NotAGitRepository(str(path))
    try:
        with Repo(str(path)) as repo:
            bare = repo.bare
    except NotGitRepository as e:
        raise NotAGitRepository(str(path), stderr=str(e))
    if not bare:
        return RepositoryShape.WORKTREE
    if path.name == ".git":
        return RepositoryShape.GIT_DIR
    return RepositoryShape.BARE


def _read_local_advertisement(path: Path) -> RefAdvertisement:
    refs: Dict[str, str] = {}
    peeled: Dict[str, str] = {}
    symrefs: Dict[str, str] = {}
    with Repo(str(path)) as repo:
        for name, sha in repo.get_refs().items():
            refs[name.decode("utf-8")] = sha.decode("ascii")
        for name, target in repo.refs.get_symrefs().items():
            symrefs[name.decode("utf-8")] = target.decode("utf-8")
        for name, sha in refs.items():
            if not name.startswith("refs/tags/"):
                continue
            _, obj = peel_sha(repo.object_store, sha.encode("ascii"))
            if obj.id.decode("ascii") != sha:
                peeled[name] = obj.id.decode("ascii")
    return RefAdvertisement(refs=refs, peeled=peeled, symrefs=symrefs)


def open_repository(
    location: RepositoryLocation,
    auth: Optional[AuthConfig] = None,
    *,
    service_host: Optional[ServiceHost] = None,
    cancel: Optional[Cancellation] = None,
    cache_dir: Optional[Path] = None,
) -> RepositoryHandle:
    """
    Open a repository and read its ref advertisement.

    Raises:
        UnsupportedTransport: SSH without an agent socket (before any network use)
        NotAGitRepository: local path without git structure
        AuthenticationFailed / HostKeyMismatch / TransportError: remote failures
    """
    auth = auth or NoAuth()

    if location.is_local:
        path = Path(location.path)
        shape = detect_shape(path)
        logger.debug(f"Opened local {shape.value} repository at {path}")
        return RepositoryHandle(
            location=location,
            shape=shape,
            advertisement=_read_local_advertisement(path),
            object_dir=path,
            auth=auth,
        )

    check_transport(location, auth)
    url = location.transport_url(service_host)
    with authenticate(location, auth, service_host) as credentials:
        try:
            output = run_git(
                ["ls-remote", "--symref", url],
                env=credentials.environment(),
                cancel=cancel,
            )
        except GitCommandFailed as e:
            raise classify_failure(e, location.redacted_url())

    advertisement = RefAdvertisement.parse_ls_remote(output)
    logger.debug(f"{location} advertises {len(advertisement.refs)} refs")
    return RepositoryHandle(
        location=location,
        shape=RepositoryShape.REMOTE,
        advertisement=advertisement,
        object_dir=cache.get_cached_repo_path(location, cache_dir),
        auth=auth,
        service_host=service_host,
    )


def _fetch_into_cache(
    handle: RepositoryHandle,
    source: str,
    selector: str,
    cancel: Optional[Cancellation],
) -> None:
    """Fetch ``source`` (an advertised ref name or an object id) into the cache."""
    location = handle.location
    url = location.transport_url(handle.service_host)
    logger.info(f"Fetching {source} from {location}")
    with authenticate(location, handle.auth, handle.service_host) as credentials:
        try:
            run_git(
                ["fetch", "--no-tags", "--quiet", url, source],
                env=credentials.environment(),
                cwd=handle.object_dir,
                cancel=cancel,
            )
        except GitCommandFailed as e:
            raise classify_failure(e, location.redacted_url(), selector=selector)


def _pin(repo_path: Path, sha: str, cancel: Optional[Cancellation]) -> None:
    run_git(
        ["update-ref", f"{cache.PIN_PREFIX}{sha}", sha],
        cwd=repo_path,
        cancel=cancel,
    )


def fetch_object(
    handle: RepositoryHandle,
    commitish: str,
    *,
    refname: Optional[str] = None,
    cancel: Optional[Cancellation] = None,
) -> str:
    """
    Make a commit available in the handle's object store.

    Objects already present are not fetched again. For remotes, an advertised
    ``refname`` is fetched first; the object id itself is requested when the
    ref is not given or has moved since it was advertised.

    Args:
        handle: Opened repository
        commitish: Full object id of the commit (or of a tag pointing to it)
        refname: Advertised ref expected to point at ``commitish``
        cancel: Deadline and cancel signal

    Returns:
        Hex id of the commit (annotated tags peeled)

    Raises:
        RefNotFound: the object does not exist or is not a commit
    """
    selector = refname or commitish
    url = handle.location.redacted_url()
    # Abbreviated ids and names cannot be fetched by id
    if not is_full_sha(commitish):
        raise RefNotFound(selector, url=url)

    if not handle.is_remote:
        sha = cache.find_commit(handle.object_dir, commitish)
        if sha is None:
            raise RefNotFound(selector, url=url)
        return sha

    repo_path = handle.object_dir
    with cache.locked(repo_path):
        cache.init_cached_repo(repo_path, handle.location)
        sha = cache.find_commit(repo_path, commitish)
        if sha is not None:
            logger.debug(f"{commitish} already cached for {handle.location}")
            return sha

        if refname is not None:
            _fetch_into_cache(handle, refname, selector, cancel)
            sha = cache.find_commit(repo_path, commitish)
        if sha is None:
            _fetch_into_cache(handle, commitish, selector, cancel)
            sha = cache.find_commit(repo_path, commitish)
        if sha is None:
            raise RefNotFound(selector, url=url)

        _pin(repo_path, sha, cancel)
        return sha
