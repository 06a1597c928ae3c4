"""
Local object cache for remote repositories.

One bare repository per remote, in a Go build cache style layout:

    ~/.cache/gitsource/repos/
    ├── github.com/
    │   └── org/
    │       └── repo/          # bare: HEAD, objects/, refs/
    └── gitlab.com/
        └── group/
            └── project/

Objects are fetched into it on demand (see transport.py) and pinned under
refs/gitsource/ so they stay reachable. Nothing in the cache is trusted as
a ref advertisement: refs are always listed from the remote.

Concurrency: a threading lock serializes threads of this process and a
FileLock next to the repository serializes processes.
"""

import logging
import shutil
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from dulwich.errors import NotGitRepository
from dulwich.object_store import peel_sha
from dulwich.objects import Commit
from dulwich.repo import Repo
from filelock import FileLock

from gitsource.config import get_git_cache_dir
from gitsource.git.location import RepositoryLocation

logger = logging.getLogger(__name__)

PIN_PREFIX = "refs/gitsource/"

# Each cached repository gets its own lock
_repo_locks = {}
_repo_locks_lock = threading.Lock()


def _get_repo_lock(repo_path: Path) -> threading.Lock:
    with _repo_locks_lock:
        key = str(repo_path)
        if key not in _repo_locks:
            _repo_locks[key] = threading.Lock()
        return _repo_locks[key]


@contextmanager
def locked(repo_path: Path) -> Iterator[None]:
    """Hold both the in-process and the cross-process lock of a cache entry."""
    repo_path.parent.mkdir(parents=True, exist_ok=True)
    with _get_repo_lock(repo_path):
        with FileLock(str(repo_path) + ".lock"):
            yield


def get_cached_repo_path(
    location: RepositoryLocation, cache_dir: Optional[Path] = None
) -> Path:
    if cache_dir is None:
        cache_dir = get_git_cache_dir()
    return cache_dir / location.cache_key()


def init_cached_repo(repo_path: Path, location: RepositoryLocation) -> Path:
    """
    Make sure a usable bare repository exists at ``repo_path``.

    The caller must hold locked() for the path. A corrupt cache is recreated.
    """
    if repo_path.exists():
        try:
            with Repo(str(repo_path)):
                return repo_path
        except NotGitRepository as e:
            logger.warning(f"Cached repo appears corrupt: {e}. Re-creating.")
            shutil.rmtree(repo_path, ignore_errors=True)

    logger.info(f"Creating cache for {location} at {repo_path}")
    repo_path.parent.mkdir(parents=True, exist_ok=True)
    with Repo.init_bare(str(repo_path), mkdir=True) as repo:
        config = repo.get_config()
        config.set((b"remote", b"origin"), b"url", location.identity().encode("utf-8"))
        config.write_to_path()
    return repo_path


def find_commit(repo_path: Path, commitish: str) -> Optional[str]:
    """
    Look up an object id in a local repository and peel it to a commit.

    Args:
        repo_path: Path to a repository (bare, worktree or .git directory)
        commitish: Full hex object id

    Returns:
        The hex id of the commit, or None if the object is absent or does not
        peel to a commit
    """
    try:
        sha = commitish.lower().encode("ascii")
    except UnicodeEncodeError:
        return None
    if len(sha) != 40:
        return None
    with Repo(str(repo_path)) as repo:
        if sha not in repo.object_store:
            return None
        _, peeled = peel_sha(repo.object_store, sha)
        if not isinstance(peeled, Commit):
            return None
        return peeled.id.decode("ascii")


def describe_cache(cache_dir: Optional[Path] = None) -> list:
    """
    Describe the cached repositories.

    Args:
        cache_dir: Base cache directory (defaults to ~/.cache/gitsource/repos)

    Returns:
        List of dictionaries:
        - repo_path: Relative path in cache (e.g., "github.com/user/repo")
        - url: Repository identity recorded when the cache was created
        - pinned: Number of commits pinned in the cache
    """
    if cache_dir is None:
        cache_dir = get_git_cache_dir()

    if not cache_dir.exists():
        return []

    results = []
    for head_file in sorted(cache_dir.rglob("HEAD")):
        repo_path = head_file.parent
        if not (repo_path / "objects").is_dir() or not (repo_path / "refs").is_dir():
            continue
        try:
            with Repo(str(repo_path)) as repo:
                config = repo.get_config()
                try:
                    url = config.get((b"remote", b"origin"), b"url").decode("utf-8")
                except KeyError:
                    url = "unknown"
                pinned = [
                    ref
                    for ref in repo.get_refs()
                    if ref.startswith(PIN_PREFIX.encode("ascii"))
                ]
        except NotGitRepository as e:
            logger.debug(f"Failed to read repo at {repo_path}: {e}")
            continue

        results.append(
            {
                "repo_path": str(repo_path.relative_to(cache_dir)),
                "url": url,
                "pinned": len(pinned),
            }
        )

    return results
