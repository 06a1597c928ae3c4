"""
Materializing the tree of a resolved commit.

The checkout is a fresh repository: ``git init``, fetch the commit from the
handle's object store (the cache repository of a remote, or the local
repository itself), check it out as a detached HEAD whatever the selector
was, so every tree with a given digest is the same, .git included. With
discard_git_dir the .git directory is removed afterwards; checkouts of bare
local repositories never keep one.

Without an explicit destination the tree is stored under
<cache>/trees/<digest>, built next to its final place and renamed in, and
reused by later calls with the same digest.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from filelock import FileLock

from gitsource.config import get_trees_dir
from gitsource.git.auth import TransportCredentials
from gitsource.git.cancel import Cancellation
from gitsource.git.command import GitCommandFailed, classify_failure, run_git
from gitsource.git.digest import digest_hex, fingerprint
from gitsource.git.resolver import ResolvedRef, TreeOptions
from gitsource.git.transport import fetch_object

logger = logging.getLogger(__name__)

GIT_DIR = ".git"


class File:
    """A file of a materialized tree."""

    def __init__(self, path: Path):
        self.path = path

    @property
    def name(self) -> str:
        return self.path.name

    def contents(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def __repr__(self) -> str:
        return f"File({self.path})"


class Directory:
    """A materialized tree, or a directory within one."""

    def __init__(self, path: Path, digest: Optional[str] = None):
        self.path = path
        self.digest = digest

    def entries(self) -> List[str]:
        """Sorted entry names; directories carry a trailing slash."""
        names = []
        for child in self.path.iterdir():
            if child.is_dir() and not child.is_symlink():
                names.append(f"{child.name}/")
            else:
                names.append(child.name)
        return sorted(names)

    def _child(self, relative: str) -> Path:
        child = (self.path / relative).resolve()
        root = self.path.resolve()
        if child != root and root not in child.parents:
            raise ValueError(f"{relative} is outside of {self.path}")
        return child

    def file(self, relative: str) -> File:
        path = self._child(relative)
        if not path.is_file():
            raise FileNotFoundError(f"{relative}: no such file in {self.path}")
        return File(path)

    def directory(self, relative: str) -> "Directory":
        path = self._child(relative)
        if not path.is_dir():
            raise NotADirectoryError(f"{relative}: no such directory in {self.path}")
        return Directory(path)

    def has_git_dir(self) -> bool:
        return (self.path / GIT_DIR).is_dir()

    def __repr__(self) -> str:
        return f"Directory({self.path})"


def _checkout_env() -> dict:
    credentials = TransportCredentials(
        config=[
            # Lets upload-pack serve objects that no ref points to
            ("uploadpack.allowAnySHA1InWant", "true"),
            ("advice.detachedHead", "false"),
            ("core.autocrlf", "false"),
            ("init.defaultBranch", "main"),
        ],
        env={"GIT_TERMINAL_PROMPT": "0"},
    )
    return credentials.environment()


def _checkout(
    resolved: ResolvedRef,
    target: Path,
    discard_git_dir: bool,
    cancel: Optional[Cancellation],
) -> None:
    handle = resolved.handle
    if handle is None:
        raise ValueError("ResolvedRef is detached from its repository")
    env = _checkout_env()
    try:
        run_git(["init", "--quiet", str(target)], env=env, cancel=cancel)
        run_git(
            ["fetch", "--no-tags", "--quiet", str(handle.object_dir), resolved.sha],
            env=env,
            cwd=target,
            cancel=cancel,
        )
        # Detached for every selector: trees are shared by digest, which
        # does not include the selector
        run_git(
            ["checkout", "--quiet", "--detach", resolved.sha],
            env=env,
            cwd=target,
            cancel=cancel,
        )
        if handle.is_remote and not discard_git_dir:
            run_git(
                ["remote", "add", "origin", handle.location.identity()],
                env=env,
                cwd=target,
                cancel=cancel,
            )
    except GitCommandFailed as e:
        raise classify_failure(
            e, handle.location.redacted_url(), action=f"failed to checkout {resolved.sha} from"
        )

    if discard_git_dir:
        shutil.rmtree(target / GIT_DIR)


def effective_options(resolved: ResolvedRef, options: Optional[TreeOptions]) -> TreeOptions:
    """Tree options as applied: bare local sources never keep a .git directory."""
    options = options or TreeOptions()
    handle = resolved.handle
    if handle is not None and not handle.has_worktree_metadata:
        return TreeOptions(discard_git_dir=True)
    return options


def materialize(
    resolved: ResolvedRef,
    options: Optional[TreeOptions] = None,
    *,
    dest: Optional[Path] = None,
    cancel: Optional[Cancellation] = None,
) -> Directory:
    """
    Write the tree of a resolved commit to disk.

    Args:
        resolved: The resolved ref, attached to its repository handle
        options: Tree options
        dest: Empty or missing directory to write to; defaults to the tree cache
        cancel: Deadline and cancel signal

    Returns:
        The materialized Directory, with its digest
    """
    if resolved.handle is None:
        raise ValueError("ResolvedRef is detached from its repository")
    options = effective_options(resolved, options)
    digest = fingerprint(resolved, options)

    if dest is not None:
        if dest.exists() and any(dest.iterdir()):
            raise ValueError(f"Checkout destination {dest} is not empty")
        fetch_object(resolved.handle, resolved.sha, refname=resolved.refname, cancel=cancel)
        logger.info(f"Checking out {resolved.location}@{resolved.sha[:7]} to {dest}")
        _checkout(resolved, dest, options.discard_git_dir, cancel)
        return Directory(dest, digest=digest)

    trees_dir = get_trees_dir()
    tree_path = trees_dir / digest_hex(digest)
    with FileLock(str(tree_path) + ".lock"):
        if tree_path.exists():
            logger.debug(f"Reusing checkout {tree_path}")
            return Directory(tree_path, digest=digest)

        logger.info(f"Checking out {resolved.location}@{resolved.sha[:7]} to {tree_path}")
        fetch_object(resolved.handle, resolved.sha, refname=resolved.refname, cancel=cancel)
        staging = Path(tempfile.mkdtemp(prefix=f".{tree_path.name}-", dir=trees_dir))
        try:
            _checkout(resolved, staging, options.discard_git_dir, cancel)
            staging.rename(tree_path)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise
    return Directory(tree_path, digest=digest)
