"""
Git resolution and checkout for gitsource.

Layers, leaf first:
    location   - parsing and identity of repository locations
    auth       - credentials for one git process
    patterns   - tag name patterns
    command    - running the git CLI with cancellation
    cache      - bare object cache per remote (dulwich + filelock)
    transport  - ref advertisement and object fetches
    resolver   - ref selectors and their resolution
    digest     - stable fingerprints of checkouts
    checkout   - materialized trees
    repository - the public facade
"""

from .auth import AuthConfig, HeaderAuth, NoAuth, SSHAuth, TokenAuth
from .cache import describe_cache
from .cancel import Cancellation
from .checkout import Directory, File, materialize
from .digest import fingerprint
from .location import LocationKind, RepositoryLocation, is_local_path
from .patterns import filter_tags, matches
from .repository import GitRef, GitRepository, as_git, git
from .resolver import (
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
from .transport import RefAdvertisement, RepositoryHandle, RepositoryShape, open_repository

__all__ = [
    "AuthConfig",
    "HeaderAuth",
    "NoAuth",
    "SSHAuth",
    "TokenAuth",
    "describe_cache",
    "Cancellation",
    "Directory",
    "File",
    "materialize",
    "fingerprint",
    "LocationKind",
    "RepositoryLocation",
    "is_local_path",
    "filter_tags",
    "matches",
    "GitRef",
    "GitRepository",
    "as_git",
    "git",
    "Branch",
    "Commit",
    "Head",
    "Ref",
    "RefSelector",
    "ResolvedRef",
    "Tag",
    "TreeOptions",
    "resolve",
    "RefAdvertisement",
    "RepositoryHandle",
    "RepositoryShape",
    "open_repository",
]
